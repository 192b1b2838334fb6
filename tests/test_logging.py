from types import SimpleNamespace

import pytest
from loguru import logger

from benchy.core.logging import configure_logging, normalize_scopes, scope_filter


@pytest.fixture(autouse=True)
def reset_sinks():
    yield
    logger.remove()


def record(name: str, level: str = "DEBUG") -> dict:
    return {"name": name, "level": SimpleNamespace(name=level)}


def test_normalize_scopes():
    assert normalize_scopes(
        [" orchestration.failure ", "benchy.core", "", "orchestration.failure"]
    ) == ("benchy.orchestration.failure", "benchy.core")


class TestScopeFilter:
    def test_matches_module_and_children(self):
        accept = scope_filter(["orchestration"])
        assert accept(record("benchy.orchestration"))
        assert accept(record("benchy.orchestration.launch"))

    def test_rejects_other_modules(self):
        accept = scope_filter(["orchestration.failure"])
        assert not accept(record("benchy.orchestration.launch"))
        assert not accept(record("benchy.orchestration.failures"))

    def test_only_debug_records(self):
        accept = scope_filter(["core"])
        assert not accept(record("benchy.core.polling", level="INFO"))


def test_stderr_sink_respects_level(capsys):
    configure_logging("INFO")
    logger.debug("hidden detail")
    logger.info("launch started")
    err = capsys.readouterr().err
    assert "launch started" in err
    assert "hidden detail" not in err


def test_file_sink_gets_debug(tmp_path):
    log_file = tmp_path / "benchy.log"
    handler_ids = configure_logging("WARNING", log_file=log_file)
    assert len(handler_ids) == 2

    logger.debug("probe attempt 3 failed")
    logger.remove()

    assert "probe attempt 3 failed" in log_file.read_text()


def test_scoped_sink_added_below_debug():
    assert len(configure_logging("INFO", debug_scopes=["orchestration"])) == 2
    assert len(configure_logging("DEBUG", debug_scopes=["orchestration"])) == 1
