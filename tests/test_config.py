from pathlib import Path

import pytest
from pydantic import ValidationError

from benchy.core.config import BenchySettings, RuntimeMode
from benchy.core.persistence import PersistenceMode


def test_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    settings = BenchySettings()
    assert settings.base_dir == Path.home() / ".benchy"
    assert settings.network_name == "benchy-network"
    assert settings.chain_id == 1337
    assert settings.runtime is RuntimeMode.DOCKER
    assert settings.persistence is PersistenceMode.SQLITE
    assert settings.failure_downtime == 40
    assert settings.node_ready_timeout == 30.0
    assert settings.node_ready_interval == 2.0
    assert settings.network_ready_timeout == 60.0
    assert settings.network_ready_interval == 5.0
    assert settings.genesis_path == settings.base_dir / "genesis.json"


def test_environment_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BENCHY_BASE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("BENCHY_RUNTIME", "simulated")
    monkeypatch.setenv("BENCHY_FAILURE_DOWNTIME", "5")
    settings = BenchySettings()
    assert settings.base_dir == tmp_path / "state"
    assert settings.runtime is RuntimeMode.SIMULATED
    assert settings.failure_downtime == 5

    persistence = settings.persistence_config()
    assert persistence.mode is PersistenceMode.SQLITE
    assert persistence.sqlite_path() == tmp_path / "state" / "benchy.sqlite"


def test_toml_file_in_working_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".benchy.toml").write_text(
        'chain_id = 4242\nnetwork_name = "lab-net"\npersistence = "memory"\n'
    )
    settings = BenchySettings()
    assert settings.chain_id == 4242
    assert settings.network_name == "lab-net"
    assert settings.persistence is PersistenceMode.MEMORY


def test_environment_beats_toml(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".benchy.toml").write_text("chain_id = 4242\n")
    monkeypatch.setenv("BENCHY_CHAIN_ID", "777")
    assert BenchySettings().chain_id == 777


def test_invalid_value_rejected(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BENCHY_RUNTIME", "podman")
    with pytest.raises(ValidationError):
        BenchySettings()


def test_debug_scopes_from_comma_separated_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BENCHY_LOG_DEBUG_SCOPES", "orchestration.failure, core.polling")
    settings = BenchySettings()
    assert settings.log_debug_scopes == ("orchestration.failure", "core.polling")


def test_debug_scopes_from_toml_list(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".benchy.toml").write_text('log_debug_scopes = ["runtime.docker"]\n')
    assert BenchySettings().log_debug_scopes == ("runtime.docker",)
