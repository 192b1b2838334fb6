"""
Tests for the benchy CLI.

Commands run through click's CliRunner against the simulated runtime with
millisecond timings. The simulated runtime lives only as long as one
invocation, so multi-step flows are driven through BenchyCLI directly.
"""

import pytest
from click.testing import CliRunner
from loguru import logger

from benchy.cli.benchy_cli import BenchyCLI
from benchy.cli.main import cli
from benchy.core.config import BenchySettings, RuntimeMode
from benchy.core.errors import PreconditionFailed
from benchy.core.persistence import PersistenceMode
from benchy.datastructures.network import NetworkStatus, NodeStatus
from benchy.orchestration.failure import FailurePhase
from benchy.runtime.capabilities import Unsupported
from tests.fakes import RecordingFeedback

FAST_ENV = {
    "BENCHY_LAUNCH_SPACING": "0",
    "BENCHY_NODE_READY_TIMEOUT": "0.05",
    "BENCHY_NODE_READY_INTERVAL": "0.01",
    "BENCHY_NETWORK_READY_TIMEOUT": "0.1",
    "BENCHY_NETWORK_READY_INTERVAL": "0.01",
    "BENCHY_RECOVERY_TIMEOUT": "0.1",
    "BENCHY_RECOVERY_INTERVAL": "0.01",
}


@pytest.fixture(autouse=True)
def release_log_sinks():
    # configure_logging binds loguru to the runner's temporary stderr
    yield
    logger.remove()


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return CliRunner(env={**FAST_ENV, "BENCHY_BASE_DIR": str(tmp_path / "benchy")})


def invoke(runner, *args):
    return runner.invoke(cli, ["--simulated", *args])


class TestCommands:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in (
            "launch-network",
            "infos",
            "temporary-failure",
            "scenario",
            "shutdown",
            "docker",
        ):
            assert command in result.output

    def test_launch_network(self, runner, tmp_path):
        result = invoke(runner, "launch-network")
        assert result.exit_code == 0, result.output
        assert "Network launched" in result.output
        assert (tmp_path / "benchy" / "genesis.json").exists()
        assert (tmp_path / "benchy" / "benchy.sqlite").exists()

    def test_relaunch_reuses_keys_and_refuses_running_network(self, runner, tmp_path):
        assert invoke(runner, "launch-network").exit_code == 0
        keystore = tmp_path / "benchy" / "nodes" / "alice" / "keystore"
        key_file = keystore / "alice-private.key"
        key = key_file.read_bytes()

        result = invoke(runner, "launch-network")
        assert result.exit_code == 1
        assert "running" in result.output
        assert key_file.read_bytes() == key

    def test_infos_without_network(self, runner):
        result = invoke(runner, "infos")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_infos_after_launch(self, runner):
        assert invoke(runner, "launch-network").exit_code == 0
        result = invoke(runner, "infos")
        assert result.exit_code == 0, result.output
        assert "Network Status" in result.output
        assert "alice" in result.output

    def test_temporary_failure_unknown_node(self, runner):
        assert invoke(runner, "launch-network").exit_code == 0
        result = invoke(runner, "temporary-failure", "mallory")
        assert result.exit_code == 1
        assert "node=mallory" in result.output

    def test_downtime_must_be_positive(self, runner):
        result = invoke(runner, "temporary-failure", "alice", "--downtime", "0")
        assert result.exit_code == 2

    @pytest.mark.parametrize("name", ["1", "erc20"])
    def test_scenario_is_unsupported(self, runner, name):
        result = invoke(runner, "scenario", name)
        assert result.exit_code == 1
        assert "not supported" in result.output

    def test_unknown_scenario(self, runner):
        result = invoke(runner, "scenario", "airdrop")
        assert result.exit_code == 1
        assert "Unknown scenario" in result.output

    def test_docker_check(self, runner):
        result = invoke(runner, "docker", "check")
        assert result.exit_code == 0, result.output
        assert "Container runtime is available" in result.output

    def test_debug_scope_and_log_file(self, runner, tmp_path):
        log_file = tmp_path / "benchy.log"
        result = runner.invoke(
            cli,
            ["--simulated", "--debug-scope", "orchestration", "docker", "check"],
            env={"BENCHY_LOG_FILE": str(log_file)},
        )
        assert result.exit_code == 0, result.output
        logger.remove()
        assert "Runtime check passed" in log_file.read_text()

    def test_invalid_configuration(self, runner):
        result = runner.invoke(
            cli, ["--simulated", "infos"], env={"BENCHY_CHAIN_ID": "abc"}
        )
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


@pytest.fixture
def settings(tmp_path):
    return BenchySettings(
        base_dir=tmp_path / "benchy",
        runtime=RuntimeMode.SIMULATED,
        persistence=PersistenceMode.MEMORY,
        launch_spacing=0,
        node_ready_timeout=0.05,
        node_ready_interval=0.01,
        network_ready_timeout=0.1,
        network_ready_interval=0.01,
        recovery_timeout=0.1,
        recovery_interval=0.01,
    )


class TestBenchyCLI:
    @pytest.mark.asyncio
    async def test_launch_fail_and_shutdown(self, settings):
        feedback = RecordingFeedback()
        async with BenchyCLI(settings, feedback=feedback) as benchy_cli:
            launch = await benchy_cli.launch_network()
            assert launch.network.status is NetworkStatus.RUNNING

            report = await benchy_cli.temporary_failure("bob", downtime=1)
            assert report.phase is FailurePhase.RECOVERED
            bob = await benchy_cli.repository.get_node(settings.network_name, "bob")
            assert bob.status is NodeStatus.ONLINE

            await benchy_cli.show_infos()
            assert len(feedback.tables) == 1

            shutdown = await benchy_cli.shutdown()
            assert shutdown.failed_nodes == []
            assert "Network stopped" in feedback.of_level("success")

    @pytest.mark.asyncio
    async def test_failure_on_stopped_network(self, settings):
        async with BenchyCLI(settings, feedback=RecordingFeedback()) as benchy_cli:
            await benchy_cli.launch_network()
            await benchy_cli.shutdown()
            with pytest.raises(PreconditionFailed):
                await benchy_cli.temporary_failure("alice", downtime=1)

    @pytest.mark.asyncio
    async def test_scenario_result(self, settings):
        feedback = RecordingFeedback()
        async with BenchyCLI(settings, feedback=feedback) as benchy_cli:
            result = benchy_cli.scenario("0")
        assert isinstance(result, Unsupported)
        assert feedback.of_level("warning") == [str(result)]

    def test_repository_requires_context(self, settings):
        with pytest.raises(RuntimeError):
            BenchyCLI(settings, feedback=RecordingFeedback()).repository
