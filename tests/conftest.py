"""Pytest configuration and fixtures for benchy testing.

Everything runs against the simulated runtime and chain client with
millisecond timings, so no test needs Docker or a live node.
"""

from pathlib import Path

import pytest

from benchy.core.persistence import MemoryRecordStore
from benchy.datastructures.node_config import NodeConfig, NodeConfigAssembler
from benchy.orchestration.failure import FailureInjector, FailureTimings
from benchy.orchestration.launch import LaunchOrchestrator, LaunchTimings
from benchy.runtime.repository import RecordNetworkRepository
from benchy.runtime.simulated import SimulatedChainRPC, SimulatedContainerRuntime
from tests.fakes import RecordingFeedback

FAST_LAUNCH = LaunchTimings(
    spacing=0.0,
    node_timeout=0.05,
    node_interval=0.01,
    network_timeout=0.1,
    network_interval=0.01,
)

FAST_FAILURE = FailureTimings(
    downtime=3,
    tick=0.001,
    recovery_interval=0.005,
    recovery_timeout=0.05,
)


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    return tmp_path / "benchy"


@pytest.fixture
def configs(base_dir: Path) -> list[NodeConfig]:
    return NodeConfigAssembler(base_dir=base_dir).generate_default_set()


@pytest.fixture
def runtime() -> SimulatedContainerRuntime:
    return SimulatedContainerRuntime()


@pytest.fixture
def chain() -> SimulatedChainRPC:
    return SimulatedChainRPC()


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def repository() -> RecordNetworkRepository:
    return RecordNetworkRepository(MemoryRecordStore())


@pytest.fixture
def orchestrator(
    runtime: SimulatedContainerRuntime,
    chain: SimulatedChainRPC,
    feedback: RecordingFeedback,
    repository: RecordNetworkRepository,
    base_dir: Path,
) -> LaunchOrchestrator:
    return LaunchOrchestrator(
        runtime=runtime,
        chain=chain,
        feedback=feedback,
        repository=repository,
        base_dir=base_dir,
        timings=FAST_LAUNCH,
    )


@pytest.fixture
def injector(
    runtime: SimulatedContainerRuntime,
    feedback: RecordingFeedback,
    repository: RecordNetworkRepository,
) -> FailureInjector:
    return FailureInjector(
        runtime=runtime,
        repository=repository,
        feedback=feedback,
        timings=FAST_FAILURE,
    )

