"""
Orchestration flows: launch and teardown, readiness, failure injection,
monitoring and scenarios. Each flow is a small class wired with the runtime
collaborators it needs.
"""

from .commands import GETH_IMAGE, NETHERMIND_IMAGE, build_container_spec
from .failure import FailureInjector, FailurePhase, FailureReport, FailureTimings
from .launch import LaunchOrchestrator, LaunchReport, LaunchTimings, ShutdownReport
from .monitor import NetworkMonitor, NodeSnapshot, SyncStatus, check_sync
from .readiness import ReadinessPoller
from .scenario import ScenarioKind, parse_scenario, run_scenario

__all__ = [
    "GETH_IMAGE",
    "NETHERMIND_IMAGE",
    "FailureInjector",
    "FailurePhase",
    "FailureReport",
    "FailureTimings",
    "LaunchOrchestrator",
    "LaunchReport",
    "LaunchTimings",
    "NetworkMonitor",
    "NodeSnapshot",
    "ReadinessPoller",
    "ScenarioKind",
    "ShutdownReport",
    "SyncStatus",
    "build_container_spec",
    "check_sync",
    "parse_scenario",
    "run_scenario",
]
