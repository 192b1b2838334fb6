"""
Scored health checks for nodes and the whole network.

Each check is named and recorded as passed or failed; a failed check adds an
issue and takes its weight off a score that starts at 100.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from benchy.datastructures.network import HEALTH_QUORUM, Network, NetworkStatus, Node
from benchy.datastructures.type_aliases import Percentage, Timestamp

HIGH_USAGE_PERCENT: Percentage = 80.0
FULL_SCORE = 100.0

NODE_CHECK_WEIGHTS: dict[str, float] = {
    "online": 50.0,
    "cpu_ok": 20.0,
    "memory_ok": 20.0,
    "network_ok": 30.0,
}

NETWORK_CHECK_WEIGHTS: dict[str, float] = {
    "validators_online": 40.0,
    "network_running": 60.0,
    "quorum_healthy": 30.0,
}


@dataclass(frozen=True, slots=True)
class HealthStatus:
    is_healthy: bool
    score: float
    issues: tuple[str, ...] = ()
    checks: dict[str, bool] = field(default_factory=dict)
    checked_at: Timestamp = field(default_factory=time.time)


class _HealthTally:
    def __init__(self, weights: dict[str, float]) -> None:
        self._weights = weights
        self.checks: dict[str, bool] = {}
        self.issues: list[str] = []
        self.score = FULL_SCORE

    def record(self, check: str, passed: bool, issue: str) -> None:
        self.checks[check] = passed
        if not passed:
            self.issues.append(issue)
            self.score -= self._weights[check]

    def result(self) -> HealthStatus:
        return HealthStatus(
            is_healthy=not self.issues,
            score=max(0.0, self.score),
            issues=tuple(self.issues),
            checks=dict(self.checks),
        )


def check_node_health(node: Node) -> HealthStatus:
    metrics = node.metrics
    tally = _HealthTally(NODE_CHECK_WEIGHTS)
    tally.record("online", node.is_online, "Node is offline")
    tally.record(
        "cpu_ok",
        metrics.cpu_percent < HIGH_USAGE_PERCENT,
        f"High CPU usage: {metrics.cpu_percent:.1f}%",
    )
    tally.record(
        "memory_ok",
        metrics.memory_percent < HIGH_USAGE_PERCENT,
        f"High memory usage: {metrics.memory_percent:.1f}%",
    )
    tally.record("network_ok", metrics.peer_count > 0, "No connected peers")
    return tally.result()


def check_network_health(network: Network) -> HealthStatus:
    online = network.online_validator_count()
    tally = _HealthTally(NETWORK_CHECK_WEIGHTS)
    tally.record(
        "validators_online",
        online >= HEALTH_QUORUM,
        f"Only {online} validators online (minimum: {HEALTH_QUORUM})",
    )
    tally.record(
        "network_running",
        network.status is NetworkStatus.RUNNING,
        f"Network is {network.status.value}, not running",
    )
    tally.record("quorum_healthy", network.is_healthy(), "Validator quorum not reached")
    return tally.result()
