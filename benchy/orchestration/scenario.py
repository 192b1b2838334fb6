"""Transaction scenarios: names are recognised, execution is not provided."""

from __future__ import annotations

from enum import StrEnum

from benchy.core.errors import ConfigurationError
from benchy.runtime.capabilities import Unsupported


class ScenarioKind(StrEnum):
    INIT = "init"
    TRANSFERS = "transfers"
    ERC20 = "erc20"
    REPLACEMENT = "replacement"


SCENARIO_DESCRIPTIONS: dict[ScenarioKind, str] = {
    ScenarioKind.INIT: "Initialize network with ETH for validators",
    ScenarioKind.TRANSFERS: "Alice sends 0.1 ETH to Bob every 10 seconds",
    ScenarioKind.ERC20: "Deploy ERC20 token and distribute to Driss/Elena",
    ScenarioKind.REPLACEMENT: "Test transaction replacement with higher fee",
}

# scenarios can be selected by position as well as by name
_ORDERED = tuple(ScenarioKind)


def parse_scenario(name: str) -> ScenarioKind:
    value = name.strip().lower()
    if value.isdigit() and int(value) < len(_ORDERED):
        return _ORDERED[int(value)]
    try:
        return ScenarioKind(value)
    except ValueError as exc:
        choices = ", ".join(kind.value for kind in _ORDERED)
        raise ConfigurationError(
            f"Unknown scenario {name!r}; use 0-{len(_ORDERED) - 1} or {choices}",
            operation="scenario",
        ) from exc


def run_scenario(name: str) -> Unsupported:
    kind = parse_scenario(name)
    return Unsupported(
        capability=f"scenario {kind.value}",
        reason="transaction scenarios are not implemented",
    )
