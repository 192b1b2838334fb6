from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Unsupported:
    """Result value for a capability this build does not provide."""

    capability: str
    reason: str = "not implemented"

    def __str__(self) -> str:
        return f"{self.capability} is not supported: {self.reason}"
