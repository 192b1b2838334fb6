"""
benchy: a lifecycle orchestrator for small private Clique networks.

Generates node identities and a Clique genesis, launches geth and
Nethermind containers, waits for validator quorum, and injects and recovers
from single-node failures.
"""

__version__ = "0.1.0"
