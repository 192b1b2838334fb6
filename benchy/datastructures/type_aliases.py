"""
Semantic type aliases for benchy datastructures.

Raw ``str``/``int``/``float`` values flow through the orchestrator in many
roles (node names, ports, wei amounts, durations). These aliases keep the
signatures self-documenting.
"""

from typing import Any, TypeAlias

# Time and timestamp types
Timestamp: TypeAlias = float
DurationSeconds: TypeAlias = float

# Identity and naming types
NodeName: TypeAlias = str
NetworkName: TypeAlias = str
ContainerRef: TypeAlias = str
ContainerNetworkName: TypeAlias = str
ChainId: TypeAlias = int

# Network endpoint types
HostAddress: TypeAlias = str
PortNumber: TypeAlias = int
UrlString: TypeAlias = str

# Chain quantities
BlockNumber: TypeAlias = int
PeerCount: TypeAlias = int
PendingTxCount: TypeAlias = int
WeiAmount: TypeAlias = int
EtherAmount: TypeAlias = float
GweiAmount: TypeAlias = float

# Resource usage
Percentage: TypeAlias = float
ByteSize: TypeAlias = int
MegabyteSize: TypeAlias = float

# Serialization types
JsonDict: TypeAlias = dict[str, Any]
