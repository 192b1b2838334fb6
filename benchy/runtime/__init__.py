"""
Collaborators the orchestrator drives: containers, chain RPC, operator
feedback and the state repository, each as a protocol plus adapters.
"""

from .capabilities import Unsupported
from .chain_rpc import ChainRPC, JsonRpcClient, wei_to_ether, wei_to_gwei
from .container import ContainerRuntime, ContainerSpec, ContainerStats
from .docker import DockerRuntime
from .feedback import ConsoleFeedback, Feedback, ProgressTracker, Spinner
from .repository import NetworkRepository, RecordNetworkRepository
from .simulated import SimulatedChainRPC, SimulatedContainerRuntime

__all__ = [
    "ChainRPC",
    "ConsoleFeedback",
    "ContainerRuntime",
    "ContainerSpec",
    "ContainerStats",
    "DockerRuntime",
    "Feedback",
    "JsonRpcClient",
    "NetworkRepository",
    "ProgressTracker",
    "RecordNetworkRepository",
    "SimulatedChainRPC",
    "SimulatedContainerRuntime",
    "Spinner",
    "Unsupported",
    "wei_to_ether",
    "wei_to_gwei",
]
