"""
Client command builders.

Each execution client owns its image and the way its command line is put
together. :func:`build_container_spec` combines that with the volume, port
and label layout shared by every node container.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from benchy.core.errors import ConfigurationError
from benchy.datastructures.genesis import DEFAULT_CHAIN_ID
from benchy.datastructures.node_config import ClientKind, NodeConfig
from benchy.datastructures.type_aliases import ChainId, ContainerNetworkName
from benchy.runtime.container import LABEL_PREFIX, ContainerSpec, container_name_for

GETH_IMAGE = "ethereum/client-go:v1.10.26"
NETHERMIND_IMAGE = "nethermind/nethermind:1.14.7"

DATA_MOUNT = "/data"
KEYSTORE_MOUNT = "/keystore"
GENESIS_MOUNT = "/genesis.json"

GETH_HTTP_APIS = "eth,net,web3,personal,miner,admin,debug"
GETH_WS_APIS = "eth,net,web3,personal,miner,admin"
NETHERMIND_RPC_MODULES = (
    "Eth,Subscribe,Trace,TxPool,Web3,Personal,Proof,Net,Parity,Health,Rpc"
)


@dataclass(frozen=True, slots=True)
class ClientInvocation:
    """Image plus the process the container should run."""

    image: str
    command: tuple[str, ...]
    entrypoint: str | None = None


class ClientCommandBuilder(Protocol):
    image: str

    def build(
        self, config: NodeConfig, *, chain_id: ChainId, first_start: bool
    ) -> ClientInvocation: ...


@dataclass(frozen=True, slots=True)
class GethCommand:
    image: str = GETH_IMAGE

    def arguments(self, config: NodeConfig, chain_id: ChainId) -> list[str]:
        args = [
            "--datadir", DATA_MOUNT,
            "--keystore", KEYSTORE_MOUNT,
            "--networkid", str(chain_id),
            "--port", str(config.port),
            "--http",
            "--http.addr", "0.0.0.0",
            "--http.port", str(config.rpc_port),
            "--http.api", GETH_HTTP_APIS,
            "--http.corsdomain", "*",
            "--ws",
            "--ws.addr", "0.0.0.0",
            "--ws.port", str(config.ws_port),
            "--ws.api", GETH_WS_APIS,
            "--ws.origins", "*",
            "--allow-insecure-unlock",
            "--nodiscover",
            "--maxpeers", "25",
            "--syncmode", "full",
            "--gcmode", "archive",
            "--verbosity", "3",
            "--nat", "extip:127.0.0.1",
        ]
        if config.is_validator:
            args += [
                "--mine",
                "--miner.threads", "1",
                "--miner.etherbase", config.address.checksum(),
            ]
        return args

    def build(
        self, config: NodeConfig, *, chain_id: ChainId, first_start: bool
    ) -> ClientInvocation:
        args = self.arguments(config, chain_id)
        if not first_start:
            return ClientInvocation(image=self.image, command=tuple(args))
        # the image entrypoint is geth itself; go through a shell to chain init
        script = (
            f"geth init --datadir {DATA_MOUNT} {GENESIS_MOUNT} && "
            f"exec geth {shlex.join(args)}"
        )
        return ClientInvocation(image=self.image, command=("-c", script), entrypoint="sh")


@dataclass(frozen=True, slots=True)
class NethermindCommand:
    image: str = NETHERMIND_IMAGE

    def build(
        self, config: NodeConfig, *, chain_id: ChainId, first_start: bool
    ) -> ClientInvocation:
        # TODO: convert the geth genesis into a Nethermind chainspec; this file
        # is geth-format, so Nethermind nodes do not join the Clique chain yet.
        args = [
            "--config", "mainnet",
            "--datadir", DATA_MOUNT,
            "--Network.DiscoveryPort", str(config.port),
            "--Network.P2PPort", str(config.port),
            "--JsonRpc.Enabled", "true",
            "--JsonRpc.Host", "0.0.0.0",
            "--JsonRpc.Port", str(config.rpc_port),
            "--JsonRpc.EnabledModules", NETHERMIND_RPC_MODULES,
            "--Init.ChainSpecPath", GENESIS_MOUNT,
        ]
        if config.is_validator:
            author = config.address.checksum()
            args += [
                "--Mining.Enabled", "true",
                "--KeyStore.KeyStoreDirectory", KEYSTORE_MOUNT,
                "--KeyStore.BlockAuthorAccount", author,
                "--KeyStore.UnlockAccounts", author,
            ]
        return ClientInvocation(
            image=self.image, command=tuple(args), entrypoint="./Nethermind.Runner"
        )


COMMAND_BUILDERS: dict[ClientKind, ClientCommandBuilder] = {
    ClientKind.GETH: GethCommand(),
    ClientKind.NETHERMIND: NethermindCommand(),
}


def builder_for(client: ClientKind) -> ClientCommandBuilder:
    builder = COMMAND_BUILDERS.get(client)
    if builder is None:
        raise ConfigurationError(
            f"No command builder for client {client}", operation="build_command"
        )
    return builder


def is_first_start(config: NodeConfig) -> bool:
    """Geth keeps its chain database under ``<datadir>/geth`` once initialised."""
    return not (config.data_dir / "geth").exists()


def build_container_spec(
    config: NodeConfig,
    *,
    genesis_path: Path,
    network_name: ContainerNetworkName,
    chain_id: ChainId = DEFAULT_CHAIN_ID,
    first_start: bool | None = None,
) -> ContainerSpec:
    invocation = builder_for(config.client).build(
        config,
        chain_id=chain_id,
        first_start=is_first_start(config) if first_start is None else first_start,
    )
    return ContainerSpec(
        name=container_name_for(config.name),
        image=invocation.image,
        command=invocation.command,
        entrypoint=invocation.entrypoint,
        network=network_name,
        ports={config.port: config.port, config.rpc_port: config.rpc_port},
        volumes={
            config.data_dir: DATA_MOUNT,
            config.keystore_dir: KEYSTORE_MOUNT,
            genesis_path: GENESIS_MOUNT,
        },
        labels={
            f"{LABEL_PREFIX}name": config.name,
            f"{LABEL_PREFIX}validator": str(config.is_validator).lower(),
            f"{LABEL_PREFIX}client": config.client.value,
        },
    )
