from enum import StrEnum
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from benchy.core.persistence import PersistenceConfig, PersistenceMode


class RuntimeMode(StrEnum):
    """Which container runtime and RPC client the CLI wires up."""

    DOCKER = "docker"
    SIMULATED = "simulated"


class BenchySettings(BaseSettings):
    """benchy configuration settings.

    Values come from (highest priority first) constructor arguments,
    ``BENCHY_*`` environment variables, a ``.env`` file, then
    ``.benchy.toml`` in the working directory or the home directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHY_",
        env_file=".env",
        extra="ignore",
        toml_file=[Path.home() / ".benchy.toml", Path(".benchy.toml")],
    )

    base_dir: Path = Field(
        default_factory=lambda: Path.home() / ".benchy",
        description="Directory holding genesis, node data, keystores and state.",
    )
    network_name: str = Field(
        "benchy-network", description="Name of the shared container network."
    )
    chain_id: int = Field(1337, description="Chain id written into the genesis.")
    runtime: RuntimeMode = Field(
        RuntimeMode.DOCKER,
        description="Container runtime: the docker CLI or an in-process simulation.",
    )
    rpc_host: str = Field(
        "localhost", description="Host used to reach node JSON-RPC endpoints."
    )
    persistence: PersistenceMode = Field(
        PersistenceMode.SQLITE, description="Where network state is stored."
    )
    log_level: str = Field("INFO", description="Default log level.")
    log_debug_scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Subsystems logged at DEBUG regardless of log_level, e.g. orchestration.failure.",
    )
    log_file: Path | None = Field(
        None, description="Optional file receiving the full debug log."
    )

    launch_spacing: float = Field(
        2.0, description="Seconds to wait between starting consecutive nodes."
    )
    node_ready_timeout: float = Field(
        30.0, description="Per-node readiness budget in seconds during launch."
    )
    node_ready_interval: float = Field(
        2.0, description="Seconds between per-node readiness probes."
    )
    network_ready_timeout: float = Field(
        60.0, description="Budget in seconds for the network to become healthy."
    )
    network_ready_interval: float = Field(
        5.0, description="Seconds between network health evaluations."
    )
    failure_downtime: int = Field(
        40, description="Seconds a node stays down during a temporary failure."
    )
    recovery_timeout: float = Field(
        60.0, description="Budget in seconds for a restarted node to come back."
    )
    recovery_interval: float = Field(
        3.0, description="Seconds between recovery checks."
    )
    rpc_timeout: float = Field(
        5.0, description="Per-request timeout for JSON-RPC calls in seconds."
    )

    @field_validator("log_debug_scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    def persistence_config(self) -> PersistenceConfig:
        return PersistenceConfig(mode=self.persistence, data_dir=self.base_dir)

    @property
    def genesis_path(self) -> Path:
        return self.base_dir / "genesis.json"
