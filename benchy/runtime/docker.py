"""
Docker adapter driving the ``docker`` CLI.

Each call spawns one ``docker`` subprocess through asyncio and parses its
stdout. A missing binary or an unreachable daemon surfaces as
:class:`~benchy.core.errors.RuntimeUnavailable`; any other non-zero exit is a
:class:`~benchy.core.errors.ContainerRuntimeError` carrying stderr.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass

import orjson
from loguru import logger

from benchy.core.errors import ContainerRuntimeError, RuntimeUnavailable
from benchy.datastructures.network import Node
from benchy.datastructures.type_aliases import ContainerNetworkName, ContainerRef

from .container import ContainerSpec, ContainerStats

docker_log = logger

DAEMON_UNREACHABLE_MARKERS = (
    "Cannot connect to the Docker daemon",
    "error during connect",
)

_SIZE_UNITS = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
    "gb": 1000**3,
    "gib": 1024**3,
    "tb": 1000**4,
    "tib": 1024**4,
}

_SIZE_PATTERN = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*([A-Za-z]*)\s*$")


def parse_size(text: str) -> int:
    """Parse a docker size such as ``12.5MiB`` into bytes."""
    match = _SIZE_PATTERN.match(text)
    if match is None:
        raise ValueError(f"Unrecognized size: {text!r}")
    value, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.lower() or "b")
    if multiplier is None:
        raise ValueError(f"Unrecognized size unit: {unit!r}")
    return int(float(value) * multiplier)


def parse_stats_line(line: str) -> ContainerStats:
    """Parse one ``docker stats --format '{{json .}}'`` record."""
    payload = orjson.loads(line)
    cpu_text = str(payload.get("CPUPerc", "0%")).rstrip("%").strip() or "0"
    usage_text, _, limit_text = str(payload.get("MemUsage", "0B / 0B")).partition("/")
    return ContainerStats(
        cpu_percent=float(cpu_text),
        memory_bytes=parse_size(usage_text),
        memory_limit_bytes=parse_size(limit_text) if limit_text.strip() else 0,
    )


def build_create_args(spec: ContainerSpec) -> list[str]:
    """Translate a container spec into ``docker create`` arguments."""
    args = ["create", "--name", spec.name, "--network", spec.network]
    for host_port, container_port in spec.ports.items():
        args += ["-p", f"{host_port}:{container_port}"]
    for host_path, container_path in spec.volumes.items():
        args += ["-v", f"{host_path.resolve()}:{container_path}"]
    for key, value in spec.labels.items():
        args += ["--label", f"{key}={value}"]
    for key, value in spec.environment.items():
        args += ["-e", f"{key}={value}"]
    if spec.entrypoint is not None:
        args += ["--entrypoint", spec.entrypoint]
    args.append(spec.image)
    args.extend(spec.command)
    return args


@dataclass(slots=True)
class DockerRuntime:
    """ContainerRuntime implementation over the docker CLI."""

    binary: str = "docker"
    command_timeout: float = 60.0

    async def _run(self, *args: str, operation: str) -> str:
        docker_log.debug("docker {}", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailable(
                f"{self.binary} executable not found", operation=operation
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.command_timeout
            )
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ContainerRuntimeError(
                f"docker {args[0]} timed out after {self.command_timeout:g}s",
                operation=operation,
            ) from exc

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            if any(marker in message for marker in DAEMON_UNREACHABLE_MARKERS):
                raise RuntimeUnavailable(message, operation=operation)
            raise ContainerRuntimeError(
                message or f"docker {args[0]} exited with {proc.returncode}",
                operation=operation,
            )
        return stdout.decode(errors="replace").strip()

    async def create_container(self, node: Node, spec: ContainerSpec) -> ContainerRef:
        output = await self._run(*build_create_args(spec), operation="create_container")
        ref = output.splitlines()[-1] if output else spec.name
        docker_log.info("Created container {} for {}", spec.name, node.name)
        return ref

    async def start(self, ref: ContainerRef) -> None:
        await self._run("start", ref, operation="start_container")

    async def stop(self, ref: ContainerRef) -> None:
        await self._run("stop", ref, operation="stop_container")

    async def restart(self, ref: ContainerRef) -> None:
        await self._run("restart", ref, operation="restart_container")

    async def remove(self, ref: ContainerRef) -> None:
        await self._run("rm", "-f", ref, operation="remove_container")

    async def is_running(self, ref: ContainerRef) -> bool:
        output = await self._run(
            "inspect", "--format", "{{.State.Running}}", ref, operation="inspect_container"
        )
        return output.lower() == "true"

    async def stats(self, ref: ContainerRef) -> ContainerStats:
        output = await self._run(
            "stats", "--no-stream", "--format", "{{json .}}", ref, operation="stats"
        )
        if not output:
            return ContainerStats()
        try:
            return parse_stats_line(output.splitlines()[0])
        except ValueError as exc:
            raise ContainerRuntimeError(
                f"Unparseable stats output: {exc}", operation="stats"
            ) from exc

    async def network_exists(self, name: ContainerNetworkName) -> bool:
        try:
            await self._run("network", "inspect", name, operation="inspect_network")
        except RuntimeUnavailable:
            raise
        except ContainerRuntimeError:
            return False
        return True

    async def create_network(self, name: ContainerNetworkName) -> None:
        if await self.network_exists(name):
            docker_log.debug("Network {} already exists", name)
            return
        await self._run("network", "create", name, operation="create_network")
        docker_log.info("Created network {}", name)

    async def remove_network(self, name: ContainerNetworkName) -> None:
        await self._run("network", "rm", name, operation="remove_network")
        docker_log.info("Removed network {}", name)
