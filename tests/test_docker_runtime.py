"""Tests for the docker CLI adapter: output parsing and argument building."""

from pathlib import Path

import pytest

from benchy.core.errors import ContainerRuntimeError, RuntimeUnavailable
from benchy.runtime.container import ContainerSpec, ContainerStats, container_name_for
from benchy.runtime.docker import (
    DockerRuntime,
    build_create_args,
    parse_size,
    parse_stats_line,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("0B", 0),
        ("512B", 512),
        ("1.5kB", 1500),
        ("12MiB", 12 * 1024 * 1024),
        ("1.94GiB", int(1.94 * 1024**3)),
        (" 7.5MB ", 7_500_000),
        ("42", 42),
    ],
)
def test_parse_size(text: str, expected: int):
    assert parse_size(text) == expected


@pytest.mark.parametrize("text", ["", "MiB", "12 parsecs", "-3MiB"])
def test_parse_size_rejects_garbage(text: str):
    with pytest.raises(ValueError):
        parse_size(text)


def test_parse_stats_line():
    line = (
        '{"BlockIO":"0B / 0B","CPUPerc":"3.27%","Container":"benchy-alice",'
        '"MemPerc":"12.80%","MemUsage":"256MiB / 1.953GiB","Name":"benchy-alice"}'
    )
    stats = parse_stats_line(line)
    assert stats.cpu_percent == pytest.approx(3.27)
    assert stats.memory_bytes == 256 * 1024 * 1024
    assert stats.memory_mb == pytest.approx(256.0)
    assert stats.memory_limit_bytes == int(1.953 * 1024**3)
    assert stats.memory_percent == pytest.approx(12.80, abs=0.01)


def test_parse_stats_line_defaults():
    assert parse_stats_line("{}") == ContainerStats()
    assert ContainerStats().memory_percent == 0.0


def test_parse_stats_line_rejects_invalid_json():
    with pytest.raises(ValueError):
        parse_stats_line("not json")


def test_build_create_args(tmp_path: Path):
    data_dir = tmp_path / "alice" / "data"
    spec = ContainerSpec(
        name=container_name_for("alice"),
        image="ethereum/client-go:v1.10.26",
        command=("--port", "30303"),
        network="benchy-network",
        ports={30303: 30303, 8545: 8545},
        volumes={data_dir: "/data"},
        labels={"benchy.node.name": "alice"},
        environment={"GETH_VERBOSITY": "3"},
        entrypoint="sh",
    )
    args = build_create_args(spec)
    assert args[:5] == ["create", "--name", "benchy-alice", "--network", "benchy-network"]
    assert ["-p", "30303:30303"] == args[5:7]
    assert ["-p", "8545:8545"] == args[7:9]
    assert ["-v", f"{data_dir.resolve()}:/data"] == args[9:11]
    assert ["--label", "benchy.node.name=alice"] == args[11:13]
    assert ["-e", "GETH_VERBOSITY=3"] == args[13:15]
    assert ["--entrypoint", "sh"] == args[15:17]
    assert args[17:] == ["ethereum/client-go:v1.10.26", "--port", "30303"]


def test_build_create_args_without_entrypoint():
    spec = ContainerSpec(name="n", image="img", command=(), network="net")
    assert build_create_args(spec) == ["create", "--name", "n", "--network", "net", "img"]


class TestDockerRuntimeProcess:
    @pytest.mark.asyncio
    async def test_missing_binary_is_unavailable(self):
        runtime = DockerRuntime(binary="benchy-no-such-docker-binary")
        with pytest.raises(RuntimeUnavailable) as exc_info:
            await runtime.is_running("abc")
        assert exc_info.value.operation == "inspect_container"

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_runtime_error(self):
        runtime = DockerRuntime(binary="false")
        with pytest.raises(ContainerRuntimeError) as exc_info:
            await runtime.stop("abc")
        assert not isinstance(exc_info.value, RuntimeUnavailable)
        assert exc_info.value.operation == "stop_container"

    @pytest.mark.asyncio
    async def test_empty_inspect_output_is_not_running(self):
        runtime = DockerRuntime(binary="true")
        assert await runtime.is_running("abc") is False
        assert await runtime.stats("abc") == ContainerStats()

    @pytest.mark.asyncio
    async def test_network_lookup_failure_means_absent(self):
        runtime = DockerRuntime(binary="false")
        assert await runtime.network_exists("benchy-network") is False
