"""
Loguru sink setup for the CLI.

Modules log through ``logger`` (usually under a subsystem alias such as
``launch_log``), so a record's ``name`` is its module path. That lets an
operator turn on DEBUG for one subsystem, e.g. ``--debug-scope
orchestration.failure``, while the rest of the tool stays at INFO.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from loguru import logger

PLAIN_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)

CLI_LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

PACKAGE_PREFIX = "benchy."


def normalize_scopes(scopes: Iterable[str]) -> tuple[str, ...]:
    """Qualify bare subsystem names with the package prefix."""
    normalized: list[str] = []
    for scope in scopes:
        scope = scope.strip()
        if not scope:
            continue
        if scope != "benchy" and not scope.startswith(PACKAGE_PREFIX):
            scope = PACKAGE_PREFIX + scope
        if scope not in normalized:
            normalized.append(scope)
    return tuple(normalized)


def scope_filter(scopes: Iterable[str]) -> Callable[[dict[str, Any]], bool]:
    """Pass DEBUG records emitted from within one of ``scopes``."""
    prefixes = normalize_scopes(scopes)

    def _filter(record: dict[str, Any]) -> bool:
        if record["level"].name != "DEBUG":
            return False
        name = record["name"] or ""
        return any(name == prefix or name.startswith(prefix + ".") for prefix in prefixes)

    return _filter


def configure_logging(
    level: str,
    *,
    debug_scopes: Iterable[str] = (),
    colorize: bool = False,
    log_file: Path | None = None,
) -> tuple[int, ...]:
    """Replace every loguru sink with the CLI's stderr (and optional file) sinks.

    Returns the handler ids so callers can remove them again.
    """
    logger.remove()
    log_format = CLI_LOG_FORMAT if colorize else PLAIN_LOG_FORMAT

    handler_ids = [
        logger.add(sys.stderr, level=level, format=log_format, colorize=colorize)
    ]

    scopes = normalize_scopes(debug_scopes)
    if scopes and level.upper() != "DEBUG":
        handler_ids.append(
            logger.add(
                sys.stderr,
                level="DEBUG",
                format=log_format,
                colorize=colorize,
                filter=scope_filter(scopes),
            )
        )

    if log_file is not None:
        # the file always gets the full debug stream
        handler_ids.append(
            logger.add(
                log_file,
                level="DEBUG",
                format=PLAIN_LOG_FORMAT,
            )
        )

    return tuple(handler_ids)
