"""Command-line interface for benchy."""

from .benchy_cli import BenchyCLI
from .main import cli, main

__all__ = ["BenchyCLI", "cli", "main"]
