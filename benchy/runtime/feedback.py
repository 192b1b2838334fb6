"""
Operator feedback: leveled messages, progress bars, spinners and tables.

The orchestrator only sees the :class:`Feedback` protocol. The console
implementation renders through ``rich``; tests use a recording fake.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
)
from rich.status import Status
from rich.table import Table


class ProgressTracker(Protocol):
    def update(self, current: int, message: str = "") -> None: ...

    def increment(self, message: str = "") -> None: ...

    def complete(self, message: str = "") -> None: ...

    def error(self, message: str) -> None: ...

    def close(self) -> None: ...


class Spinner(Protocol):
    def update_message(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def stop(self) -> None: ...


class Feedback(Protocol):
    """User-facing output channel."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def start_progress(self, title: str, total: int) -> ProgressTracker: ...

    def start_spinner(self, message: str) -> Spinner: ...

    def display_table(
        self, headers: Sequence[str], rows: Sequence[Sequence[str]]
    ) -> None: ...


class ConsoleProgress:
    """A single rich progress bar."""

    def __init__(self, console: Console, title: str, total: int) -> None:
        self._console = console
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        )
        self._title = title
        self._task: TaskID = self._progress.add_task(title, total=total)
        self._progress.start()
        self._closed = False

    def _describe(self, message: str) -> str:
        return f"{self._title}: {message}" if message else self._title

    def update(self, current: int, message: str = "") -> None:
        self._progress.update(
            self._task, completed=current, description=self._describe(message)
        )

    def increment(self, message: str = "") -> None:
        self._progress.update(
            self._task, advance=1, description=self._describe(message)
        )

    def complete(self, message: str = "") -> None:
        task = self._progress.tasks[0]
        self._progress.update(self._task, completed=task.total)
        self.close()
        self._console.print(f"[green]✅ {message or self._title}[/green]")

    def error(self, message: str) -> None:
        self.close()
        self._console.print(f"[red]❌ {message}[/red]")

    def close(self) -> None:
        if not self._closed:
            self._progress.stop()
            self._closed = True


class ConsoleSpinner:
    """A rich status line with a spinner."""

    def __init__(self, console: Console, message: str) -> None:
        self._console = console
        self._status = Status(message, console=console, spinner="dots")
        self._status.start()
        self._stopped = False

    def update_message(self, message: str) -> None:
        self._status.update(message)

    def success(self, message: str) -> None:
        self.stop()
        self._console.print(f"[green]{message}[/green]")

    def error(self, message: str) -> None:
        self.stop()
        self._console.print(f"[red]{message}[/red]")

    def stop(self) -> None:
        if not self._stopped:
            self._status.stop()
            self._stopped = True


class ConsoleFeedback:
    """Feedback rendered on a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ️  {message}[/blue]")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✅ {message}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {message}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]❌ {message}[/red]")

    def start_progress(self, title: str, total: int) -> ConsoleProgress:
        return ConsoleProgress(self.console, title, total)

    def start_spinner(self, message: str) -> ConsoleSpinner:
        return ConsoleSpinner(self.console, message)

    def display_table(
        self, headers: Sequence[str], rows: Sequence[Sequence[str]]
    ) -> None:
        table = Table(title="🌐 Network Status")
        for index, header in enumerate(headers):
            table.add_column(header, style="cyan" if index == 0 else None)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)
