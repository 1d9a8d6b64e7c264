# episode_linker/ui/console.py

from __future__ import annotations

from types import TracebackType

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.prompt import Prompt

from ..config import console as default_console
from ..models import RunStats


class ProgressReporter:
    """
    Completed/total progress bar shared by all workers.

    With ``enabled=False`` only the counter is kept, which is what tests and
    non-interactive runs use.
    """

    def __init__(
        self,
        total: int,
        description: str = "Linking",
        *,
        enabled: bool = True,
        console: Console | None = None,
    ) -> None:
        self.total = total
        self.completed = 0
        self.description = description
        self.enabled = enabled
        self._console = console or default_console
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def __enter__(self) -> "ProgressReporter":
        if self.enabled:
            self._progress = Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(complete_style="green", finished_style="green"),
                MofNCompleteColumn(),
                TaskProgressColumn(),
                TimeRemainingColumn(),
                console=self._console,
            )
            self._progress.start()
            self._task = self._progress.add_task(self.description, total=self.total)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def advance(self) -> None:
        self.completed += 1
        if self._progress is not None and self._task is not None:
            self._progress.advance(self._task)


def prompt_for_paths(
    input_default: str, output_default: str
) -> tuple[str, str]:
    """Asks for input and output file names, re-asking on blank answers."""

    def _ask(message: str, default: str) -> str:
        while True:
            value = Prompt.ask(message, default=default, console=default_console)
            if value and value.strip():
                return value.strip()
            default_console.print("[red]Please enter a valid file name.[/red]")

    input_file = _ask("Enter the input file name", input_default)
    output_file = _ask("Enter the output file name", output_default)
    return input_file, output_file


def print_summary(stats: RunStats, output_file: str) -> None:
    default_console.print()
    default_console.print("[bold]Summary:[/bold]")
    default_console.print(f"  Records processed: {stats.completed}/{stats.total}")
    default_console.print(f"  [green]Show matches: {stats.show_matches}[/green]")
    default_console.print(f"  [green]Episode links: {stats.episode_matches}[/green]")
    default_console.print(f"  [magenta]Fallbacks: {stats.fallbacks}[/magenta]")
    if stats.errors:
        default_console.print(f"  [red]Errors: {stats.errors}[/red]")
    default_console.print(f"Output saved to [bold]{output_file}[/bold]")
