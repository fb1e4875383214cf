"""Progress bars for CLI jobs, drawn on the same console as the log output."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


@dataclass
class ImportProgress:
    progress: Progress
    task_id: TaskID

    def advance(self, rows: int = 1) -> None:
        self.progress.advance(self.task_id, rows)

    def note(self, text: str) -> None:
        """Replace the trailing status text, e.g. the running failure count."""

        self.progress.update(self.task_id, status=text)


class ProgressManager:
    def __init__(self) -> None:
        self._console = Console(stderr=True)

    def use_console(self, console: Console) -> None:
        self._console = console

    def reset_console(self) -> None:
        self._console = Console(stderr=True)

    @contextmanager
    def task(
        self,
        description: str,
        *,
        total: Optional[int] = None,
        unit: str = "rows",
    ) -> Iterator[ImportProgress]:
        """Yield a bar for ``total`` units; hidden when stderr is not a terminal."""

        progress = Progress(
            TextColumn("[bold cyan]{task.description}[/]"),
            BarColumn(bar_width=None),
            MofNCompleteColumn(),
            TextColumn(unit),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            TextColumn("{task.fields[status]}"),
            console=self._console,
            transient=True,
            disable=not self._console.is_terminal,
        )
        with progress:
            task_id = progress.add_task(description, total=total, status="")
            yield ImportProgress(progress, task_id)


progress_manager = ProgressManager()
