"""Progress sinks.

Extraction and upload report progress through an injected sink instead of
drawing bars themselves, so the core never depends on a terminal.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProgressSink(Protocol):
    """Receives cumulative progress. ``total`` is None while it is unknown."""

    def on_progress(self, current: int, total: int | None) -> None: ...


class NullProgress:
    """Sink that ignores every update."""

    def on_progress(self, current: int, total: int | None) -> None:
        return None


class RichProgress:
    """Render a single rich progress bar for one phase (parse or upload).

    Use as a context manager; the bar is removed when the block exits.
    """

    def __init__(self, description: str, console=None):
        from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task = self._progress.add_task(description, total=None)

    def __enter__(self) -> RichProgress:
        self._progress.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.stop()

    def on_progress(self, current: int, total: int | None) -> None:
        self._progress.update(self._task, completed=current, total=total)
