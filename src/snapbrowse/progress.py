from __future__ import annotations

import logging
from typing import Optional, Protocol

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress as RichProgress, SpinnerColumn, TextColumn, TimeElapsedColumn

logger = logging.getLogger(__name__)


class Progress(Protocol):
    def inc(self, n: int = 1) -> None: ...

    def finish(self) -> None: ...

    def __enter__(self) -> "Progress": ...

    def __exit__(self, *exc_info) -> None: ...


class ProgressBars(Protocol):
    def progress_counter(self, title: str) -> Progress: ...


class HiddenProgress:
    """Counts silently; only the final total is logged."""

    def __init__(self, title: str) -> None:
        self.title = title
        self.count = 0
        self.finished = False

    def inc(self, n: int = 1) -> None:
        self.count += n

    def finish(self) -> None:
        self.finished = True
        logger.info("%s: %d done", self.title, self.count)

    def __enter__(self) -> "HiddenProgress":
        return self

    def __exit__(self, *exc_info) -> None:
        self.finish()


class HiddenProgressBars:
    """Progress reporting for contexts that own the terminal, such as the TUI."""

    def progress_counter(self, title: str) -> HiddenProgress:
        return HiddenProgress(title)


class RichCounter:
    def __init__(self, title: str, console: Console) -> None:
        self._progress = RichProgress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=None),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task = self._progress.add_task(title, total=None)
        self._progress.start()
        self.count = 0

    def inc(self, n: int = 1) -> None:
        self.count += n
        self._progress.advance(self._task, n)

    @property
    def running(self) -> bool:
        return self._progress.live.is_started

    def finish(self) -> None:
        self._progress.stop()

    def __enter__(self) -> "RichCounter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.finish()


class RichProgressBars:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)

    def progress_counter(self, title: str) -> RichCounter:
        return RichCounter(title, self.console)
