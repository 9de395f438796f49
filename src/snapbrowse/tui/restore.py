from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union, TYPE_CHECKING

from rich import box
from rich.panel import Panel
from rich.table import Table

from ..helpers import bytes_size_to_string, format_time
from ..ls import Summary
from ..model import Node
from .widgets import Frame, PopUpInput, PopUpPrompt, PopUpText, PromptResult, Rect, TextInputResult, footer_line

if TYPE_CHECKING:
    from ..repository import Repository

logger = logging.getLogger(__name__)

INFO_TEXT = "(Enter) accept | (Esc) cancel"


@dataclass
class EditTarget:
    popup: PopUpInput


@dataclass
class ConfirmRestore:
    prompt: PopUpPrompt


@dataclass
class ShowResult:
    popup: PopUpText


RestoreMode = Union[EditTarget, ConfirmRestore, ShowResult]


class Restore:
    """Restore one snapshot entry: choose a target, confirm, write, report."""

    def __init__(self, repo: "Repository", node: Node, source: str, default_target: str) -> None:
        self.repo = repo
        self.node = node
        self.source = source
        self.target = default_target
        self.summary: Optional[Summary] = None
        self.mode: RestoreMode = self._edit_target()

    def _edit_target(self) -> EditTarget:
        return EditTarget(PopUpInput("restore", f"restore {self.source} to:", self.target))

    def run(self) -> Summary:
        logger.info("restoring %s to %s", self.source, self.target)
        with self.repo.progress_bars().progress_counter("restoring") as progress:
            summary = self.repo.restore(self.node, Path(self.target), progress)
        return summary

    def input(self, key: str) -> bool:
        """Handle a key; returns True once the restore flow is finished."""
        mode = self.mode
        if isinstance(mode, EditTarget):
            result = mode.popup.input(key)
            if result == TextInputResult.CANCEL:
                return True
            if result == TextInputResult.INPUT and mode.popup.text.strip():
                self.target = mode.popup.text.strip()
                self.mode = ConfirmRestore(
                    PopUpPrompt("restore", f"restore {self.source} to {self.target}? (y/n)")
                )
        elif isinstance(mode, ConfirmRestore):
            result = mode.prompt.input(key)
            if result == PromptResult.OK:
                self.summary = self.run()
                self.mode = ShowResult(PopUpText("restore finished", (
                    f"restored {self.summary.files} files, {self.summary.dirs} dirs, "
                    f"{bytes_size_to_string(self.summary.size)}\nto {self.target}"
                )))
            elif result == PromptResult.CANCEL:
                self.mode = self._edit_target()
        elif isinstance(mode, ShowResult):
            return True
        return False

    def draw(self, area: Rect, frame: Frame) -> None:
        main, footer = area.split_bottom(1)
        details = Table.grid(padding=(0, 2))
        details.add_column(style="bold")
        details.add_column()
        details.add_row("source", self.source)
        details.add_row("type", self.node.node_type.value)
        details.add_row("mode", self.node.mode_str())
        details.add_row("size", bytes_size_to_string(self.node.meta.size))
        details.add_row("modified", format_time(self.node.meta.mtime))
        details.add_row("target", self.target)
        frame.render_widget(Panel(details, title="restore", box=box.HORIZONTALS), main)
        frame.render_widget(footer_line(INFO_TEXT), footer)

        mode = self.mode
        if isinstance(mode, EditTarget):
            mode.popup.draw(area, frame)
        elif isinstance(mode, ConfirmRestore):
            mode.prompt.draw(area, frame)
        else:
            mode.popup.draw(area, frame)
