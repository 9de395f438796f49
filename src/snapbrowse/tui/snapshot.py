"""
Browser screen for the contents of one snapshot.

The screen is a small state machine: exactly one mode is active at a time,
and every key goes to the handler of that mode only. Descending into a
directory pushes the parent (tree, tree id, selected row) on a navigation
stack; going back pops it again, so selection and contents come back as they
were.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Union, TYPE_CHECKING

from ..config import BrowserConfig, DEFAULT_CONFIG
from ..helpers import bytes_size_to_string, format_time
from ..ls import Summary, owner_names
from ..model import Node, SnapshotFile
from ..repository import RepositoryError
from .restore import Restore
from .state import NavigationFrame, NavigationStack
from .summary import SummaryMap
from .widgets import (
    Frame,
    PopUpPrompt,
    PopUpScrollableText,
    PopUpText,
    PromptResult,
    Rect,
    SelectTable,
    TextInputResult,
    footer_line,
)

if TYPE_CHECKING:
    from ..repository import Repository

logger = logging.getLogger(__name__)

INFO_TEXT = "(Esc) quit | (Enter) enter dir | (Backspace) return to parent | (v) view | (r) restore | (?) show all commands"

HELP_TEXT = """
Ls Commands:

          v : view file contents (text files only, up to 1MiB)
          r : restore selected item
          n : toggle numeric IDs
          s : compute information for (sub)-dirs

General Commands:

      q,Esc : exit
      Enter : enter dir
  Backspace : return to parent dir
          ? : show this help page
"""

HEADER = ("Name", "Size", "Mode", "User", "Group", "Time")
JUSTIFY = ("left", "right", "left", "left", "left", "left")

HELP_CLOSE_KEYS = ("q", " ", "?", "escape", "enter")


# the modes this screen can be in
@dataclass
class Browsing:
    pass


@dataclass
class ShowingHelp:
    popup: PopUpText


@dataclass
class InRestore:
    restore: Restore


@dataclass
class ConfirmingExit:
    prompt: PopUpPrompt


@dataclass
class ShowingFile:
    popup: PopUpScrollableText


Mode = Union[Browsing, ShowingHelp, InRestore, ConfirmingExit, ShowingFile]


@dataclass(frozen=True)
class Exit:
    """The user confirmed quitting the application."""


@dataclass(frozen=True)
class Return:
    """The user went back past the snapshot root; hands the summary cache back."""

    summary_map: SummaryMap


SnapshotResult = Optional[Union[Exit, Return]]


class SnapshotBrowser:
    def __init__(
        self,
        repo: "Repository",
        snapshot: SnapshotFile,
        summary_map: SummaryMap,
        numeric: bool = False,
        config: BrowserConfig = DEFAULT_CONFIG,
    ) -> None:
        self.repo = repo
        self.snapshot = snapshot
        self.config = config
        self.tree_id = snapshot.tree
        self.tree = repo.get_tree(self.tree_id)
        self.summary_map = summary_map
        self.numeric = numeric
        self.mode: Mode = Browsing()
        self.path: List[str] = []
        self.stack = NavigationStack()
        self.table = SelectTable(HEADER, justify=JUSTIFY, page_size=config.page_size)
        self.summary = Summary()
        self.update_table()

    def ls_row(self, node: Node, size: Optional[int] = None) -> List[str]:
        user, group = owner_names(node, self.numeric)
        if size is None:
            size = node.meta.size
        return [
            node.name,
            bytes_size_to_string(size),
            node.mode_str(),
            user,
            group,
            format_time(node.meta.mtime),
        ]

    def selected_node(self) -> Optional[Node]:
        index = self.table.selected()
        if index is None:
            return None
        return self.tree.nodes[index]

    def display_path(self, name: Optional[str] = None) -> str:
        parts = self.path + [name] if name is not None else self.path
        return "/".join(parts)

    def update_table(self, selected: Optional[int] = None) -> None:
        """Rebuild all rows; keeps the current selection unless ``selected`` is given."""
        if not self.tree.nodes:
            selected = None
        elif selected is None:
            selected = self.table.selected() or 0

        rows = []
        summary = Summary()
        for node in self.tree.nodes:
            size = None
            if node.is_dir() and node.subtree is not None:
                cached = self.summary_map.get(node.subtree)
                if cached is not None:
                    summary += cached
                    size = cached.size
            summary.update(node)
            rows.append(self.ls_row(node, size))

        self.summary = summary
        self.table.set_content(rows)
        self.table.title = f"{self.snapshot.short_id}:/{self.display_path()}"
        self.table.footer = (
            f"total: {len(self.tree.nodes)}, files: {summary.files}, dirs: {summary.dirs}, "
            f"size: {bytes_size_to_string(summary.size)} - {'numeric IDs' if self.numeric else 'Id names'}"
        )
        self.table.select(selected)

    def enter(self) -> None:
        index = self.table.selected()
        node = self.selected_node()
        if node is None or not node.is_dir() or node.subtree is None:
            return
        # fetch before touching any state so a failed fetch changes nothing
        tree = self.repo.get_tree(node.subtree)
        self.stack.push(NavigationFrame(self.tree, self.tree_id, index))
        self.tree = tree
        self.tree_id = node.subtree
        self.path.append(node.name)
        logger.debug("entered /%s", self.display_path())
        self.update_table(selected=0)

    def goback(self) -> bool:
        """Go to the parent directory; returns True when already at the root."""
        frame = self.stack.pop()
        if frame is None:
            return True
        self.path.pop()
        self.tree = frame.tree
        self.tree_id = frame.tree_id
        logger.debug("back to /%s", self.display_path())
        self.update_table(selected=frame.selected)
        return False

    def toggle_numeric(self) -> None:
        self.numeric = not self.numeric
        self.update_table()

    def compute_sizes(self) -> None:
        logger.info("computing sizes below /%s", self.display_path())
        with self.repo.progress_bars().progress_counter("computing (sub)-dir information") as progress:
            self.summary_map.compute(self.repo, self.tree_id, progress)
        self.update_table()

    def view_file(self) -> None:
        # viewing is not supported on cold repositories
        if self.repo.is_cold:
            return
        node = self.selected_node()
        if node is None or not node.is_file():
            return
        length = min(node.meta.size or 0, self.config.max_view_bytes)
        handle = self.repo.open_file(node)
        try:
            data = handle.read_at(0, length)
        except RepositoryError as exc:
            logger.debug("cannot read %s: %s", node.name, exc)
            return
        # viewing is only supported for text files
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("%s is not a text file", node.name)
            return
        lines = len(content.splitlines())
        self.mode = ShowingFile(PopUpScrollableText(
            f"{self.snapshot.short_id}:/{self.display_path(node.name)}",
            content,
            min(lines + 1, self.config.max_view_lines),
        ))

    def default_restore_target(self, node: Node) -> str:
        path = self.display_path(node.name)
        if any(os.path.isabs(p) for p in self.snapshot.paths):
            return f"/{path}"
        return path

    def start_restore(self) -> None:
        node = self.selected_node()
        if node is None:
            return
        restore = Restore(
            self.repo,
            node,
            f"{self.snapshot.short_id}:/{self.display_path(node.name)}",
            self.default_restore_target(node),
        )
        logger.debug("restore dialog for %s", restore.source)
        self.mode = InRestore(restore)

    def take_summary_map(self) -> SummaryMap:
        summary_map, self.summary_map = self.summary_map, SummaryMap()
        return summary_map

    def _input_browsing(self, key: str) -> SnapshotResult:
        if key in ("enter", "right"):
            self.enter()
        elif key in ("backspace", "left"):
            if self.goback():
                return Return(self.take_summary_map())
        elif key in ("escape", "q"):
            self.mode = ConfirmingExit(PopUpPrompt("exit snapbrowse", "do you want to exit? (y/n)"))
        elif key == "?":
            self.mode = ShowingHelp(PopUpText("help", HELP_TEXT, width=self.config.help_width))
        elif key == "n":
            self.toggle_numeric()
        elif key == "s":
            self.compute_sizes()
        elif key == "v":
            self.view_file()
        elif key == "r":
            self.start_restore()
        else:
            self.table.input(key)
        return None

    def input(self, key: str) -> SnapshotResult:
        mode = self.mode
        if isinstance(mode, Browsing):
            return self._input_browsing(key)
        if isinstance(mode, ShowingFile):
            if mode.popup.input(key) in (TextInputResult.CANCEL, TextInputResult.INPUT):
                self.mode = Browsing()
        elif isinstance(mode, ShowingHelp):
            if key in HELP_CLOSE_KEYS:
                self.mode = Browsing()
        elif isinstance(mode, InRestore):
            if mode.restore.input(key):
                self.mode = Browsing()
        elif isinstance(mode, ConfirmingExit):
            result = mode.prompt.input(key)
            if result == PromptResult.OK:
                return Exit()
            if result == PromptResult.CANCEL:
                self.mode = Browsing()
        return None

    def draw(self, area: Rect, frame: Frame) -> None:
        mode = self.mode
        if isinstance(mode, InRestore):
            mode.restore.draw(area, frame)
            return

        table_area, footer_area = area.split_bottom(1)
        self.table.draw(table_area, frame)
        frame.render_widget(footer_line(INFO_TEXT), footer_area)

        # popups are drawn over the screen
        if isinstance(mode, ShowingHelp):
            mode.popup.draw(area, frame)
        elif isinstance(mode, ConfirmingExit):
            mode.prompt.draw(area, frame)
        elif isinstance(mode, ShowingFile):
            mode.popup.draw(area, frame)
