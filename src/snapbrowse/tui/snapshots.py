from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Union, TYPE_CHECKING

from ..config import BrowserConfig, DEFAULT_CONFIG
from ..helpers import format_time
from ..model import SnapshotFile
from ..repository import RepositoryError
from .snapshot import Exit, Return, SnapshotBrowser
from .summary import SummaryMap
from .widgets import Frame, PopUpPrompt, PopUpText, PromptResult, Rect, SelectTable, footer_line

if TYPE_CHECKING:
    from ..repository import Repository

logger = logging.getLogger(__name__)

INFO_TEXT = "(Esc) quit | (Enter) browse snapshot | (?) show all commands"

HELP_TEXT = """
Snapshot Commands:

  Enter,Right : browse selected snapshot
            n : toggle numeric IDs for new browsers

General Commands:

        q,Esc : exit
            ? : show this help page
"""


@dataclass
class ListSnapshots:
    pass


@dataclass
class BrowseSnapshot:
    browser: SnapshotBrowser


@dataclass
class ShowHelp:
    popup: PopUpText


@dataclass
class PromptExit:
    prompt: PopUpPrompt


ScreenMode = Union[ListSnapshots, BrowseSnapshot, ShowHelp, PromptExit]


class SnapshotsScreen:
    """Top level screen: the snapshot list, hosting one snapshot browser at a time.

    The summary cache is owned here and lent to each browser; it comes back
    when the user leaves the browser past the snapshot root.
    """

    def __init__(
        self,
        repo: "Repository",
        snapshots: List[SnapshotFile],
        numeric: bool = False,
        config: BrowserConfig = DEFAULT_CONFIG,
    ) -> None:
        self.repo = repo
        self.snapshots = snapshots
        self.numeric = numeric
        self.config = config
        self.summary_map = SummaryMap()
        self.mode: ScreenMode = ListSnapshots()
        self.error: Optional[PopUpText] = None
        self.table = SelectTable(("ID", "Time", "Host", "Paths"), page_size=config.page_size)
        self.update_table()

    def update_table(self) -> None:
        rows = [
            [s.short_id, format_time(s.time), s.hostname, ", ".join(s.paths)]
            for s in self.snapshots
        ]
        selected = self.table.selected()
        self.table.set_content(rows)
        self.table.select(0 if selected is None else selected)
        self.table.title = "snapshots"
        self.table.footer = f"total: {len(self.snapshots)}"

    def open_snapshot(self, snapshot: SnapshotFile) -> None:
        browser = SnapshotBrowser(self.repo, snapshot, self.summary_map, numeric=self.numeric, config=self.config)
        # the browser owns the cache until it hands it back
        self.summary_map = SummaryMap()
        self.mode = BrowseSnapshot(browser)
        logger.debug("browsing snapshot %s", snapshot.short_id)

    def _input_list(self, key: str) -> Optional[Exit]:
        if key in ("enter", "right"):
            index = self.table.selected()
            if index is not None:
                self.open_snapshot(self.snapshots[index])
        elif key in ("escape", "q"):
            self.mode = PromptExit(PopUpPrompt("exit snapbrowse", "do you want to exit? (y/n)"))
        elif key == "?":
            self.mode = ShowHelp(PopUpText("help", HELP_TEXT, width=self.config.help_width))
        elif key == "n":
            self.numeric = not self.numeric
        else:
            self.table.input(key)
        return None

    def _dispatch(self, key: str) -> Optional[Exit]:
        mode = self.mode
        if isinstance(mode, ListSnapshots):
            return self._input_list(key)
        if isinstance(mode, BrowseSnapshot):
            result = mode.browser.input(key)
            if isinstance(result, Exit):
                return result
            if isinstance(result, Return):
                self.summary_map = result.summary_map
                self.mode = ListSnapshots()
        elif isinstance(mode, ShowHelp):
            if key in ("q", " ", "?", "escape", "enter"):
                self.mode = ListSnapshots()
        elif isinstance(mode, PromptExit):
            result = mode.prompt.input(key)
            if result == PromptResult.OK:
                return Exit()
            if result == PromptResult.CANCEL:
                self.mode = ListSnapshots()
        return None

    def input(self, key: str) -> Optional[Exit]:
        if self.error is not None:
            # any key dismisses the error
            self.error = None
            return None
        try:
            return self._dispatch(key)
        except RepositoryError as exc:
            logger.warning("%s", exc)
            self.error = PopUpText("error", str(exc))
            return None

    def draw(self, area: Rect, frame: Frame) -> None:
        mode = self.mode
        if isinstance(mode, BrowseSnapshot):
            mode.browser.draw(area, frame)
        else:
            table_area, footer_area = area.split_bottom(1)
            self.table.draw(table_area, frame)
            frame.render_widget(footer_line(INFO_TEXT), footer_area)
            if isinstance(mode, ShowHelp):
                mode.popup.draw(area, frame)
            elif isinstance(mode, PromptExit):
                mode.prompt.draw(area, frame)
        if self.error is not None:
            self.error.draw(area, frame)
