from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, TYPE_CHECKING

from .options import TUIOptions
from .snapshots import SnapshotsScreen
from .snapshot import Exit
from .widgets import Frame

if TYPE_CHECKING:
    from ..model import SnapshotFile
    from ..repository import Repository

logger = logging.getLogger(__name__)

# NOTE: Keep imports of textual lazy and inside functions/classes that need them
# so that importing this module doesn't require textual unless run_tui is actually invoked.


def _lazy_textual_imports():
    # Import and return textual parts on demand
    from textual.app import App, ComposeResult
    from textual.widget import Widget
    from textual import events
    return App, ComposeResult, Widget, events


def normalize_key(event: Any) -> str:
    """Printable keys become their character ("?", "q", " "), others keep textual's name ("enter")."""
    character = getattr(event, "character", None)
    if getattr(event, "is_printable", False) and character:
        return character
    return event.key


class SnapBrowseAppBase:
    """Hosts a SnapshotsScreen in a Textual app.
    The screen decides what to show; Textual only delivers keys and paints the frame.
    """

    def __init__(self, screen: SnapshotsScreen) -> None:
        self.screen = screen

    def _make_textual_app_class(self):
        App, ComposeResult, Widget, events = _lazy_textual_imports()

        screen = self.screen

        class ScreenView(Widget, can_focus=True):
            DEFAULT_CSS = """
            ScreenView {
                width: 1fr;
                height: 1fr;
            }
            """

            def render(self):
                frame = Frame(self.size.width, self.size.height)
                screen.draw(frame.area, frame)
                return frame

            def on_key(self, event: events.Key) -> None:
                event.stop()
                event.prevent_default()
                key = normalize_key(event)
                # one key at a time; long operations block until they finish
                result = screen.input(key)
                if isinstance(result, Exit):
                    self.app.exit(0)
                    return
                self.refresh()

        class SnapBrowseApp(App):
            TITLE = "snapbrowse"

            def compose(self) -> ComposeResult:
                yield ScreenView()

            def on_mount(self) -> None:
                self.query_one(ScreenView).focus()

        return SnapBrowseApp

    def run(self) -> int:
        SnapBrowseApp = self._make_textual_app_class()
        app = SnapBrowseApp()
        result = app.run()
        return result or 0


def setup_logging(options: TUIOptions) -> None:
    """Send log records to the options' log file; the terminal belongs to the app."""
    log_file = Path(options.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logging.basicConfig(level=options.log_level, handlers=[handler], force=True)


def build_screen(repo: "Repository", snapshots: List["SnapshotFile"], options: TUIOptions, snapshot: Optional["SnapshotFile"] = None) -> SnapshotsScreen:
    screen = SnapshotsScreen(repo, snapshots, numeric=bool(options.numeric_ids), config=options.config)
    if snapshot is not None:
        screen.open_snapshot(snapshot)
    return screen


def run_tui(repo: "Repository", snapshots: List["SnapshotFile"], options: TUIOptions, snapshot: Optional["SnapshotFile"] = None) -> int:
    """Entry point used by CLI to run the browser.

    This must NOT print to stdout. It may raise KeyboardInterrupt which the CLI should map to exit 130.
    """
    screen = build_screen(repo, snapshots, options, snapshot)
    logger.debug("starting TUI with %d snapshots", len(snapshots))
    return SnapBrowseAppBase(screen).run()
