import asyncio
import logging
from types import SimpleNamespace

import pytest

from snapbrowse.config import BrowserConfig
from snapbrowse.tui.app import SnapBrowseAppBase, build_screen, normalize_key, setup_logging
from snapbrowse.tui.options import TUIOptions
from snapbrowse.tui.snapshots import BrowseSnapshot, ListSnapshots

from fakes import FakeRepo, snapshot


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))


def test_normalize_printable_key():
    event = SimpleNamespace(key="question_mark", character="?", is_printable=True)
    assert normalize_key(event) == "?"


def test_normalize_named_key():
    event = SimpleNamespace(key="enter", character="\r", is_printable=False)
    assert normalize_key(event) == "enter"
    event = SimpleNamespace(key="up", character=None, is_printable=False)
    assert normalize_key(event) == "up"


def test_options_fill_from_saved_config():
    options = TUIOptions()
    assert options.numeric_ids is False
    assert options.log_level == "WARNING"
    assert options.log_file.name == "snapbrowse.log"


def test_build_screen_starts_in_list():
    screen = build_screen(FakeRepo(), [snapshot()], TUIOptions(numeric_ids=True))
    assert isinstance(screen.mode, ListSnapshots)
    assert screen.numeric is True


def test_build_screen_opens_snapshot():
    options = TUIOptions(config=BrowserConfig(max_view_bytes=10))
    snap = snapshot()
    screen = build_screen(FakeRepo(), [snap], options, snap)
    assert isinstance(screen.mode, BrowseSnapshot)
    assert screen.mode.browser.config.max_view_bytes == 10


def test_app_delivers_keys_to_screen():
    screen = build_screen(FakeRepo(), [snapshot()], TUIOptions())
    app = SnapBrowseAppBase(screen)._make_textual_app_class()()

    async def drive():
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            assert isinstance(screen.mode, BrowseSnapshot)
            await pilot.press("q", "y")

    asyncio.run(drive())
    assert app.return_value == 0


def test_setup_logging_writes_to_options_file(tmp_path):
    log_file = tmp_path / "logs" / "tui.log"
    try:
        setup_logging(TUIOptions(log_level="DEBUG", log_file=log_file))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert [h.baseFilename for h in root.handlers] == [str(log_file)]
        logging.getLogger("snapbrowse.test").debug("hello from the browser")
        root.handlers[0].flush()
        assert "hello from the browser" in log_file.read_text()
    finally:
        logging.basicConfig(level=logging.WARNING, force=True)
