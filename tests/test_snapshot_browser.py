import pytest

from snapbrowse.config import BrowserConfig
from snapbrowse.model import Tree
from snapbrowse.progress import HiddenProgressBars
from snapbrowse.repository import TreeNotFoundError
from snapbrowse.tui.snapshot import (
    Browsing,
    ConfirmingExit,
    Exit,
    InRestore,
    Return,
    ShowingFile,
    ShowingHelp,
    SnapshotBrowser,
)
from snapbrowse.tui.summary import SummaryMap
from snapbrowse.tui.widgets import Frame

from fakes import FakeRepo, dir_node, file_node, snapshot


def make_browser(repo=None, **kwargs):
    repo = repo or FakeRepo()
    return SnapshotBrowser(repo, snapshot(**kwargs), SummaryMap())


def press(browser, *keys):
    result = None
    for key in keys:
        result = browser.input(key)
    return result


def test_initial_listing():
    browser = make_browser()
    assert [row[0] for row in browser.table.rows] == ["A", "B", "C"]
    assert browser.table.selected() == 0
    assert browser.table.title == "abcdef12:/"
    assert browser.table.footer.startswith("total: 3, files: 2, dirs: 1, size: 30 B")
    assert browser.table.rows[0][1] == "10 B"
    assert browser.table.rows[0][2] == "-rw-r--r--"
    assert browser.table.rows[2][2] == "drwxr-xr-x"


def test_enter_and_goback_round_trip():
    browser = make_browser()
    press(browser, "down", "down")
    rows_before = [list(r) for r in browser.table.rows]

    press(browser, "enter")
    assert browser.path == ["C"]
    assert browser.stack.depth == 1
    assert browser.tree_id == "c"
    assert [row[0] for row in browser.table.rows] == ["D"]
    assert browser.table.selected() == 0
    assert browser.table.title == "abcdef12:/C"

    assert press(browser, "backspace") is None
    assert browser.path == []
    assert browser.stack.depth == 0
    assert browser.tree_id == "root"
    assert browser.table.selected() == 2
    assert browser.table.rows == rows_before


def test_left_and_right_navigate_like_enter_and_backspace():
    browser = make_browser()
    press(browser, "G", "right")
    assert browser.path == ["C"]
    press(browser, "left")
    assert browser.path == []
    assert browser.table.selected() == 2


def test_stack_depth_matches_path_length():
    trees = {
        "root": Tree([dir_node("a", "t1")]),
        "t1": Tree([dir_node("b", "t2")]),
        "t2": Tree([file_node("f", 1)]),
    }
    browser = make_browser(FakeRepo(trees=trees))
    press(browser, "enter", "enter")
    assert browser.path == ["a", "b"]
    assert len(browser.stack) == len(browser.path)
    press(browser, "backspace")
    assert len(browser.stack) == len(browser.path) == 1


def test_enter_on_file_is_a_no_op():
    browser = make_browser()
    press(browser, "down", "enter")
    assert browser.path == []
    assert browser.stack.depth == 0
    assert browser.table.selected() == 1


def test_enter_fetch_failure_leaves_state_untouched():
    trees = {"root": Tree([dir_node("gone", "missing")])}
    browser = make_browser(FakeRepo(trees=trees))
    with pytest.raises(TreeNotFoundError):
        press(browser, "enter")
    assert browser.path == []
    assert browser.stack.depth == 0
    assert browser.tree_id == "root"


def test_enter_in_empty_directory_does_nothing():
    browser = make_browser(FakeRepo(trees={"root": Tree([])}))
    assert browser.table.selected() is None
    press(browser, "enter")
    assert browser.path == []


def test_backspace_at_root_returns_summary_map():
    repo = FakeRepo()
    summary_map = SummaryMap()
    browser = SnapshotBrowser(repo, snapshot(), summary_map)
    press(browser, "s")
    result = press(browser, "backspace")
    assert isinstance(result, Return)
    assert result.summary_map is summary_map
    assert "c" in result.summary_map


def test_numeric_toggle():
    browser = make_browser()
    start = [list(r) for r in browser.table.rows]
    assert start[0][3] == "alice"
    assert browser.table.footer.endswith("Id names")

    press(browser, "n")
    assert browser.table.rows[0][3] == "1000"
    assert browser.table.rows[0][4] == "100"
    assert browser.table.footer.endswith("numeric IDs")

    press(browser, "n")
    assert browser.table.rows == start


def test_compute_sizes_updates_rows_and_footer():
    browser = make_browser()
    assert browser.table.rows[2][1] == "0 B"
    press(browser, "s")
    assert browser.table.rows[2][1] == "5 B"
    assert browser.table.footer.startswith("total: 3, files: 3, dirs: 1, size: 35 B")
    assert isinstance(browser.mode, Browsing)


def test_compute_sizes_keeps_selection():
    browser = make_browser()
    press(browser, "down", "s")
    assert browser.table.selected() == 1


def test_help_is_exclusive_and_closes():
    browser = make_browser()
    press(browser, "?")
    assert isinstance(browser.mode, ShowingHelp)
    # keys of other modes are ignored while help is shown
    press(browser, "down", "n", "enter")
    assert isinstance(browser.mode, Browsing)
    assert browser.table.selected() == 0
    assert browser.numeric is False


def test_help_ignores_unrelated_keys():
    browser = make_browser()
    press(browser, "?", "v", "x")
    assert isinstance(browser.mode, ShowingHelp)
    press(browser, "escape")
    assert isinstance(browser.mode, Browsing)


def test_exit_prompt_cancel_and_confirm():
    browser = make_browser()
    press(browser, "q")
    assert isinstance(browser.mode, ConfirmingExit)
    assert press(browser, "x") is None
    assert press(browser, "n") is None
    assert isinstance(browser.mode, Browsing)

    press(browser, "escape")
    assert isinstance(press(browser, "y"), Exit)


def test_view_file_reads_at_most_the_limit():
    repo = FakeRepo(
        trees={"root": Tree([file_node("big", 1_000_001)])},
        blobs={"big": b"a" * 1_000_001},
    )
    browser = make_browser(repo)
    press(browser, "v")
    assert repo.reads == [("big", 0, 1_000_000)]
    assert isinstance(browser.mode, ShowingFile)
    assert browser.mode.popup.title == "abcdef12:/big"
    assert browser.mode.popup.height == 2


def test_view_file_popup_height_is_capped():
    text = "\n".join(f"line {i}" for i in range(100)).encode()
    repo = FakeRepo(trees={"root": Tree([file_node("t", len(text))])}, blobs={"t": text})
    browser = make_browser(repo)
    press(browser, "v")
    assert browser.mode.popup.height == 40
    press(browser, "q")
    assert isinstance(browser.mode, Browsing)


def test_view_file_respects_configured_limit():
    repo = FakeRepo(trees={"root": Tree([file_node("t", 50)])}, blobs={"t": b"x" * 50})
    browser = SnapshotBrowser(repo, snapshot(), SummaryMap(), config=BrowserConfig(max_view_bytes=10))
    press(browser, "v")
    assert repo.reads == [("t", 0, 10)]


def test_view_binary_file_is_ignored():
    repo = FakeRepo(trees={"root": Tree([file_node("bin", 3)])}, blobs={"bin": b"\xff\xfe\x00"})
    browser = make_browser(repo)
    press(browser, "v")
    assert isinstance(browser.mode, Browsing)


def test_view_read_error_is_ignored():
    repo = FakeRepo(trees={"root": Tree([file_node("t", 3)])}, blobs={"t": b"abc"})
    repo.fail_reads = True
    browser = make_browser(repo)
    press(browser, "v")
    assert isinstance(browser.mode, Browsing)


def test_view_on_directory_does_nothing():
    repo = FakeRepo()
    browser = make_browser(repo)
    press(browser, "G", "v")
    assert repo.opened == []
    assert isinstance(browser.mode, Browsing)


def test_view_on_cold_repository_does_nothing():
    repo = FakeRepo(blobs={"A": b"x" * 10}, cold=True)
    browser = make_browser(repo)
    press(browser, "v")
    assert repo.opened == []
    assert isinstance(browser.mode, Browsing)


def test_restore_default_target_absolute_snapshot():
    browser = make_browser()
    press(browser, "G", "enter", "r")
    assert isinstance(browser.mode, InRestore)
    assert browser.mode.restore.target == "/C/D"
    assert browser.mode.restore.source == "abcdef12:/C/D"


def test_restore_default_target_relative_snapshot():
    browser = make_browser(paths=["data"])
    press(browser, "r")
    assert browser.mode.restore.target == "A"


def test_restore_flow_returns_to_browsing():
    repo = FakeRepo()
    browser = make_browser(repo)
    press(browser, "r", "enter", "y", "x")
    assert isinstance(browser.mode, Browsing)
    assert repo.restored[0][0].name == "A"
    assert str(repo.restored[0][1]) == "/A"


def test_restore_on_empty_directory_does_nothing():
    browser = make_browser(FakeRepo(trees={"root": Tree([])}))
    press(browser, "r")
    assert isinstance(browser.mode, Browsing)


def test_draw_layers_popups_over_table():
    browser = make_browser()
    frame = Frame(100, 24)
    browser.draw(frame.area, frame)
    text = "\n".join(frame.text_lines())
    assert "abcdef12:/" in text
    assert "(Esc) quit" in text

    press(browser, "?")
    frame = Frame(100, 24)
    browser.draw(frame.area, frame)
    text = "\n".join(frame.text_lines())
    assert "Ls Commands" in text
    assert "(Esc) quit" in text


def test_failed_size_computation_finishes_progress():
    counters = []

    class RecordingBars(HiddenProgressBars):
        def progress_counter(self, title):
            counter = super().progress_counter(title)
            counters.append(counter)
            return counter

    repo = FakeRepo(trees={"root": Tree([dir_node("gone", "missing")])})
    repo.bars = RecordingBars()
    browser = make_browser(repo)
    with pytest.raises(TreeNotFoundError):
        press(browser, "s")
    assert counters[0].finished is True
    assert isinstance(browser.mode, Browsing)
