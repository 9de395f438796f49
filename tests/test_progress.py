import io
import logging

import pytest

from rich.console import Console

from snapbrowse.progress import HiddenProgressBars, RichProgressBars


def test_hidden_progress_logs_total(caplog):
    counter = HiddenProgressBars().progress_counter("restoring")
    counter.inc()
    counter.inc(4)
    with caplog.at_level(logging.INFO, logger="snapbrowse.progress"):
        counter.finish()
    assert counter.count == 5
    assert counter.finished is True
    assert "restoring: 5 done" in caplog.text


def test_rich_progress_counts():
    console = Console(file=io.StringIO(), force_terminal=False)
    counter = RichProgressBars(console).progress_counter("backing up")
    counter.inc()
    counter.inc(2)
    counter.finish()
    assert counter.count == 3


def test_rich_counter_stops_when_block_raises():
    console = Console(file=io.StringIO(), force_terminal=False)
    with pytest.raises(RuntimeError):
        with RichProgressBars(console).progress_counter("restoring") as counter:
            assert counter.running
            raise RuntimeError("disk full")
    assert not counter.running


def test_hidden_counter_finishes_when_block_raises():
    with pytest.raises(RuntimeError):
        with HiddenProgressBars().progress_counter("computing") as counter:
            counter.inc()
            raise RuntimeError("tree missing")
    assert counter.finished is True
