import sys
import types
import runpy
import importlib

import pytest


def test_import_does_not_call_main(monkeypatch):
    """Importing `snapbrowse.__main__` should not call `cli.main` (only running as __main__ should)."""
    called = {"val": False}

    def fake_main():
        called["val"] = True
        return 0

    fake_cli = types.ModuleType("snapbrowse.cli")
    fake_cli.main = fake_main
    # Ensure the import inside __main__ picks up our fake module
    monkeypatch.setitem(sys.modules, "snapbrowse.cli", fake_cli)

    # Force a fresh import of the __main__ module
    sys.modules.pop("snapbrowse.__main__", None)
    importlib.import_module("snapbrowse.__main__")

    assert called["val"] is False


def test_run_module_exits_with_main_result(monkeypatch):
    """Running the package as a module (python -m snapbrowse) should exit with `cli.main`'s code."""
    called = {"count": 0}

    def fake_main():
        called["count"] += 1
        return 3

    fake_cli = types.ModuleType("snapbrowse.cli")
    fake_cli.main = fake_main
    monkeypatch.setitem(sys.modules, "snapbrowse.cli", fake_cli)

    # Ensure we start with a clean __main__ module
    sys.modules.pop("snapbrowse.__main__", None)
    with pytest.raises(SystemExit) as exc:
        runpy.run_module("snapbrowse", run_name="__main__")

    assert called["count"] == 1
    assert exc.value.code == 3
