# Minimal TUI package init to avoid import side-effects.
# Do not import textual here; keep lazy imports inside modules that need them.

__all__ = [
    "options",
    "state",
    "summary",
    "widgets",
    "snapshot",
    "snapshots",
    "restore",
    "app",
]
