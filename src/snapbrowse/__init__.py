"""Interactive terminal browser for backup snapshots."""

__version__ = "0.3.0"
