from __future__ import annotations

from datetime import datetime
from typing import Optional

_UNITS = ("KiB", "MiB", "GiB", "TiB", "PiB", "EiB")


def bytes_size_to_string(size: Optional[int]) -> str:
    """Format a byte count with binary units, e.g. ``1.5 KiB``. Unknown sizes count as 0."""
    value = float(size or 0)
    if value < 1024:
        return f"{int(value)} B"
    unit = "B"
    for unit in _UNITS:
        value /= 1024
        if value < 1024:
            break
    return f"{value:.1f} {unit}"


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "?"
    return value.strftime("%Y-%m-%d %H:%M:%S")
