from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..config import BrowserConfig


@dataclass(slots=True)
class TUIOptions:
    numeric_ids: bool | None = None
    log_level: str | None = None
    log_file: Path | None = None
    config: BrowserConfig = field(default_factory=BrowserConfig)

    def __post_init__(self):
        """Fill unset values from the saved config"""
        from ..config_persist import get_log_file, get_log_level, get_numeric_ids
        if self.numeric_ids is None:
            self.numeric_ids = get_numeric_ids()
        if self.log_level is None:
            self.log_level = get_log_level()
        if self.log_file is None:
            self.log_file = get_log_file()
