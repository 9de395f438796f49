from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..model import Tree


@dataclass(frozen=True, slots=True)
class NavigationFrame:
    """A parent directory saved when descending: its tree, tree id and selected row."""

    tree: Tree
    tree_id: str
    selected: Optional[int]


@dataclass(slots=True)
class NavigationStack:
    """Frames from the snapshot root down to the parent of the shown directory."""

    frames: List[NavigationFrame] = field(default_factory=list)

    def push(self, frame: NavigationFrame) -> None:
        self.frames.append(frame)

    def pop(self) -> Optional[NavigationFrame]:
        if not self.frames:
            return None
        return self.frames.pop()

    @property
    def depth(self) -> int:
        return len(self.frames)

    def __len__(self) -> int:
        return len(self.frames)
