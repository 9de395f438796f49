from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Iterator, Tuple

from .helpers import bytes_size_to_string, format_time
from .model import Node

if TYPE_CHECKING:
    from .repository import Repository


@dataclass(slots=True)
class Summary:
    """Aggregate file count, directory count and total size of a set of entries."""

    files: int = 0
    dirs: int = 0
    size: int = 0

    def update(self, node: Node) -> None:
        """Fold a single entry in using only its own metadata.

        A directory adds to ``dirs`` but not to ``size``: its size contribution
        is the aggregate of its subtree, which is merged separately when known.
        """
        if node.is_dir():
            self.dirs += 1
            return
        if node.is_file():
            self.files += 1
        self.size += node.meta.size or 0

    def __add__(self, other: "Summary") -> "Summary":
        return Summary(
            files=self.files + other.files,
            dirs=self.dirs + other.dirs,
            size=self.size + other.size,
        )

    def __iadd__(self, other: "Summary") -> "Summary":
        self.files += other.files
        self.dirs += other.dirs
        self.size += other.size
        return self


def owner_names(node: Node, numeric: bool) -> Tuple[str, str]:
    if numeric:
        user = "?" if node.meta.uid is None else str(node.meta.uid)
        group = "?" if node.meta.gid is None else str(node.meta.gid)
    else:
        user = node.meta.user or "?"
        group = node.meta.group or "?"
    return user, group


def long_line(path: PurePosixPath, node: Node, numeric: bool = False) -> str:
    user, group = owner_names(node, numeric)
    size = bytes_size_to_string(node.meta.size)
    line = f"{node.mode_str()} {user:>10} {group:>10} {size:>10} {format_time(node.meta.mtime)} {path}"
    if node.is_symlink() and node.linktarget:
        line += f" -> {node.linktarget}"
    return line


def ls(repo: "Repository", tree_id: str, long: bool = False, numeric: bool = False) -> Iterator[Tuple[str, Summary]]:
    """Yield one display line per entry below ``tree_id`` with the running summary."""
    summary = Summary()
    for path, node in repo.iter_tree(tree_id):
        summary.update(node)
        yield (long_line(path, node, numeric) if long else str(path)), summary
