from __future__ import annotations

import stat
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeType(str, Enum):
    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    DEV = "dev"
    CHARDEV = "chardev"
    FIFO = "fifo"
    SOCKET = "socket"


_TYPE_CHARS = {
    NodeType.DIR: "d",
    NodeType.SYMLINK: "l",
    NodeType.DEV: "b",
    NodeType.CHARDEV: "c",
    NodeType.FIFO: "p",
    NodeType.SOCKET: "s",
}


@dataclass(slots=True)
class Metadata:
    size: Optional[int] = None
    mtime: Optional[datetime] = None
    mode: Optional[int] = None
    uid: Optional[int] = None
    gid: Optional[int] = None
    user: Optional[str] = None
    group: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metadata":
        mtime = data.get("mtime")
        return cls(
            size=data.get("size"),
            mtime=datetime.fromisoformat(mtime) if mtime else None,
            mode=data.get("mode"),
            uid=data.get("uid"),
            gid=data.get("gid"),
            user=data.get("user"),
            group=data.get("group"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "size": self.size,
            "mtime": self.mtime.isoformat() if self.mtime else None,
            "mode": self.mode,
            "uid": self.uid,
            "gid": self.gid,
            "user": self.user,
            "group": self.group,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(slots=True)
class Node:
    """One entry of a directory tree inside a snapshot."""

    name: str
    node_type: NodeType
    meta: Metadata = field(default_factory=Metadata)
    subtree: Optional[str] = None  # tree id, directories only
    content: Optional[List[str]] = None  # blob ids, regular files only
    linktarget: Optional[str] = None

    def is_dir(self) -> bool:
        return self.node_type == NodeType.DIR

    def is_file(self) -> bool:
        return self.node_type == NodeType.FILE

    def is_symlink(self) -> bool:
        return self.node_type == NodeType.SYMLINK

    def mode_str(self) -> str:
        """Return an `ls -l` style mode string, e.g. ``drwxr-xr-x``."""
        type_char = _TYPE_CHARS.get(self.node_type, "-")
        if self.meta.mode is None:
            return type_char + "?????????"
        # filemode() renders the type char from the mode bits, which may be missing
        return type_char + stat.filemode(self.meta.mode)[1:]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            name=data["name"],
            node_type=NodeType(data["type"]),
            meta=Metadata.from_dict(data.get("meta", {})),
            subtree=data.get("subtree"),
            content=data.get("content"),
            linktarget=data.get("linktarget"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "type": self.node_type.value,
            "meta": self.meta.to_dict(),
        }
        if self.subtree is not None:
            data["subtree"] = self.subtree
        if self.content is not None:
            data["content"] = self.content
        if self.linktarget is not None:
            data["linktarget"] = self.linktarget
        return data


@dataclass(slots=True)
class Tree:
    """Contents of one directory. Treated as an immutable value once fetched."""

    nodes: List[Node] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tree":
        return cls(nodes=[Node.from_dict(n) for n in data.get("nodes", [])])

    def to_dict(self) -> Dict[str, Any]:
        return {"nodes": [n.to_dict() for n in self.nodes]}


@dataclass(slots=True)
class SnapshotFile:
    id: str
    time: datetime
    tree: str
    paths: List[str] = field(default_factory=list)
    hostname: str = ""
    tags: List[str] = field(default_factory=list)

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @classmethod
    def from_dict(cls, snapshot_id: str, data: Dict[str, Any]) -> "SnapshotFile":
        return cls(
            id=snapshot_id,
            time=datetime.fromisoformat(data["time"]),
            tree=data["tree"],
            paths=list(data.get("paths", [])),
            hostname=data.get("hostname", ""),
            tags=list(data.get("tags", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "tree": self.tree,
            "paths": self.paths,
            "hostname": self.hostname,
            "tags": self.tags,
        }
