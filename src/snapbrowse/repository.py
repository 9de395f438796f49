"""
On-disk snapshot repository.

A repository is a plain directory holding content-addressed JSON objects:

    config.json             {"version": 1, "cold": false}
    snapshots/<id>.json     snapshot description (time, host, paths, root tree)
    trees/<id>.json         {"nodes": [...]} for one directory
    data/<id>               raw file content, split into 1 MiB chunks

Object ids are SHA-256 hex digests of the stored bytes, so identical trees
and chunks are stored once.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import socket
import stat
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from .ls import Summary
from .model import Metadata, Node, NodeType, SnapshotFile, Tree
from .progress import HiddenProgressBars, Progress, ProgressBars

try:  # not available on Windows
    import grp
    import pwd
except ImportError:  # pragma: no cover
    grp = None
    pwd = None

logger = logging.getLogger(__name__)

REPO_VERSION = 1
CHUNK_SIZE = 1024 * 1024


class RepositoryError(Exception):
    pass


class RepositoryFormatError(RepositoryError):
    pass


class TreeNotFoundError(RepositoryError):
    pass


class BlobNotFoundError(RepositoryError):
    pass


class SnapshotNotFoundError(RepositoryError):
    pass


class RestoreError(RepositoryError):
    pass


class Repository(Protocol):
    """What the browser needs from a snapshot store."""

    @property
    def is_cold(self) -> bool: ...

    def progress_bars(self) -> ProgressBars: ...

    def get_tree(self, tree_id: str) -> Tree: ...

    def open_file(self, node: Node) -> "OpenFile": ...

    def restore(self, node: Node, target: Path, progress: Progress) -> Summary: ...


class OpenFile:
    """Random access to the content of one file node."""

    def __init__(self, repo: "LocalRepository", node: Node) -> None:
        self._repo = repo
        self.node = node

    def read_at(self, offset: int, length: int) -> bytes:
        out = bytearray()
        pos = 0
        for blob_id in self.node.content or []:
            if len(out) >= length:
                break
            size = self._repo.blob_size(blob_id)
            if pos + size <= offset:
                pos += size
                continue
            data = self._repo.read_blob(blob_id)
            start = max(offset - pos, 0)
            out += data[start:start + length - len(out)]
            pos += size
        return bytes(out)


def _object_id(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _dump(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _owner_names(st: os.stat_result) -> Tuple[Optional[str], Optional[str]]:
    user = group = None
    if pwd is not None:
        try:
            user = pwd.getpwuid(st.st_uid).pw_name
        except KeyError:
            pass
    if grp is not None:
        try:
            group = grp.getgrgid(st.st_gid).gr_name
        except KeyError:
            pass
    return user, group


def _metadata(st: os.stat_result) -> Metadata:
    user, group = _owner_names(st)
    return Metadata(
        size=None if stat.S_ISDIR(st.st_mode) else st.st_size,
        mtime=datetime.fromtimestamp(st.st_mtime).astimezone(),
        mode=stat.S_IMODE(st.st_mode),
        uid=st.st_uid,
        gid=st.st_gid,
        user=user,
        group=group,
    )


def _special_type(mode: int) -> NodeType:
    if stat.S_ISBLK(mode):
        return NodeType.DEV
    if stat.S_ISCHR(mode):
        return NodeType.CHARDEV
    if stat.S_ISFIFO(mode):
        return NodeType.FIFO
    return NodeType.SOCKET


class LocalRepository:
    def __init__(self, path: str | os.PathLike[str], progress_bars: Optional[ProgressBars] = None) -> None:
        self.path = Path(path)
        self._progress_bars = progress_bars or HiddenProgressBars()
        config_file = self.path / "config.json"
        try:
            self.config = json.loads(config_file.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise RepositoryFormatError(f"{self.path} is not a snapshot repository (missing config.json)") from exc
        except (OSError, ValueError) as exc:
            raise RepositoryFormatError(f"cannot read {config_file}: {exc}") from exc
        if self.config.get("version") != REPO_VERSION:
            raise RepositoryFormatError(f"unsupported repository version {self.config.get('version')!r}")

    @classmethod
    def init(cls, path: str | os.PathLike[str], cold: bool = False, progress_bars: Optional[ProgressBars] = None) -> "LocalRepository":
        root = Path(path)
        if (root / "config.json").exists():
            raise RepositoryError(f"repository already exists at {root}")
        try:
            for sub in ("snapshots", "trees", "data"):
                (root / sub).mkdir(parents=True, exist_ok=True)
            (root / "config.json").write_text(json.dumps({"version": REPO_VERSION, "cold": cold}, indent=2), encoding="utf-8")
        except OSError as exc:
            raise RepositoryError(f"cannot create repository at {root}: {exc}") from exc
        logger.info("initialized repository at %s (cold=%s)", root, cold)
        return cls(root, progress_bars)

    @property
    def is_cold(self) -> bool:
        """Cold repositories only support full restores, not reading single files."""
        return bool(self.config.get("cold", False))

    def progress_bars(self) -> ProgressBars:
        return self._progress_bars

    # -- reading -----------------------------------------------------------

    def get_tree(self, tree_id: str) -> Tree:
        logger.debug("loading tree %s", tree_id)
        tree_file = self.path / "trees" / f"{tree_id}.json"
        try:
            raw = tree_file.read_bytes()
        except FileNotFoundError as exc:
            raise TreeNotFoundError(f"tree {tree_id} not found") from exc
        except OSError as exc:
            raise RepositoryError(f"cannot read tree {tree_id}: {exc}") from exc
        try:
            return Tree.from_dict(json.loads(raw))
        except (ValueError, KeyError) as exc:
            raise RepositoryFormatError(f"tree {tree_id} is corrupt: {exc}") from exc

    def blob_size(self, blob_id: str) -> int:
        try:
            return (self.path / "data" / blob_id).stat().st_size
        except FileNotFoundError as exc:
            raise BlobNotFoundError(f"blob {blob_id} not found") from exc
        except OSError as exc:
            raise RepositoryError(f"cannot read blob {blob_id}: {exc}") from exc

    def read_blob(self, blob_id: str) -> bytes:
        try:
            return (self.path / "data" / blob_id).read_bytes()
        except FileNotFoundError as exc:
            raise BlobNotFoundError(f"blob {blob_id} not found") from exc
        except OSError as exc:
            raise RepositoryError(f"cannot read blob {blob_id}: {exc}") from exc

    def open_file(self, node: Node) -> OpenFile:
        if not node.is_file():
            raise RepositoryError(f"{node.name} is not a regular file")
        return OpenFile(self, node)

    def snapshots(self) -> List[SnapshotFile]:
        result = []
        snap_dir = self.path / "snapshots"
        for snap_file in snap_dir.glob("*.json"):
            try:
                result.append(SnapshotFile.from_dict(snap_file.stem, json.loads(snap_file.read_bytes())))
            except (OSError, ValueError, KeyError) as exc:
                raise RepositoryFormatError(f"snapshot {snap_file.stem} is corrupt: {exc}") from exc
        result.sort(key=lambda s: s.time)
        return result

    def find_snapshot(self, id_or_prefix: str) -> SnapshotFile:
        """Resolve a full id, a unique id prefix or ``latest``."""
        snapshots = self.snapshots()
        if id_or_prefix == "latest":
            if not snapshots:
                raise SnapshotNotFoundError("repository has no snapshots")
            return snapshots[-1]
        matches = [s for s in snapshots if s.id.startswith(id_or_prefix)]
        if not matches:
            raise SnapshotNotFoundError(f"no snapshot matching {id_or_prefix!r}")
        if len(matches) > 1:
            raise SnapshotNotFoundError(f"snapshot id {id_or_prefix!r} is ambiguous ({len(matches)} matches)")
        return matches[0]

    def iter_tree(self, tree_id: str, prefix: PurePosixPath = PurePosixPath()) -> Iterator[Tuple[PurePosixPath, Node]]:
        """Walk a tree depth-first, yielding every entry with its path."""
        for node in self.get_tree(tree_id).nodes:
            path = prefix / node.name
            yield path, node
            if node.is_dir() and node.subtree:
                yield from self.iter_tree(node.subtree, path)

    def node_from_path(self, snapshot: SnapshotFile, path: str) -> Node:
        """Find the entry at ``path`` (relative to the snapshot root); empty path is the root."""
        node = Node(name="", node_type=NodeType.DIR, subtree=snapshot.tree)
        for part in PurePosixPath(path.strip("/")).parts:
            if not node.is_dir() or node.subtree is None:
                raise RepositoryError(f"{path}: {node.name} is not a directory")
            for child in self.get_tree(node.subtree).nodes:
                if child.name == part:
                    node = child
                    break
            else:
                raise RepositoryError(f"{path}: no such entry in snapshot {snapshot.short_id}")
        return node

    # -- writing -----------------------------------------------------------

    def _save(self, kind: str, name: str, data: bytes) -> None:
        target = self.path / kind / name
        if target.exists():
            return
        tmp = target.with_name(target.name + ".tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as exc:
            raise RepositoryError(f"cannot write {kind}/{name}: {exc}") from exc

    def _save_tree(self, tree: Tree) -> str:
        data = _dump(tree.to_dict())
        tree_id = _object_id(data)
        self._save("trees", f"{tree_id}.json", data)
        return tree_id

    def _save_content(self, path: Path) -> List[str]:
        blob_ids = []
        with open(path, "rb") as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                blob_id = _object_id(chunk)
                self._save("data", blob_id, chunk)
                blob_ids.append(blob_id)
        return blob_ids

    def _save_path(self, path: Path, progress: Progress) -> Optional[Node]:
        try:
            st = path.lstat()
            meta = _metadata(st)
            if stat.S_ISDIR(st.st_mode):
                node = Node(path.name, NodeType.DIR, meta, subtree=self._save_dir(path, progress))
            elif stat.S_ISREG(st.st_mode):
                node = Node(path.name, NodeType.FILE, meta, content=self._save_content(path))
            elif stat.S_ISLNK(st.st_mode):
                node = Node(path.name, NodeType.SYMLINK, meta, linktarget=os.readlink(path))
            else:
                node = Node(path.name, _special_type(st.st_mode), meta)
        except PermissionError as exc:
            logger.warning("skipping %s: %s", path, exc)
            return None
        progress.inc()
        return node

    def _save_dir(self, path: Path, progress: Progress) -> str:
        nodes = []
        for child in sorted(path.iterdir(), key=lambda p: p.name):
            node = self._save_path(child, progress)
            if node is not None:
                nodes.append(node)
        return self._save_tree(Tree(nodes))

    def _save_layout(self, layout: Dict[str, Any], directory: Path, progress: Progress) -> str:
        # intermediate directories are stored with only their own metadata
        nodes = []
        for name in sorted(layout):
            entry = layout[name]
            if isinstance(entry, dict):
                meta = _metadata((directory / name).lstat())
                subtree = self._save_layout(entry, directory / name, progress)
                nodes.append(Node(name, NodeType.DIR, meta, subtree=subtree))
            else:
                node = self._save_path(entry, progress)
                if node is not None:
                    nodes.append(node)
        return self._save_tree(Tree(nodes))

    def backup(self, paths: Iterable[str | os.PathLike[str]], hostname: Optional[str] = None) -> SnapshotFile:
        """Store ``paths`` as a new snapshot; the tree mirrors their absolute locations."""
        sources = sorted(Path(os.path.abspath(p)) for p in paths)
        if not sources:
            raise RepositoryError("nothing to back up")
        layout: Dict[str, Any] = {}
        for source in sources:
            if not os.path.lexists(source):
                raise RepositoryError(f"{source}: no such file or directory")
            if source.parent == source:
                raise RepositoryError("cannot back up a filesystem root")
            level = layout
            for part in source.parts[1:-1]:
                level = level.setdefault(part, {})
                if not isinstance(level, dict):
                    break  # already covered by an enclosing source
            else:
                level[source.name] = source

        try:
            with self._progress_bars.progress_counter("backing up") as progress:
                tree_id = self._save_layout(layout, Path(sources[0].anchor), progress)
        except OSError as exc:
            raise RepositoryError(f"backup failed: {exc}") from exc

        snapshot = SnapshotFile(
            id="",
            time=datetime.now().astimezone(),
            tree=tree_id,
            paths=[str(s) for s in sources],
            hostname=hostname or socket.gethostname(),
        )
        data = _dump(snapshot.to_dict())
        snapshot.id = _object_id(data)
        self._save("snapshots", f"{snapshot.id}.json", data)
        logger.info("saved snapshot %s of %s", snapshot.short_id, ", ".join(snapshot.paths))
        return snapshot

    # -- restoring ---------------------------------------------------------

    def restore(self, node: Node, target: str | os.PathLike[str], progress: Progress) -> Summary:
        """Write ``node`` (and its whole subtree for directories) to ``target``."""
        summary = Summary()
        try:
            self._restore_node(node, Path(target), progress, summary)
        except OSError as exc:
            raise RestoreError(f"restore to {target} failed: {exc}") from exc
        logger.info("restored %d files, %d dirs to %s", summary.files, summary.dirs, target)
        return summary

    def _restore_node(self, node: Node, dest: Path, progress: Progress, summary: Summary) -> None:
        if node.is_dir():
            dest.mkdir(parents=True, exist_ok=True)
            if node.subtree:
                for child in self.get_tree(node.subtree).nodes:
                    self._restore_node(child, dest / child.name, progress, summary)
        elif node.is_file():
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as f:
                for blob_id in node.content or []:
                    f.write(self.read_blob(blob_id))
        elif node.is_symlink():
            dest.parent.mkdir(parents=True, exist_ok=True)
            if dest.is_symlink() or dest.exists():
                dest.unlink()
            os.symlink(node.linktarget or "", dest)
        else:
            logger.warning("not restoring special file %s", dest)
            return
        summary.update(node)
        progress.inc()
        if not node.is_symlink():
            if node.meta.mode is not None:
                os.chmod(dest, node.meta.mode)
            if node.meta.mtime is not None:
                ts = node.meta.mtime.timestamp()
                os.utime(dest, (ts, ts))
