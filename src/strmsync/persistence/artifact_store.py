"""Artifact stores: where every generated file is written.

Two variants share one lifecycle, ``initialize() -> save()* -> complete()``:

* :class:`IndexedArtifactStore` keeps a content hash per path and only
  touches the disk when content changes. Paths from the previous run that are
  not saved again are deleted in :meth:`IndexedArtifactStore.complete`.
* :class:`WipeArtifactStore` deletes the provider's whole tree up front and
  rewrites everything.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..errors import PersistenceError
from ..models import ArtifactRecord, format_timestamp
from ..path_builder import format_relative, provider_root
from ..utils import md5_hex, to_canonical_json, write_text_atomic
from .artifact_index import ArtifactIndex

LOGGER = logging.getLogger(__name__)

INDEXED_STORE_TYPES = frozenset({"cached", "indexed"})
WIPE_STORE_TYPES = frozenset({"simple", "wipe"})


class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ReconcileResult:
    written: int = 0
    unchanged: int = 0
    write_failures: int = 0
    deleted: int = 0
    delete_failures: int = 0
    pruned_dirs: int = 0

    def as_fields(self) -> dict[str, int]:
        return {
            "Written": self.written,
            "Unchanged": self.unchanged,
            "Write failures": self.write_failures,
            "Deleted": self.deleted,
            "Delete failures": self.delete_failures,
            "Pruned dirs": self.pruned_dirs,
        }


def encode_payload(path: Path, content: Any) -> str:
    """Text written for ``content`` at ``path``.

    ``.json`` targets are always JSON encoded; elsewhere strings are written
    verbatim and anything else is JSON encoded.
    """
    if path.suffix.lower() == ".json":
        return to_canonical_json(content)
    if isinstance(content, str):
        return content
    return to_canonical_json(content)


class ArtifactStore(Protocol):
    root: Path

    def initialize(self) -> None: ...

    def save(self, path: Path, content: Any, timestamp: dt.datetime | str | None = None) -> bool: ...

    def keep(self, prefix: Path) -> int: ...

    def keep_children(self, parent: Path, accept: Callable[[str], bool]) -> int: ...

    def complete(self) -> ReconcileResult: ...


class IndexedArtifactStore:
    """Content addressed store backed by an :class:`ArtifactIndex`."""

    def __init__(self, root: Path, index: ArtifactIndex) -> None:
        self.root = root
        self.index = index
        self.state = StoreState.UNINITIALIZED
        self._tracked: set[str] = set()
        self._stale: set[str] = set()
        self._written = 0
        self._unchanged = 0
        self._write_failures = 0

    @property
    def tracked(self) -> frozenset[str]:
        return frozenset(self._tracked)

    @property
    def stale(self) -> frozenset[str]:
        return frozenset(self._stale)

    def initialize(self) -> None:
        if self.state not in (StoreState.UNINITIALIZED, StoreState.COMPLETED):
            LOGGER.warning("Artifact store for %s re-initialised from state %s", self.root, self.state.value)
        self.index.load()
        self._stale = self.index.keys()
        self._tracked = set()
        self._written = self._unchanged = self._write_failures = 0
        self.state = StoreState.INITIALIZED
        LOGGER.debug("Artifact store %s initialised with %d indexed paths", self.root, len(self._stale))

    def _require_session(self, operation: str) -> None:
        if self.state not in (StoreState.INITIALIZED, StoreState.ACTIVE):
            raise RuntimeError(f"{operation}() called on artifact store in state {self.state.value}")

    def save(self, path: Path, content: Any, timestamp: dt.datetime | str | None = None) -> bool:
        """Write ``content`` to ``path`` unless the indexed hash already matches.

        Returns True when the file was written.
        """
        self._require_session("save")
        self.state = StoreState.ACTIVE
        key = str(path)
        # Track first so a failed write never turns a valid file stale.
        self._tracked.add(key)
        self._stale.discard(key)

        text = encode_payload(path, content)
        digest = md5_hex(text)
        previous = self.index.get(key)
        if previous is not None and previous.hash == digest and path.exists():
            self._unchanged += 1
            return False

        try:
            write_text_atomic(path, text)
        except OSError as exc:
            self._write_failures += 1
            LOGGER.error("Failed to write %s: %s", path, exc)
            return False

        self.index.put(key, ArtifactRecord(hash=digest, added=format_timestamp(timestamp)))
        self._written += 1
        LOGGER.debug("Wrote %s", format_relative(path, self.root))
        return True

    def keep(self, prefix: Path) -> int:
        """Track every indexed path at or below ``prefix`` without rewriting it.

        Used when upstream data for part of the tree could not be fetched, so
        that a failed request does not delete what was synced last time.
        """
        self._require_session("keep")
        self.state = StoreState.ACTIVE
        base = str(prefix)
        kept = {key for key in self._stale if key == base or key.startswith(base + os.sep)}
        return self._track_existing(kept)

    def keep_children(self, parent: Path, accept: Callable[[str], bool]) -> int:
        """Like :meth:`keep`, for every folder directly under ``parent`` whose name ``accept`` approves.

        For entities whose previous folder name cannot be rebuilt without the
        data that failed to load.
        """
        self._require_session("keep_children")
        self.state = StoreState.ACTIVE
        kept: set[str] = set()
        for key in self._stale:
            try:
                parts = Path(key).relative_to(parent).parts
            except ValueError:
                continue
            if len(parts) > 1 and accept(parts[0]):
                kept.add(key)
        return self._track_existing(kept)

    def _track_existing(self, keys: set[str]) -> int:
        self._stale -= keys
        self._tracked |= keys
        return len(keys)

    def _delete_stale(self) -> tuple[int, set[str]]:
        """Delete every stale path; returns the count deleted and the keys that could not be."""
        deleted = 0
        failed: set[str] = set()
        for key in sorted(self._stale):
            path = Path(key)
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                failed.add(key)
                LOGGER.error("Failed to delete stale file %s: %s", path, exc)
                continue
            deleted += 1
            LOGGER.debug("Deleted stale file %s", format_relative(path, self.root))
        return deleted, failed

    def complete(self) -> ReconcileResult:
        self._require_session("complete")
        deleted, failed = self._delete_stale()
        delete_failures = len(failed)
        pruned = prune_empty_directories(self.root)

        # Undeletable paths stay indexed so the next run retries them
        self.index.retain(self._tracked | failed)
        try:
            self.index.save()
        except PersistenceError as exc:
            LOGGER.error("%s (%s)", exc, exc.path)

        result = ReconcileResult(
            written=self._written,
            unchanged=self._unchanged,
            write_failures=self._write_failures,
            deleted=deleted,
            delete_failures=delete_failures,
            pruned_dirs=pruned,
        )
        self.state = StoreState.COMPLETED
        self._reset()
        return result

    def _reset(self) -> None:
        self._tracked = set()
        self._stale = set()
        self._written = self._unchanged = self._write_failures = 0
        self.index.clear()
        self.state = StoreState.UNINITIALIZED


class WipeArtifactStore:
    """Deletes the provider tree at the start of every run and rewrites it all."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.state = StoreState.UNINITIALIZED
        self._written = 0
        self._write_failures = 0

    def initialize(self) -> None:
        if self.root.exists():
            try:
                shutil.rmtree(self.root)
                LOGGER.debug("Removed %s", self.root)
            except OSError as exc:
                LOGGER.error("Failed to clear %s: %s", self.root, exc)
        self._written = self._write_failures = 0
        self.state = StoreState.INITIALIZED

    def save(self, path: Path, content: Any, timestamp: dt.datetime | str | None = None) -> bool:
        if self.state not in (StoreState.INITIALIZED, StoreState.ACTIVE):
            raise RuntimeError(f"save() called on artifact store in state {self.state.value}")
        self.state = StoreState.ACTIVE
        try:
            write_text_atomic(path, encode_payload(path, content))
        except OSError as exc:
            self._write_failures += 1
            LOGGER.error("Failed to write %s: %s", path, exc)
            return False
        self._written += 1
        return True

    def keep(self, prefix: Path) -> int:
        return 0

    def keep_children(self, parent: Path, accept: Callable[[str], bool]) -> int:
        return 0

    def complete(self) -> ReconcileResult:
        result = ReconcileResult(written=self._written, write_failures=self._write_failures)
        self._written = self._write_failures = 0
        self.state = StoreState.UNINITIALIZED
        return result


def prune_empty_directories(root: Path) -> int:
    """Remove empty directories below ``root``, deepest first. ``root`` itself is kept."""
    if not root.is_dir():
        return 0
    removed = 0
    for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
        directory = Path(dirpath)
        if directory == root:
            continue
        try:
            if any(directory.iterdir()):
                continue
            directory.rmdir()
        except OSError as exc:
            LOGGER.warning("Failed to prune %s: %s", directory, exc)
            continue
        removed += 1
    return removed


def build_artifact_store(store_type: str, *, provider: str, media_dir: Path, cache_dir: Path) -> ArtifactStore:
    """Create the store selected by ``app.file_manager_type``."""
    root = provider_root(media_dir, provider)
    normalised = (store_type or "simple").strip().lower()
    if normalised in WIPE_STORE_TYPES:
        return WipeArtifactStore(root)
    if normalised in INDEXED_STORE_TYPES:
        return IndexedArtifactStore(root, ArtifactIndex.for_provider(cache_dir, provider))
    raise ValueError(f"Unknown artifact store type {store_type!r}")


__all__ = [
    "ArtifactStore",
    "IndexedArtifactStore",
    "ReconcileResult",
    "StoreState",
    "WipeArtifactStore",
    "build_artifact_store",
    "encode_payload",
    "prune_empty_directories",
]
