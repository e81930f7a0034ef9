"""Shared plumbing for the per media kind handlers.

A handler is any object with the :class:`MediaHandler` capabilities. The
handlers do not share a base class; common steps (catalog loading, the item
loop with its error boundary) are plain functions in this module.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from ..categories import CategoryIndex
from ..config import AppSettings, MediaSettings, ProviderConfig
from ..errors import MalformedUpstreamData
from ..logging_utils import ProviderLogAdapter
from ..models import CatalogEntry, MediaKind
from ..persistence import ArtifactStore
from ..progress import NullProgressReporter, ProgressReporter, SyncProgress
from ..xtream import XtreamAction, XtreamClient

LOGGER = logging.getLogger(__name__)


class MediaHandler(Protocol):
    kind: MediaKind

    def resolve_settings(self, config: ProviderConfig) -> MediaSettings: ...

    def load(self, client: XtreamClient) -> list[CatalogEntry]: ...

    def accepts(self, entry: CatalogEntry) -> bool: ...

    def process_item(self, entry: CatalogEntry) -> None: ...

    def finalize(self) -> None: ...


@dataclass
class HandlerContext:
    """Everything a handler needs for one provider pass."""

    provider: ProviderConfig
    app: AppSettings
    store: ArtifactStore
    log: ProviderLogAdapter
    stop_event: threading.Event

    @property
    def media_dir(self) -> Path:
        return self.app.media_dir


@dataclass(frozen=True)
class Catalog:
    categories: CategoryIndex
    entries: list[CatalogEntry]
    listing_failed: bool = False


def entries_from_rows(rows: Any, kind: MediaKind, id_field: str) -> list[CatalogEntry]:
    """Wrap raw listing rows; rows that are not objects or lack an id are dropped."""
    if not isinstance(rows, list):
        return []
    entries: list[CatalogEntry] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        identifier = row.get(id_field)
        if identifier is None or not str(identifier).strip():
            continue
        category_id = row.get("category_id")
        name = row.get("name")
        entries.append(
            CatalogEntry(
                id=str(identifier).strip(),
                name=None if name is None else str(name),
                category_id=None if category_id is None else str(category_id),
                kind=kind,
                attributes=dict(row),
            )
        )
    return entries


def load_catalog(
    client: XtreamClient,
    kind: MediaKind,
    *,
    categories_action: XtreamAction,
    streams_action: XtreamAction,
    id_field: str,
    category_patterns: Optional[Mapping[str, str]],
    log: logging.Logger | logging.LoggerAdapter,
) -> Catalog:
    categories_payload = client.fetch(categories_action)
    if categories_payload is None:
        log.warning("Categories unavailable, continuing without category folders")
    categories = CategoryIndex.from_rows(
        categories_payload if isinstance(categories_payload, list) else None, category_patterns
    )
    log.info("Loaded %d categories", len(categories))

    streams_payload = client.fetch(streams_action)
    if streams_payload is None:
        log.error("Listing %s failed, keeping previously synced files", streams_action)
        return Catalog(categories=categories, entries=[], listing_failed=True)
    if not isinstance(streams_payload, list):
        log.error("Listing %s returned %s instead of a list", streams_action, type(streams_payload).__name__)
        return Catalog(categories=categories, entries=[], listing_failed=True)

    entries = entries_from_rows(streams_payload, kind, id_field)
    log.info("Total streams available: %d", len(entries))
    return Catalog(categories=categories, entries=entries)


def run_handler(
    handler: MediaHandler,
    client: XtreamClient,
    context: HandlerContext,
    reporter: ProgressReporter | None = None,
) -> SyncProgress:
    """Load, filter and process every entry for one media kind.

    Errors never escape a single entry: malformed data is counted as a
    failure and logged, anything unexpected is logged with its traceback.
    """
    reporter = reporter or NullProgressReporter()
    log = context.log.with_kind(handler.kind)
    entries = handler.load(client)
    progress = SyncProgress(total=len(entries))
    label = f"{context.provider.name}::{handler.kind}"

    for entry in entries:
        if context.stop_event.is_set():
            log.info("Stop requested, abandoning remaining %d entries", progress.total - progress.handled)
            return progress
        if not handler.accepts(entry):
            log.debug("Skipping stream: %s", entry.name)
            progress = progress.advance(skipped=1)
        else:
            try:
                handler.process_item(entry)
            except MalformedUpstreamData as exc:
                log.warning("Skipping %s stream %s (%s): %s", handler.kind, entry.id, entry.name, exc)
                progress = progress.advance(failed=1)
            except Exception as exc:  # noqa: BLE001
                log.exception("Failed to process %s stream %s (%s): %s", handler.kind, entry.id, entry.name, exc)
                progress = progress.advance(failed=1)
            else:
                progress = progress.advance(processed=1)
        reporter.report(label, progress)

    handler.finalize()
    log.info(
        "Complete processing, Total: %d, Processed: %d, Skipped: %d, Failed: %d, Duration: %.3f seconds",
        progress.total,
        progress.processed,
        progress.skipped,
        progress.failed,
        progress.elapsed,
    )
    return progress


__all__ = [
    "Catalog",
    "HandlerContext",
    "MediaHandler",
    "entries_from_rows",
    "load_catalog",
    "run_handler",
]
