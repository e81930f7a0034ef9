"""Per-provider sync loop.

One :class:`ProviderOrchestrator` runs per configured provider, each in its
own thread. Providers write to disjoint trees and share nothing mutable, so
no locking is needed between them. Within a provider everything runs in
sequence: live, then series, then movies.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from .config import AppSettings, ProviderConfig
from .errors import AuthenticationError
from .handlers import HANDLER_TYPES, HandlerContext, MediaHandler, run_handler
from .library_refresh import LibraryRefresher
from .logging_utils import ProviderLogAdapter, render_fields_block
from .models import MediaKind
from .persistence import ArtifactStore, ReconcileResult, build_artifact_store
from .progress import LoggingProgressReporter, ProgressReporter, SyncProgress
from .xtream import XtreamClient

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[ProviderConfig, threading.Event], XtreamClient]


def default_client_factory(provider: ProviderConfig, stop_event: threading.Event) -> XtreamClient:
    return XtreamClient(
        provider.url,
        provider.username or "",
        provider.password or "",
        stop_event=stop_event,
        logger=ProviderLogAdapter(logging.getLogger("strmsync.xtream.client"), provider.name),
    )


@dataclass
class IterationReport:
    """Outcome of one provider pass."""

    provider: str
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None
    authenticated: bool = False
    kinds: dict[MediaKind, SyncProgress] = field(default_factory=dict)
    reconcile: Optional[ReconcileResult] = None
    refreshed: bool = False
    error: Optional[str] = None

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.started_at)

    @property
    def succeeded(self) -> bool:
        return self.authenticated and self.error is None


class ProviderOrchestrator:
    def __init__(
        self,
        provider: ProviderConfig,
        app: AppSettings,
        *,
        stop_event: threading.Event | None = None,
        store: ArtifactStore | None = None,
        client_factory: ClientFactory = default_client_factory,
        reporter: ProgressReporter | None = None,
        refresher: LibraryRefresher | None = None,
    ) -> None:
        self.provider = provider
        self.app = app
        self.stop_event = stop_event or threading.Event()
        self.log = ProviderLogAdapter(LOGGER, provider.name)
        self.store = store or build_artifact_store(
            app.file_manager_type,
            provider=provider.name,
            media_dir=app.media_dir,
            cache_dir=app.cache_dir,
        )
        self._client_factory = client_factory
        self.reporter = reporter or LoggingProgressReporter(self.log)
        self.refresher = refresher or LibraryRefresher(provider.library_refresh)
        self.reports: list[IterationReport] = []

    @property
    def ready(self) -> bool:
        return self.provider.is_ready

    def enabled_kinds(self) -> list[MediaKind]:
        return [handler_type.kind for handler_type in HANDLER_TYPES if self.provider.settings_for(handler_type.kind).enabled]

    def _build_context(self) -> HandlerContext:
        return HandlerContext(
            provider=self.provider,
            app=self.app,
            store=self.store,
            log=self.log,
            stop_event=self.stop_event,
        )

    def _build_handlers(self, context: HandlerContext) -> list[MediaHandler]:
        return [
            handler_type(context)
            for handler_type in HANDLER_TYPES
            if self.provider.settings_for(handler_type.kind).enabled
        ]

    def run_iteration(self) -> IterationReport:
        """Run one full pass; never raises."""
        report = IterationReport(provider=self.provider.name)
        current_kind: MediaKind | None = None
        try:
            with self._client_factory(self.provider, self.stop_event) as client:
                server = client.authenticate()
                report.authenticated = True
                self.log.debug(
                    render_fields_block(
                        "Authenticated",
                        {"Provider": self.provider.name, "Server": server.base_url() or "(not advertised)"},
                        pad_top=False,
                    )
                )

                self.store.initialize()
                context = self._build_context()
                for handler in self._build_handlers(context):
                    if self.stop_event.is_set():
                        break
                    current_kind = handler.kind
                    report.kinds[handler.kind] = run_handler(handler, client, context, self.reporter)
                current_kind = None

                if self.stop_event.is_set():
                    self.log.info("Stop requested, skipping reconciliation for this pass")
                else:
                    report.reconcile = self.store.complete()
                    self.log.info(render_fields_block("Reconciled", report.reconcile.as_fields(), pad_top=False))
                    report.refreshed = self.refresher.trigger()
        except AuthenticationError as exc:
            report.error = str(exc)
            self.log.error("Failed to start processing: %s", exc)
        except Exception as exc:  # noqa: BLE001
            report.error = str(exc)
            scope = self.log.with_kind(current_kind) if current_kind else self.log
            scope.exception("Failed to process: %s", exc)
        finally:
            report.finished_at = time.monotonic()

        self.reports.append(report)
        if report.succeeded:
            self.log.info("Processing completed in %.1f seconds", report.duration)
        return report

    def wait_for_next_iteration(self) -> bool:
        """Sleep ``interval`` minutes; returns False if woken by a stop request."""
        seconds = self.provider.interval * 60
        next_run = dt.datetime.now() + dt.timedelta(seconds=seconds)
        self.log.info("Next iteration at %s", next_run.isoformat(timespec="seconds"))
        return not self.stop_event.wait(seconds)

    def run(self) -> list[IterationReport]:
        """Loop until stopped, or run a single pass when ``run_once`` is set."""
        if not self.ready:
            self.log.error("Failed to run, please set credentials")
            return self.reports

        kinds = self.enabled_kinds()
        if not kinds:
            self.log.warning("No media kinds enabled, nothing to do")
            return self.reports
        self.log.info("Processing %s", ", ".join(kind.value for kind in kinds))

        while not self.stop_event.is_set():
            self.run_iteration()
            if self.app.run_once:
                break
            if not self.wait_for_next_iteration():
                break
        self.log.info("Stopped")
        return self.reports

    def stop(self) -> None:
        self.stop_event.set()


__all__ = [
    "IterationReport",
    "ProviderOrchestrator",
    "default_client_factory",
]
