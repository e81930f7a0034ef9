"""Immutable progress values and the reporters that receive them."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Protocol

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncProgress:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    started_at: float = field(default_factory=time.monotonic)

    def advance(self, *, processed: int = 0, skipped: int = 0, failed: int = 0) -> "SyncProgress":
        return replace(
            self,
            processed=self.processed + processed,
            skipped=self.skipped + skipped,
            failed=self.failed + failed,
        )

    @property
    def handled(self) -> int:
        return self.processed + self.skipped + self.failed

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return min(100.0, self.handled * 100.0 / self.total)

    @property
    def elapsed(self) -> float:
        return max(0.0, time.monotonic() - self.started_at)


class ProgressReporter(Protocol):
    def report(self, label: str, progress: SyncProgress) -> None: ...


class NullProgressReporter:
    def report(self, label: str, progress: SyncProgress) -> None:
        return None


class LoggingProgressReporter:
    """Logs progress every ``step`` handled entries and once at the end."""

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter | None = None, *, step: int = 250) -> None:
        self._logger = logger or LOGGER
        self._step = max(1, step)

    def report(self, label: str, progress: SyncProgress) -> None:
        handled = progress.handled
        if handled == 0:
            return
        if handled % self._step and handled != progress.total:
            return
        self._logger.info(
            "%s: %d/%d (%.0f%%) processed=%d skipped=%d failed=%d",
            label,
            handled,
            progress.total,
            progress.percent,
            progress.processed,
            progress.skipped,
            progress.failed,
        )


__all__ = ["LoggingProgressReporter", "NullProgressReporter", "ProgressReporter", "SyncProgress"]
