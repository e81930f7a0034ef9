"""Tests for progress values and reporters."""

from __future__ import annotations

import logging

from strmsync.progress import LoggingProgressReporter, SyncProgress


def test_advance_returns_new_value() -> None:
    start = SyncProgress(total=3)
    after = start.advance(processed=1).advance(skipped=1).advance(failed=1)

    assert start.handled == 0
    assert (after.processed, after.skipped, after.failed) == (1, 1, 1)
    assert after.handled == 3
    assert after.percent == 100.0
    assert after.started_at == start.started_at


def test_percent_with_no_entries() -> None:
    assert SyncProgress().percent == 100.0
    assert SyncProgress(total=4).advance(processed=1).percent == 25.0


def test_logging_reporter_logs_on_step_and_completion(caplog) -> None:
    reporter = LoggingProgressReporter(logging.getLogger("test.progress"), step=2)
    progress = SyncProgress(total=3)

    with caplog.at_level(logging.INFO, logger="test.progress"):
        for _ in range(3):
            progress = progress.advance(processed=1)
            reporter.report("acme::movie", progress)

    messages = [record.getMessage() for record in caplog.records]
    assert len(messages) == 2
    assert messages[0].startswith("acme::movie: 2/3")
    assert messages[1].startswith("acme::movie: 3/3 (100%)")
