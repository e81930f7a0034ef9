"""Tests for the per-provider sync loop."""

from __future__ import annotations

import logging
import threading
from unittest.mock import MagicMock

import pytest

from strmsync.models import MediaKind
from strmsync.orchestrator import ProviderOrchestrator
from strmsync.xtream import XtreamAction


class CountingEvent(threading.Event):
    """Event whose ``wait`` returns immediately: False until ``stop_after`` waits, then True."""

    def __init__(self, stop_after: int) -> None:
        super().__init__()
        self.stop_after = stop_after
        self.waits: list[float] = []

    def wait(self, timeout=None) -> bool:
        self.waits.append(timeout)
        if len(self.waits) >= self.stop_after:
            self.set()
        return self.is_set()


@pytest.fixture
def refresher() -> MagicMock:
    mock = MagicMock()
    mock.trigger.return_value = True
    return mock


def _orchestrator(provider, app_settings, artifact_store, client, refresher, stop_event=None):
    return ProviderOrchestrator(
        provider,
        app_settings,
        stop_event=stop_event,
        store=artifact_store,
        client_factory=lambda _provider, _event: client,
        refresher=refresher,
    )


def test_run_iteration_syncs_every_enabled_kind(provider, app_settings, artifact_store, fake_client, refresher) -> None:
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher)

    report = orchestrator.run_iteration()

    assert report.succeeded
    assert set(report.kinds) == {MediaKind.LIVE, MediaKind.MOVIE, MediaKind.SERIES}
    assert report.kinds[MediaKind.MOVIE].processed == 2
    assert report.reconcile is not None
    assert report.reconcile.written > 0
    assert report.refreshed is True
    refresher.trigger.assert_called_once()
    assert fake_client.closed
    media = app_settings.media_dir / "acme"
    assert (media / "live" / "live.m3u").exists()
    assert (media / "movies" / "Action").is_dir()
    assert (media / "series" / "Comedy").is_dir()


def test_second_iteration_writes_nothing_new(provider, app_settings, artifact_store, fake_client, refresher) -> None:
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher)

    orchestrator.run_iteration()
    report = orchestrator.run_iteration()

    assert report.reconcile.written == 0
    assert report.reconcile.deleted == 0
    assert report.reconcile.unchanged > 0


def test_disabled_kinds_are_not_fetched(provider, app_settings, artifact_store, fake_client, refresher) -> None:
    provider.live.enabled = False
    provider.series.enabled = False
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher)

    report = orchestrator.run_iteration()

    assert set(report.kinds) == {MediaKind.MOVIE}
    fetched = {action for action, _ in fake_client.calls}
    assert XtreamAction.LIVE_STREAMS not in fetched
    assert XtreamAction.SERIES_STREAMS not in fetched


def test_authentication_failure_is_contained(
    provider, app_settings, artifact_store, fake_client, refresher, caplog
) -> None:
    fake_client.responses["auth"] = False
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher)

    with caplog.at_level(logging.ERROR):
        report = orchestrator.run_iteration()

    assert not report.succeeded
    assert "Authentication failed" in report.error
    assert report.kinds == {}
    refresher.trigger.assert_not_called()
    assert "[acme] Failed to start processing" in caplog.text


def test_unexpected_error_is_logged_with_kind(
    provider, app_settings, artifact_store, fake_client, refresher, caplog
) -> None:
    original_fetch = fake_client.fetch

    def _fetch(action, context_id=None, **kwargs):
        if action is XtreamAction.VOD_CATEGORIES:
            raise RuntimeError("boom")
        return original_fetch(action, context_id, **kwargs)

    fake_client.fetch = _fetch
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher)

    report = orchestrator.run_iteration()

    assert report.error == "boom"
    assert report.reconcile is None
    assert "[acme::movie] Failed to process: boom" in caplog.text


def test_stop_during_iteration_skips_reconciliation(
    provider, app_settings, artifact_store, fake_client, refresher
) -> None:
    stop_event = threading.Event()
    original_fetch = fake_client.fetch

    def _fetch(action, context_id=None, **kwargs):
        if action is XtreamAction.LIVE_STREAMS:
            stop_event.set()
        return original_fetch(action, context_id, **kwargs)

    fake_client.fetch = _fetch
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher, stop_event)

    report = orchestrator.run_iteration()

    assert report.reconcile is None
    assert MediaKind.MOVIE not in report.kinds
    refresher.trigger.assert_not_called()


def test_run_once_runs_a_single_iteration(provider, app_settings, artifact_store, fake_client, refresher) -> None:
    stop_event = CountingEvent(stop_after=1)
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher, stop_event)

    reports = orchestrator.run()

    assert len(reports) == 1
    assert stop_event.waits == []


def test_loop_continues_after_a_failed_iteration(
    provider, app_settings, artifact_store, fake_client, refresher
) -> None:
    app_settings.run_once = False
    provider.interval = 5
    stop_event = CountingEvent(stop_after=2)
    calls = {"count": 0}

    def _factory(_provider, _event):
        calls["count"] += 1
        if calls["count"] == 1:
            raise ConnectionError("provider down")
        return fake_client

    orchestrator = ProviderOrchestrator(
        provider,
        app_settings,
        stop_event=stop_event,
        store=artifact_store,
        client_factory=_factory,
        refresher=refresher,
    )

    reports = orchestrator.run()

    assert [report.succeeded for report in reports] == [False, True]
    assert stop_event.waits == [300, 300]


def test_provider_without_credentials_is_skipped(
    provider, app_settings, artifact_store, fake_client, refresher, caplog
) -> None:
    provider.password = None
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher)

    with caplog.at_level(logging.ERROR):
        assert orchestrator.run() == []

    assert fake_client.calls == []
    assert "please set credentials" in caplog.text


def test_stop_sets_shared_event(provider, app_settings, artifact_store, fake_client, refresher) -> None:
    stop_event = threading.Event()
    orchestrator = _orchestrator(provider, app_settings, artifact_store, fake_client, refresher, stop_event)

    orchestrator.stop()

    assert stop_event.is_set()
    assert orchestrator.run() == []


def test_default_store_follows_file_manager_type(provider, app_settings) -> None:
    app_settings.file_manager_type = "simple"
    orchestrator = ProviderOrchestrator(provider, app_settings, refresher=MagicMock())

    assert type(orchestrator.store).__name__ == "WipeArtifactStore"
    assert orchestrator.store.root == app_settings.media_dir / "acme"
