from __future__ import annotations

import logging
from unittest.mock import MagicMock

import requests

from strmsync.config import LibraryRefreshSettings
from strmsync.library_refresh import LibraryRefresher


def _settings(**overrides) -> LibraryRefreshSettings:
    values = {"enabled": True, "hostname": "jellyfin", "port": 8096, "token": "abc"}
    values.update(overrides)
    return LibraryRefreshSettings(**values)


def test_disabled_refresh_does_nothing(monkeypatch) -> None:
    post = MagicMock()
    monkeypatch.setattr("strmsync.library_refresh.requests.post", post)

    assert LibraryRefresher(_settings(enabled=False)).trigger() is False
    post.assert_not_called()


def test_successful_refresh(monkeypatch, caplog) -> None:
    response = MagicMock(status_code=204, text="")
    post = MagicMock(return_value=response)
    monkeypatch.setattr("strmsync.library_refresh.requests.post", post)

    with caplog.at_level(logging.INFO, logger="strmsync.library_refresh"):
        assert LibraryRefresher(_settings(), timeout=5.0).trigger() is True

    post.assert_called_once_with(
        "http://jellyfin:8096/Library/Refresh",
        headers={"X-Jellyfin-Token": "abc"},
        timeout=5.0,
    )
    assert "Refresh library triggered" in caplog.text


def test_error_status_is_logged(monkeypatch, caplog) -> None:
    response = MagicMock(status_code=401, text="Unauthorized")
    monkeypatch.setattr("strmsync.library_refresh.requests.post", MagicMock(return_value=response))

    assert LibraryRefresher(_settings()).trigger() is False
    assert "401 Unauthorized" in caplog.text


def test_request_exception_is_not_raised(monkeypatch, caplog) -> None:
    monkeypatch.setattr(
        "strmsync.library_refresh.requests.post",
        MagicMock(side_effect=requests.ConnectionError("refused")),
    )

    assert LibraryRefresher(_settings()).trigger() is False
    assert "refused" in caplog.text


def test_endpoint_uses_protocol_and_port() -> None:
    refresher = LibraryRefresher(_settings(protocol="https", port=8920))
    assert refresher.endpoint == "https://jellyfin:8920/Library/Refresh"
    assert LibraryRefresher(_settings(hostname=None)).endpoint is None
