from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import pytest

from strmsync.config import AppSettings, MediaSettings, ProviderConfig
from strmsync.errors import AuthenticationError
from strmsync.handlers import HandlerContext
from strmsync.logging_utils import ProviderLogAdapter
from strmsync.models import MediaKind
from strmsync.persistence import ArtifactIndex, IndexedArtifactStore
from strmsync.xtream import XtreamAction, XtreamEndpoint
from strmsync.xtream.models import ServerInfo


class FakeXtreamClient:
    """In-memory stand-in for :class:`strmsync.xtream.XtreamClient`.

    ``responses`` maps an action (or ``(action, context_id)``, or the EPG
    endpoint) to the payload ``fetch`` returns; anything missing returns None
    like an exhausted fetch.
    """

    base_url = "http://provider.example"
    username = "alice"
    password = "secret"

    def __init__(self, responses: dict[Any, Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[Any, Any]] = []
        self.server_url: str | None = None
        self.closed = False

    def fetch(self, action, context_id=None, endpoint=XtreamEndpoint.PLAYER):
        self.calls.append((action, context_id))
        if endpoint is XtreamEndpoint.EPG:
            return self.responses.get(XtreamEndpoint.EPG)
        if context_id is not None and (action, context_id) in self.responses:
            return self.responses[(action, context_id)]
        return self.responses.get(action)

    def authenticate(self):

        if self.responses.get("auth") is False:
            raise AuthenticationError("Authentication failed: auth=0 status=Disabled")
        return ServerInfo()

    def stream_url(self, kind: MediaKind, stream_id: str, extension: str, *, use_server_info: bool = False) -> str:
        return f"{self.base_url}/{kind.value}/{self.username}/{self.password}/{stream_id}.{extension}"

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()


@pytest.fixture
def provider() -> ProviderConfig:
    return ProviderConfig(
        name="acme",
        url="http://provider.example",
        username="alice",
        password="secret",
        live=MediaSettings(enabled=True),
        movies=MediaSettings(enabled=True),
        series=MediaSettings(enabled=True),
    )


@pytest.fixture
def app_settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        run_once=True,
        file_manager_type="cached",
        media_dir=tmp_path / "media",
        cache_dir=tmp_path / "cache",
        write_metadata_json=False,
        write_metadata_nfo=True,
    )


@pytest.fixture
def artifact_store(app_settings: AppSettings) -> IndexedArtifactStore:
    return IndexedArtifactStore(
        app_settings.media_dir / "acme",
        ArtifactIndex.for_provider(app_settings.cache_dir, "acme"),
    )


@pytest.fixture
def handler_context(provider, app_settings, artifact_store) -> HandlerContext:
    return HandlerContext(
        provider=provider,
        app=app_settings,
        store=artifact_store,
        log=ProviderLogAdapter(logging.getLogger("tests"), provider.name),
        stop_event=threading.Event(),
    )


@pytest.fixture
def catalog() -> dict[Any, Any]:
    """A small provider catalog: two channels, two movies, one series."""
    return {
        XtreamAction.LIVE_CATEGORIES: [{"category_id": "10", "category_name": "news"}],
        XtreamAction.LIVE_STREAMS: [
            {
                "stream_id": 1,
                "name": "BBC News",
                "category_id": "10",
                "epg_channel_id": "bbc.uk",
                "stream_icon": "http://logo/bbc.png",
                "stream_type": "live",
            },
            {"stream_id": 2, "name": "Unsorted", "category_id": None},
        ],
        XtreamEndpoint.EPG: "<tv></tv>",
        XtreamAction.VOD_CATEGORIES: [{"category_id": "20", "category_name": "action"}],
        XtreamAction.VOD_STREAMS: [
            {
                "stream_id": 100,
                "name": "Heat",
                "category_id": "20",
                "added": "1700000000",
                "container_extension": "mkv",
                "tmdb": "949",
                "year": "1995",
            },
            {
                "stream_id": 101,
                "name": "Alien",
                "category_id": "99",
                "added": "1700000000",
                "imdb": "tt0078748",
            },
        ],
        XtreamAction.SERIES_CATEGORIES: [{"category_id": "30", "category_name": "comedy"}],
        XtreamAction.SERIES_STREAMS: [
            {"series_id": 7, "name": "The Office", "category_id": "30", "last_modified": "1700000000", "tvdb": "73244"}
        ],
        (XtreamAction.SERIES_INFO, "7"): {
            "info": {"name": "The Office", "releaseDate": "2005-03-24", "plot": "Office life."},
            "episodes": {
                "1": [
                    {
                        "id": "1001",
                        "episode_num": 1,
                        "season": 1,
                        "title": "The Office - S01E01 - Pilot",
                        "container_extension": "mp4",
                        "added": "1700000100",
                    },
                    {
                        "id": "1002",
                        "episode_num": 2,
                        "season": 1,
                        "title": "The Office - S01E02 - Diversity Day",
                        "container_extension": "mp4",
                    },
                ]
            },
        },
    }


@pytest.fixture
def fake_client(catalog) -> FakeXtreamClient:
    return FakeXtreamClient(catalog)
