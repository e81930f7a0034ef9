from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import ValidationError

from ..categories import CategoryIndex
from ..config import MediaSettings, ProviderConfig
from ..errors import MalformedUpstreamData
from ..models import CatalogEntry, MediaKind
from ..path_builder import build_live_paths, kind_root
from ..sanitizer import apply_patterns
from ..xtream import XtreamAction, XtreamClient, XtreamEndpoint
from ..xtream.models import LiveStreamRow
from .base import HandlerContext, load_catalog

PLAYLIST_HEADER = "#EXTM3U"
LINE_SEPARATOR = "\r\n"
LIVE_EXTENSION = "m3u8"


def build_extinf(
    name: str,
    *,
    epg_channel_id: Optional[str],
    logo: Optional[str],
    stream_type: Optional[str],
    group: Optional[str],
) -> str:
    tags = [
        f'tvg-{key}="{value}"'
        for key, value in (("name", name), ("id", epg_channel_id), ("logo", logo), ("type", stream_type))
        if value is not None
    ]
    if group is not None:
        tags.append(f'group-title="{group}"')
        tags.append(f'tag-group="{group}"')
    return f"#EXTINF:-1,{' '.join(tags)},{name}"


class LiveHandler:
    """Collects every channel into one M3U playlist and stores the XMLTV guide beside it."""

    kind = MediaKind.LIVE

    def __init__(self, context: HandlerContext) -> None:
        self.context = context
        self.settings = self.resolve_settings(context.provider)
        self.log = context.log.with_kind(self.kind)
        self.categories = CategoryIndex()
        self.lines: list[str] = []
        self.guide: Optional[str] = None
        self._listing_failed = False
        self._client: XtreamClient | None = None

    def resolve_settings(self, config: ProviderConfig) -> MediaSettings:
        return config.settings_for(self.kind)

    def load(self, client: XtreamClient) -> list[CatalogEntry]:
        self._client = client
        self.lines = []
        catalog = load_catalog(
            client,
            self.kind,
            categories_action=XtreamAction.LIVE_CATEGORIES,
            streams_action=XtreamAction.LIVE_STREAMS,
            id_field="stream_id",
            category_patterns=self.context.provider.category_name_cleanup_patterns,
            log=self.log,
        )
        self.categories = catalog.categories
        self._listing_failed = catalog.listing_failed

        guide = client.fetch(None, endpoint=XtreamEndpoint.EPG)
        self.guide = guide if isinstance(guide, str) else None
        if self.guide is None:
            self.log.warning("Guide data unavailable, keeping the previous guide")
        return catalog.entries

    def accepts(self, entry: CatalogEntry) -> bool:
        return self.settings.allows(entry.name, entry.category_id)

    def process_item(self, entry: CatalogEntry) -> None:
        if self._client is None:
            raise RuntimeError("load() must run before process_item()")
        try:
            channel = LiveStreamRow.model_validate(entry.attributes)
        except ValidationError as exc:
            raise MalformedUpstreamData(f"invalid live stream row: {exc.error_count()} errors") from exc

        name = apply_patterns(channel.name or "", self.settings.name_cleanup_patterns)
        extinf = build_extinf(
            name,
            epg_channel_id=channel.epg_channel_id,
            logo=channel.stream_icon,
            stream_type=channel.stream_type or MediaKind.LIVE.value,
            group=self.categories.resolve(entry.category_id),
        )
        stream_url = self._client.stream_url(
            self.kind, channel.stream_id, LIVE_EXTENSION, use_server_info=self.settings.use_server_info
        )
        self.lines.extend((extinf, stream_url))

    def render_playlist(self) -> str:
        return LINE_SEPARATOR.join([PLAYLIST_HEADER, *self.lines])

    def finalize(self) -> None:
        playlist_path, guide_path = build_live_paths(self.context.media_dir, self.context.provider.name)
        store = self.context.store
        if self._listing_failed:
            store.keep(kind_root(self.context.media_dir, self.context.provider.name, self.kind))
            return

        now = dt.datetime.now(dt.timezone.utc)
        store.save(playlist_path, self.render_playlist(), now)
        if self.guide is not None:
            store.save(guide_path, self.guide, now)
        else:
            store.keep(guide_path)
        self.log.info("Processed live streams [%d]", len(self.lines) // 2)
        self.lines = []
        self.categories = CategoryIndex()
