from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..categories import CategoryIndex
from ..config import MediaSettings, ProviderConfig
from ..errors import MalformedUpstreamData
from ..metadata import generate_episode_nfo, generate_tvshow_nfo
from ..models import CatalogEntry, MediaKind, parse_epoch
from ..path_builder import build_episode_path, build_series_dir, kind_root, select_external_id
from ..sanitizer import NameContext, NameFormatter
from ..xtream import XtreamAction, XtreamClient
from ..xtream.models import EpisodeRow, SeriesInfoResponse, SeriesRow
from .base import HandlerContext, load_catalog

TVSHOW_NFO = "tvshow.nfo"


class SeriesHandler:
    """One folder per series with ``Season NN`` sub-folders of episode pointers.

    The listing row only describes the show, so every series costs one extra
    ``get_series_info`` request for its episodes.
    """

    kind = MediaKind.SERIES

    def __init__(self, context: HandlerContext, formatter: Optional[NameFormatter] = None) -> None:
        self.context = context
        self.settings = self.resolve_settings(context.provider)
        self.formatter = formatter or NameFormatter(patterns=self.settings.name_cleanup_patterns)
        self.log = context.log.with_kind(self.kind)
        self.categories = CategoryIndex()
        self.episodes_written = 0
        self._client: XtreamClient | None = None

    def resolve_settings(self, config: ProviderConfig) -> MediaSettings:
        return config.settings_for(self.kind)

    def load(self, client: XtreamClient) -> list[CatalogEntry]:
        self._client = client
        catalog = load_catalog(
            client,
            self.kind,
            categories_action=XtreamAction.SERIES_CATEGORIES,
            streams_action=XtreamAction.SERIES_STREAMS,
            id_field="series_id",
            category_patterns=self.context.provider.category_name_cleanup_patterns,
            log=self.log,
        )
        self.categories = catalog.categories
        if catalog.listing_failed:
            self.context.store.keep(kind_root(self.context.media_dir, self.context.provider.name, self.kind))
        return catalog.entries

    def accepts(self, entry: CatalogEntry) -> bool:
        return self.settings.allows(entry.name, entry.category_id)

    def format_series_name(self, series: SeriesRow) -> str:
        external = select_external_id(self.kind, {"tvdbid": series.tvdb_id, "tmdbid": series.tmdb_id})
        context = NameContext(
            year=series.year,
            external_provider_id=external[0] if external else None,
            external_id=external[1] if external else None,
        )
        return self.formatter.format(series.name, context)

    def _series_dir(self, entry: CatalogEntry, series: SeriesRow) -> tuple[str, Path]:
        name = self.format_series_name(series)
        if not name:
            raise MalformedUpstreamData(f"name {series.name!r} is empty after cleanup")
        directory = build_series_dir(
            self.context.media_dir,
            self.context.provider.name,
            self.categories.resolve(entry.category_id),
            name,
            self.settings.category_folder,
        )
        return name, directory

    @staticmethod
    def _validate_series(payload: Mapping[str, Any]) -> SeriesRow:
        try:
            return SeriesRow.model_validate(payload)
        except ValidationError as exc:
            raise MalformedUpstreamData(f"invalid series row: {exc.error_count()} errors") from exc

    def _series_timestamp(self, info: Mapping[str, Any], series: SeriesRow) -> dt.datetime:
        for candidate in (info.get("last_modified"), series.last_modified):
            try:
                return parse_epoch(candidate)
            except ValueError:
                continue
        raise MalformedUpstreamData("missing or invalid 'last_modified' timestamp")

    def _keep_previous(self, entry: CatalogEntry) -> int:
        """Keep what the last successful run produced for this show.

        The folder name may carry a year or id that only the detail response
        provides, so any sibling folder named after the bare cleaned title is
        kept.
        """
        series = self._validate_series(entry.attributes)
        base = self.formatter.format(series.name)
        if not base:
            return 0
        _, directory = self._series_dir(entry, series)
        prefixes = (f"{base} (", f"{base} [")
        return self.context.store.keep_children(
            directory.parent,
            lambda folder: folder == base or folder.startswith(prefixes),
        )

    def process_item(self, entry: CatalogEntry) -> None:
        if self._client is None:
            raise RuntimeError("load() must run before process_item()")

        detail = self._client.fetch(XtreamAction.SERIES_INFO, entry.id)
        if not isinstance(detail, Mapping):
            kept = self._keep_previous(entry)
            raise MalformedUpstreamData(f"series detail unavailable, kept {kept} existing files")

        merged: dict[str, Any] = {**entry.attributes, **detail}
        series = self._validate_series(merged)
        try:
            info = SeriesInfoResponse.model_validate(detail)
        except ValidationError as exc:
            raise MalformedUpstreamData(f"invalid series detail: {exc.error_count()} errors") from exc

        date = self._series_timestamp(info.info, series)
        name, directory = self._series_dir(entry, series)
        if name != series.name:
            self.log.debug("Cleaned series name: %r -> %r", series.name, name)

        store = self.context.store
        if self.context.app.write_metadata_json:
            store.save(directory / f"{name}.json", merged, date)
        if self.context.app.write_metadata_nfo:
            nfo = generate_tvshow_nfo(merged)
            if nfo is not None:
                store.save(directory / TVSHOW_NFO, nfo, date)

        for season, episodes in info.episodes.items():
            for raw_episode in episodes:
                self._process_episode(name, directory, raw_episode, date, season, self._client)

    def _process_episode(
        self,
        series_name: str,
        series_dir: Path,
        raw_episode: Mapping[str, Any],
        fallback_date: dt.datetime,
        season_key: str,
        client: XtreamClient,
    ) -> None:
        try:
            episode = EpisodeRow.model_validate(raw_episode)
        except ValidationError as exc:
            self.log.warning(
                "Failed to process series %s season %s episode %r: %d errors",
                series_name,
                season_key,
                raw_episode.get("id") if isinstance(raw_episode, Mapping) else raw_episode,
                exc.error_count(),
            )
            return

        try:
            date = parse_epoch(episode.added)
        except ValueError:
            date = fallback_date

        strm_path = build_episode_path(series_dir, series_name, episode.season, episode.episode_num, ".strm")
        stream_url = client.stream_url(
            self.kind, episode.id, episode.container_extension, use_server_info=self.settings.use_server_info
        )
        store = self.context.store
        store.save(strm_path, stream_url, date)
        self.episodes_written += 1

        if self.context.app.write_metadata_nfo:
            nfo = generate_episode_nfo(raw_episode)
            if nfo is not None:
                store.save(strm_path.with_suffix(".nfo"), nfo, date)

    def finalize(self) -> None:
        self.log.debug("Processed %d episodes", self.episodes_written)
        self.categories = CategoryIndex()
