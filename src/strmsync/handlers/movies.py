from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from ..categories import CategoryIndex
from ..config import MediaSettings, ProviderConfig
from ..errors import MalformedUpstreamData
from ..metadata import generate_movie_nfo
from ..models import CatalogEntry, MediaKind, parse_epoch
from ..path_builder import build_entity_path, kind_root, select_external_id
from ..sanitizer import NameContext, NameFormatter
from ..xtream import XtreamAction, XtreamClient
from ..xtream.models import MovieRow
from .base import HandlerContext, load_catalog


class MovieHandler:
    """One folder per movie holding a ``.strm`` pointer plus optional sidecars."""

    kind = MediaKind.MOVIE

    def __init__(self, context: HandlerContext, formatter: Optional[NameFormatter] = None) -> None:
        self.context = context
        self.settings = self.resolve_settings(context.provider)
        self.formatter = formatter or NameFormatter(patterns=self.settings.name_cleanup_patterns)
        self.log = context.log.with_kind(self.kind)
        self.categories = CategoryIndex()
        self._client: XtreamClient | None = None

    def resolve_settings(self, config: ProviderConfig) -> MediaSettings:
        return config.settings_for(self.kind)

    def load(self, client: XtreamClient) -> list[CatalogEntry]:
        self._client = client
        catalog = load_catalog(
            client,
            self.kind,
            categories_action=XtreamAction.VOD_CATEGORIES,
            streams_action=XtreamAction.VOD_STREAMS,
            id_field="stream_id",
            category_patterns=self.context.provider.category_name_cleanup_patterns,
            log=self.log,
        )
        self.categories = catalog.categories
        if catalog.listing_failed:
            self.context.store.keep(kind_root(self.context.media_dir, self.context.provider.name, self.kind))
        return catalog.entries

    def accepts(self, entry: CatalogEntry) -> bool:
        return self.settings.allows(entry.name, entry.category_id)

    def format_movie_name(self, movie: MovieRow) -> str:
        external = select_external_id(self.kind, {"tmdbid": movie.tmdb_id, "imdbid": movie.imdb_id})
        context = NameContext(
            year=movie.year,
            external_provider_id=external[0] if external else None,
            external_id=external[1] if external else None,
        )
        return self.formatter.format(movie.name, context)

    def process_item(self, entry: CatalogEntry) -> None:
        if self._client is None:
            raise RuntimeError("load() must run before process_item()")
        try:
            movie = MovieRow.model_validate(entry.attributes)
        except ValidationError as exc:
            raise MalformedUpstreamData(f"invalid movie row: {exc.error_count()} errors") from exc

        name = self.format_movie_name(movie)
        if not name:
            raise MalformedUpstreamData(f"name {movie.name!r} is empty after cleanup")
        if name != movie.name:
            self.log.debug("Cleaned movie name: %r -> %r", movie.name, name)
        try:
            added = parse_epoch(movie.added)
        except ValueError as exc:
            raise MalformedUpstreamData(f"invalid 'added' timestamp {movie.added!r}") from exc

        strm_path = build_entity_path(
            self.context.media_dir,
            self.context.provider.name,
            self.kind,
            self.categories.resolve(entry.category_id),
            name,
            ".strm",
            self.settings.category_folder,
        )
        directory = strm_path.parent
        store = self.context.store
        stream_url = self._client.stream_url(
            self.kind, movie.stream_id, movie.container_extension, use_server_info=self.settings.use_server_info
        )
        store.save(strm_path, stream_url, added)

        if self.context.app.write_metadata_json:
            store.save(directory / f"{name}.json", entry.attributes, added)
        if self.context.app.write_metadata_nfo:
            nfo = generate_movie_nfo(entry.attributes)
            if nfo is not None:
                store.save(directory / f"{name}.nfo", nfo, added)

    def finalize(self) -> None:
        self.categories = CategoryIndex()
