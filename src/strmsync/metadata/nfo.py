"""Kodi/Jellyfin style ``.nfo`` sidecars built from Xtream payloads.

Values are looked up on the payload first and then on its nested ``info``
object, which is where ``get_series_info`` puts most of the detail.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'

_TRAILING_PARENS = re.compile(r"\s*\([^)]*\)\s*$")
_TRAILING_BRACKETS = re.compile(r"\s*\[[^]]*\]\s*$")
_LEADING_PIPES = re.compile(r"^\|[^|]*\|\s*")


def clean_title(title: str) -> str:
    """Drop decorations such as ``(MULTI)``, ``[4K]`` or a leading ``|EN|``."""
    title = _TRAILING_PARENS.sub("", title)
    title = _TRAILING_BRACKETS.sub("", title)
    title = _LEADING_PIPES.sub("", title)
    return title.strip()


def extract_episode_title(full_title: str) -> str:
    """``"Show - S01E01 - Pilot"`` -> ``"Pilot"``; anything else is returned unchanged."""
    position = full_title.rfind(" - ")
    if 0 < position < len(full_title) - 3:
        candidate = full_title[position + 3 :].strip()
        if candidate:
            return candidate
    return full_title


def _lookup(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        info = data.get("info")
        if isinstance(info, Mapping):
            value = info.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first(data: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = _lookup(data, key)
        if value is not None:
            return value
    return None


def _split(value: Optional[str], separator: str) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(separator) if part.strip()]


def _as_float(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return str(float(value))
    except ValueError:
        LOGGER.debug("Failed to parse rating: %s", value)
        return None


def _as_int(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        return str(int(str(value).strip()))
    except ValueError:
        LOGGER.debug("Failed to parse number: %s", value)
        return None


def _text(parent: ET.Element, tag: str, value: Optional[str]) -> None:
    if value is not None:
        ET.SubElement(parent, tag).text = value


def _unique_ids(parent: ET.Element, ids: Iterable[tuple[str, Optional[str], bool]]) -> None:
    for id_type, value, is_default in ids:
        if value:
            element = ET.SubElement(parent, "uniqueid", {"type": id_type, "default": "true" if is_default else "false"})
            element.text = value


def _people(parent: ET.Element, data: Mapping[str, Any]) -> None:
    for genre in _split(_lookup(data, "genre"), "/"):
        _text(parent, "genre", genre)
    for name in _split(_lookup(data, "cast"), ","):
        actor = ET.SubElement(parent, "actor")
        _text(actor, "name", name)
    for director in _split(_lookup(data, "director"), ","):
        _text(parent, "director", director)


def _render(root: ET.Element) -> str:
    ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


def generate_movie_nfo(movie: Mapping[str, Any]) -> Optional[str]:
    try:
        root = ET.Element("movie")
        name = _lookup(movie, "name")
        if name:
            title = clean_title(name)
            _text(root, "title", title)
            _text(root, "originaltitle", title)
        _text(root, "plot", _lookup(movie, "plot"))

        premiered = _first(movie, "releaseDate", "release_date")
        _text(root, "premiered", premiered)
        if premiered and len(premiered) >= 4:
            _text(root, "year", premiered[:4])
        _text(root, "userrating", _as_float(_lookup(movie, "rating")))

        _unique_ids(
            root,
            [
                ("tmdb", _first(movie, "tmdb", "tmdb_id"), True),
                ("imdb", _first(movie, "imdb_id", "imdb"), False),
            ],
        )
        _people(root, movie)
        _text(root, "runtime", _as_int(_lookup(movie, "runtime")))
        return _render(root)
    except (TypeError, ValueError) as exc:
        LOGGER.error("Failed to generate movie NFO: %s", exc)
        return None


def generate_tvshow_nfo(series: Mapping[str, Any]) -> Optional[str]:
    try:
        root = ET.Element("tvshow")
        name = _lookup(series, "name")
        if name:
            _text(root, "title", clean_title(name))
        _text(root, "plot", _lookup(series, "plot"))
        _text(root, "premiered", _first(series, "releaseDate", "release_date"))
        _text(root, "userrating", _as_float(_lookup(series, "rating")))
        _unique_ids(root, [("tmdb", _first(series, "tmdb", "tmdb_id"), True)])
        _people(root, series)
        _text(root, "runtime", _as_int(_lookup(series, "episode_run_time")))
        return _render(root)
    except (TypeError, ValueError) as exc:
        LOGGER.error("Failed to generate TV show NFO: %s", exc)
        return None


def generate_episode_nfo(episode: Mapping[str, Any]) -> Optional[str]:
    try:
        root = ET.Element("episodedetails")
        title = episode.get("title")
        if title and str(title).strip():
            _text(root, "title", extract_episode_title(str(title)))
        _text(root, "season", _as_int(episode.get("season")))
        _text(root, "episode", _as_int(episode.get("episode_num")))

        info = episode.get("info")
        if isinstance(info, Mapping):
            _text(root, "aired", _lookup(info, "air_date"))
            _text(root, "plot", _lookup(info, "plot"))
            _text(root, "userrating", _as_float(_lookup(info, "rating")))
            _text(root, "director", _lookup(info, "crew"))
        return _render(root)
    except (TypeError, ValueError) as exc:
        LOGGER.error("Failed to generate episode NFO: %s", exc)
        return None


__all__ = [
    "clean_title",
    "extract_episode_title",
    "generate_episode_nfo",
    "generate_movie_nfo",
    "generate_tvshow_nfo",
]
