"""Pydantic models for Xtream player API responses.

Providers disagree on field names, so id fields are declared with an ordered
list of candidate names; the first one present in the payload wins. Years are
taken from the first candidate field that actually starts with four digits.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator, model_validator

_YEAR_PATTERN = re.compile(r"^(\d{4})")
_IMDB_PATTERN = re.compile(r"^tt\d+$")
_DIGITS_PATTERN = re.compile(r"^\d+$")

DEFAULT_EXTENSION = "mp4"

YEAR_FIELDS = ("year", "releaseDate", "release_year", "release_date")
TMDB_FIELDS = AliasChoices(
    "tmdb_id",
    "tmdb",
    "tmdbId",
    AliasPath("movie_data", "tmdb_id"),
    AliasPath("info", "tmdb_id"),
)
IMDB_FIELDS = AliasChoices(
    "imdb_id",
    "imdb",
    "imdbId",
    AliasPath("movie_data", "imdb_id"),
    AliasPath("info", "imdb_id"),
)
TVDB_FIELDS = AliasChoices(
    "tvdb_id",
    "tvdb",
    "tvdbId",
    AliasPath("series_data", "tvdb_id"),
    AliasPath("info", "tvdb_id"),
)


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _default_extension(value: Any) -> str:
    return _blank_to_none(value) or DEFAULT_EXTENSION


class XtreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, populate_by_name=True)


class UserInfo(XtreamModel):
    auth: int = 0
    status: str | None = None

    @property
    def is_active(self) -> bool:
        return self.auth == 1 and self.status == "Active"


class ServerInfo(XtreamModel):
    url: str | None = None
    port: str | None = None
    https_port: str | None = None
    server_protocol: str | None = None

    def base_url(self) -> str | None:
        if not self.url or not self.server_protocol:
            return None
        host = self.url.rstrip("/")
        port = self.https_port if self.server_protocol == "https" else self.port
        if port and ":" not in host:
            host = f"{host}:{port}"
        return f"{self.server_protocol}://{host}"


class AuthResponse(XtreamModel):
    user_info: UserInfo = Field(default_factory=UserInfo)
    server_info: ServerInfo = Field(default_factory=ServerInfo)


class CategoryRow(XtreamModel):
    category_id: str
    category_name: str | None = None


class _ExternalIds(XtreamModel):
    year: str | None = None
    tmdb_id: str | None = Field(default=None, validation_alias=TMDB_FIELDS)

    @model_validator(mode="before")
    @classmethod
    def _pick_year(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        year = None
        for key in YEAR_FIELDS:
            match = _YEAR_PATTERN.match(_blank_to_none(data.get(key)) or "")
            if match:
                year = match.group(1)
                break
        return {**data, "year": year}

    @field_validator("tmdb_id", mode="before")
    @classmethod
    def _normalise_tmdb(cls, value: Any) -> str | None:
        return _blank_to_none(value)


class LiveStreamRow(XtreamModel):
    stream_id: str
    name: str | None = None
    category_id: str | None = None
    epg_channel_id: str | None = None
    stream_icon: str | None = None
    stream_type: str | None = None


class MovieRow(_ExternalIds):
    stream_id: str
    name: str | None = None
    category_id: str | None = None
    added: str | None = None
    container_extension: str = "mp4"
    imdb_id: str | None = Field(default=None, validation_alias=IMDB_FIELDS)

    _extension = field_validator("container_extension", mode="before")(_default_extension)

    @field_validator("imdb_id", mode="before")
    @classmethod
    def _normalise_imdb(cls, value: Any) -> str | None:
        text = _blank_to_none(value)
        if text is None:
            return None
        if _IMDB_PATTERN.match(text):
            return text
        if _DIGITS_PATTERN.match(text):
            return f"tt{text}"
        return text


class SeriesRow(_ExternalIds):
    series_id: str
    name: str | None = None
    category_id: str | None = None
    last_modified: str | None = None
    tvdb_id: str | None = Field(default=None, validation_alias=TVDB_FIELDS)

    @field_validator("tvdb_id", mode="before")
    @classmethod
    def _normalise_tvdb(cls, value: Any) -> str | None:
        return _blank_to_none(value)


class EpisodeRow(XtreamModel):
    id: str
    episode_num: int
    season: int
    container_extension: str = "mp4"
    added: str | None = None
    title: str | None = None
    info: dict[str, Any] | None = None

    _extension = field_validator("container_extension", mode="before")(_default_extension)

    @field_validator("info", mode="before")
    @classmethod
    def _info_mapping(cls, value: Any) -> dict[str, Any] | None:
        # Some panels send an empty list instead of an object
        return value if isinstance(value, dict) else None


class SeriesInfoResponse(XtreamModel):
    info: dict[str, Any] = Field(default_factory=dict)
    episodes: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)

    @field_validator("info", mode="before")
    @classmethod
    def _info_mapping(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @field_validator("episodes", mode="before")
    @classmethod
    def _episodes_by_season(cls, value: Any) -> dict[str, list[dict[str, Any]]]:
        if isinstance(value, dict):
            return {str(season): list(items or []) for season, items in value.items()}
        if isinstance(value, list):
            grouped: dict[str, list[dict[str, Any]]] = {}
            for chunk in value:
                rows = chunk if isinstance(chunk, list) else [chunk]
                for row in rows:
                    if isinstance(row, dict):
                        grouped.setdefault(str(row.get("season", "")), []).append(row)
            return grouped
        return {}


__all__ = [
    "AuthResponse",
    "CategoryRow",
    "EpisodeRow",
    "LiveStreamRow",
    "MovieRow",
    "SeriesInfoResponse",
    "SeriesRow",
    "ServerInfo",
    "UserInfo",
]
