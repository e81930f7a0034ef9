"""Tests for the typed Xtream response models."""

from __future__ import annotations

import datetime as dt

import pytest
from pydantic import ValidationError

from strmsync.models import format_timestamp, parse_epoch
from strmsync.xtream.models import (
    AuthResponse,
    EpisodeRow,
    MovieRow,
    SeriesInfoResponse,
    SeriesRow,
    ServerInfo,
)


class TestMovieRow:
    def test_numeric_ids_become_strings(self) -> None:
        row = MovieRow.model_validate({"stream_id": 12, "name": "Heat", "category_id": 3})
        assert row.stream_id == "12"
        assert row.category_id == "3"

    def test_first_present_year_field_wins(self) -> None:
        row = MovieRow.model_validate({"stream_id": 1, "releaseDate": "1995-12-15", "release_year": "2001"})
        assert row.year == "1995"

    def test_unparseable_year_is_none(self) -> None:
        assert MovieRow.model_validate({"stream_id": 1, "year": "unknown"}).year is None

    @pytest.mark.parametrize("blank", ["", "   ", None, "N/A"])
    def test_unusable_year_falls_through_to_next_field(self, blank) -> None:
        row = MovieRow.model_validate({"stream_id": 1, "year": blank, "releaseDate": "2020-05-01"})
        assert row.year == "2020"

    def test_series_year_falls_back_to_release_date(self) -> None:
        row = SeriesRow.model_validate({"series_id": 1, "year": "", "release_date": "2005-03-24"})
        assert row.year == "2005"

    def test_tmdb_from_nested_movie_data(self) -> None:
        row = MovieRow.model_validate({"stream_id": 1, "movie_data": {"tmdb_id": 949}})
        assert row.tmdb_id == "949"

    def test_blank_tmdb_is_none(self) -> None:
        assert MovieRow.model_validate({"stream_id": 1, "tmdb": "  "}).tmdb_id is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("tt0113277", "tt0113277"), ("0113277", "tt0113277"), ("", None)],
    )
    def test_imdb_normalisation(self, raw: str, expected) -> None:
        assert MovieRow.model_validate({"stream_id": 1, "imdb": raw}).imdb_id == expected

    def test_missing_extension_defaults_to_mp4(self) -> None:
        assert MovieRow.model_validate({"stream_id": 1, "container_extension": None}).container_extension == "mp4"

    def test_missing_stream_id_is_invalid(self) -> None:
        with pytest.raises(ValidationError):
            MovieRow.model_validate({"name": "no id"})


class TestSeriesRow:
    def test_tvdb_and_tmdb(self) -> None:
        row = SeriesRow.model_validate({"series_id": 5, "tvdb": 73244, "tmdb": "2316", "year": 2005})
        assert row.tvdb_id == "73244"
        assert row.tmdb_id == "2316"
        assert row.year == "2005"

    def test_tvdb_from_info(self) -> None:
        row = SeriesRow.model_validate({"series_id": 5, "info": {"tvdb_id": "81189"}})
        assert row.tvdb_id == "81189"


class TestSeriesInfoResponse:
    def test_episodes_by_season(self) -> None:
        info = SeriesInfoResponse.model_validate(
            {"info": {"name": "Show"}, "episodes": {"1": [{"id": "1"}], "2": [{"id": "2"}]}}
        )
        assert list(info.episodes) == ["1", "2"]

    def test_episodes_as_list_are_grouped_by_season(self) -> None:
        info = SeriesInfoResponse.model_validate(
            {"episodes": [[{"id": "1", "season": 1}, {"id": "2", "season": 1}], [{"id": "3", "season": 2}]]}
        )
        assert {season: len(rows) for season, rows in info.episodes.items()} == {"1": 2, "2": 1}

    def test_info_list_becomes_empty_mapping(self) -> None:
        assert SeriesInfoResponse.model_validate({"info": [], "episodes": None}).info == {}


def test_episode_row() -> None:
    row = EpisodeRow.model_validate(
        {"id": 77, "episode_num": "3", "season": 2, "container_extension": "", "info": []}
    )
    assert (row.id, row.episode_num, row.season, row.container_extension, row.info) == ("77", 3, 2, "mp4", None)


class TestServerInfo:
    def test_http(self) -> None:
        info = ServerInfo.model_validate({"url": "cdn.example", "port": 8080, "server_protocol": "http"})
        assert info.base_url() == "http://cdn.example:8080"

    def test_https_uses_https_port(self) -> None:
        info = ServerInfo.model_validate(
            {"url": "cdn.example", "port": 80, "https_port": 443, "server_protocol": "https"}
        )
        assert info.base_url() == "https://cdn.example:443"

    def test_incomplete(self) -> None:
        assert ServerInfo().base_url() is None


def test_auth_response_defaults() -> None:
    auth = AuthResponse.model_validate({})
    assert auth.user_info.is_active is False


class TestTimestamps:
    def test_parse_epoch(self) -> None:
        assert parse_epoch("1700000000") == dt.datetime(2023, 11, 14, 22, 13, 20, tzinfo=dt.timezone.utc)
        assert parse_epoch(0) == dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "abc", "99999999999999999999"])
    def test_parse_epoch_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_epoch(value)

    def test_format_timestamp(self) -> None:
        value = dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.timezone.utc)
        assert format_timestamp(value) == "2024-01-02T03:04:05Z"
        assert format_timestamp("2024-01-01T00:00:00Z") == "2024-01-01T00:00:00Z"
