"""Tests for NFO sidecar generation."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from strmsync.metadata import (
    clean_title,
    extract_episode_title,
    generate_episode_nfo,
    generate_movie_nfo,
    generate_tvshow_nfo,
)


def _parse(text: str) -> ET.Element:
    assert text.startswith('<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n')
    return ET.fromstring(text.split("\n", 1)[1])


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("The Matrix (MULTI)", "The Matrix"),
        ("The Matrix [4K]", "The Matrix"),
        ("|EN| The Matrix", "The Matrix"),
        ("Plain", "Plain"),
    ],
)
def test_clean_title(raw: str, expected: str) -> None:
    assert clean_title(raw) == expected


def test_extract_episode_title() -> None:
    assert extract_episode_title("The Office - S01E01 - Pilot") == "Pilot"
    assert extract_episode_title("Pilot") == "Pilot"


def test_movie_nfo() -> None:
    movie = {
        "name": "The Matrix (MULTI)",
        "plot": "A hacker learns the truth.",
        "releaseDate": "1999-03-31",
        "rating": "8.7",
        "tmdb": "603",
        "imdb_id": "tt0133093",
        "genre": "Action / Sci-Fi",
        "cast": "Keanu Reeves, Carrie-Anne Moss",
        "director": "Lana Wachowski, Lilly Wachowski",
        "runtime": "136",
    }

    root = _parse(generate_movie_nfo(movie))

    assert root.tag == "movie"
    assert root.findtext("title") == "The Matrix"
    assert root.findtext("originaltitle") == "The Matrix"
    assert root.findtext("premiered") == "1999-03-31"
    assert root.findtext("year") == "1999"
    assert root.findtext("userrating") == "8.7"
    assert root.findtext("runtime") == "136"
    ids = {element.get("type"): (element.text, element.get("default")) for element in root.findall("uniqueid")}
    assert ids == {"tmdb": ("603", "true"), "imdb": ("tt0133093", "false")}
    assert [element.text for element in root.findall("genre")] == ["Action", "Sci-Fi"]
    assert [element.findtext("name") for element in root.findall("actor")] == ["Keanu Reeves", "Carrie-Anne Moss"]
    assert [element.text for element in root.findall("director")] == ["Lana Wachowski", "Lilly Wachowski"]


def test_movie_nfo_skips_missing_and_unparseable_values() -> None:
    root = _parse(generate_movie_nfo({"name": "Heat", "rating": "n/a", "runtime": ""}))

    assert root.findtext("title") == "Heat"
    assert root.find("userrating") is None
    assert root.find("runtime") is None
    assert root.find("uniqueid") is None


def test_tvshow_nfo_reads_nested_info() -> None:
    series = {
        "name": "The Office",
        "info": {
            "plot": "Office life.",
            "release_date": "2005-03-24",
            "rating": "9",
            "tmdb_id": "2316",
            "episode_run_time": "22",
        },
    }

    root = _parse(generate_tvshow_nfo(series))

    assert root.tag == "tvshow"
    assert root.findtext("title") == "The Office"
    assert root.findtext("plot") == "Office life."
    assert root.findtext("premiered") == "2005-03-24"
    assert root.findtext("userrating") == "9.0"
    assert root.findtext("runtime") == "22"
    assert root.find("uniqueid").text == "2316"


def test_episode_nfo() -> None:
    episode = {
        "id": "1001",
        "title": "The Office - S01E01 - Pilot",
        "season": "1",
        "episode_num": 1,
        "info": {"air_date": "2005-03-24", "plot": "Pilot plot", "rating": 7.5, "crew": "Ken Kwapis"},
    }

    root = _parse(generate_episode_nfo(episode))

    assert root.tag == "episodedetails"
    assert root.findtext("title") == "Pilot"
    assert root.findtext("season") == "1"
    assert root.findtext("episode") == "1"
    assert root.findtext("aired") == "2005-03-24"
    assert root.findtext("plot") == "Pilot plot"
    assert root.findtext("userrating") == "7.5"
    assert root.findtext("director") == "Ken Kwapis"


def test_episode_nfo_without_info() -> None:
    root = _parse(generate_episode_nfo({"title": "Pilot", "season": 1, "episode_num": "x"}))

    assert root.findtext("title") == "Pilot"
    assert root.find("episode") is None
    assert root.find("aired") is None
