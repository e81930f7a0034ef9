"""Tests for the category index."""

from __future__ import annotations

from strmsync.categories import CategoryIndex, format_category_name


def test_format_category_name_capitalises_first_letter() -> None:
    assert format_category_name("action & adventure") == "Action and adventure"


def test_format_category_name_applies_patterns() -> None:
    assert format_category_name("EN| drama", {r"^EN\|\s*": ""}) == "Drama"


def test_format_category_name_blank() -> None:
    assert format_category_name(None) == ""
    assert format_category_name("   ") == ""


def test_from_rows_builds_lookup() -> None:
    rows = [
        {"category_id": "1", "category_name": "news"},
        {"category_id": 2, "category_name": "Sports: Live"},
    ]
    index = CategoryIndex.from_rows(rows)

    assert len(index) == 2
    assert index.resolve("1") == "News"
    assert index.resolve(2) == "Sports Live"
    assert "2" in index


def test_from_rows_skips_invalid_and_empty_rows() -> None:
    rows = [
        {"category_name": "no id"},
        {"category_id": "3", "category_name": "   "},
        {"category_id": "4"},
        "not a row",
        {"category_id": "5", "category_name": "Kids"},
    ]
    index = CategoryIndex.from_rows(rows)

    assert len(index) == 1
    assert index.resolve("5") == "Kids"
    assert index.resolve("3") is None


def test_resolve_unknown_or_missing_id() -> None:
    index = CategoryIndex({"1": "News"})
    assert index.resolve(None) is None
    assert index.resolve("99") is None


def test_from_rows_handles_missing_payload() -> None:
    assert len(CategoryIndex.from_rows(None)) == 0
