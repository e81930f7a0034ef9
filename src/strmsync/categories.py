from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Optional

from pydantic import ValidationError

from .sanitizer import PatternMapping, sanitize
from .xtream.models import CategoryRow

LOGGER = logging.getLogger(__name__)


def format_category_name(raw: Optional[str], patterns: Optional[PatternMapping] = None) -> str:
    """Sanitize a category name and upper-case its first character."""
    cleaned = sanitize(raw, patterns)
    if not cleaned:
        return ""
    return cleaned[0].upper() + cleaned[1:]


class CategoryIndex:
    """Read-only ``category_id -> folder name`` map, rebuilt for every run."""

    def __init__(self, categories: Mapping[str, str] | None = None) -> None:
        self._names: Mapping[str, str] = MappingProxyType(dict(categories or {}))

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]] | None,
        patterns: Optional[PatternMapping] = None,
    ) -> "CategoryIndex":
        names: dict[str, str] = {}
        for raw in rows or ():
            try:
                row = CategoryRow.model_validate(raw)
            except ValidationError as exc:
                LOGGER.debug("Skipping malformed category row %r: %s", raw, exc.errors()[0].get("msg"))
                continue
            name = format_category_name(row.category_name, patterns)
            if name:
                names[row.category_id] = name
        return cls(names)

    def resolve(self, category_id: Optional[str]) -> Optional[str]:
        if category_id is None:
            return None
        return self._names.get(str(category_id))

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, category_id: object) -> bool:
        return str(category_id) in self._names


__all__ = ["CategoryIndex", "format_category_name"]
