from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class MediaKind(str, Enum):
    LIVE = "live"
    MOVIE = "movie"
    SERIES = "series"

    def __str__(self) -> str:
        return self.value

    @property
    def directory_name(self) -> str:
        """Folder under the provider root that holds this kind's artifacts."""
        return "movies" if self is MediaKind.MOVIE else self.value

    @property
    def settings_key(self) -> str:
        """Key of this kind's block under ``providers.<name>.settings``."""
        return "movies" if self is MediaKind.MOVIE else self.value


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    id: str
    name: Optional[str]
    category_id: Optional[str]
    kind: MediaKind
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ArtifactRecord:
    hash: str
    added: str

    def to_dict(self) -> dict[str, str]:
        return {"hash": self.hash, "added": self.added}


def format_timestamp(value: dt.datetime | str | None) -> str:
    """Render a write timestamp as ISO-8601 (UTC, ``Z`` suffix)."""
    if value is None:
        value = dt.datetime.now(dt.timezone.utc)
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def parse_epoch(value: Any) -> dt.datetime:
    """Convert an upstream epoch-seconds value (int or numeric string) to a UTC datetime."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("missing timestamp")
    try:
        return dt.datetime.fromtimestamp(int(str(value).strip()), tz=dt.timezone.utc)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"timestamp out of range: {value!r}") from exc
