from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

from ..errors import PersistenceError
from ..models import ArtifactRecord
from ..utils import write_text_atomic

LOGGER = logging.getLogger(__name__)

INDEX_FILENAME = "files.json"


class ArtifactIndex:
    """Persisted ``{path: {hash, added}}`` map for one provider.

    The file is read once per run by :meth:`load` and rewritten once by
    :meth:`save`. Any problem reading it yields an empty index, which only
    costs a full rewrite of the provider's artifacts.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._records: dict[str, ArtifactRecord] = {}

    @classmethod
    def for_provider(cls, cache_dir: Path, provider: str) -> "ArtifactIndex":
        return cls(cache_dir / provider / INDEX_FILENAME)

    def load(self) -> "ArtifactIndex":
        self._records = {}
        if not self.path.exists():
            LOGGER.debug("No artifact index at %s, starting empty", self.path)
            return self

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Failed to load artifact index %s, starting empty: %s", self.path, exc)
            return self

        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring malformed artifact index %s", self.path)
            return self

        records: dict[str, ArtifactRecord] = {}
        for key, data in payload.items():
            if not isinstance(key, str) or not isinstance(data, dict):
                continue
            digest = data.get("hash")
            if not isinstance(digest, str):
                continue
            records[key] = ArtifactRecord(hash=digest, added=str(data.get("added") or ""))
        self._records = records
        return self

    def save(self) -> None:
        serialised = {key: record.to_dict() for key, record in sorted(self._records.items())}
        try:
            write_text_atomic(self.path, json.dumps(serialised, indent=2, ensure_ascii=False))
        except OSError as exc:
            raise PersistenceError(f"Failed to write artifact index: {exc}", path=self.path) from exc

    def get(self, key: str) -> ArtifactRecord | None:
        return self._records.get(key)

    def put(self, key: str, record: ArtifactRecord) -> None:
        self._records[key] = record

    def retain(self, keys: set[str]) -> None:
        """Drop every record whose key is not in ``keys``."""
        self._records = {key: record for key, record in self._records.items() if key in keys}


    def clear(self) -> None:
        self._records = {}

    def keys(self) -> set[str]:
        return set(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)
