"""Output path composition for generated artifacts.

Every function here is pure: the same arguments always produce the same
path. The incremental store relies on that to recognise an artifact it wrote
in a previous run.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from .models import MediaKind

PLAYLIST_FILENAME = "live.m3u"
GUIDE_FILENAME = "epg.xml"

EXTERNAL_ID_PRIORITY: Mapping[MediaKind, tuple[str, ...]] = {
    MediaKind.MOVIE: ("tmdbid", "imdbid"),
    MediaKind.SERIES: ("tvdbid", "tmdbid"),
}


def select_external_id(kind: MediaKind, ids: Mapping[str, Optional[str]]) -> Optional[tuple[str, str]]:
    """Pick the ``(provider_tag, value)`` pair used in the folder name.

    Movies prefer a TMDB id over an IMDB id, series a TVDB id over a TMDB id.
    Blank values are ignored. Returns None when nothing usable is present.
    """
    for tag in EXTERNAL_ID_PRIORITY.get(kind, ()):
        value = ids.get(tag)
        if value is not None and str(value).strip():
            return tag, str(value).strip()
    return None


def _ensure_within(root: Path, destination: Path) -> Path:
    base_dir = root.resolve()
    resolved = destination.resolve(strict=False)
    if not resolved.is_relative_to(base_dir):
        raise ValueError(f"destination {resolved} escapes media root {base_dir}")
    return destination


def _check_component(label: str, value: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} must not be empty")
    if value in {".", ".."}:
        raise ValueError(f"{label} must not be {value!r}")
    return value


def provider_root(root: Path, provider: str) -> Path:
    return _ensure_within(root, root / _check_component("provider", provider))


def kind_root(root: Path, provider: str, kind: MediaKind) -> Path:
    return _ensure_within(root, provider_root(root, provider) / kind.directory_name)


def build_entity_dir(
    root: Path,
    provider: str,
    kind: MediaKind,
    category: Optional[str],
    entity_name: str,
    group_by_category: bool = True,
) -> Path:
    base = kind_root(root, provider, kind)
    if group_by_category and category:
        base = base / _check_component("category", category)
    return _ensure_within(root, base / _check_component("entity name", entity_name))


def build_entity_path(
    root: Path,
    provider: str,
    kind: MediaKind,
    category: Optional[str],
    entity_name: str,
    suffix: str,
    group_by_category: bool = True,
) -> Path:
    """``root/provider/<kind dir>[/category]/<entity>/<entity><suffix>``."""
    directory = build_entity_dir(root, provider, kind, category, entity_name, group_by_category)
    return _ensure_within(root, directory / f"{entity_name}{suffix}")


def build_series_dir(
    root: Path,
    provider: str,
    category: Optional[str],
    series_name: str,
    group_by_category: bool = True,
) -> Path:
    return build_entity_dir(root, provider, MediaKind.SERIES, category, series_name, group_by_category)


def season_folder_name(season: int) -> str:
    return f"Season {season:02d}"


def episode_file_stem(series_name: str, season: int, episode: int) -> str:
    return f"{series_name} - S{season:02d}E{episode:02d}"


def build_episode_path(series_dir: Path, series_name: str, season: int, episode: int, suffix: str) -> Path:
    """``<series_dir>/Season NN/<series> - SNNENN<suffix>``."""
    destination = series_dir / season_folder_name(season) / f"{episode_file_stem(series_name, season, episode)}{suffix}"
    return _ensure_within(series_dir, destination)


def build_live_paths(root: Path, provider: str) -> tuple[Path, Path]:
    """Return the playlist and guide paths for a provider's live channels."""
    directory = kind_root(root, provider, MediaKind.LIVE)
    return directory / PLAYLIST_FILENAME, directory / GUIDE_FILENAME


def format_relative(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


__all__ = [
    "EXTERNAL_ID_PRIORITY",
    "GUIDE_FILENAME",
    "PLAYLIST_FILENAME",
    "build_entity_dir",
    "build_entity_path",
    "build_episode_path",
    "build_live_paths",
    "build_series_dir",
    "episode_file_stem",
    "format_relative",
    "kind_root",
    "provider_root",
    "season_folder_name",
]
