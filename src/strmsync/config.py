from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigurationError
from .models import MediaKind
from .utils import load_yaml_file, parse_env_bool, validate_url

DEFAULT_CONFIG_PATH = Path("config/config.yaml")
DEFAULT_INTERVAL_MINUTES = 360
DEFAULT_MEDIA_DIR = "media"
DEFAULT_CACHE_DIR = "cache"
FILE_MANAGER_TYPES = ("simple", "wipe", "cached", "indexed")


@dataclass
class MediaSettings:
    enabled: bool = False
    category_folder: bool = True
    use_server_info: bool = False
    name_cleanup_patterns: dict[str, str] = field(default_factory=dict)
    include_category_ids: list[str] = field(default_factory=list)
    exclude_category_ids: list[str] = field(default_factory=list)

    def allows(self, name: Optional[str], category_id: Optional[str]) -> bool:
        """Entries without a name never pass; a non-empty include list overrides the exclude list."""
        if name is None:
            return False
        key = "" if category_id is None else str(category_id)
        if self.include_category_ids:
            return key in self.include_category_ids
        return key not in self.exclude_category_ids


@dataclass
class LibraryRefreshSettings:
    enabled: bool = False
    protocol: str = "http"
    hostname: str | None = None
    port: int = 8096
    token: str | None = None

    @property
    def base_url(self) -> str | None:
        if not self.hostname:
            return None
        return f"{self.protocol}://{self.hostname}:{self.port}"


@dataclass
class ProviderConfig:
    name: str
    url: str
    username: str | None = None
    password: str | None = None
    interval: int = DEFAULT_INTERVAL_MINUTES
    category_name_cleanup_patterns: dict[str, str] = field(default_factory=dict)
    library_refresh: LibraryRefreshSettings = field(default_factory=LibraryRefreshSettings)
    live: MediaSettings = field(default_factory=MediaSettings)
    movies: MediaSettings = field(default_factory=MediaSettings)
    series: MediaSettings = field(default_factory=MediaSettings)

    @property
    def is_ready(self) -> bool:
        return bool(self.username) and bool(self.password)

    def settings_for(self, kind: MediaKind) -> MediaSettings:
        return getattr(self, kind.settings_key)


@dataclass
class AppSettings:
    run_once: bool = False
    file_manager_type: str = "simple"
    media_dir: Path = field(default_factory=lambda: Path(DEFAULT_MEDIA_DIR))
    cache_dir: Path = field(default_factory=lambda: Path(DEFAULT_CACHE_DIR))
    write_metadata_json: bool = False
    write_metadata_nfo: bool = True


@dataclass
class AppConfig:
    app: AppSettings
    providers: list[ProviderConfig] = field(default_factory=list)


def _as_bool(value: Any, *, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        parsed = parse_env_bool(value)
        if parsed is not None:
            return parsed
    if isinstance(value, int):
        return bool(value)
    raise ConfigurationError(f"'{field_name}' must be a boolean")


def _as_int(value: Any, *, field_name: str, default: int, minimum: int | None = None) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"'{field_name}' must be an integer")
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{field_name}' must be an integer") from exc
    if minimum is not None and result < minimum:
        raise ConfigurationError(f"'{field_name}' must be greater than or equal to {minimum}")
    return result


def _optional_string(value: Any, *, field_name: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ConfigurationError(f"'{field_name}' must be a string")
    cleaned = value.strip()
    return cleaned or None


def _ensure_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{field_name}' must be provided as a mapping when specified")
    return value


def _ensure_id_list(value: Any, *, field_name: str) -> list[str]:
    """Category ids are compared as strings; YAML may give them as numbers."""
    if value is None:
        return []
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"'{field_name}' must be provided as a list")
    result: list[str] = []
    for index, entry in enumerate(value):
        if isinstance(entry, bool) or not isinstance(entry, (str, int)):
            raise ConfigurationError(f"'{field_name}[{index}]' must be a string or integer")
        cleaned = str(entry).strip()
        if cleaned:
            result.append(cleaned)
    return result


def _build_patterns(value: Any, *, field_name: str) -> dict[str, str]:
    """Ordered ``regex -> replacement`` mapping; YAML order is application order."""
    raw = _ensure_mapping(value, field_name=field_name)
    patterns: dict[str, str] = {}
    for pattern, replacement in raw.items():
        if not isinstance(pattern, str) or not pattern:
            raise ConfigurationError(f"'{field_name}' keys must be non-empty strings")
        if replacement is not None and not isinstance(replacement, (str, int, float)):
            raise ConfigurationError(f"'{field_name}[{pattern}]' must be a string")
        patterns[pattern] = "" if replacement is None else str(replacement)
    return patterns


def _build_media_settings(data: Any, *, field_prefix: str) -> MediaSettings:
    if data is None:
        return MediaSettings()
    raw = _ensure_mapping(data, field_name=field_prefix)
    return MediaSettings(
        enabled=_as_bool(raw.get("enabled"), field_name=f"{field_prefix}.enabled", default=True),
        category_folder=_as_bool(raw.get("category_folder"), field_name=f"{field_prefix}.category_folder", default=True),
        use_server_info=_as_bool(
            raw.get("use_server_info"), field_name=f"{field_prefix}.use_server_info", default=False
        ),
        name_cleanup_patterns=_build_patterns(
            raw.get("name_cleanup_patterns"), field_name=f"{field_prefix}.name_cleanup_patterns"
        ),
        include_category_ids=_ensure_id_list(
            raw.get("include_category_ids"), field_name=f"{field_prefix}.include_category_ids"
        ),
        exclude_category_ids=_ensure_id_list(
            raw.get("exclude_category_ids"), field_name=f"{field_prefix}.exclude_category_ids"
        ),
    )


def _build_library_refresh(data: Any, *, field_prefix: str) -> LibraryRefreshSettings:
    raw = _ensure_mapping(data, field_name=field_prefix)
    if not raw:
        return LibraryRefreshSettings()

    settings = LibraryRefreshSettings(
        enabled=_as_bool(raw.get("enabled"), field_name=f"{field_prefix}.enabled", default=False),
        protocol=(_optional_string(raw.get("protocol"), field_name=f"{field_prefix}.protocol") or "http").lower(),
        hostname=_optional_string(raw.get("hostname"), field_name=f"{field_prefix}.hostname"),
        port=_as_int(raw.get("port"), field_name=f"{field_prefix}.port", default=8096, minimum=1),
        token=_optional_string(raw.get("token"), field_name=f"{field_prefix}.token"),
    )
    if settings.protocol not in {"http", "https"}:
        raise ConfigurationError(f"'{field_prefix}.protocol' must be 'http' or 'https'")
    if settings.enabled and not settings.hostname:
        raise ConfigurationError(f"'{field_prefix}.hostname' is required when library refresh is enabled")
    return settings


def _check_provider_name(name: str) -> str:
    """Provider names become a folder under ``media_dir`` and must not point outside it."""
    if not name.strip():
        raise ConfigurationError("Provider names must not be empty")
    if name in {".", ".."} or "/" in name or "\\" in name:
        raise ConfigurationError(f"Provider name {name!r} must be a plain folder name")
    return name


def _build_provider(name: str, data: Any) -> ProviderConfig:
    _check_provider_name(name)
    prefix = f"providers.{name}"
    raw = _ensure_mapping(data, field_name=prefix)

    url = _optional_string(raw.get("url"), field_name=f"{prefix}.url")
    if not url:
        raise ConfigurationError(f"'{prefix}.url' is required")
    if not validate_url(url):
        raise ConfigurationError(f"'{prefix}.url' must be a valid http(s) URL")

    settings = _ensure_mapping(raw.get("settings"), field_name=f"{prefix}.settings")
    unknown = set(settings) - {kind.settings_key for kind in MediaKind}
    if unknown:
        raise ConfigurationError(f"'{prefix}.settings' has unknown media kinds: {', '.join(sorted(unknown))}")

    return ProviderConfig(
        name=name,
        url=url.rstrip("/"),
        username=_optional_string(raw.get("username"), field_name=f"{prefix}.username"),
        password=_optional_string(raw.get("password"), field_name=f"{prefix}.password"),
        interval=_as_int(raw.get("interval"), field_name=f"{prefix}.interval", default=DEFAULT_INTERVAL_MINUTES, minimum=1),
        category_name_cleanup_patterns=_build_patterns(
            raw.get("category_name_cleanup_patterns"), field_name=f"{prefix}.category_name_cleanup_patterns"
        ),
        library_refresh=_build_library_refresh(raw.get("library_refresh"), field_prefix=f"{prefix}.library_refresh"),
        live=_build_media_settings(settings.get("live"), field_prefix=f"{prefix}.settings.live"),
        movies=_build_media_settings(settings.get("movies"), field_prefix=f"{prefix}.settings.movies"),
        series=_build_media_settings(settings.get("series"), field_prefix=f"{prefix}.settings.series"),
    )


def _build_app_settings(data: Any) -> AppSettings:
    raw = _ensure_mapping(data, field_name="app")
    file_manager_type = (_optional_string(raw.get("file_manager_type"), field_name="app.file_manager_type") or "simple").lower()
    if file_manager_type not in FILE_MANAGER_TYPES:
        raise ConfigurationError(f"'app.file_manager_type' must be one of: {', '.join(FILE_MANAGER_TYPES)}")

    media_dir = _optional_string(raw.get("media_dir"), field_name="app.media_dir") or DEFAULT_MEDIA_DIR
    cache_dir = _optional_string(raw.get("cache_dir"), field_name="app.cache_dir") or DEFAULT_CACHE_DIR

    return AppSettings(
        run_once=_as_bool(raw.get("run_once"), field_name="app.run_once", default=False),
        file_manager_type=file_manager_type,
        media_dir=Path(media_dir).expanduser(),
        cache_dir=Path(cache_dir).expanduser(),
        write_metadata_json=_as_bool(raw.get("write_metadata_json"), field_name="app.write_metadata_json", default=False),
        write_metadata_nfo=_as_bool(raw.get("write_metadata_nfo"), field_name="app.write_metadata_nfo", default=True),
    )


def build_config(data: dict[str, Any]) -> AppConfig:
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    app = _build_app_settings(data.get("app"))
    providers_raw = _ensure_mapping(data.get("providers"), field_name="providers")
    providers = [_build_provider(str(name), provider) for name, provider in providers_raw.items()]
    return AppConfig(app=app, providers=providers)


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        data = load_yaml_file(path)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read configuration {path}: {exc}") from exc
    return build_config(data)


__all__ = [
    "AppConfig",
    "AppSettings",
    "DEFAULT_CONFIG_PATH",
    "LibraryRefreshSettings",
    "MediaSettings",
    "ProviderConfig",
    "build_config",
    "load_config",
]
