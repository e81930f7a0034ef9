from __future__ import annotations

import logging

import requests
from requests import Response
from requests.exceptions import RequestException

from .config import LibraryRefreshSettings

LOGGER = logging.getLogger(__name__)

REFRESH_PATH = "/Library/Refresh"
TOKEN_HEADER = "X-Jellyfin-Token"
DEFAULT_TIMEOUT = 30.0


def _excerpt_response(response: Response, limit: int = 200) -> str:
    text = (response.text or "").strip()
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class LibraryRefresher:
    """Asks a Jellyfin server to rescan its libraries once a provider pass has finished."""

    def __init__(self, settings: LibraryRefreshSettings, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.settings = settings
        self._timeout = timeout

    @property
    def endpoint(self) -> str | None:
        base = self.settings.base_url
        return f"{base}{REFRESH_PATH}" if base else None

    def enabled(self) -> bool:
        return self.settings.enabled and bool(self.endpoint)

    def trigger(self) -> bool:
        """POST the refresh request. Failures are logged, never raised."""
        if not self.enabled():
            return False

        headers = {TOKEN_HEADER: self.settings.token or ""}
        try:
            response = requests.post(self.endpoint, headers=headers, timeout=self._timeout)
        except RequestException as exc:
            LOGGER.error("Failed to trigger library refresh at %s: %s", self.settings.base_url, exc)
            return False

        if 200 <= response.status_code < 300:
            LOGGER.info("Refresh library triggered, Jellyfin Server: %s", self.settings.base_url)
            return True

        LOGGER.error(
            "Refresh library failed to trigger, Jellyfin Server: %s, Status: %s %s",
            self.settings.base_url,
            response.status_code,
            _excerpt_response(response),
        )
        return False
