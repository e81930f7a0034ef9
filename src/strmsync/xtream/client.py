"""HTTP client for the Xtream player API."""

from __future__ import annotations

import json
import logging
import threading
from enum import Enum
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from ..errors import AuthenticationError, TransientNetworkError
from ..models import MediaKind
from .models import AuthResponse, ServerInfo

LOGGER = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY = 1.0
REQUEST_TIMEOUT = 30.0
THROTTLE_DELAY = 0.1

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/117.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS: Mapping[str, str] = {
    "Upgrade-Insecure-Requests": "1",
    "User-Agent": DEFAULT_USER_AGENT,
}

_MASK = "***"


class XtreamEndpoint(str, Enum):
    PLAYER = "player_api"
    EPG = "xmltv"

    def __str__(self) -> str:
        return self.value

    @property
    def is_json(self) -> bool:
        return self is XtreamEndpoint.PLAYER


class XtreamAction(str, Enum):
    LIVE_CATEGORIES = "get_live_categories"
    LIVE_STREAMS = "get_live_streams"
    SERIES_CATEGORIES = "get_series_categories"
    SERIES_STREAMS = "get_series"
    SERIES_INFO = "get_series_info"
    VOD_CATEGORIES = "get_vod_categories"
    VOD_STREAMS = "get_vod_streams"
    VOD_INFO = "get_vod_info"
    EPG_INFO = "get_short_epg"

    def __str__(self) -> str:
        return self.value


CONTEXT_PARAMETERS: Mapping[XtreamAction, str] = {
    XtreamAction.SERIES_INFO: "series_id",
    XtreamAction.VOD_INFO: "vod_id",
    XtreamAction.EPG_INFO: "stream_id",
}


class XtreamClient:
    """Fetches catalog data from one Xtream provider.

    Every request is retried up to ``MAX_ATTEMPTS`` times with a flat
    ``RETRY_DELAY`` pause between failed attempts. Successful requests are
    followed by a ``THROTTLE_DELAY`` pause so a provider is not hammered while
    hundreds of series detail pages are pulled in sequence. All pauses wait on
    ``stop_event`` so a shutdown request interrupts them.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        stop_event: threading.Event | None = None,
        timeout: float = REQUEST_TIMEOUT,
        http_client: httpx.Client | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.server_url: str | None = None
        self._stop_event = stop_event or threading.Event()
        self._log = logger or LOGGER
        if http_client is None:
            self._client = httpx.Client(timeout=timeout, headers=dict(DEFAULT_HEADERS), follow_redirects=True)
            self._owns_client = True
        else:
            self._client = http_client
            self._owns_client = False

    def build_params(
        self,
        endpoint: XtreamEndpoint,
        action: XtreamAction | None = None,
        context_id: str | None = None,
    ) -> dict[str, str]:
        params = {"username": self.username, "password": self.password}
        if action is not None and endpoint is XtreamEndpoint.PLAYER:
            params["action"] = action.value
            context_key = CONTEXT_PARAMETERS.get(action)
            if context_id is not None and context_key is not None:
                params[context_key] = str(context_id)
        return params

    def endpoint_url(self, endpoint: XtreamEndpoint) -> str:
        return f"{self.base_url}/{endpoint.value}.php"

    def describe_request(
        self,
        endpoint: XtreamEndpoint,
        action: XtreamAction | None = None,
        context_id: str | None = None,
    ) -> str:
        """Request URL with credentials masked, for log output."""
        params = self.build_params(endpoint, action, context_id)
        params["username"] = _MASK
        params["password"] = _MASK
        query = "&".join(f"{key}={value}" for key, value in params.items())
        return f"{self.endpoint_url(endpoint)}?{query}"

    def mask(self, text: str) -> str:
        for secret in (self.password, self.username):
            if secret:
                text = text.replace(secret, _MASK)
        return text

    def _attempt(
        self,
        endpoint: XtreamEndpoint,
        params: Mapping[str, str],
    ) -> Any:
        try:
            response = self._client.get(self.endpoint_url(endpoint), params=params)
        except httpx.HTTPError as exc:
            raise TransientNetworkError(self.mask(f"{type(exc).__name__}: {exc}")) from exc

        if not 200 <= response.status_code < 300:
            raise TransientNetworkError(f"unexpected status {response.status_code}")

        if not endpoint.is_json:
            return response.text
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise TransientNetworkError(f"invalid JSON payload: {exc}") from exc

    def fetch(
        self,
        action: XtreamAction | None,
        context_id: str | None = None,
        endpoint: XtreamEndpoint = XtreamEndpoint.PLAYER,
    ) -> Any | None:
        """Return the decoded payload, or None once every attempt has failed."""
        description = self.describe_request(endpoint, action, context_id)
        params = self.build_params(endpoint, action, context_id)
        self._log.debug("Fetching %s", description)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            if self._stop_event.is_set():
                self._log.debug("Stop requested, abandoning %s", description)
                return None
            try:
                payload = self._attempt(endpoint, params)
            except TransientNetworkError as exc:
                self._log.warning("Attempt %d/%d failed for %s: %s", attempt, MAX_ATTEMPTS, description, exc)
                if attempt < MAX_ATTEMPTS:
                    self._stop_event.wait(RETRY_DELAY)
                continue
            self._stop_event.wait(THROTTLE_DELAY)
            return payload

        self._log.error("Giving up on %s after %d attempts", description, MAX_ATTEMPTS)
        return None

    def authenticate(self) -> ServerInfo:
        """Check the account is authorised and active and remember the advertised server URL.

        Raises:
            AuthenticationError: If the provider is unreachable or the account is not active
        """
        payload = self.fetch(None)
        if payload is None:
            raise AuthenticationError("Authentication failed: provider did not respond")
        try:
            auth = AuthResponse.model_validate(payload)
        except ValidationError as exc:
            raise AuthenticationError(f"Authentication failed: unexpected response ({exc.error_count()} errors)") from exc

        if not auth.user_info.is_active:
            raise AuthenticationError(
                f"Authentication failed: auth={auth.user_info.auth} status={auth.user_info.status or 'unknown'}"
            )

        self.server_url = auth.server_info.base_url()
        return auth.server_info

    def stream_url(self, kind: MediaKind, stream_id: str, extension: str, *, use_server_info: bool = False) -> str:
        base = self.server_url if use_server_info and self.server_url else self.base_url
        return f"{base}/{kind.value}/{self.username}/{self.password}/{stream_id}.{extension}"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> XtreamClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()


__all__ = [
    "CONTEXT_PARAMETERS",
    "DEFAULT_HEADERS",
    "MAX_ATTEMPTS",
    "XtreamAction",
    "XtreamClient",
    "XtreamEndpoint",
]
