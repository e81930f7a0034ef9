"""Exception taxonomy shared by the sync engine.

None of these are meant to escape a single item or a single provider
iteration; every boundary catches, logs with provider/media-kind context
and carries on.
"""

from __future__ import annotations


class StrmSyncError(Exception):
    """Base exception for strmsync errors."""


class TransientNetworkError(StrmSyncError):
    """A request failed in a way that may succeed on a later attempt."""


class AuthenticationError(StrmSyncError):
    """The provider rejected the credentials or the account is not active."""


class PersistenceError(StrmSyncError):
    """Reading, writing or deleting an index or artifact failed."""

    def __init__(self, message: str, path: object | None = None) -> None:
        super().__init__(message)
        self.path = path


class MalformedUpstreamData(StrmSyncError):
    """A single upstream entry is missing fields or has unexpected values."""


class ConfigurationError(StrmSyncError, ValueError):
    """Configuration is missing or invalid."""


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "MalformedUpstreamData",
    "PersistenceError",
    "StrmSyncError",
    "TransientNetworkError",
]
