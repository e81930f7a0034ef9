"""Client and response models for Xtream-compatible IPTV providers."""

from .client import CONTEXT_PARAMETERS, XtreamAction, XtreamClient, XtreamEndpoint
from .models import AuthResponse, ServerInfo

__all__ = [
    "AuthResponse",
    "CONTEXT_PARAMETERS",
    "ServerInfo",
    "XtreamAction",
    "XtreamClient",
    "XtreamEndpoint",
]
