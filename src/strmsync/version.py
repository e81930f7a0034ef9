"""Version detection with support for container builds."""

from __future__ import annotations

import os
from importlib import metadata

_DISTRIBUTION = "strmsync"

# Fallback version when the package is not installed
_FALLBACK_VERSION = "unknown"


def get_version() -> str:
    """Get the current version string.

    Priority:
    1. BUILD_VERSION environment variable (set during CI/CD)
    2. GIT_SHA environment variable (Docker build arg)
    3. Installed distribution metadata
    4. Fallback to "unknown"
    """
    build_version = os.environ.get("BUILD_VERSION")
    if build_version:
        return build_version.strip()

    env_sha = os.environ.get("GIT_SHA")
    if env_sha:
        return f"dev ({env_sha.strip()})"

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return _FALLBACK_VERSION


# Cache the version on module load
__version__ = get_version()
