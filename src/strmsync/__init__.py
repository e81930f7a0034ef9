"""strmsync core package.

The strmsync package mirrors Xtream-compatible IPTV catalogs into a Jellyfin
media tree. It is organized into focused modules:

- **xtream**: HTTP client for the player API and its response models
- **sanitizer** / **templating**: Filesystem-safe display names
- **path_builder**: Deterministic on-disk locations for every artifact
- **categories**: Category id to folder name lookup
- **persistence**: Artifact stores that write, skip unchanged and reclaim stale files
- **handlers**: Live, movie and series processing
- **metadata**: Kodi-style NFO documents
- **orchestrator**: Per-provider sync loop
- **library_refresh**: Post-run Jellyfin library refresh

The main entry point is the ``ProviderOrchestrator`` class, or ``strmsync`` on
the command line.
"""

from .orchestrator import ProviderOrchestrator
from .version import __version__

__all__ = [
    "__version__",
    "ProviderOrchestrator",
]
