from .artifact_index import INDEX_FILENAME, ArtifactIndex
from .artifact_store import (
    ArtifactStore,
    IndexedArtifactStore,
    ReconcileResult,
    StoreState,
    WipeArtifactStore,
    build_artifact_store,
    encode_payload,
    prune_empty_directories,
)

__all__ = [
    "INDEX_FILENAME",
    "ArtifactIndex",
    "ArtifactStore",
    "IndexedArtifactStore",
    "ReconcileResult",
    "StoreState",
    "WipeArtifactStore",
    "build_artifact_store",
    "encode_payload",
    "prune_empty_directories",
]
