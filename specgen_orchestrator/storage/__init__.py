"""
Storage package for the SpecGen job orchestrator

Contains the job status store and the artifact blob store.
"""

from .status_store import BaseStatusStore, InMemoryStatusStore, PostgresStatusStore
from .blob_store import BaseBlobStore, InMemoryBlobStore, LocalBlobStore, StoredBlob, artifact_key

__all__ = [
    "BaseStatusStore",
    "InMemoryStatusStore",
    "PostgresStatusStore",
    "BaseBlobStore",
    "InMemoryBlobStore",
    "LocalBlobStore",
    "StoredBlob",
    "artifact_key"
]
