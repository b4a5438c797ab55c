"""
Blob store for generated artifacts

Artifacts are written once under ``jobs/{job_id}/{artifact_name}``; the first
write to a key wins and later writes are no-ops.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import aiofiles
import aiofiles.os

from ..core.exceptions import PersistenceError
from ..utils.logger import get_logger, set_log_context


def artifact_key(job_id: str, artifact_name: str) -> str:
    """Blob key of a job artifact."""
    return f"jobs/{job_id}/{artifact_name}"


@dataclass
class StoredBlob:
    content: str
    content_type: str


class BaseBlobStore(ABC):
    """Abstract write-once artifact store."""

    async def initialize(self) -> None:
        """Prepare the store for use."""

    async def close(self) -> None:
        """Release store resources."""

    @abstractmethod
    async def put(self, key: str, content: str, content_type: str) -> str:
        """
        Store content under a key unless the key already exists.

        Returns:
            The key
        """

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredBlob]:
        """Return the stored blob, or None if the key is unknown."""


class InMemoryBlobStore(BaseBlobStore):
    def __init__(self):
        self._blobs: Dict[str, StoredBlob] = {}
        self._lock = asyncio.Lock()

    async def put(self, key: str, content: str, content_type: str) -> str:
        async with self._lock:
            if key not in self._blobs:
                self._blobs[key] = StoredBlob(content=content, content_type=content_type)
        return key

    async def get(self, key: str) -> Optional[StoredBlob]:
        async with self._lock:
            return self._blobs.get(key)

    def keys(self):
        return sorted(self._blobs)


class LocalBlobStore(BaseBlobStore):
    """
    Filesystem blob store.

    Each key maps to a file under the root directory; the content type is kept
    in a ``.content-type`` sidecar file.
    """

    CONTENT_TYPE_SUFFIX = ".content-type"

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self._lock = asyncio.Lock()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="local_blob_store")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise PersistenceError("resolve", "key escapes the blob root", key=key)
        return path

    async def initialize(self) -> None:
        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
        except OSError as e:
            raise PersistenceError("initialization", str(e), key=str(self.root))

    async def put(self, key: str, content: str, content_type: str) -> str:
        path = self._path(key)
        async with self._lock:
            try:
                if await aiofiles.os.path.exists(path):
                    self.logger.debug("Blob already exists, keeping first write", extra={"key": key})
                    return key

                await aiofiles.os.makedirs(path.parent, exist_ok=True)
                async with aiofiles.open(path, "w", encoding="utf-8") as f:
                    await f.write(content)
                async with aiofiles.open(str(path) + self.CONTENT_TYPE_SUFFIX, "w", encoding="utf-8") as f:
                    await f.write(content_type)
            except OSError as e:
                raise PersistenceError("put", str(e), key=key)

        return key

    async def get(self, key: str) -> Optional[StoredBlob]:
        path = self._path(key)
        try:
            if not await aiofiles.os.path.exists(path):
                return None
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            content_type = "application/octet-stream"
            type_path = str(path) + self.CONTENT_TYPE_SUFFIX
            if await aiofiles.os.path.exists(type_path):
                async with aiofiles.open(type_path, "r", encoding="utf-8") as f:
                    content_type = (await f.read()).strip()
        except OSError as e:
            raise PersistenceError("get", str(e), key=key)

        return StoredBlob(content=content, content_type=content_type)
