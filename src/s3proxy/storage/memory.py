"""In-memory object store for s3proxy.

Holds objects in a dictionary keyed by (bucket, key). Useful for local
development and for exercising the gateway without an S3 endpoint.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import replace
from datetime import datetime, timezone

from s3proxy.errors import StoreError
from s3proxy.storage.backend import FetchedObject, ObjectMetadata

logger = logging.getLogger(__name__)

# Streaming chunk size: 64 KB (matches the AWS client)
_CHUNK_SIZE = 64 * 1024


class MemoryObjectStore:
    """Object store that serves objects held in memory.

    Attributes:
        chunk_size: Size of the chunks yielded by fetched bodies.
    """

    def __init__(self, chunk_size: int = _CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size
        # (bucket, key) -> (data, metadata)
        self._objects: dict[tuple[str, str], tuple[bytes, ObjectMetadata]] = {}

    async def init(self) -> None:
        logger.info("Memory object store initialized")

    async def close(self) -> None:
        self._objects.clear()

    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        metadata: ObjectMetadata | None = None,
    ) -> None:
        """Store an object.

        ``content_length`` and ``last_modified`` are filled in when the
        given metadata leaves them unset.
        """
        meta = replace(metadata) if metadata is not None else ObjectMetadata()
        if meta.content_length is None:
            meta.content_length = len(data)
        if meta.last_modified is None:
            meta.last_modified = datetime.now(timezone.utc).replace(microsecond=0)
        self._objects[(bucket, key)] = (data, meta)

    def delete(self, bucket: str, key: str) -> None:
        self._objects.pop((bucket, key), None)

    async def fetch(self, bucket: str, key: str) -> FetchedObject:
        """Fetch an object from memory.

        Raises:
            StoreError: If the key does not exist.
        """
        try:
            data, meta = self._objects[(bucket, key)]
        except KeyError:
            raise StoreError(
                "NoSuchKey: The specified key does not exist.", key=key
            ) from None
        return FetchedObject(body=self._iter_body(data), metadata=replace(meta))

    async def _iter_body(self, data: bytes) -> AsyncIterator[bytes]:
        for offset in range(0, len(data), self.chunk_size):
            yield data[offset:offset + self.chunk_size]
