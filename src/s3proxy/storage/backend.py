"""Object store client protocol and result types for s3proxy."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol


@dataclass
class ObjectMetadata:
    """Metadata returned alongside an object's bytes.

    Every field is optional; ``None`` or an empty value means the store did
    not report it.

    Attributes:
        content_type: MIME type.
        content_length: Size of the returned body in bytes.
        content_encoding: Content-Encoding value.
        content_language: Content-Language value.
        content_disposition: Content-Disposition value.
        content_range: Content-Range value.
        cache_control: Cache-Control value.
        expires: Expires value, as the raw HTTP date string.
        last_modified: Last modification time (timezone-aware).
    """

    content_type: str | None = None
    content_length: int | None = None
    content_encoding: str | None = None
    content_language: str | None = None
    content_disposition: str | None = None
    content_range: str | None = None
    cache_control: str | None = None
    expires: str | None = None
    last_modified: datetime | None = None


@dataclass
class FetchedObject:
    """An object fetched from the store.

    ``body`` is a forward-only async iterator of byte chunks and may be
    consumed exactly once.
    """

    body: AsyncIterator[bytes]
    metadata: ObjectMetadata = field(default_factory=ObjectMetadata)

    async def read(self) -> bytes:
        """Drain the body into a single bytes value.

        Only meant for small objects such as symlink descriptors.
        """
        chunks = []
        async for chunk in self.body:
            chunks.append(chunk)
        return b"".join(chunks)


class ObjectStore(Protocol):
    """Protocol for the read-only object store the gateway fetches from.

    Implementations must not retry: a failed fetch is reported once and the
    request ends with it.
    """

    async def init(self) -> None:
        """Open connections or other resources."""
        ...

    async def close(self) -> None:
        """Release resources held by the store client."""
        ...

    async def fetch(self, bucket: str, key: str) -> FetchedObject:
        """Fetch an object's body and metadata.

        Args:
            bucket: The bucket name.
            key: The full object key (prefix already applied).

        Returns:
            The fetched object with an unread body stream.

        Raises:
            StoreError: If the object cannot be fetched for any reason.
        """
        ...
