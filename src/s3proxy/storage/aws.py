"""AWS S3 object store client for s3proxy.

Fetches objects from an upstream S3 bucket (or any S3-compatible endpoint)
via aiobotocore. Credentials are resolved via the standard AWS credential
chain (env vars, ~/.aws/credentials, IAM role, etc.) unless explicit keys
are configured.
"""

import email.utils
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from aiobotocore.session import AioSession
from botocore.exceptions import BotoCoreError, ClientError

from s3proxy.errors import StoreError
from s3proxy.storage.backend import FetchedObject, ObjectMetadata

logger = logging.getLogger(__name__)

# Streaming chunk size: 64 KB
_CHUNK_SIZE = 64 * 1024


def _expires_header(resp: dict[str, Any]) -> str | None:
    """Return the Expires value as sent by S3.

    Newer botocore releases parse ``Expires`` into a datetime and keep the
    raw header in ``ExpiresString``.
    """
    raw = resp.get("ExpiresString")
    if raw:
        return raw
    expires = resp.get("Expires")
    if isinstance(expires, datetime):
        return email.utils.format_datetime(expires, usegmt=True)
    return expires or None


def metadata_from_response(resp: dict[str, Any]) -> ObjectMetadata:
    """Map a ``get_object`` response to ObjectMetadata."""
    return ObjectMetadata(
        content_type=resp.get("ContentType"),
        content_length=resp.get("ContentLength"),
        content_encoding=resp.get("ContentEncoding"),
        content_language=resp.get("ContentLanguage"),
        content_disposition=resp.get("ContentDisposition"),
        content_range=resp.get("ContentRange"),
        cache_control=resp.get("CacheControl"),
        expires=_expires_header(resp),
        last_modified=resp.get("LastModified"),
    )


class AWSObjectStore:
    """Object store client backed by an aiobotocore S3 client.

    One client (and its connection pool) is shared by all requests.

    Attributes:
        region: The AWS region for the bucket.
        endpoint_url: Optional custom S3 endpoint.
        use_path_style: Use path-style addressing (for S3-compatible stores).
    """

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str = "",
        use_path_style: bool = False,
        access_key_id: str = "",
        secret_access_key: str = "",
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        self.use_path_style = use_path_style
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    async def init(self) -> None:
        """Create the aiobotocore S3 client.

        The bucket is not probed here: a gateway that is only allowed
        ``s3:GetObject`` cannot call HeadBucket.
        """
        client_kwargs: dict = {"region_name": self.region}
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
        if self.use_path_style:
            from botocore.config import Config as BotoConfig
            client_kwargs["config"] = BotoConfig(s3={"addressing_style": "path"})

        if self.access_key_id and self.secret_access_key:
            session = AioSession()
            session.set_credentials(self.access_key_id, self.secret_access_key)
            self._session = session
        elif not self.access_key_id:
            logger.info("No explicit AWS access key configured, using the credential chain")
        self._client_ctx = self._session.create_client("s3", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()

        logger.info(
            "AWS object store initialized: region=%s endpoint=%s",
            self.region,
            self.endpoint_url or "default",
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def fetch(self, bucket: str, key: str) -> FetchedObject:
        """Fetch an object from S3.

        Raises:
            StoreError: On any client or transport error. The message is the
                botocore error text.
        """
        try:
            resp = await self._client.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(str(e), key=key) from e

        return FetchedObject(
            body=self._iter_body(resp["Body"]),
            metadata=metadata_from_response(resp),
        )

    @staticmethod
    async def _iter_body(body) -> AsyncIterator[bytes]:
        """Yield the streaming body in 64KB chunks, closing it when done."""
        async with body as stream:
            while True:
                chunk = await stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
