"""Object metadata to HTTP response header mapping."""

import email.utils
from datetime import datetime, timezone

from s3proxy.storage.backend import ObjectMetadata


def _http_date(value: datetime) -> str:
    """Format a datetime as an RFC 1123 HTTP date in GMT.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return email.utils.format_datetime(value.astimezone(timezone.utc), usegmt=True)


def build_headers(
    metadata: ObjectMetadata, cache_control: str = "", expires: str = ""
) -> dict[str, str]:
    """Build response headers for a fetched object.

    ``Cache-Control`` and ``Expires`` take the configured value when it is
    non-empty and fall back to the object's own. All other headers come from
    the object only. Empty values, a non-positive length and an unset
    modification time produce no header.

    Args:
        metadata: The fetched object's metadata.
        cache_control: Configured Cache-Control override.
        expires: Configured Expires override.

    Returns:
        Header name to value mapping.
    """
    headers: dict[str, str] = {}

    def put(name: str, value: str | None) -> None:
        if value:
            headers[name] = value

    put("Cache-Control", cache_control or metadata.cache_control)
    put("Expires", expires or metadata.expires)
    put("Content-Disposition", metadata.content_disposition)
    put("Content-Encoding", metadata.content_encoding)
    put("Content-Language", metadata.content_language)
    if metadata.content_length is not None and metadata.content_length > 0:
        headers["Content-Length"] = str(metadata.content_length)
    put("Content-Range", metadata.content_range)
    put("Content-Type", metadata.content_type)
    if metadata.last_modified is not None:
        headers["Last-Modified"] = _http_date(metadata.last_modified)
    return headers
