"""Request path to store key resolution.

A request path may pass through one symlink descriptor: an object whose
key ends in ``symlink.json`` and whose body is ``{"URL": "<target>"}``.
Everything up to and including the marker is replaced by the target, the
remainder is kept. The rewrite happens at most once per request; a target
that itself contains the marker is used as-is.

The marker is found with a plain substring search, not on segment
boundaries, so ``/foosymlink.jsonbar`` is treated as a symlink too.
"""

import logging

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from s3proxy import metrics
from s3proxy.errors import ResolutionError
from s3proxy.storage.backend import ObjectStore

logger = logging.getLogger(__name__)

SYMLINK_MARKER = "symlink.json"
INDEX_DOCUMENT = "index.html"


class Symlink(BaseModel):
    """A symlink descriptor. Only ``URL`` is recognised."""

    model_config = ConfigDict(extra="ignore")

    URL: StrictStr = ""


def parse_symlink(body: bytes, key: str = "") -> Symlink:
    """Parse a symlink descriptor body.

    Raises:
        ResolutionError: If the body is not a JSON object with a string URL.
    """
    try:
        return Symlink.model_validate_json(body)
    except ValidationError as exc:
        raise ResolutionError(f"invalid symlink descriptor {key}: {exc}", key=key) from exc


async def resolve_key(path: str, store: ObjectStore, bucket: str, prefix: str = "") -> str:
    """Resolve a request path to the store key to fetch.

    Args:
        path: The request URL path.
        store: Object store used to read a symlink descriptor.
        bucket: The bucket holding the objects.
        prefix: Key prefix prepended to every key.

    Returns:
        The final store key.

    Raises:
        StoreError: If a symlink descriptor cannot be fetched.
        ResolutionError: If a symlink descriptor cannot be parsed.
    """
    idx = path.find(SYMLINK_MARKER)
    if idx > -1:
        end = idx + len(SYMLINK_MARKER)
        link_key = prefix + path[:end]
        obj = await store.fetch(bucket, link_key)
        link = parse_symlink(await obj.read(), key=link_key)
        path = link.URL + path[end:]
        metrics.record_symlink()
        logger.debug("symlink %s -> %s", link_key, path)

    if path.endswith("/"):
        path += INDEX_DOCUMENT
    return prefix + path
