"""Gateway request handler: serves store objects as HTTP responses.

For every request the handler resolves the URL path to a store key,
fetches the object, maps its metadata to response headers and streams
the body back unchanged. Store failures end the request with a 500 whose
body is the error text; nothing is retried.
"""

import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse

from s3proxy import metrics
from s3proxy.access import request_path
from s3proxy.errors import ProxyError
from s3proxy.headers import build_headers
from s3proxy.resolver import resolve_key

logger = logging.getLogger(__name__)


class GatewayHandler:
    """Handles proxied object requests.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app

    @property
    def store(self):
        """Shortcut to the object store on app.state."""
        return self.app.state.store

    @property
    def config(self):
        """Shortcut to the GatewayConfig on app.state."""
        return self.app.state.config

    async def handle(self, request: Request) -> Response:
        """Serve the object behind the decoded request path.

        Args:
            request: The incoming HTTP request. Any method is accepted.

        Returns:
            A streaming 200 response, or a plain-text 500 on store errors.
        """
        storage = self.config.storage
        path = request_path(request)
        try:
            key = await resolve_key(
                path, self.store, storage.bucket, storage.prefix
            )
            obj = await self.store.fetch(storage.bucket, key)
        except ProxyError as exc:
            metrics.record_fetch("error")
            logger.warning(
                "%s %s failed (key %s): %s",
                request.method,
                path,
                getattr(exc, "key", ""),
                exc,
            )
            return PlainTextResponse(str(exc), status_code=exc.http_status)

        metrics.record_fetch("ok")
        headers = build_headers(
            obj.metadata,
            cache_control=self.config.http.cache_control,
            expires=self.config.http.expires,
        )
        return StreamingResponse(
            content=_counted(obj.body),
            status_code=200,
            headers=headers,
        )


async def _counted(body: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Pass chunks through unchanged, recording the bytes sent."""
    sent = 0
    try:
        async for chunk in body:
            sent += len(chunk)
            yield chunk
    finally:
        metrics.record_bytes_sent(sent)
