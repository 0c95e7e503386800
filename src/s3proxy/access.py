"""Basic authentication gate and access logging around the gateway.

Both behaviours are installed as HTTP middleware. The auth gate runs
first; a rejected request never reaches the handler and is not
access-logged. Access records are emitted once the response body has
been sent, so the elapsed time covers streaming.
"""

import base64
import binascii
import logging
import secrets
import time
from collections.abc import AsyncIterator, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from s3proxy.config import GatewayConfig
from s3proxy.logging_config import ACCESS_LOGGER

logger = logging.getLogger(__name__)
access_logger = logging.getLogger(ACCESS_LOGGER)


def unwrapped_paths(config: GatewayConfig) -> frozenset[str]:
    """Diagnostic endpoints served without auth or access logging.

    ``/metrics`` is only exempt while it is actually exposed; otherwise it
    is an ordinary object path and goes through the gateway.
    """
    paths = {"/--version"}
    if config.observability.metrics:
        paths.add("/metrics")
    return frozenset(paths)


def request_path(request: Request) -> str:
    """Return the full decoded request path.

    ``request.url`` re-splits the decoded path, so an encoded ``?`` or ``#``
    would truncate it. The ASGI scope keeps it whole.
    """
    return request.scope["path"]


def parse_basic_auth(header: str) -> tuple[str, str] | None:
    """Decode an ``Authorization: Basic`` header value.

    Returns:
        A (username, password) tuple, or None if the header is not valid
        Basic credentials.
    """
    scheme, _, param = header.partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def check_credentials(header: str | None, username: str, password: str) -> bool:
    """Return True if the header carries exactly the configured credentials."""
    if not header:
        return False
    parsed = parse_basic_auth(header)
    if parsed is None:
        return False
    user_ok = secrets.compare_digest(parsed[0].encode(), username.encode())
    pass_ok = secrets.compare_digest(parsed[1].encode(), password.encode())
    return user_ok and pass_ok


def client_address(request: Request) -> str:
    """Return X-Forwarded-For when present and non-empty, else host:port."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded
    if request.client is None:
        return ""
    return f"{request.client.host}:{request.client.port}"


def unauthorized(realm: str) -> Response:
    return PlainTextResponse(
        "Unauthorized",
        status_code=401,
        headers={"WWW-Authenticate": f'Basic realm="{realm}"'},
    )


class ObservedResponse:
    """Observes a response while its body is written out.

    Wraps the response's body iterator in place. ``status_code`` is the
    status the handler chose and ``bytes_sent`` grows as chunks go out.
    ``on_complete`` is called with this observer once the body has been
    fully sent or the stream has failed.
    """

    def __init__(
        self,
        response: Response,
        on_complete: Callable[["ObservedResponse"], None],
    ) -> None:
        self.response = response
        self.status_code = response.status_code
        self.bytes_sent = 0
        self._on_complete = on_complete
        self._body = response.body_iterator
        response.body_iterator = self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._body:
                self.bytes_sent += len(chunk)
                yield chunk
        finally:
            self._on_complete(self)


def register_access_middleware(app: FastAPI, config: GatewayConfig) -> None:
    """Register the auth gate and access logger on the app.

    The last registered middleware runs first, so the access logger is
    registered before the auth gate to end up inside it.
    """
    exempt = unwrapped_paths(config)

    if config.access_log:

        @app.middleware("http")
        async def access_log_middleware(request: Request, call_next) -> Response:
            if request_path(request) in exempt:
                return await call_next(request)

            start = time.monotonic()
            addr = client_address(request)
            path = request_path(request)
            query = request.scope.get("query_string", b"").decode("latin-1")
            if query:
                path = f"{path}?{query}"

            def emit(observed: ObservedResponse) -> None:
                elapsed = time.monotonic() - start
                access_logger.info(
                    "[%s] %.3f %d %s %s",
                    addr,
                    elapsed,
                    observed.status_code,
                    request.method,
                    path,
                    extra={
                        "client": addr,
                        "elapsed": round(elapsed, 3),
                        "status": observed.status_code,
                        "method": request.method,
                        "path": path,
                    },
                )

            response = await call_next(request)
            ObservedResponse(response, emit)
            return response

    if config.auth.enabled:
        auth = config.auth

        @app.middleware("http")
        async def basic_auth_middleware(request: Request, call_next) -> Response:
            if request_path(request) in exempt:
                return await call_next(request)
            if not check_credentials(
                request.headers.get("authorization"), auth.username, auth.password
            ):
                logger.debug(
                    "rejected credentials for %s %s", request.method, request_path(request)
                )
                return unauthorized(auth.realm)
            return await call_next(request)
