"""FastAPI application factory and route setup for s3proxy."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from s3proxy import __version__
from s3proxy.access import register_access_middleware
from s3proxy.config import GatewayConfig
from s3proxy.handlers.gateway import GatewayHandler
from s3proxy.storage.backend import ObjectStore

logger = logging.getLogger(__name__)

# Module-level singleton so multiple create_app() calls (e.g. in tests)
# don't re-register the same Prometheus collectors in the global registry.
_instrumentator = None


def _get_instrumentator():
    global _instrumentator
    if _instrumentator is None:
        from prometheus_fastapi_instrumentator import Instrumentator

        _instrumentator = Instrumentator(excluded_handlers=["/metrics"])
    return _instrumentator


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(config: GatewayConfig, store: ObjectStore | None = None) -> FastAPI:
    """Create and configure the s3proxy FastAPI application.

    The lifespan context manager creates and initializes the object store
    on startup and closes it on shutdown. A store passed in by the caller
    is used as-is and left for the caller to close.

    Args:
        config: The gateway configuration. Never mutated after this call.
        store: Optional pre-built object store.

    Returns:
        A configured FastAPI application ready to run.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.store is None
        if owned:
            app.state.store = create_object_store(config)
            await app.state.store.init()
            logger.info("Object store initialized: %s", config.storage.backend)

        yield

        if owned:
            await app.state.store.close()
            app.state.store = None
            logger.info("Object store closed")

    app = FastAPI(
        title="s3proxy",
        version=__version__,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.store = store

    _register_exception_handlers(app)
    register_access_middleware(app, config)

    # /metrics must be registered before the catch-all route
    if config.observability.metrics:
        import s3proxy.metrics as _metrics

        _metrics.init_metrics()
        _get_instrumentator().instrument(app, metric_namespace="s3proxy").expose(
            app, endpoint="/metrics", include_in_schema=False
        )

    _setup_routes(app, config)

    return app


def create_object_store(config: GatewayConfig) -> ObjectStore:
    """Create an object store client based on configuration.

    Supports 'aws' and 'memory' backends.
    """
    backend = config.storage.backend
    if backend == "aws":
        from s3proxy.storage.aws import AWSObjectStore

        return AWSObjectStore(
            region=config.storage.aws_region,
            endpoint_url=config.storage.aws_endpoint_url,
            use_path_style=config.storage.aws_use_path_style,
            access_key_id=config.storage.aws_access_key_id,
            secret_access_key=config.storage.aws_secret_access_key,
        )
    elif backend == "memory":
        from s3proxy.storage.memory import MemoryObjectStore

        return MemoryObjectStore()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Catch unexpected exceptions and return a plain 500."""
        logger.exception("Unhandled exception in request handler")
        return PlainTextResponse("Internal Server Error", status_code=500)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _setup_routes(app: FastAPI, config: GatewayConfig) -> None:
    """Register the diagnostic route and the catch-all gateway route.

    Args:
        app: The FastAPI application to attach routes to.
        config: The gateway configuration.
    """
    gateway = GatewayHandler(app)
    version = config.server.version
    build_date = config.server.build_date

    @app.api_route("/--version", methods=["GET", "HEAD"], include_in_schema=False)
    async def handle_version() -> Response:
        """Return the build string when one is configured, else an empty 200."""
        if version and build_date:
            return PlainTextResponse(f"version: {version} (built at {build_date})")
        return Response(status_code=200)

    # No methods list: every method reaches the gateway.
    app.add_route("/{path:path}", gateway.handle, include_in_schema=False)
