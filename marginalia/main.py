"""Marginalia API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marginalia.auth.directory import (
    CassandraUserDirectory,
    InMemoryUserDirectory,
    UserDirectory,
)
from marginalia.auth.router import router as auth_router
from marginalia.broadcast.hub import BroadcastHub
from marginalia.broadcast.relay import RedisRelay
from marginalia.broadcast.websocket_router import router as websocket_router
from marginalia.comments.rendering import MarkdownRenderer
from marginalia.comments.router import router as comments_router
from marginalia.comments.service import CommentService
from marginalia.comments.votes import VoteAggregator
from marginalia.config import Settings, get_settings
from marginalia.core.context import get_request_id
from marginalia.core.database import init_async_cassandra, shutdown_async_cassandra
from marginalia.core.errors import MarginaliaError, status_for
from marginalia.core.logging import configure_structlog, get_logger
from marginalia.core.middleware import RequestContextMiddleware
from marginalia.core.redis import init_redis, shutdown_redis
from marginalia.health import router as health_router
from marginalia.notifications.dispatcher import NotificationDispatcher
from marginalia.notifications.router import router as notifications_router
from marginalia.notifications.service import NotificationService
from marginalia.store import CassandraStore, CommentStore, InMemoryStore


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


async def _init_storage(settings: Settings) -> tuple[CommentStore, UserDirectory]:
    """Create the comment store and user directory for the configured backend."""
    if not settings.uses_cassandra:
        logger.info("storage_initialized", backend="memory")
        return InMemoryStore(), InMemoryUserDirectory()

    session = await init_async_cassandra()
    logger.info("storage_initialized", backend="cassandra")
    return (
        CassandraStore(session=session, keyspace=settings.cassandra_keyspace),
        CassandraUserDirectory(session=session, keyspace=settings.cassandra_keyspace),
    )


async def _init_relay(settings: Settings) -> RedisRelay | None:
    """Create the Redis relay when enabled (non-critical)."""
    if not settings.redis_enabled:
        return None

    try:
        redis_client = await init_redis()
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - broadcast limited to this worker",
        )
        return None

    return RedisRelay(redis_client, channel=settings.broadcast_relay_channel)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    store, directory = await _init_storage(settings)
    relay = await _init_relay(settings)

    hub = BroadcastHub(
        queue_size=settings.broadcast_queue_size,
        relay=relay,
        send_timeout=settings.broadcast_send_timeout,
    )
    await hub.start()

    votes = VoteAggregator(store)
    dispatcher = NotificationDispatcher(store=store, directory=directory, hub=hub)

    app.state.store = store
    app.state.user_directory = directory
    app.state.hub = hub
    app.state.comment_service = CommentService(
        store=store,
        renderer=MarkdownRenderer(),
        votes=votes,
        dispatcher=dispatcher,
        hub=hub,
        max_length=settings.comment_max_length,
    )
    app.state.notification_service = NotificationService(
        store=store, list_limit=settings.notifications_list_limit
    )
    logger.info("services_initialized", relay_enabled=relay is not None)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await hub.stop()
    await shutdown_redis()
    if settings.uses_cassandra:
        await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Never expose stack traces in responses; handlers below log the details
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Threaded page comments with live updates",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _envelope(
        request: Request, status_code: int, message: str, **extra: object
    ) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": message,
                "status_code": status_code,
                "request_id": _get_request_id_safe(request),
                **extra,
            },
        )

    @app.exception_handler(MarginaliaError)
    async def marginalia_exception_handler(
        request: Request, exc: MarginaliaError
    ) -> ORJSONResponse:
        """Handle application errors that escaped a router."""
        status_code = status_for(exc)
        logger.warning(
            "application_error",
            code=exc.code,
            status_code=status_code,
            detail=exc.message,
            path=request.url.path,
            method=request.method,
        )
        message = (
            exc.message
            if status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return _envelope(request, status_code, message, code=exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            or exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
            else "Internal server error"
        )
        response = _envelope(request, exc.status_code, message)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return _envelope(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            details=[
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Invalid value"),
                }
                for err in exc.errors()
            ],
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Never exposes stack traces or internal error details to callers.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _envelope(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(comments_router)
    app.include_router(notifications_router)
    app.include_router(websocket_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Marginalia API",
            "version": settings.app_version,
            "websocket": "/ws",
        }

    return app


app = create_app()
