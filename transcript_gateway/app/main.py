from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from transcript_gateway.app.api.proxy_check import router as proxy_check_router
from transcript_gateway.app.api.transcript import router as transcript_router
from transcript_gateway.app.core.config import Settings, get_settings
from transcript_gateway.app.core.http_client import ProxyRoute, mask_credentials
from transcript_gateway.app.core.logging import get_logger, setup_logging
from transcript_gateway.app.exceptions import (
    GatewayException,
    MethodNotAllowedError,
    RateLimitedError,
)
from transcript_gateway.app.middleware.rate_limit import FixedWindowRateLimiter
from transcript_gateway.app.middleware.request_id import RequestIdMiddleware, get_request_id
from transcript_gateway.app.services.transcript import TranscriptFetcher, YouTubeTranscriptFetcher


def create_app(
    settings: Optional[Settings] = None,
    transcript_fetcher: Optional[TranscriptFetcher] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (default: read from the environment)
        transcript_fetcher: Transcript source (default: youtube-transcript-api)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)
    logger = get_logger(__name__)

    # One limiter per process, shared by every request through app.state
    rate_limiter = FixedWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        sweep_interval=settings.sweep_interval,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start the rate limit sweeper on startup and stop it on shutdown."""
        await rate_limiter.start()

        route = ProxyRoute.from_url(settings.proxy_url)
        if not settings.api_secret_key:
            logger.warning("API_SECRET_KEY is not set; every request will be refused")
        logger.info(
            "Application startup complete",
            extra={
                "proxy": route.masked_url if route else None,
                "rate_limit": f"{settings.rate_limit_requests}/{settings.rate_limit_window_seconds}s",
                "languages": settings.transcript_languages,
            },
        )

        yield

        await rate_limiter.stop()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Transcript Gateway",
        description="Authenticated, rate limited transcript fetching with proxy diagnostics",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.transcript_fetcher = transcript_fetcher or YouTubeTranscriptFetcher(settings)

    app.add_middleware(RequestIdMiddleware)

    app.include_router(transcript_router)
    app.include_router(proxy_check_router)

    @app.exception_handler(GatewayException)
    async def gateway_exception_handler(request: Request, exc: GatewayException) -> JSONResponse:
        """Render every domain error as {"error": ...} with its status code."""
        headers = exc.headers if isinstance(exc, RateLimitedError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Keep routing errors (404, 405) in the same shape as domain errors."""
        if exc.status_code == 405:
            error = MethodNotAllowedError()
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_response(),
                headers=exc.headers,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Full details go to the server log only; the client gets the
        exception message when debug is on, never a traceback.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={"request_id": request_id, "exception_type": type(exc).__name__},
        )

        content = {"error": "Internal server error", "request_id": request_id}
        if settings.debug:
            content["message"] = mask_credentials(str(exc))
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
