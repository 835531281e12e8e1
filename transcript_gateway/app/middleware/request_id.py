"""Request ID and access logging middleware.

Every request gets an ID, taken from the X-Request-ID header when the
caller sent one, stored on request.state and echoed in the response. One
access line is logged per request with its status and duration.
"""

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from transcript_gateway.app.core.logging import get_log_context, get_logger

logger = get_logger("transcript_gateway.access")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add a request ID to all requests and log access."""

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 1)
        response.headers[self.header_name] = request_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)",
            extra=get_log_context(
                request_id=request_id,
                client_key=getattr(request.state, "client_key", None),
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            ),
        )
        return response


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")
