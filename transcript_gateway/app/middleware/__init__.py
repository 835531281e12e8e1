"""Middleware package for the gateway."""

from transcript_gateway.app.middleware.auth import require_api_key
from transcript_gateway.app.middleware.rate_limit import (
    FixedWindowRateLimiter,
    enforce_rate_limit,
    get_client_key,
)
from transcript_gateway.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "require_api_key",
    "FixedWindowRateLimiter",
    "enforce_rate_limit",
    "get_client_key",
    "RequestIdMiddleware",
    "get_request_id",
]
