from fastapi import Request

from transcript_gateway.app.api.dependencies import SettingsDep
from transcript_gateway.app.core.logging import get_log_context, get_logger
from transcript_gateway.app.core.security import authenticate
from transcript_gateway.app.exceptions import ServerMisconfiguredError, UnauthorizedError

logger = get_logger(__name__)

API_KEY_HEADER = "x-api-key"
API_KEY_QUERY = "apiKey"


def get_presented_key(request: Request) -> str | None:
    """Extract the API key from the x-api-key header or the apiKey query.

    Args:
        request: The incoming request

    Returns:
        The key if present, None otherwise
    """
    return request.headers.get(API_KEY_HEADER) or request.query_params.get(API_KEY_QUERY) or None


def require_api_key(request: Request, settings: SettingsDep) -> None:
    """Validate the caller's API key for protected endpoints.

    Raises:
        ServerMisconfiguredError: 500 if no server secret is configured
        UnauthorizedError: 401 if the key is missing or invalid
    """
    context = get_log_context(
        request_id=getattr(request.state, "request_id", None),
        path=request.url.path,
    )
    try:
        authenticate(get_presented_key(request), settings.api_secret_key)
    except ServerMisconfiguredError:
        logger.error("API_SECRET_KEY is not configured; refusing request", extra=context)
        raise
    except UnauthorizedError:
        logger.warning("Rejected request with invalid or missing API key", extra=context)
        raise
