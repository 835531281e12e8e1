"""Custom exceptions for the transcript gateway."""

from typing import Any


class GatewayException(Exception):
    """Base class for gateway exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Gateway error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        """Convert to the JSON body returned to the caller."""
        return {"error": self.message}


class MethodNotAllowedError(GatewayException):
    """Raised for any method other than GET.

    Maps to HTTP 405 Method Not Allowed.
    """
    status_code = 405

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)


class ServerMisconfiguredError(GatewayException):
    """Raised when the server secret is not configured.

    Fatal for the request, not for the process. Maps to HTTP 500.
    """
    status_code = 500

    def __init__(self, message: str = "Server misconfigured: missing API key"):
        super().__init__(message)


class UnauthorizedError(GatewayException):
    """Raised when the presented API key is missing or wrong.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401

    def __init__(self, message: str = "Unauthorized: invalid or missing API key"):
        super().__init__(message)


class RateLimitedError(GatewayException):
    """Raised when a caller key exceeds its window capacity.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(
        self,
        limit: int,
        retry_after: int,
        message: str = "Too many requests. Try again later.",
    ):
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
        }


class MissingParameterError(GatewayException):
    """Raised when a required query parameter is absent or empty."""
    status_code = 400

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing {name}")


class InvalidFormatError(GatewayException):
    """Raised when a query parameter does not match its allowed shape."""
    status_code = 400

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid {name} format")


class UpstreamFetchError(GatewayException):
    """Raised when the transcript collaborator fails.

    Carries the diagnostic payload collected at failure time so the
    operator can see which address the fetch went out from and what the
    upstream answered.
    """
    status_code = 500

    def __init__(self, details: str, debug: dict[str, Any] | None = None):
        self.details = details
        self.debug = debug or {}
        super().__init__("Failed to fetch transcript")

    def to_response(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "details": self.details,
            "debug": self.debug,
        }


class ProbeError(Exception):
    """Raised inside an identity probe; never escapes the diagnostics service."""
