"""Core utilities for the gateway application."""

from transcript_gateway.app.core.config import Settings, get_settings
from transcript_gateway.app.core.http_client import (
    OutboundClientConfig,
    ProxyRoute,
    build_client,
    build_session,
    mask_credentials,
)
from transcript_gateway.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "OutboundClientConfig",
    "ProxyRoute",
    "build_client",
    "build_session",
    "mask_credentials",
    "get_logger",
    "setup_logging",
]
