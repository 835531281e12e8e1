import hmac
import re

from transcript_gateway.app.exceptions import (
    InvalidFormatError,
    MissingParameterError,
    ServerMisconfiguredError,
    UnauthorizedError,
)

# YouTube video IDs are 11 characters: letters, digits, hyphen, underscore.
# Kept as a fixed whitelist since the id ends up inside upstream URLs.
VIDEO_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")


def authenticate(presented_key: str | None, configured_secret: str | None) -> None:
    """Check a presented API key against the configured server secret.

    Fails closed: with no secret configured every request is refused as a
    server misconfiguration, whatever the caller presented.

    Args:
        presented_key: Key sent by the caller, if any
        configured_secret: Server-side secret, if configured

    Raises:
        ServerMisconfiguredError: If no secret is configured
        UnauthorizedError: If the key is missing or does not match
    """
    if not configured_secret:
        raise ServerMisconfiguredError()

    # Always perform the comparison so a missing key takes the same path
    candidate = (presented_key or "").encode("utf-8")
    if not hmac.compare_digest(candidate, configured_secret.encode("utf-8")) or not presented_key:
        raise UnauthorizedError()


def validate_video_id(video_id: str | None) -> str:
    """Validate the shape of a requested video id.

    Returns:
        The id, unchanged

    Raises:
        MissingParameterError: If the id is absent or empty
        InvalidFormatError: If the id is not 11 characters of [A-Za-z0-9_-]
    """
    if not video_id:
        raise MissingParameterError("videoId")
    if VIDEO_ID_PATTERN.fullmatch(video_id) is None:
        raise InvalidFormatError("videoId")
    return video_id
