"""Transcript retrieval.

The gateway treats transcript retrieval as an external capability: given a
validated video id and a list of languages it returns timed text segments,
or raises. ``YouTubeTranscriptFetcher`` backs it with youtube-transcript-api
over a session built by the outbound client factory, so the proxy and
browser identity apply to the fetch as well.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, Sequence

from youtube_transcript_api import YouTubeTranscriptApi

from transcript_gateway.app.core.config import Settings
from transcript_gateway.app.core.http_client import (
    OutboundClientConfig,
    ProxyRoute,
    build_session,
    mask_credentials,
)
from transcript_gateway.app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TranscriptSegment:
    """One timed unit of transcript text (times in seconds)."""
    text: str
    start: float
    duration: float

    def to_response(self) -> dict[str, Any]:
        return {"text": self.text, "offset": self.start, "duration": self.duration}


class TranscriptFetcher(Protocol):
    """Anything able to fetch a transcript for a video id."""

    def fetch(self, video_id: str, languages: Sequence[str]) -> list[TranscriptSegment]:
        ...


class YouTubeTranscriptFetcher:
    """Fetches transcripts with youtube-transcript-api.

    A fresh session is built for every fetch from the settings, routed
    through the configured proxy when there is one.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def client_config(self) -> OutboundClientConfig:
        return OutboundClientConfig(
            timeout=self.settings.fetch_timeout_seconds,
            proxy=ProxyRoute.from_url(self.settings.proxy_url),
        )

    def fetch(self, video_id: str, languages: Sequence[str]) -> list[TranscriptSegment]:
        config = self.client_config()
        with build_session(config) as session:
            api = YouTubeTranscriptApi(http_client=session)
            # the library sets its own Accept-Language on the session
            session.headers.update(config.headers)
            fetched = api.fetch(video_id, languages=list(languages))
            return to_segments(fetched)


def to_segments(snippets: Iterable[Any]) -> list[TranscriptSegment]:
    """Normalize library snippets (objects or dicts) into segments."""
    segments = []
    for snippet in snippets:
        if isinstance(snippet, dict):
            text, start, duration = snippet["text"], snippet["start"], snippet["duration"]
        else:
            text, start, duration = snippet.text, snippet.start, snippet.duration
        segments.append(TranscriptSegment(text=text, start=start, duration=duration))
    return segments


def _find_response(error: BaseException) -> Optional[Any]:
    """Walk the exception chain for an HTTP response (requests or httpx)."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        response = getattr(current, "response", None)
        if response is not None and hasattr(response, "status_code"):
            return response
        current = current.__cause__ or current.__context__
    return None


def describe_upstream_error(error: BaseException, body_limit: int) -> dict[str, Any]:
    """Collect what is known about a failed fetch for the debug payload.

    Transport detail (status, url, body, headers) is taken from the first
    HTTP response found on the exception or its causes. Credentials are
    masked and the body is truncated to body_limit characters.
    """
    detail: dict[str, Any] = {
        "errorName": type(error).__name__,
        "errorMessage": mask_credentials(str(error)),
        "httpStatus": None,
        "httpStatusText": None,
        "responseUrl": None,
        "responseBody": None,
        "responseHeaders": None,
    }

    response = _find_response(error)
    if response is None:
        return detail

    detail["httpStatus"] = response.status_code
    detail["httpStatusText"] = getattr(response, "reason", None) or getattr(response, "reason_phrase", None)
    url = getattr(response, "url", None)
    detail["responseUrl"] = mask_credentials(str(url)) if url else None
    try:
        body = response.text
    except Exception as e:
        # A streamed or undecodable body must not hide the original error
        body = f"<unreadable body: {type(e).__name__}>"
    detail["responseBody"] = body[:body_limit] if body else body
    headers = getattr(response, "headers", None)
    detail["responseHeaders"] = dict(headers) if headers is not None else None
    return detail
