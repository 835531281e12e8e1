"""Transcript endpoint.

Each request walks a fixed, linear pipeline and stops at the first
failing step:

    method -> API key -> rate limit -> videoId -> (probe) -> fetch

Nothing is retried. Upstream failures are reported with the address the
fetch went out from and whatever the upstream answered.
"""

import asyncio
from typing import Any, Optional, Sequence

from fastapi import APIRouter, Depends, Query, Request

from transcript_gateway.app.api.dependencies import FetcherDep, SettingsDep
from transcript_gateway.app.core.logging import get_log_context, get_logger
from transcript_gateway.app.core.security import validate_video_id
from transcript_gateway.app.exceptions import UpstreamFetchError
from transcript_gateway.app.middleware.auth import require_api_key
from transcript_gateway.app.middleware.rate_limit import enforce_rate_limit
from transcript_gateway.app.services.diagnostics import ProbeResult, probe_outgoing_ip
from transcript_gateway.app.services.transcript import (
    TranscriptFetcher,
    TranscriptSegment,
    describe_upstream_error,
)

logger = get_logger(__name__)

# Dependencies run in order: authenticate before counting the request
router = APIRouter(dependencies=[Depends(require_api_key), Depends(enforce_rate_limit)])


async def fetch_within_deadline(
    fetcher: TranscriptFetcher,
    video_id: str,
    languages: Sequence[str],
    timeout: float,
) -> list[TranscriptSegment]:
    """Run a blocking fetch in a worker thread, giving up after ``timeout`` seconds.

    The socket timeouts of the session only bound each read, so a slow
    trickling upstream is cut off here. The worker thread is abandoned,
    not interrupted.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(fetcher.fetch, video_id, languages),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise TimeoutError(f"Transcript fetch timed out after {timeout:g}s") from e


@router.get("/transcript")
async def get_transcript(
    request: Request,
    settings: SettingsDep,
    fetcher: FetcherDep,
    video_id: Optional[str] = Query(default=None, alias="videoId"),
) -> dict[str, Any]:
    """Fetch the transcript of a video.

    Raises:
        MissingParameterError: 400 if videoId is absent
        InvalidFormatError: 400 if videoId is malformed
        UpstreamFetchError: 500 if the transcript could not be fetched
    """
    video_id = validate_video_id(video_id)
    context = get_log_context(
        request_id=getattr(request.state, "request_id", None),
        client_key=getattr(request.state, "client_key", None),
        video_id=video_id,
    )

    outgoing: Optional[ProbeResult] = None
    if settings.probe_before_fetch:
        outgoing = await probe_outgoing_ip(settings)
        logger.info(f"Fetching transcript from {outgoing.display()}", extra=context)

    try:
        segments = await fetch_within_deadline(
            fetcher, video_id, settings.transcript_languages, settings.fetch_timeout_seconds
        )
    except Exception as e:
        if outgoing is None:
            outgoing = await probe_outgoing_ip(settings)

        debug = {
            "outgoingIp": outgoing.display(),
            "proxyConfigured": settings.proxy_configured,
            **describe_upstream_error(e, settings.response_body_limit),
        }
        logger.error(
            f"Transcript fetch failed: {debug['errorName']}: {debug['errorMessage']}",
            extra={**context, "http_status": debug["httpStatus"]},
        )
        raise UpstreamFetchError(details=debug["errorMessage"] or debug["errorName"], debug=debug) from e

    logger.info(f"Fetched {len(segments)} transcript segments", extra=context)
    return {"transcript": [segment.to_response() for segment in segments]}
