"""Request-scoped access to the services built in create_app()."""

from typing import Annotated

from fastapi import Depends, Request

from transcript_gateway.app.core.config import Settings
from transcript_gateway.app.services.transcript import TranscriptFetcher


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_transcript_fetcher(request: Request) -> TranscriptFetcher:
    return request.app.state.transcript_fetcher


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
FetcherDep = Annotated[TranscriptFetcher, Depends(get_transcript_fetcher)]
