from typing import Callable, Sequence

import pytest
from fastapi.testclient import TestClient

from transcript_gateway.app.core.config import Settings
from transcript_gateway.app.main import create_app
from transcript_gateway.app.services.transcript import TranscriptSegment

API_KEY = "test-secret"
ECHO_URL = "https://echo.test/ip"
VALID_VIDEO_ID = "AAAAAAAAAAA"


class FakeFetcher:
    """Transcript source recording its calls instead of reaching YouTube."""

    def __init__(self, segments=None, error: Exception | None = None):
        self.segments = segments if segments is not None else [
            TranscriptSegment(text="hello world", start=0.0, duration=1.5),
            TranscriptSegment(text="second line", start=1.5, duration=2.0),
        ]
        self.error = error
        self.calls: list[tuple[str, list[str]]] = []

    def fetch(self, video_id: str, languages: Sequence[str]) -> list[TranscriptSegment]:
        self.calls.append((video_id, list(languages)))
        if self.error is not None:
            raise self.error
        return self.segments


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    values = {
        "api_secret_key": API_KEY,
        "proxy_url": None,
        "ip_echo_url": ECHO_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def client_factory(fake_fetcher) -> Callable[..., TestClient]:
    """Build a TestClient around a fresh app; keyword args override settings."""

    def _make(fetcher: FakeFetcher | None = None, **overrides) -> TestClient:
        app = create_app(
            settings=make_settings(**overrides),
            transcript_fetcher=fetcher or fake_fetcher,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(client_factory) -> TestClient:
    return client_factory()
