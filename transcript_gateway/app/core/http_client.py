"""Outbound HTTP client construction.

Every outbound call (identity probes, transcript fetches) goes through a
client built here from an OutboundClientConfig. Clients are built per
request and never shared, so the current configuration always applies.

Two flavours are produced from the same config:

- ``build_client`` returns an ``httpx.AsyncClient`` used by the probes.
- ``build_session`` returns a ``requests.Session`` for the transcript
  library, which only speaks ``requests``.

When a proxy is configured, one transport object is mounted for both the
plaintext and the TLS scheme.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import httpx
import requests
from requests.adapters import HTTPAdapter

# Realistic browser identity sent on every outbound request
IDENTITY_HEADERS: Mapping[str, str] = MappingProxyType({
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7",
})

CREDENTIAL_MASK = "****"

# scheme://user:<password>@host, the password running up to the last "@"
# of the authority so ":" and "@" inside it are covered
_URL_PASSWORD_PATTERN = re.compile(r"(://[^:/@\s'\"]+):[^\s/'\"]*@")
# bare user:<password>@host without a scheme
_PASSWORD_PATTERN = re.compile(r":([^@:/\s]+)@")


def mask_credentials(text: str | None) -> str | None:
    """Replace the password of every ``user:pass@host`` in text with a mask."""
    if text is None:
        return None
    text = _URL_PASSWORD_PATTERN.sub(rf"\1:{CREDENTIAL_MASK}@", text)
    return _PASSWORD_PATTERN.sub(f":{CREDENTIAL_MASK}@", text)


@dataclass(frozen=True)
class ProxyRoute:
    """A forward proxy every outbound scheme is routed through."""

    url: str

    @classmethod
    def from_url(cls, url: str | None) -> "ProxyRoute | None":
        return cls(url) if url else None

    @property
    def masked_url(self) -> str:
        return mask_credentials(self.url)

    def async_mounts(self) -> dict[str, httpx.AsyncBaseTransport]:
        """One proxy transport shared by http:// and https://."""
        transport = httpx.AsyncHTTPTransport(proxy=self.url)
        return {"http://": transport, "https://": transport}

    def requests_proxies(self) -> dict[str, str]:
        return {"http": self.url, "https": self.url}

    def __repr__(self) -> str:
        return f"ProxyRoute(url={self.masked_url!r})"


@dataclass(frozen=True)
class OutboundClientConfig:
    """Immutable description of one outbound client."""

    timeout: float
    proxy: ProxyRoute | None = None
    headers: Mapping[str, str] = field(default_factory=lambda: IDENTITY_HEADERS)


class TimeoutHTTPAdapter(HTTPAdapter):
    """HTTPAdapter that applies a default timeout to every request.

    ``requests`` has no session-wide timeout, and the transcript library
    does not pass one, so the bound is enforced here.
    """

    def __init__(self, timeout: float, **kwargs):
        self.timeout = timeout
        super().__init__(**kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def build_client(config: OutboundClientConfig) -> httpx.AsyncClient:
    """Create a new async HTTP client for the given config.

    Note: The returned client should be closed when done:
        async with build_client(config) as client:
            # use client
            pass
    """
    return httpx.AsyncClient(
        headers=dict(config.headers),
        timeout=httpx.Timeout(config.timeout),
        mounts=config.proxy.async_mounts() if config.proxy else None,
        follow_redirects=True,
        # Routing is decided by our configuration only, never by HTTP(S)_PROXY
        trust_env=False,
    )


def build_session(config: OutboundClientConfig) -> requests.Session:
    """Create a new ``requests`` session for the given config."""
    session = requests.Session()
    session.trust_env = False
    session.headers.update(config.headers)

    adapter = TimeoutHTTPAdapter(timeout=config.timeout)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    if config.proxy:
        session.proxies.update(config.proxy.requests_proxies())
    return session
