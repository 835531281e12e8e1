"""Outbound identity diagnostics.

Probes an IP-echo service to learn which address outbound traffic appears
to come from, directly and through the configured proxy. Knowing the
address a failed fetch went out from is the most useful fact when the
upstream starts blocking.

Probes never raise: every failure becomes a ProbeResult carrying the
reason, and is only turned into text when the response is serialized.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from transcript_gateway.app.core.config import Settings
from transcript_gateway.app.core.http_client import (
    OutboundClientConfig,
    ProxyRoute,
    build_client,
    mask_credentials,
)
from transcript_gateway.app.core.logging import get_logger
from transcript_gateway.app.exceptions import ProbeError

logger = get_logger(__name__)

NO_PROXY_CONFIGURED = "No proxy configured"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one identity probe: an address or the reason there is none."""

    ip: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, ip: str) -> "ProbeResult":
        return cls(ip=ip)

    @classmethod
    def failed(cls, reason: str) -> "ProbeResult":
        return cls(error=reason)

    @property
    def succeeded(self) -> bool:
        return self.ip is not None

    def display(self) -> str:
        if self.ip is not None:
            return self.ip
        return f"Error: {self.error}"


@dataclass(frozen=True)
class DiagnosticReport:
    """Direct and proxied identity as seen by the IP-echo service."""

    direct: ProbeResult
    proxy: Optional[ProbeResult] = None

    @property
    def proxy_working(self) -> bool:
        # Best effort: differing addresses suggest traffic really goes
        # through the proxy, but both probes could match by coincidence.
        if self.proxy is None or not self.proxy.succeeded:
            return False
        return self.direct.ip != self.proxy.ip

    def to_response(self, settings: Settings) -> dict[str, Any]:
        route = ProxyRoute.from_url(settings.proxy_url)
        return {
            "proxyConfigured": route is not None,
            "proxyUrl": route.masked_url if route else None,
            "directIp": self.direct.display(),
            "proxyIp": self.proxy.display() if self.proxy else NO_PROXY_CONFIGURED,
            "proxyWorking": self.proxy_working,
        }


def _extract_ip(response: httpx.Response) -> str:
    response.raise_for_status()
    try:
        payload = response.json()
    except ValueError as e:
        raise ProbeError(f"Unexpected response from IP echo service: {e}") from e

    ip = payload.get("ip") if isinstance(payload, dict) else None
    if not ip:
        raise ProbeError("IP echo service returned no address")
    return str(ip)


def _probe_failed(error: Exception) -> ProbeResult:
    reason = mask_credentials(str(error)) or type(error).__name__
    logger.warning(f"Identity probe failed: {reason}")
    return ProbeResult.failed(reason)


async def probe_identity(client: httpx.AsyncClient, echo_url: str) -> ProbeResult:
    """Ask the IP-echo service which address this client appears as.

    Args:
        client: Client to probe through (direct or proxied)
        echo_url: IP-echo endpoint returning {"ip": "..."}

    Returns:
        ProbeResult with the address, or the failure reason
    """
    try:
        response = await client.get(echo_url)
        return ProbeResult.ok(_extract_ip(response))
    except Exception as e:
        return _probe_failed(e)


async def _probe_with(config: OutboundClientConfig, echo_url: str) -> ProbeResult:
    try:
        async with build_client(config) as client:
            return await probe_identity(client, echo_url)
    except Exception as e:
        # e.g. a proxy URL httpx cannot parse
        return _probe_failed(e)


async def probe_direct(settings: Settings) -> ProbeResult:
    config = OutboundClientConfig(timeout=settings.direct_probe_timeout_seconds)
    return await _probe_with(config, settings.ip_echo_url)


async def probe_proxied(settings: Settings, route: ProxyRoute) -> ProbeResult:
    config = OutboundClientConfig(
        timeout=settings.proxy_probe_timeout_seconds,
        proxy=route,
    )
    return await _probe_with(config, settings.ip_echo_url)


async def collect_report(settings: Settings) -> DiagnosticReport:
    """Probe direct identity, then proxied identity if a proxy is configured."""
    direct = await probe_direct(settings)

    route = ProxyRoute.from_url(settings.proxy_url)
    if route is None:
        return DiagnosticReport(direct=direct)

    proxied = await probe_proxied(settings, route)
    report = DiagnosticReport(direct=direct, proxy=proxied)
    logger.info(
        f"Proxy check: direct={direct.display()} proxy={proxied.display()} "
        f"working={report.proxy_working} via {route.masked_url}"
    )
    return report


async def probe_outgoing_ip(settings: Settings) -> ProbeResult:
    """Identity the transcript fetch path appears as (proxied if configured)."""
    route = ProxyRoute.from_url(settings.proxy_url)
    if route is None:
        return await probe_direct(settings)
    return await probe_proxied(settings, route)
