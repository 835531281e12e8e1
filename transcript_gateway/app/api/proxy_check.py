from typing import Any

from fastapi import APIRouter, Depends

from transcript_gateway.app.api.dependencies import SettingsDep
from transcript_gateway.app.middleware.auth import require_api_key
from transcript_gateway.app.services.diagnostics import collect_report

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.get("/proxy-check")
async def proxy_check(settings: SettingsDep) -> dict[str, Any]:
    """Report the direct and proxied outbound address.

    proxyWorking is a best-effort signal: true when the two probes saw
    different addresses.
    """
    report = await collect_report(settings)
    return report.to_response(settings)
