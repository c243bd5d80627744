"""
POLOAR Dashboard — Pipedrive Router
=====================================
Live Pipedrive lookups (not cached).

Endpoints:
  POST /api/pipedrive/verify-deals - Check that a list of deal IDs exists
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dashboard.api.dependencies import get_pipedrive
from dashboard.api.middleware import require_role
from integrations.pipedrive import PipedriveIntegration, find_missing
from models.planning_models import VerifyDealsRequest
from scripts.lib.errors import APIError
from scripts.lib.logger import setup_logger

logger = setup_logger("pipedrive_router")

router = APIRouter(
    prefix="/api/pipedrive",
    tags=["pipedrive-live"],
    dependencies=[Depends(require_role())],
)


def _as_ids(values):
    ids = []
    for value in values:
        try:
            ids.append(int(value))
        except (TypeError, ValueError):
            continue
    return ids


@router.post("/verify-deals")
async def verify_deals(
    body: VerifyDealsRequest,
    pipedrive: PipedriveIntegration = Depends(get_pipedrive),
):
    """Report which of the given deal IDs Pipedrive doesn't know."""
    if not isinstance(body.dealIds, list) or not body.dealIds:
        return JSONResponse(status_code=400, content={"error": "IDs de negócios inválidos"})

    try:
        deals = await pipedrive.verify_deals(_as_ids(body.dealIds))
    except APIError as e:
        logger.error("Verify deals failed: %s", e)
        return JSONResponse(
            status_code=500, content={"error": "Erro ao verificar negócios no Pipedrive"},
        )

    missing = find_missing(body.dealIds, deals)
    if missing:
        joined = ", ".join(str(i) for i in missing)
        return {
            "success": False,
            "message": f"Os seguintes IDs não foram encontrados: {joined}",
            "missingIds": missing,
        }

    return {"success": True, "deals": deals}
