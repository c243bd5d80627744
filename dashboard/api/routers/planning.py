"""
POLOAR Dashboard — Seller Planning Router
===========================================
Sellers submit the deals they plan to close or follow up on. Every ID is
checked against Pipedrive before the planning is stored.

Endpoints:
  POST /api/planning - Submit a planning
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dashboard.api.dependencies import get_pipedrive
from dashboard.api.middleware import ROLE_ADMIN, ROLE_SELLER, require_role
from integrations.pipedrive import PipedriveIntegration, find_missing
from models.planning_models import PlanningCreate
from scripts.lib.errors import APIError, DataFetchError, MissingDealsError
from scripts.lib.logger import setup_logger
from scripts.planning import planning_store
from scripts.planning.deal_ids import parse_count, parse_form_ids

logger = setup_logger("planning_router")

router = APIRouter(prefix="/api/planning", tags=["planning"])


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@router.post("")
async def submit_planning(
    body: PlanningCreate,
    user: dict = Depends(require_role(ROLE_SELLER, ROLE_ADMIN)),
    pipedrive: PipedriveIntegration = Depends(get_pipedrive),
):
    """Validate the deal IDs in Pipedrive and save the planning."""
    user_id = body.user_id
    if not user_id:
        return _fail(400, "ID do usuário é obrigatório")
    if user["role"] == ROLE_SELLER and str(user_id) != str(user["id"]):
        return _fail(403, "Vendedores só podem enviar o próprio planejamento")

    close_ids = parse_form_ids(body.deal_ids_close)
    followup_ids = parse_form_ids(body.deal_ids_followup)
    all_ids = close_ids + followup_ids

    # a planning with only partners_count is still saved
    if all_ids:
        try:
            deals = await pipedrive.verify_deals(all_ids)
            missing = find_missing(all_ids, deals)
            if missing:
                raise MissingDealsError(missing)
        except MissingDealsError as e:
            logger.info("Planning rejected for user %s: %s", user_id, e.message)
            return _fail(400, e.message)
        except APIError as e:
            logger.error("Pipedrive verification failed: %s", e)
            return _fail(500, "Erro ao verificar negócios no Pipedrive")

    try:
        planning_store.insert_planning(
            user_id, close_ids, followup_ids, parse_count(body.partners_count),
        )
    except DataFetchError:
        return _fail(500, "Erro ao salvar planejamento")

    return {"success": True, "message": "Planejamento salvo com sucesso"}
