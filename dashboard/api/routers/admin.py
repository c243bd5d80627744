"""
POLOAR Dashboard — Admin Plannings Router
===========================================
Aggregated and per-deal planning views enriched with live Pipedrive data,
spreadsheet import and export. Administrators (role "adm") only.

Endpoints:
  GET  /api/admin/plannings                 - Summary rows + totals
  GET  /api/admin/plannings/detailed        - Planned deals per seller, with outcome
  GET  /api/admin/plannings/export          - Detailed view as CSV or XLSX
  POST /api/admin/import-planning           - Import parsed spreadsheet rows (JSON)
  POST /api/admin/import-planning/upload    - Import an uploaded .xlsx file
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from dashboard.api.dependencies import get_pipedrive
from dashboard.api.middleware import ROLE_ADMIN, require_role
from integrations.pipedrive import PipedriveIntegration
from models.planning_models import (
    DashboardResponse,
    DetailedResponse,
    PlanningImportItem,
    PlanningImportRequest,
)
from scripts.lib.errors import APIError, DataFetchError, SchemaValidationError
from scripts.lib.logger import setup_logger
from scripts.planning import planning_store
from scripts.planning.filters import DealFilter, filter_by_date_range
from scripts.planning.planning_service import (
    build_deals_map,
    collect_deal_ids,
    compute_totals,
    flatten_detailed,
    process_detailed_planning_data,
    summarize_by_user,
    summarize_plannings,
)
from scripts.planning.spreadsheet import (
    build_import_rows,
    export_rows_csv,
    export_rows_xlsx,
    read_planning_sheet,
)

logger = setup_logger("admin_router")

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_role(ROLE_ADMIN))],
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _load_view(
    pipedrive: PipedriveIntegration,
    start: Optional[date],
    end: Optional[date],
) -> Tuple[List[Dict[str, Any]], Dict[int, Dict[str, Any]], bool]:
    """Plannings in range, live deals keyed by ID, and whether Pipedrive answered."""
    try:
        plannings = filter_by_date_range(planning_store.fetch_plannings(), start, end)
    except SchemaValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DataFetchError:
        raise HTTPException(status_code=500, detail="Erro ao buscar dados")

    deal_ids = collect_deal_ids(plannings)
    if not deal_ids:
        return plannings, {}, True

    try:
        deals = await pipedrive.verify_deals(deal_ids)
    except APIError as e:
        # the dashboard still renders, with zeroed counts
        logger.error("Pipedrive deal fetch failed: %s", e)
        return plannings, {}, False

    return plannings, build_deals_map(deals), True


def _deal_filter(
    user_id: Optional[str],
    stage_id: Optional[int],
    label_id: Optional[int],
    type: Optional[str],
    search: Optional[str],
) -> DealFilter:
    try:
        return DealFilter(user_id=user_id, stage_id=stage_id, label_id=label_id,
                          type=type, search=search)
    except SchemaValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.get("/plannings", response_model=DashboardResponse)
async def list_plannings(
    start: Optional[date] = Query(None, description="First planning date (inclusive)"),
    end: Optional[date] = Query(None, description="Last planning date (inclusive)"),
    group: str = Query("planning", pattern="^(planning|user)$", description="One row per planning or per seller"),
    pipedrive: PipedriveIntegration = Depends(get_pipedrive),
):
    """Summary rows with live deal counts and values."""
    plannings, deals_map, pipedrive_ok = await _load_view(pipedrive, start, end)

    summaries = summarize_plannings(plannings, deals_map)
    if group == "user":
        summaries = summarize_by_user(summaries)

    return {
        "data": summaries,
        "deals": {str(k): v for k, v in deals_map.items()},
        "totals": compute_totals(summaries),
        "updated_at": _now_iso(),
        "pipedrive_ok": pipedrive_ok,
    }


@router.get("/plannings/detailed", response_model=DetailedResponse)
async def detailed_plannings(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user_id: Optional[str] = Query(None, description="Only this seller"),
    stage_id: Optional[int] = Query(None, description="Pipedrive stage ID"),
    label_id: Optional[int] = Query(None, description="Pipedrive label ID"),
    type: Optional[str] = Query(None, description="close or followup"),
    search: Optional[str] = Query(None, description="Title or deal ID"),
    pipedrive: PipedriveIntegration = Depends(get_pipedrive),
):
    """Every planned deal grouped by seller, with its outcome."""
    deal_filter = _deal_filter(user_id, stage_id, label_id, type, search)
    plannings, deals_map, pipedrive_ok = await _load_view(pipedrive, start, end)

    detailed = process_detailed_planning_data(plannings, deals_map)
    users = {uid: data["userName"] for uid, data in detailed.items()}
    filtered = deal_filter.apply(detailed)
    rows = flatten_detailed(filtered)

    return {
        "plannings": filtered,
        "rows": rows,
        "count": len(rows),
        "users": users,
        "updated_at": _now_iso(),
        "pipedrive_ok": pipedrive_ok,
    }


@router.get("/plannings/export")
async def export_plannings(
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user_id: Optional[str] = Query(None),
    stage_id: Optional[int] = Query(None),
    label_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    pipedrive: PipedriveIntegration = Depends(get_pipedrive),
):
    """Download the (filtered) detailed view."""
    deal_filter = _deal_filter(user_id, stage_id, label_id, type, search)
    plannings, deals_map, _ = await _load_view(pipedrive, start, end)
    rows = flatten_detailed(deal_filter.apply(process_detailed_planning_data(plannings, deals_map)))

    stamp = datetime.now().strftime("%Y%m%d")
    if format == "xlsx":
        return Response(
            content=export_rows_xlsx(rows),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="planejamento_{stamp}.xlsx"'},
        )
    return Response(
        content=export_rows_csv(rows).encode("utf-8-sig"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="planejamento_{stamp}.csv"'},
    )


def _import_items(items: List[Dict[str, Any]]) -> JSONResponse:
    """Shared tail of the JSON and upload imports."""
    try:
        pipe_name_map = planning_store.fetch_pipe_name_map()
    except DataFetchError:
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Erro ao consultar usuários"},
        )

    rows = build_import_rows(items, pipe_name_map)
    if not rows:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Nenhum registro válido encontrado na planilha"},
        )

    try:
        inserted = planning_store.insert_plannings(rows)
    except DataFetchError:
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Erro ao salvar dados no banco"},
        )

    imported = len(inserted)
    return JSONResponse(content={
        "success": True,
        "imported": imported,
        "message": f"{imported} planejamentos importados com sucesso",
    })


@router.post("/import-planning")
async def import_planning(body: PlanningImportRequest):
    """Import spreadsheet rows already parsed by the browser."""
    if not isinstance(body.planning, list):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Dados da planilha inválidos"},
        )
    try:
        items = [PlanningImportItem.model_validate(item).model_dump() for item in body.planning]
    except ValidationError as e:
        logger.warning("Invalid import payload: %s", e)
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Dados da planilha inválidos"},
        )
    return _import_items(items)


@router.post("/import-planning/upload")
async def import_planning_upload(file: UploadFile = File(...)):
    """Import an .xlsx planning spreadsheet."""
    content = await file.read()
    try:
        items = read_planning_sheet(content)
    except SchemaValidationError as e:
        return JSONResponse(status_code=400, content={"success": False, "message": e.message})
    return _import_items(items)
