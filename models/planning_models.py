"""
POLOAR Dashboard — Planning Pydantic Models
=============================================

Request/response models for login, seller plannings, deal verification
and the admin planning views.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# ─── Auth ───────────────────────────────────────────────────

class LoginRequest(BaseModel):
    nome: Optional[str] = None
    senha: Optional[str] = None


class LoginResponse(BaseModel):
    id: Any
    nome: str
    role: Optional[str] = None


# ─── Seller Planning ────────────────────────────────────────

class PlanningCreate(BaseModel):
    """Seller form submission; deal IDs arrive as comma separated text."""
    user_id: Optional[str] = None
    deal_ids_close: Optional[str] = None
    deal_ids_followup: Optional[str] = None
    partners_count: Optional[Union[int, str]] = 0


class VerifyDealsRequest(BaseModel):
    dealIds: Optional[Any] = None


# ─── Admin Import ───────────────────────────────────────────

class PlanningImportItem(BaseModel):
    """One spreadsheet row, already split into ID tokens."""
    consultor: str = ""
    ftas: List[str] = Field(default_factory=list)
    acompanhamento: List[str] = Field(default_factory=list)


class PlanningImportRequest(BaseModel):
    planning: Optional[Any] = None


# ─── Admin Views ────────────────────────────────────────────

class PlanningSummary(BaseModel):
    """Dashboard row for one planning (or one seller when grouped)."""
    id: Any
    nome: str
    deal_count_close: int
    deal_value_close: float
    deal_count_followup: int
    deal_value_followup: float
    partners_count: int
    deal_ids_close: List[int] = Field(default_factory=list)
    deal_ids_followup: List[int] = Field(default_factory=list)
    user_id: Any = None
    planned_at: Optional[str] = None
    planning_count: Optional[int] = None


class PlanningTotals(BaseModel):
    deal_count_close: int = 0
    deal_value_close: float = 0
    deal_count_followup: int = 0
    deal_value_followup: float = 0
    partners_count: int = 0
    seller_count: int = 0


class DashboardResponse(BaseModel):
    data: List[PlanningSummary]
    deals: Dict[str, Any] = Field(default_factory=dict)
    totals: PlanningTotals = Field(default_factory=PlanningTotals)
    updated_at: str
    pipedrive_ok: bool = True


class DetailedRow(BaseModel):
    user_id: Any
    userName: str
    type: str
    type_label: str
    deal_id: Any
    title: str
    value: float
    stage: str
    labels: str
    outcome: str
    outcome_kind: str


class DetailedResponse(BaseModel):
    """Planned deals grouped by seller plus the flat table rows."""
    plannings: Dict[Any, Any] = Field(default_factory=dict)
    rows: List[DetailedRow] = Field(default_factory=list)
    count: int = 0
    users: Dict[Any, str] = Field(default_factory=dict)
    updated_at: str
    pipedrive_ok: bool = True
