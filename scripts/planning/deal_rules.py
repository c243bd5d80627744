"""
Pipedrive stage and label codes used by the POLOAR pipeline, plus the
business rules that turn a deal into a planning outcome.

Usage:
    from scripts.planning.deal_rules import classify_outcome, describe_stage

    outcome = classify_outcome(deal)
    outcome.kind   # "cancelled" | "closed" | "labelled" | "done" | "not_done"
    outcome.text   # "CANCELADO", "FECHADO", "Aguardando Apoio", "FEITO", ...
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse

PIPEDRIVE_STAGES: Dict[str, int] = {
    "POTENCIAL": 1,
    "POTENCIAL_ATIVO": 74,
    "FECHAMENTO": 5,
    "PEDIDO_PARA_INSERIR": 126,
    "PROPOSTA": 3,
    "NEGOCIACAO": 4,
    "PRE_PROPOSTA": 2,
}

PIPEDRIVE_LABELS: Dict[str, int] = {
    "AGUARDANDO_APOIO": 369,
    "SEGURAR_MAQUINA": 370,
    "CANCELAR": 22,
    "SEM_CONTATO_3": 270,
    "SEM_CONTATO_2": 227,
    "SEM_CONTATO_1": 89,
}

CLOSED_STAGE = PIPEDRIVE_STAGES["FECHAMENTO"]
CANCELLED_LABEL = PIPEDRIVE_LABELS["CANCELAR"]

UNKNOWN_NAME = "Desconhecido"

_STAGE_BY_ID = {v: k for k, v in PIPEDRIVE_STAGES.items()}
_LABEL_BY_ID = {v: k for k, v in PIPEDRIVE_LABELS.items()}


def dashboard_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("DASHBOARD_TIMEZONE", "America/Sao_Paulo"))


def format_constant_name(name: str) -> str:
    """AGUARDANDO_APOIO -> Aguardando Apoio"""
    return " ".join(word.capitalize() for word in name.lower().split("_"))


def is_valid_stage(stage_id: Any) -> bool:
    return stage_id in _STAGE_BY_ID


def is_valid_label(label_id: Any) -> bool:
    return label_id in _LABEL_BY_ID


def stage_name(stage_id: Any) -> str:
    key = _STAGE_BY_ID.get(stage_id)
    return format_constant_name(key) if key else UNKNOWN_NAME


def label_name(label_id: Any) -> str:
    key = _LABEL_BY_ID.get(label_id)
    return format_constant_name(key) if key else UNKNOWN_NAME


def describe_stage(stage_id: Optional[int]) -> str:
    """Stage column text for the detailed table."""
    if not stage_id:
        return "Não especificada"
    if not is_valid_stage(stage_id):
        return f"Desconhecida ({stage_id})"
    return stage_name(stage_id)


def describe_labels(label_ids: Optional[Iterable[int]]) -> str:
    """Labels column text for the detailed table."""
    label_ids = list(label_ids or [])
    if not label_ids:
        return "Sem etiquetas"
    names = [label_name(i) for i in label_ids if is_valid_label(i)]
    return ", ".join(names) or "Etiquetas não reconhecidas"


def stage_options() -> List[Dict[str, Any]]:
    return [{"id": v, "key": k, "name": format_constant_name(k)} for k, v in PIPEDRIVE_STAGES.items()]


def label_options() -> List[Dict[str, Any]]:
    return [{"id": v, "key": k, "name": format_constant_name(k)} for k, v in PIPEDRIVE_LABELS.items()]


# ─── Outcome ──────────────────────────────────────────────────

@dataclass(frozen=True)
class DealOutcome:
    kind: str
    text: str

    def as_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "text": self.text}


CANCELLED = DealOutcome("cancelled", "CANCELADO")
CLOSED = DealOutcome("closed", "FECHADO")
DONE = DealOutcome("done", "FEITO")
NOT_DONE = DealOutcome("not_done", "NÃO FEITO")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse Supabase/Pipedrive timestamps into aware datetimes.

    Naive values (Pipedrive v1 "2024-05-01 12:00:00") are UTC. Fractions of
    any length are accepted ("12:00:00.12"). Unparseable values give None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = isoparse(str(value).strip())
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_updated_on(deal: Dict[str, Any], day: date, tz: ZoneInfo = None) -> bool:
    updated = parse_timestamp(deal.get("update_time"))
    if updated is None:
        return False
    return updated.astimezone(tz or dashboard_timezone()).date() == day


def classify_outcome(deal: Dict[str, Any], today: Optional[date] = None) -> DealOutcome:
    """
    Classify what happened to a planned deal.

    Rules, first match wins:
      1. Label CANCELAR present        -> CANCELADO
      2. Stage FECHAMENTO              -> FECHADO
      3. Any label                     -> name of the first label
      4. Updated today (dashboard tz)  -> FEITO
      5. Otherwise                     -> NÃO FEITO
    """
    label_ids = deal.get("label_ids") or []

    if CANCELLED_LABEL in label_ids:
        return CANCELLED

    if deal.get("stage_id") == CLOSED_STAGE:
        return CLOSED

    if label_ids:
        return DealOutcome("labelled", label_name(label_ids[0]))

    tz = dashboard_timezone()
    if today is None:
        today = datetime.now(tz).date()

    if is_updated_on(deal, today, tz):
        return DONE
    return NOT_DONE
