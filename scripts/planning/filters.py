"""
Filters for the admin planning views.

Date-range filtering runs over the in-memory list of plannings fetched from
Supabase; DealFilter narrows the per-user detailed view.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from scripts.lib.errors import SchemaValidationError
from scripts.planning.deal_rules import dashboard_timezone, parse_timestamp

DEAL_TYPES = ("close", "followup")


def planning_date(planning: Dict[str, Any]) -> Optional[datetime]:
    """When the planning was made: ``data`` for form submissions, else ``created_at``."""
    return parse_timestamp(planning.get("data")) or parse_timestamp(planning.get("created_at"))


def filter_by_date_range(
    plannings: Iterable[Dict[str, Any]],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Keep plannings whose local date falls within [start, end].

    Either bound may be omitted. Undated plannings only survive when no
    bound is given.
    """
    plannings = list(plannings)
    if start is None and end is None:
        return plannings
    if start and end and start > end:
        raise SchemaValidationError(
            "Data inicial maior que a data final", field="start",
        )

    tz = dashboard_timezone()
    kept = []
    for planning in plannings:
        when = planning_date(planning)
        if when is None:
            continue
        day = when.astimezone(tz).date()
        if start and day < start:
            continue
        if end and day > end:
            continue
        kept.append(planning)
    return kept


@dataclass
class DealFilter:
    """Filters of the detailed planning table."""

    user_id: Optional[str] = None
    stage_id: Optional[int] = None
    label_id: Optional[int] = None
    type: Optional[str] = None
    search: Optional[str] = None

    def __post_init__(self):
        if self.type in ("", "all"):
            self.type = None
        if self.user_id in ("", "all"):
            self.user_id = None
        if self.type and self.type not in DEAL_TYPES:
            raise SchemaValidationError(
                f"Tipo inválido: {self.type}", field="type",
            )

    def matches(self, item: Dict[str, Any]) -> bool:
        deal = item["deal"]

        if self.type and item["type"] != self.type:
            return False

        if self.stage_id is not None and deal.get("stage_id") != self.stage_id:
            return False

        if self.label_id is not None and self.label_id not in (deal.get("label_ids") or []):
            return False

        if self.search:
            needle = self.search.lower()
            title = (deal.get("title") or "").lower()
            return needle in title or needle in str(deal.get("id", ""))

        return True

    def apply(self, detailed: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        """Filtered copy of a DetailedPlanningsByUser mapping; empty users are dropped."""
        result = {}
        for user_id, user_data in detailed.items():
            if self.user_id and str(user_id) != str(self.user_id):
                continue
            deals = [item for item in user_data["deals"] if self.matches(item)]
            if deals:
                result[user_id] = {**user_data, "deals": deals}
        return result
