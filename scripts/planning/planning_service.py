"""
Planning aggregation for the admin dashboard.

Turns raw ``plannings`` rows (with their joined user) plus the live deals
fetched from Pipedrive into:
  - one summary row per planning (counts and values per intent)
  - dashboard totals
  - a per-user detailed view of every planned deal and its outcome

Usage:
    from scripts.planning.planning_service import (
        collect_deal_ids, build_deals_map, summarize_plannings,
    )

    deals_map = build_deals_map(await pipedrive.verify_deals(collect_deal_ids(rows)))
    summaries = summarize_plannings(rows, deals_map)
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from integrations.pipedrive import calculate_total_value
from scripts.planning.deal_rules import (
    UNKNOWN_NAME,
    classify_outcome,
    describe_labels,
    describe_stage,
)
from scripts.planning.filters import planning_date

TYPE_LABELS = {"close": "Fechamento", "followup": "Acompanhamento"}

Planning = Dict[str, Any]
DealsMap = Dict[int, Dict[str, Any]]


def _ids(planning: Planning, key: str) -> List[int]:
    return list(planning.get(key) or [])


def _user_name(planning: Planning) -> str:
    user = planning.get("users") or {}
    return user.get("nome") or planning.get("nome") or UNKNOWN_NAME


def collect_deal_ids(plannings: Iterable[Planning]) -> List[int]:
    """Every close and follow-up ID across plannings, de-duplicated."""
    seen = set()
    ordered = []
    for planning in plannings:
        for deal_id in _ids(planning, "deal_ids_close") + _ids(planning, "deal_ids_followup"):
            if deal_id not in seen:
                seen.add(deal_id)
                ordered.append(deal_id)
    return ordered


def build_deals_map(deals: Iterable[Dict[str, Any]]) -> DealsMap:
    return {int(deal["id"]): deal for deal in deals if deal.get("id") is not None}


def summarize_plannings(plannings: Iterable[Planning], deals_map: DealsMap) -> List[Dict[str, Any]]:
    """One dashboard row per planning; only deals found in Pipedrive are counted."""
    summaries = []
    for planning in plannings:
        close_ids = _ids(planning, "deal_ids_close")
        followup_ids = _ids(planning, "deal_ids_followup")
        close_deals = [deals_map[i] for i in close_ids if i in deals_map]
        followup_deals = [deals_map[i] for i in followup_ids if i in deals_map]
        planned_at = planning_date(planning)

        summaries.append({
            "id": planning.get("id"),
            "nome": _user_name(planning),
            "deal_count_close": len(close_deals),
            "deal_value_close": calculate_total_value(close_deals),
            "deal_count_followup": len(followup_deals),
            "deal_value_followup": calculate_total_value(followup_deals),
            "partners_count": planning.get("partners_count") or 0,
            "deal_ids_close": close_ids,
            "deal_ids_followup": followup_ids,
            "user_id": planning.get("user_id"),
            "planned_at": planned_at.isoformat() if planned_at else None,
        })
    return summaries


def summarize_by_user(summaries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fold several plannings of the same seller into a single row."""
    by_user: Dict[Any, Dict[str, Any]] = {}
    for row in summaries:
        key = row["user_id"]
        if key not in by_user:
            by_user[key] = {
                **row,
                "id": key,
                "deal_ids_close": list(row["deal_ids_close"]),
                "deal_ids_followup": list(row["deal_ids_followup"]),
                "planning_count": 1,
            }
            continue
        merged = by_user[key]
        for field in ("deal_count_close", "deal_value_close", "deal_count_followup",
                      "deal_value_followup", "partners_count"):
            merged[field] += row[field]
        merged["deal_ids_close"].extend(row["deal_ids_close"])
        merged["deal_ids_followup"].extend(row["deal_ids_followup"])
        merged["planning_count"] += 1
        if row.get("planned_at") and (not merged.get("planned_at") or row["planned_at"] > merged["planned_at"]):
            merged["planned_at"] = row["planned_at"]
    return list(by_user.values())


def compute_totals(summaries: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    summaries = list(summaries)
    return {
        "deal_count_close": sum(s["deal_count_close"] for s in summaries),
        "deal_value_close": sum(s["deal_value_close"] for s in summaries),
        "deal_count_followup": sum(s["deal_count_followup"] for s in summaries),
        "deal_value_followup": sum(s["deal_value_followup"] for s in summaries),
        "partners_count": sum(s["partners_count"] for s in summaries),
        "seller_count": len({s["user_id"] for s in summaries}),
    }


def process_detailed_planning_data(
    plannings: Iterable[Planning],
    deals_map: DealsMap,
) -> Dict[str, Dict[str, Any]]:
    """
    Group planned deals by user.

    Returns ``{user_id: {"userName": str, "deals": [{"deal": ..., "type": ...}]}}``.
    Within a planning, close deals come before follow-up deals; IDs that
    Pipedrive didn't return are skipped.
    """
    result: Dict[str, Dict[str, Any]] = {}

    for planning in plannings:
        user_id = planning.get("user_id")
        if user_id not in result:
            result[user_id] = {"userName": _user_name(planning), "deals": []}

        for deal_type, key in (("close", "deal_ids_close"), ("followup", "deal_ids_followup")):
            for deal_id in _ids(planning, key):
                deal = deals_map.get(deal_id)
                if deal:
                    result[user_id]["deals"].append({"deal": deal, "type": deal_type})

    return result


def flatten_detailed(
    detailed: Dict[str, Dict[str, Any]],
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Table rows for the detailed view and the export files."""
    rows = []
    for user_id, user_data in detailed.items():
        for item in user_data["deals"]:
            deal = item["deal"]
            outcome = classify_outcome(deal, today=today)
            rows.append({
                "user_id": user_id,
                "userName": user_data["userName"],
                "type": item["type"],
                "type_label": TYPE_LABELS[item["type"]],
                "deal_id": deal.get("id"),
                "title": deal.get("title") or "Sem título",
                "value": deal.get("value") or 0,
                "stage": describe_stage(deal.get("stage_id")),
                "labels": describe_labels(deal.get("label_ids")),
                "outcome": outcome.text,
                "outcome_kind": outcome.kind,
            })
    return rows
