"""Tests for planning aggregation and the detailed per-user view."""

from datetime import date

import pytest

from scripts.planning.planning_service import (
    build_deals_map,
    collect_deal_ids,
    compute_totals,
    flatten_detailed,
    process_detailed_planning_data,
    summarize_by_user,
    summarize_plannings,
)
from conftest import make_deal


@pytest.fixture
def plannings():
    return [
        {
            "id": "p1", "user_id": "u1", "users": {"id": "u1", "nome": "Ana"},
            "deal_ids_close": [1, 2], "deal_ids_followup": [3],
            "partners_count": 2, "data": "2025-03-10T12:00:00+00:00",
        },
        {
            "id": "p2", "user_id": "u2", "users": None,
            "deal_ids_close": None, "deal_ids_followup": [4, 99],
            "partners_count": None, "created_at": "2025-03-11T12:00:00+00:00",
        },
        {
            "id": "p3", "user_id": "u1", "users": {"id": "u1", "nome": "Ana"},
            "deal_ids_close": [2], "deal_ids_followup": [],
            "partners_count": 1, "data": "2025-03-12T12:00:00+00:00",
        },
    ]


@pytest.fixture
def deals_map():
    return build_deals_map([
        make_deal(1, value=1000),
        make_deal(2, value=None, stage_id=5),
        make_deal(3, value=250.5, label_ids=[22]),
        make_deal(4, value=300),
    ])


class TestCollectIds:
    def test_deduplicated_in_first_seen_order(self, plannings):
        assert collect_deal_ids(plannings) == [1, 2, 3, 4, 99]

    def test_deals_map_keys_are_ints(self):
        assert set(build_deals_map([{"id": "5"}, {"title": "no id"}])) == {5}


class TestSummaries:
    def test_counts_only_found_deals(self, plannings, deals_map):
        rows = summarize_plannings(plannings, deals_map)
        first, second, _ = rows

        assert first["nome"] == "Ana"
        assert first["deal_count_close"] == 2
        assert first["deal_value_close"] == 1000
        assert first["deal_count_followup"] == 1
        assert first["deal_value_followup"] == 250.5
        assert first["planned_at"].startswith("2025-03-10")

        assert second["nome"] == "Desconhecido"
        assert second["deal_ids_close"] == []
        assert second["deal_ids_followup"] == [4, 99]
        assert second["deal_count_followup"] == 1
        assert second["partners_count"] == 0

    def test_totals(self, plannings, deals_map):
        totals = compute_totals(summarize_plannings(plannings, deals_map))
        assert totals == {
            "deal_count_close": 3,
            "deal_value_close": 1000,
            "deal_count_followup": 2,
            "deal_value_followup": 550.5,
            "partners_count": 3,
            "seller_count": 2,
        }

    def test_summarize_by_user_merges_plannings(self, plannings, deals_map):
        rows = summarize_by_user(summarize_plannings(plannings, deals_map))
        assert [r["user_id"] for r in rows] == ["u1", "u2"]
        ana = rows[0]
        assert ana["planning_count"] == 2
        assert ana["deal_count_close"] == 3
        assert ana["deal_ids_close"] == [1, 2, 2]
        assert ana["partners_count"] == 3
        assert ana["planned_at"].startswith("2025-03-12")

    def test_empty(self):
        assert summarize_plannings([], {}) == []
        assert compute_totals([])["seller_count"] == 0


class TestDetailedView:
    def test_groups_by_user_close_first(self, plannings, deals_map):
        detailed = process_detailed_planning_data(plannings, deals_map)

        assert list(detailed) == ["u1", "u2"]
        ana = detailed["u1"]
        assert ana["userName"] == "Ana"
        assert [(d["deal"]["id"], d["type"]) for d in ana["deals"]] == [
            (1, "close"), (2, "close"), (3, "followup"), (2, "close"),
        ]
        assert [d["deal"]["id"] for d in detailed["u2"]["deals"]] == [4]

    def test_flatten_rows(self, plannings, deals_map):
        detailed = process_detailed_planning_data(plannings[:1], deals_map)
        rows = flatten_detailed(detailed, today=date(2025, 3, 10))

        assert len(rows) == 3
        closed = rows[1]
        assert closed["deal_id"] == 2
        assert closed["type_label"] == "Fechamento"
        assert closed["value"] == 0
        assert closed["stage"] == "Fechamento"
        assert closed["outcome"] == "FECHADO"

        cancelled = rows[2]
        assert cancelled["type_label"] == "Acompanhamento"
        assert cancelled["labels"] == "Cancelar"
        assert cancelled["outcome_kind"] == "cancelled"
