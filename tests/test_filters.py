"""Tests for the date-range and detailed-view filters."""

from datetime import date

import pytest

from scripts.lib.errors import SchemaValidationError
from scripts.planning.filters import DealFilter, filter_by_date_range, planning_date
from conftest import make_deal

PLANNINGS = [
    {"id": 1, "data": "2025-03-01T12:00:00+00:00"},
    {"id": 2, "created_at": "2025-03-05T12:00:00Z"},
    # 02:00 UTC on the 11th is the 10th in São Paulo
    {"id": 3, "data": "2025-03-11T02:00:00+00:00"},
    {"id": 4},
]


class TestDateRange:
    def test_no_bounds_keeps_everything(self):
        assert filter_by_date_range(PLANNINGS) == PLANNINGS

    def test_inclusive_bounds(self):
        kept = filter_by_date_range(PLANNINGS, date(2025, 3, 1), date(2025, 3, 5))
        assert [p["id"] for p in kept] == [1, 2]

    def test_local_day_is_used(self):
        kept = filter_by_date_range(PLANNINGS, start=date(2025, 3, 10), end=date(2025, 3, 10))
        assert [p["id"] for p in kept] == [3]

    def test_open_ended(self):
        kept = filter_by_date_range(PLANNINGS, start=date(2025, 3, 2))
        assert [p["id"] for p in kept] == [2, 3]

    def test_inverted_range_rejected(self):
        with pytest.raises(SchemaValidationError):
            filter_by_date_range(PLANNINGS, date(2025, 3, 5), date(2025, 3, 1))

    def test_planning_date_prefers_data(self):
        when = planning_date({"data": "2025-01-02T00:00:00Z", "created_at": "2024-01-01T00:00:00Z"})
        assert when.year == 2025

    def test_unparseable_date(self):
        assert planning_date({"data": "ontem"}) is None


@pytest.fixture
def detailed():
    return {
        "u1": {"userName": "Ana", "deals": [
            {"deal": make_deal(10, title="Compressor Bosch", stage_id=3, label_ids=[369]), "type": "close"},
            {"deal": make_deal(11, title="Chiller", stage_id=4), "type": "followup"},
        ]},
        "u2": {"userName": "Bia", "deals": [
            {"deal": make_deal(210, title="Secador", stage_id=3), "type": "close"},
        ]},
    }


class TestDealFilter:
    def test_no_filter(self, detailed):
        assert DealFilter().apply(detailed) == detailed

    def test_user_filter(self, detailed):
        assert list(DealFilter(user_id="u2").apply(detailed)) == ["u2"]

    def test_all_means_no_filter(self, detailed):
        assert DealFilter(user_id="all", type="all").apply(detailed) == detailed

    def test_type_and_stage(self, detailed):
        result = DealFilter(type="close", stage_id=3).apply(detailed)
        assert [d["deal"]["id"] for d in result["u1"]["deals"]] == [10]
        assert [d["deal"]["id"] for d in result["u2"]["deals"]] == [210]

    def test_label_drops_empty_users(self, detailed):
        result = DealFilter(label_id=369).apply(detailed)
        assert list(result) == ["u1"]

    def test_search_title_case_insensitive(self, detailed):
        result = DealFilter(search="bosch").apply(detailed)
        assert [d["deal"]["id"] for d in result["u1"]["deals"]] == [10]

    def test_search_by_id(self, detailed):
        result = DealFilter(search="21").apply(detailed)
        assert list(result) == ["u2"]

    def test_invalid_type(self):
        with pytest.raises(SchemaValidationError):
            DealFilter(type="won")


class TestTimestampParsing:
    def test_trimmed_fraction_is_parsed(self):
        planning = {"id": 5, "data": "2025-03-10T12:00:00.12+00:00"}
        when = planning_date(planning)
        assert when is not None
        assert when.microsecond == 120000
        assert filter_by_date_range([planning], date(2025, 3, 10), date(2025, 3, 10)) == [planning]

    def test_space_separated_naive_is_utc(self):
        when = planning_date({"created_at": "2025-03-10 12:00:00.5"})
        assert when.utcoffset().total_seconds() == 0
        assert when.hour == 12
