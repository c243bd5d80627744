"""Tests for deal-ID parsing."""

from scripts.planning.deal_ids import parse_count, parse_form_ids, parse_sheet_ids, split_sheet_cell


class TestFormIds:
    def test_drops_blank_zero_and_text(self):
        assert parse_form_ids("101, 102,, abc, 0") == [101, 102]

    def test_empty_input(self):
        assert parse_form_ids(None) == []
        assert parse_form_ids("") == []

    def test_keeps_duplicates_and_order(self):
        assert parse_form_ids(" 5,3 ,5") == [5, 3, 5]


class TestSheetIds:
    def test_split_cell_on_commas_and_whitespace(self):
        assert split_sheet_cell("1, 2  3\n4") == ["1", "2", "3", "4"]

    def test_numeric_cell(self):
        assert split_sheet_cell(1234.0) == ["1234"]
        assert split_sheet_cell(None) == []

    def test_leading_integer_is_kept(self):
        assert parse_sheet_ids(["123abc", "x9", "45"]) == [123, 45]

    def test_single_cell_string(self):
        assert parse_sheet_ids("10,20 30") == [10, 20, 30]


class TestCount:
    def test_parse_count(self):
        assert parse_count("3") == 3
        assert parse_count("4 parceiros") == 4
        assert parse_count("") == 0
        assert parse_count(None) == 0
        assert parse_count(7) == 7
        assert parse_count("abc") == 0
