"""Tests for the Pipedrive integration."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from tenacity import wait_none

from integrations.pipedrive import (
    MAX_IDS_PER_REQUEST,
    MAX_RETRY_AFTER,
    PipedriveIntegration,
    calculate_total_value,
    find_missing,
    _wait_for_retry,
)
from scripts.lib.errors import APIAuthError, APIRateLimitError, PipedriveError


class TestPipedriveConfig:
    def test_not_configured_without_token(self):
        with patch.dict("os.environ", {"PIPEDRIVE_API_TOKEN": ""}, clear=False):
            assert PipedriveIntegration().is_configured is False

    def test_configured_with_token(self):
        with patch.dict("os.environ", {"PIPEDRIVE_API_TOKEN": "tok"}, clear=False):
            assert PipedriveIntegration().is_configured is True

    def test_default_base_url_and_trailing_slash(self):
        with patch.dict("os.environ", {"PIPEDRIVE_BASE_URL": ""}, clear=False):
            pd = PipedriveIntegration()
            assert pd.deals_url == "https://poloarbauru2.pipedrive.com/api/v2/deals"

    def test_status_structure(self):
        status = PipedriveIntegration(api_token="tok").get_status()
        assert status["name"] == "Pipedrive"
        assert status["configured"] is True
        assert "deals" in status["features"]


class TestVerifyDeals:
    @pytest.mark.asyncio
    async def test_empty_ids_make_no_request(self):
        pd = PipedriveIntegration(api_token="tok")
        with patch.object(pd, "_get_json", new=AsyncMock()) as get_json:
            assert await pd.verify_deals([]) == []
            get_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_ids_are_deduplicated_and_joined(self):
        pd = PipedriveIntegration(api_token="tok")
        payload = {"success": True, "data": [{"id": 1}, {"id": 2}]}
        with patch.object(pd, "_get_json", new=AsyncMock(return_value=payload)) as get_json:
            deals = await pd.verify_deals([1, 2, 1])

        assert [d["id"] for d in deals] == [1, 2]
        url, params = get_json.call_args.args
        assert url.endswith("/api/v2/deals")
        assert params == {"ids": "1,2", "api_token": "tok"}

    @pytest.mark.asyncio
    async def test_large_requests_are_chunked(self):
        pd = PipedriveIntegration(api_token="tok")
        ids = list(range(1, MAX_IDS_PER_REQUEST + 6))
        mock = AsyncMock(side_effect=[
            {"success": True, "data": [{"id": i} for i in ids[:MAX_IDS_PER_REQUEST]]},
            {"success": True, "data": [{"id": i} for i in ids[MAX_IDS_PER_REQUEST:]]},
        ])
        with patch.object(pd, "_get_json", new=mock):
            deals = await pd.verify_deals(ids)

        assert mock.await_count == 2
        assert len(deals) == len(ids)

    @pytest.mark.asyncio
    async def test_unsuccessful_payload_raises(self):
        pd = PipedriveIntegration(api_token="tok")
        with patch.object(pd, "_get_json", new=AsyncMock(return_value={"success": False})):
            with pytest.raises(PipedriveError):
                await pd.verify_deals([1])

    @pytest.mark.asyncio
    async def test_auth_errors_are_not_retried(self):
        pd = PipedriveIntegration(api_token="bad")
        mock = AsyncMock(side_effect=APIAuthError("url", status_code=401))
        with patch.object(pd, "_get_json", new=mock):
            with pytest.raises(APIAuthError):
                await pd.verify_deals([1])
        assert mock.await_count == 1

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        pd = PipedriveIntegration(api_token="tok")
        mock = AsyncMock(side_effect=[
            PipedriveError(status_code=502),
            {"success": True, "data": [{"id": 7}]},
        ])
        fetch = PipedriveIntegration._fetch_chunk.retry_with(wait=wait_none())
        with patch.object(pd, "_get_json", new=mock):
            deals = await fetch(pd, [7])
        assert deals == [{"id": 7}]
        assert mock.await_count == 2


class TestHelpers:
    def test_find_missing_keeps_request_order(self):
        deals = [{"id": 2}, {"id": 4}]
        assert find_missing([4, 3, 2, 1], deals) == [3, 1]

    def test_find_missing_reports_non_numeric_ids(self):
        assert find_missing(["abc", 1], [{"id": 1}]) == ["abc"]

    def test_total_value_treats_null_as_zero(self):
        deals = [{"value": 100.5}, {"value": None}, {}, {"value": 50}]
        assert calculate_total_value(deals) == 150.5


def _retry_state(exc, attempt=1):
    return SimpleNamespace(
        outcome=SimpleNamespace(exception=lambda: exc),
        attempt_number=attempt,
    )


class TestRetryWait:
    def test_retry_after_is_honoured(self):
        exc = APIRateLimitError("url", retry_after=5)
        assert _wait_for_retry(_retry_state(exc)) == 5

    def test_retry_after_is_capped(self):
        exc = APIRateLimitError("url", retry_after=600)
        assert _wait_for_retry(_retry_state(exc)) == MAX_RETRY_AFTER

    def test_backoff_without_retry_after(self):
        exc = APIRateLimitError("url")
        assert 1 <= _wait_for_retry(_retry_state(exc, attempt=3)) <= 8

    def test_backoff_for_server_errors(self):
        exc = PipedriveError(status_code=503)
        assert _wait_for_retry(_retry_state(exc, attempt=1)) == 1
