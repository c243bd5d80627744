"""
Pipedrive Integration
======================

Looks up live deal data in Pipedrive (API v2) for:
- Validating the deal IDs a seller submits in a planning
- Enriching the admin dashboard with current value, stage and labels

Setup:
1. Get a personal API token from Pipedrive -> Personal preferences -> API
2. Set PIPEDRIVE_API_TOKEN (and optionally PIPEDRIVE_BASE_URL) in .env
"""
from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from scripts.lib.errors import (
    APIAuthError,
    APIRateLimitError,
    APITimeoutError,
    PipedriveError,
)
from scripts.lib.logger import setup_logger

logger = setup_logger("pipedrive")

DEFAULT_BASE_URL = "https://poloarbauru2.pipedrive.com/"

# /api/v2/deals accepts at most 100 ids per call
MAX_IDS_PER_REQUEST = 100

Deal = Dict[str, Any]


def _is_transient(exc: BaseException) -> bool:
    """Timeouts, throttling and 5xx answers are worth another attempt."""
    if isinstance(exc, (APITimeoutError, APIRateLimitError)):
        return True
    if isinstance(exc, PipedriveError):
        return bool(exc.status_code and exc.status_code >= 500)
    return False


# cap on a server-supplied Retry-After
MAX_RETRY_AFTER = 30

_backoff = wait_exponential(multiplier=1, min=1, max=8)


def _wait_for_retry(retry_state) -> float:
    """Pipedrive's Retry-After on 429, exponential backoff otherwise."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(exc, APIRateLimitError):
        retry_after = exc.details.get("retry_after")
        if retry_after:
            return min(float(retry_after), MAX_RETRY_AFTER)
    return _backoff(retry_state)


def _unique(ids: Iterable[int]) -> List[int]:
    seen = set()
    ordered = []
    for deal_id in ids:
        deal_id = int(deal_id)
        if deal_id not in seen:
            seen.add(deal_id)
            ordered.append(deal_id)
    return ordered


class PipedriveIntegration:
    """Pipedrive CRM connector (read-only deal lookups)."""

    def __init__(self, base_url: str = None, api_token: str = None, timeout: int = 30):
        self.base_url = (
            base_url or os.getenv("PIPEDRIVE_BASE_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.api_token = api_token if api_token is not None else os.getenv("PIPEDRIVE_API_TOKEN", "")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_token)

    @property
    def deals_url(self) -> str:
        return f"{self.base_url}/api/v2/deals"

    async def _get_json(self, url: str, params: Dict[str, str]) -> Dict:
        """GET a Pipedrive endpoint and decode the JSON body."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=params) as resp:
                    if resp.status in (401, 403):
                        raise APIAuthError(url, status_code=resp.status)
                    if resp.status == 429:
                        retry_after = resp.headers.get("Retry-After")
                        raise APIRateLimitError(
                            url, retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                        )
                    if resp.status >= 400:
                        text = await resp.text()
                        logger.error("Pipedrive GET %s returned %s: %s", url, resp.status, text[:300])
                        raise PipedriveError(status_code=resp.status)
                    return await resp.json(content_type=None)
        except asyncio.TimeoutError:
            raise APITimeoutError(url, self.timeout)
        except aiohttp.ClientError as e:
            logger.error("Pipedrive request failed: %s", e)
            raise PipedriveError(f"Falha ao verificar negócios no Pipedrive: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=_wait_for_retry,
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _fetch_chunk(self, deal_ids: List[int]) -> List[Deal]:
        params = {
            "ids": ",".join(str(i) for i in deal_ids),
            "api_token": self.api_token,
        }
        data = await self._get_json(self.deals_url, params)
        if not isinstance(data, dict) or not data.get("success"):
            raise PipedriveError()
        return data.get("data") or []

    async def verify_deals(self, deal_ids: Iterable[int]) -> List[Deal]:
        """
        Fetch the deals matching ``deal_ids``.

        Deals that don't exist are simply absent from the result; use
        :func:`find_missing` to report them.

        Raises:
            PipedriveError: Pipedrive answered with an error or success=false.
            APIAuthError: The API token was rejected.
            APIRateLimitError / APITimeoutError: after retries are exhausted.
        """
        ids = _unique(deal_ids)
        if not ids:
            return []

        if not self.is_configured:
            logger.warning("Pipedrive is not configured; set PIPEDRIVE_API_TOKEN in .env")

        deals: List[Deal] = []
        for start in range(0, len(ids), MAX_IDS_PER_REQUEST):
            chunk = ids[start:start + MAX_IDS_PER_REQUEST]
            deals.extend(await self._fetch_chunk(chunk))

        logger.info("Pipedrive returned %d/%d deals", len(deals), len(ids))
        return deals

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": "Pipedrive",
            "configured": self.is_configured,
            "base_url": self.base_url,
            "features": ["deals"],
        }


def find_missing(requested: Iterable[int], deals: List[Deal]) -> List[int]:
    """IDs from ``requested`` with no matching deal, in request order."""
    found = {int(d["id"]) for d in deals if d.get("id") is not None}
    missing = []
    for deal_id in requested:
        try:
            deal_id = int(deal_id)
        except (TypeError, ValueError):
            missing.append(deal_id)
            continue
        if deal_id not in found:
            missing.append(deal_id)
    return missing


def calculate_total_value(deals: Iterable[Optional[Deal]]) -> float:
    """Sum of deal values; null or missing values count as zero."""
    return sum((deal.get("value") or 0) for deal in deals if deal)
