"""
Supabase persistence for users and plannings.

Tables:
    users      (id, nome, senha, role, pipe_name)
    plannings  (id, user_id, data, created_at, deal_ids_close,
                deal_ids_followup, partners_count)

Every function raises DataFetchError when Supabase fails, so callers can
tell "no rows" apart from "couldn't ask".
"""
from __future__ import annotations

import hmac
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from scripts.lib.errors import DataFetchError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import get_client

logger = setup_logger("planning_store")

PLANNING_COLUMNS = (
    "id, user_id, data, created_at, deal_ids_close, deal_ids_followup, "
    "partners_count, users ( id, nome )"
)


def authenticate(nome: str, senha: str) -> Optional[Dict[str, Any]]:
    """Return ``{id, nome, role}`` when the credentials match, else None."""
    try:
        client = get_client()
        result = (
            client.table("users")
            .select("id, nome, senha, role")
            .eq("nome", nome)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error("User lookup failed: %s", e)
        raise DataFetchError(f"User lookup failed: {e}", source="users")

    if not result.data:
        return None

    user = result.data[0]
    stored = str(user.get("senha") or "")
    if not hmac.compare_digest(stored.encode("utf-8"), senha.encode("utf-8")):
        return None

    return {"id": user["id"], "nome": user["nome"], "role": user.get("role")}


def insert_planning(
    user_id: str,
    close_ids: List[int],
    followup_ids: List[int],
    partners_count: int = 0,
) -> Dict[str, Any]:
    """Store a planning submitted through the seller form."""
    row = {
        "user_id": user_id,
        "data": datetime.now(timezone.utc).isoformat(),
        "deal_ids_close": close_ids,
        "deal_ids_followup": followup_ids,
        "partners_count": partners_count,
    }
    try:
        client = get_client()
        result = client.table("plannings").insert(row).execute()
    except Exception as e:
        logger.error("Planning insert failed for user %s: %s", user_id, e)
        raise DataFetchError(f"Planning insert failed: {e}", source="plannings")

    logger.info(
        "Planning saved for user %s (%d close, %d follow-up)",
        user_id, len(close_ids), len(followup_ids),
    )
    return result.data[0] if result.data else row


def insert_plannings(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Bulk insert (spreadsheet import); returns the inserted rows."""
    if not rows:
        return []
    try:
        client = get_client()
        result = client.table("plannings").insert(rows).execute()
    except Exception as e:
        logger.error("Bulk planning insert failed: %s", e)
        raise DataFetchError(f"Bulk planning insert failed: {e}", source="plannings")

    inserted = result.data or []
    logger.info("Imported %d plannings", len(inserted))
    return inserted


def fetch_plannings() -> List[Dict[str, Any]]:
    """All plannings with the submitting user's name joined in."""
    try:
        client = get_client()
        result = client.table("plannings").select(PLANNING_COLUMNS).execute()
    except Exception as e:
        logger.error("Planning fetch failed: %s", e)
        raise DataFetchError(f"Planning fetch failed: {e}", source="plannings")
    return result.data or []


def fetch_pipe_name_map() -> Dict[str, Any]:
    """``{pipe_name (lowercased, trimmed): user_id}`` for spreadsheet matching."""
    try:
        client = get_client()
        result = client.table("users").select("id, pipe_name").execute()
    except Exception as e:
        logger.error("User fetch failed: %s", e)
        raise DataFetchError(f"User fetch failed: {e}", source="users")

    mapping = {}
    for user in result.data or []:
        pipe_name = user.get("pipe_name")
        if pipe_name:
            mapping[pipe_name.lower().strip()] = user["id"]
    return mapping
