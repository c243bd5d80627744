"""
Supabase Client Helper for the POLOAR planning dashboard.
Provides the shared connection and a connectivity probe.

Usage:
    from scripts.lib.supabase_client import get_client

    client = get_client()
    rows = client.table("plannings").select("*").execute().data
"""
import os
from pathlib import Path

from dotenv import load_dotenv

from scripts.lib.errors import ConfigError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

_client = None


def _credentials():
    url = os.environ.get("SUPABASE_URL", "")
    key = (
        os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
        or os.environ.get("SUPABASE_KEY", "")
    )
    return url, key


def get_client():
    """Create and return a Supabase client (singleton)."""
    global _client
    if _client is not None:
        return _client

    url, key = _credentials()
    if not url or not key:
        raise ConfigError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in .env",
            setting="SUPABASE_URL",
        )

    from supabase import create_client
    _client = create_client(url, key)
    logger.info("Supabase client connected to %s", url)
    return _client


def reset_client():
    """Drop the cached client (used by tests and after credential changes)."""
    global _client
    _client = None


def is_available() -> bool:
    """True when a client can be created with the current environment."""
    try:
        get_client()
        return True
    except Exception as e:
        logger.debug("Supabase unavailable: %s", e)
        return False
