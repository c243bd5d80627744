"""Shared fixtures: a TestClient with a fake Pipedrive client and cookie sessions."""

import os

os.environ["LOG_TO_FILE"] = "false"
os.environ["DASHBOARD_TIMEZONE"] = "America/Sao_Paulo"
os.environ.pop("SESSION_SECRET", None)

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from dashboard.api.dependencies import get_pipedrive
from dashboard.api.main import app


def make_deal(deal_id, value=1000.0, stage_id=3, label_ids=None, title=None, update_time=None):
    return {
        "id": deal_id,
        "title": title or f"Negócio {deal_id}",
        "value": value,
        "stage_id": stage_id,
        "label_ids": label_ids or [],
        "update_time": update_time,
        "status": "open",
    }


@pytest.fixture
def fake_pipedrive():
    client = MagicMock()
    client.is_configured = True
    client.verify_deals = AsyncMock(return_value=[])
    app.dependency_overrides[get_pipedrive] = lambda: client
    yield client
    app.dependency_overrides.pop(get_pipedrive, None)


@pytest.fixture
def client(fake_pipedrive):
    return TestClient(app)


def _login(client, user_id, role, name):
    client.cookies.set("user_id", user_id)
    client.cookies.set("user_role", role)
    client.cookies.set("user_name", name)
    return client


@pytest.fixture
def seller_client(client):
    return _login(client, "u1", "vendedor", "Ana")


@pytest.fixture
def admin_client(client):
    return _login(client, "a1", "adm", "Chefe")
