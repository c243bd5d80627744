"""Shared FastAPI dependencies."""
from __future__ import annotations

from fastapi import Request

from integrations.pipedrive import PipedriveIntegration


def get_pipedrive(request: Request) -> PipedriveIntegration:
    """The app-wide Pipedrive client, created lazily if lifespan didn't run."""
    client = getattr(request.app.state, "pipedrive", None)
    if client is None:
        client = PipedriveIntegration()
        request.app.state.pipedrive = client
    return client
