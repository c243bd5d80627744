"""
POLOAR Dashboard — Auth Router
================================
Name/password login against the Supabase users table.

Endpoints:
  POST /api/login   - Validate credentials and set the session cookies
  POST /api/logout  - Clear the session cookies
  GET  /api/me      - Current session
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dashboard.api.middleware import clear_user_cookies, require_role, set_user_cookies
from models.planning_models import LoginRequest, LoginResponse
from scripts.lib.errors import DataFetchError
from scripts.lib.logger import setup_logger
from scripts.planning import planning_store

logger = setup_logger("auth_router")

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest):
    """Check credentials; on success return the user and set cookies."""
    if not body.nome or not body.senha:
        return JSONResponse(
            status_code=400, content={"error": "Nome e senha são obrigatórios"},
        )

    try:
        user = planning_store.authenticate(body.nome, body.senha)
    except DataFetchError:
        return JSONResponse(status_code=500, content={"error": "Erro interno do servidor"})

    if not user:
        logger.info("Failed login for %s", body.nome)
        return JSONResponse(status_code=401, content={"error": "Credenciais inválidas"})

    response = JSONResponse(content=user)
    set_user_cookies(response, user["id"], user["role"], user["nome"])
    logger.info("User %s logged in as %s", user["nome"], user["role"])
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse(content={"success": True})
    clear_user_cookies(response)
    return response


@router.get("/me", response_model=LoginResponse)
async def me(user: dict = Depends(require_role())):
    return user
