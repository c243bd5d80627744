"""
POLOAR Dashboard — Session Cookie Middleware
=============================================
Reads the user_id / user_role / user_name cookies set at login into
request.state.user. Roles: vendedor (seller), adm (administrator).

When SESSION_SECRET is set, cookies carry an HMAC signature (user_sig) and
unsigned or tampered sessions are treated as anonymous. Without it every
cookie is trusted (development mode).
"""
from __future__ import annotations

import hashlib
import hmac
import os
from typing import Optional

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from scripts.lib.logger import setup_logger

logger = setup_logger("api_middleware")

USER_COOKIE_KEY = "user_id"
ROLE_COOKIE_KEY = "user_role"
NAME_COOKIE_KEY = "user_name"
SIG_COOKIE_KEY = "user_sig"

COOKIE_MAX_AGE = 7 * 24 * 60 * 60  # 7 days

ROLE_SELLER = "vendedor"
ROLE_ADMIN = "adm"


def _secret() -> str:
    return os.getenv("SESSION_SECRET", "")


def sign_session(user_id: str, role: str, name: str) -> str:
    payload = f"{user_id}|{role}|{name}".encode("utf-8")
    return hmac.new(_secret().encode("utf-8"), payload, hashlib.sha256).hexdigest()


def set_user_cookies(response: Response, user_id, role: str, name: str) -> None:
    secure = os.getenv("COOKIE_SECURE", "false").lower() == "true"
    values = {
        USER_COOKIE_KEY: str(user_id),
        ROLE_COOKIE_KEY: role or "",
        NAME_COOKIE_KEY: name or "",
    }
    if _secret():
        values[SIG_COOKIE_KEY] = sign_session(str(user_id), role or "", name or "")
    for key, value in values.items():
        response.set_cookie(key, value, max_age=COOKIE_MAX_AGE, samesite="lax", secure=secure)


def clear_user_cookies(response: Response) -> None:
    for key in (USER_COOKIE_KEY, ROLE_COOKIE_KEY, NAME_COOKIE_KEY, SIG_COOKIE_KEY):
        response.delete_cookie(key)


def read_session(request: Request) -> Optional[dict]:
    """Session dict from cookies, or None when absent or badly signed."""
    user_id = request.cookies.get(USER_COOKIE_KEY)
    role = request.cookies.get(ROLE_COOKIE_KEY)
    if not user_id or not role:
        return None

    name = request.cookies.get(NAME_COOKIE_KEY, "")
    if _secret():
        signature = request.cookies.get(SIG_COOKIE_KEY, "")
        if not hmac.compare_digest(signature, sign_session(user_id, role, name)):
            logger.warning("Rejected session cookie with bad signature for user %s", user_id)
            return None

    return {"id": user_id, "role": role, "nome": name}


class SessionMiddleware(BaseHTTPMiddleware):
    """Attach the cookie session (or None) to every request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.user = read_session(request)
        return await call_next(request)


def current_user(request: Request) -> Optional[dict]:
    if hasattr(request.state, "user"):
        return request.state.user
    return read_session(request)


def require_role(*roles: str):
    """
    Dependency enforcing a logged-in user, optionally with one of ``roles``.

    Usage:
        @router.get("/plannings", dependencies=[Depends(require_role("adm"))])
    """

    async def _check(request: Request) -> dict:
        user = current_user(request)
        if not user:
            raise HTTPException(status_code=401, detail="Não autenticado")
        if roles and user["role"] not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Requer perfil '{' ou '.join(roles)}', atual: '{user['role']}'",
            )
        return user

    return _check
