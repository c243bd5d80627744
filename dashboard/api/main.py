"""
POLOAR Dashboard — API Server
================================

Sellers register the Pipedrive deals they plan to close or follow up on;
administrators see the plannings enriched with live Pipedrive data.
Plannings and users live in Supabase.

Route groups:
  /api/health              - Health check
  /api/constants           - Pipedrive stage/label codes for filters
  /api/login, /api/logout  - Cookie session
  /api/planning            - Seller planning submission
  /api/pipedrive/*         - Live deal verification
  /api/admin/*             - Dashboard views, import, export

Pages:
  /                  - Redirect by role
  /login             - Login form
  /seller/planning   - Seller planning form
  /admin/dashboard   - Admin dashboard (tables + charts)
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from dashboard.api.middleware import ROLE_ADMIN, ROLE_SELLER, SessionMiddleware, current_user
from scripts.planning.deal_rules import label_options, stage_options

load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent.parent
FRONTEND_DIR = BASE_DIR / "dashboard" / "frontend"

VERSION = "1.0.0"


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting POLOAR planning dashboard...")

    from integrations.pipedrive import PipedriveIntegration
    app.state.pipedrive = PipedriveIntegration()
    status = "configured" if app.state.pipedrive.is_configured else "not configured"
    logger.info("Pipedrive integration: %s", status)

    from scripts.lib.supabase_client import is_available
    if is_available():
        logger.info("Supabase connected")
    else:
        logger.warning("Supabase not available; check SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY")

    logger.info("POLOAR dashboard ready")
    yield
    logger.info("Shutting down POLOAR dashboard...")


# ─── App Setup ────────────────────────────────────────────────

cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:8001"
).split(",")

app = FastAPI(
    title="POLOAR Planning Dashboard",
    version=VERSION,
    description="Seller deal planning with live Pipedrive enrichment",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Erro interno do servidor"})


# ─── Include Routers ──────────────────────────────────────────

from dashboard.api.routers.auth import router as auth_router
from dashboard.api.routers.planning import router as planning_router
from dashboard.api.routers.pipedrive import router as pipedrive_router
from dashboard.api.routers.admin import router as admin_router

app.include_router(auth_router)
app.include_router(planning_router)
app.include_router(pipedrive_router)
app.include_router(admin_router)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
async def health(request: Request):
    """Health check with service status."""
    from scripts.lib.supabase_client import is_available
    from dashboard.api.dependencies import get_pipedrive

    return {
        "status": "healthy",
        "service": "POLOAR Planning Dashboard",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": {
            "supabase": is_available(),
            "pipedrive": get_pipedrive(request).get_status(),
        },
    }


@app.get("/api/constants", tags=["system"])
async def constants():
    """Stage and label codes used by the dashboard filters."""
    return {"stages": stage_options(), "labels": label_options()}


# ─── Frontend ─────────────────────────────────────────────────

def _page(name: str):
    page = FRONTEND_DIR / name
    if page.exists():
        return FileResponse(str(page))
    return HTMLResponse(f"<h1>POLOAR</h1><p>Page {name} not found.</p>", status_code=404)


if FRONTEND_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(FRONTEND_DIR)), name="static")


@app.get("/", tags=["frontend"])
async def home(request: Request):
    """Send the user to the page for their role."""
    user = current_user(request)
    role = user["role"] if user else None
    if role == ROLE_SELLER:
        return RedirectResponse("/seller/planning", status_code=303)
    if role == ROLE_ADMIN:
        return RedirectResponse("/admin/dashboard", status_code=303)
    return RedirectResponse("/login", status_code=303)


@app.get("/login", response_class=HTMLResponse, tags=["frontend"])
async def login_page():
    return _page("login.html")


@app.get("/seller/planning", response_class=HTMLResponse, tags=["frontend"])
async def seller_planning_page(request: Request):
    user = current_user(request)
    if not user or user["role"] != ROLE_SELLER:
        return RedirectResponse("/login", status_code=303)
    return _page("planning.html")


@app.get("/admin/dashboard", response_class=HTMLResponse, tags=["frontend"])
async def admin_dashboard_page(request: Request):
    user = current_user(request)
    if not user or user["role"] != ROLE_ADMIN:
        return RedirectResponse("/login", status_code=303)
    return _page("dashboard.html")
