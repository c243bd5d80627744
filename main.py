"""
POLOAR Planning Dashboard — Entry Point
=========================================

Run: python main.py
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

# root config for modules that log through logging.getLogger(__name__)
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

from scripts.lib.logger import setup_logger

logger = setup_logger("poloar-dashboard")

HOST = os.getenv("DASHBOARD_HOST", "0.0.0.0")
PORT = int(os.getenv("DASHBOARD_PORT", "8001"))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"


def main() -> None:
    import uvicorn

    settings = {
        "Environment": os.getenv("ENVIRONMENT", "development"),
        "Login": f"http://localhost:{PORT}/login",
        "API Docs": f"http://localhost:{PORT}/docs",
        "Pipedrive": os.getenv("PIPEDRIVE_BASE_URL") or "https://poloarbauru2.pipedrive.com/",
        "Timezone": os.getenv("DASHBOARD_TIMEZONE", "America/Sao_Paulo"),
        "Reload": DEBUG,
    }
    logger.info("POLOAR planning dashboard on %s:%d", HOST, PORT)
    for key, value in settings.items():
        logger.info("  %-12s %s", key, value)

    uvicorn.run("dashboard.api.main:app", host=HOST, port=PORT, reload=DEBUG)


if __name__ == "__main__":
    main()
