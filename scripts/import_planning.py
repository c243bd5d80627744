"""
POLOAR Dashboard — Planning Spreadsheet Import
================================================
Loads a planning spreadsheet (Consultor | FTAs | Acompanhamento) from disk
into the Supabase plannings table, matching consultors by users.pipe_name.

Usage:
    python scripts/import_planning.py planejamento.xlsx
    python scripts/import_planning.py planejamento.xlsx --dry-run
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

from scripts.lib.errors import DashboardError
from scripts.lib.logger import setup_logger
from scripts.planning import planning_store
from scripts.planning.spreadsheet import build_import_rows, read_planning_sheet

logger = setup_logger("import_planning")


def run(path: Path, dry_run: bool = False) -> int:
    """Import ``path``; returns the number of plannings written (or that would be)."""
    items = read_planning_sheet(path.read_bytes())
    rows = build_import_rows(items, planning_store.fetch_pipe_name_map())

    if not rows:
        logger.warning("Nenhum registro válido encontrado na planilha")
        return 0

    if dry_run:
        logger.info("DRY RUN: %d plannings would be imported", len(rows))
        for row in rows:
            logger.info(
                "  user %s: %d close, %d follow-up",
                row["user_id"], len(row["deal_ids_close"]), len(row["deal_ids_followup"]),
            )
        return len(rows)

    return len(planning_store.insert_plannings(rows))


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a planning spreadsheet into Supabase")
    parser.add_argument("file", type=Path, help="Path to the .xlsx spreadsheet")
    parser.add_argument("--dry-run", action="store_true",
                        help="Parse and match rows without writing")
    args = parser.parse_args()

    if not args.file.exists():
        logger.error("File not found: %s", args.file)
        sys.exit(1)

    try:
        imported = run(args.file, dry_run=args.dry_run)
    except DashboardError as e:
        logger.error("Import failed: %s", e)
        sys.exit(1)

    logger.info("%d planejamentos importados", imported)


if __name__ == "__main__":
    main()
