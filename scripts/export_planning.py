"""
POLOAR Dashboard — Detailed Planning Export
=============================================
Writes the detailed planning view (one row per planned deal, with live
Pipedrive stage, labels and outcome) to CSV or XLSX.

Usage:
    python scripts/export_planning.py --out planejamento.csv
    python scripts/export_planning.py --format xlsx --out planejamento.xlsx --start 2025-03-01
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

from integrations.pipedrive import PipedriveIntegration
from scripts.lib.errors import DashboardError
from scripts.lib.logger import setup_logger
from scripts.planning import planning_store
from scripts.planning.filters import filter_by_date_range
from scripts.planning.planning_service import (
    build_deals_map,
    collect_deal_ids,
    flatten_detailed,
    process_detailed_planning_data,
)
from scripts.planning.spreadsheet import export_rows_csv, export_rows_xlsx

logger = setup_logger("export_planning")


async def build_rows(start: date = None, end: date = None) -> list:
    plannings = filter_by_date_range(planning_store.fetch_plannings(), start, end)
    deals = await PipedriveIntegration().verify_deals(collect_deal_ids(plannings))
    detailed = process_detailed_planning_data(plannings, build_deals_map(deals))
    return flatten_detailed(detailed)


def main() -> None:
    parser = argparse.ArgumentParser(description="Export the detailed planning view")
    parser.add_argument("--format", choices=["csv", "xlsx"], default="csv")
    parser.add_argument("--out", type=Path, required=True, help="Output file")
    parser.add_argument("--start", type=date.fromisoformat, help="First planning date (YYYY-MM-DD)")
    parser.add_argument("--end", type=date.fromisoformat, help="Last planning date (YYYY-MM-DD)")
    args = parser.parse_args()

    try:
        rows = asyncio.run(build_rows(args.start, args.end))
    except DashboardError as e:
        logger.error("Export failed: %s", e)
        sys.exit(1)

    if args.format == "xlsx":
        args.out.write_bytes(export_rows_xlsx(rows))
    else:
        args.out.write_text(export_rows_csv(rows), encoding="utf-8-sig")

    logger.info("Exported %d rows to %s", len(rows), args.out)


if __name__ == "__main__":
    main()
