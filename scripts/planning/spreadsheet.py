"""
Planning spreadsheet import and detailed-view export.

Import format (first worksheet, row 1 is a header):
    A: Consultor       - seller name as registered in users.pipe_name
    B: FTAs            - deal IDs to close, separated by commas/spaces
    C: Acompanhamento  - deal IDs to follow up
"""
from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from scripts.lib.errors import SchemaValidationError
from scripts.lib.logger import setup_logger
from scripts.planning.deal_ids import parse_sheet_ids, split_sheet_cell

logger = setup_logger("planning_spreadsheet")

INVALID_SHEET_MESSAGE = "Formato de planilha inválido. Verifique o modelo."

EXPORT_COLUMNS = [
    ("Vendedor", "userName"),
    ("Tipo", "type_label"),
    ("ID", "deal_id"),
    ("Título", "title"),
    ("Valor", "value"),
    ("Etapa", "stage"),
    ("Etiquetas", "labels"),
    ("Resultado", "outcome"),
]


def format_currency(value: Optional[float]) -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    formatted = f"{float(value or 0):,.2f}"
    return "R$ " + formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def read_planning_sheet(content: bytes) -> List[Dict[str, Any]]:
    """
    Parse an uploaded .xlsx into planning items.

    Returns ``[{"consultor": str, "ftas": [str], "acompanhamento": [str]}]``.

    Raises:
        SchemaValidationError: unreadable file or fewer than two rows.
    """
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning("Could not open planning sheet: %s", e)
        raise SchemaValidationError(INVALID_SHEET_MESSAGE, field="file")

    try:
        worksheet = workbook.worksheets[0]
        rows = [
            row for row in worksheet.iter_rows(values_only=True)
            if row and any(cell not in (None, "") for cell in row)
        ]
    finally:
        workbook.close()

    if len(rows) < 2:
        raise SchemaValidationError(INVALID_SHEET_MESSAGE, field="file")

    items = []
    for row in rows[1:]:
        cells = list(row) + [None] * (3 - len(row))
        consultor = cells[0]
        if consultor in (None, ""):
            continue
        items.append({
            "consultor": str(consultor),
            "ftas": split_sheet_cell(cells[1]),
            "acompanhamento": split_sheet_cell(cells[2]),
        })

    logger.info("Parsed %d planning rows from spreadsheet", len(items))
    return items


def build_import_rows(
    items: Iterable[Dict[str, Any]],
    pipe_name_map: Dict[str, Any],
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Map parsed spreadsheet items to ``plannings`` rows.

    Items whose consultor isn't a known pipe_name, or that list no IDs at
    all, are skipped.
    """
    created_at = (now or datetime.now(timezone.utc)).isoformat()
    rows = []
    skipped = 0

    for item in items:
        consultor = str(item.get("consultor") or "").lower().strip()
        user_id = pipe_name_map.get(consultor)
        ftas = item.get("ftas") or []
        acompanhamento = item.get("acompanhamento") or []

        if not user_id or not (ftas or acompanhamento):
            skipped += 1
            continue

        rows.append({
            "user_id": user_id,
            "deal_ids_close": parse_sheet_ids(ftas),
            "deal_ids_followup": parse_sheet_ids(acompanhamento),
            "partners_count": 0,
            "created_at": created_at,
        })

    if skipped:
        logger.info("Skipped %d spreadsheet rows (unknown consultor or no IDs)", skipped)
    return rows


def export_rows_csv(rows: Iterable[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for row in rows:
        writer.writerow([
            format_currency(row.get(key)) if key == "value" else row.get(key)
            for _, key in EXPORT_COLUMNS
        ])
    return buffer.getvalue()


def export_rows_xlsx(rows: Iterable[Dict[str, Any]], title: str = "Planejamento") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title

    sheet.append([header for header, _ in EXPORT_COLUMNS])
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for row in rows:
        sheet.append([row.get(key) for _, key in EXPORT_COLUMNS])

    value_col = [key for _, key in EXPORT_COLUMNS].index("value") + 1
    for (cell,) in sheet.iter_rows(min_row=2, min_col=value_col, max_col=value_col):
        cell.number_format = '"R$" #,##0.00'

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
