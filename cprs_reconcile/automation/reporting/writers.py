"""Persist outcome reports as JSON documents and Excel workbooks."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from ..outcome import Outcome, OutcomeReport
from ..util import format_path
from .allure_helpers import attach_file

logger = logging.getLogger(__name__)

_HEADERS = ["Cycle", "Group", "Label", "Outcome", "Detail", "Finished"]
_WIDTHS = [8, 36, 36, 20, 60, 28]
_FILLS = {
    Outcome.APPLIED: "C6EFCE",
    Outcome.NO_ACTION_NEEDED: "DDEBF7",
    Outcome.SAFETY_EXCLUDED: "FFC7CE",
    Outcome.ACTION_FAILED: "FFC7CE",
    Outcome.STALE_PRECONDITION: "FFEB9C",
    Outcome.AMBIGUOUS: "FFEB9C",
    Outcome.UNRESOLVED: "FFEB9C",
}


def write_report_json(report: OutcomeReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    logger.info("Outcome report saved: %s", path)
    return path


def write_report_workbook(report: OutcomeReport, path: Path, *, attach: bool = False) -> Optional[Path]:
    """Append a cycle's records to an Excel workbook, one row per template entry."""
    # Lazy import so users without Excel don't break other features
    try:
        from openpyxl import Workbook, load_workbook
        from openpyxl.styles import Alignment, Font, PatternFill
    except Exception as exc:
        logger.warning("Excel export skipped (openpyxl not available): %s", exc)
        return None

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        wb = load_workbook(path)
        ws = wb["Outcomes"] if "Outcomes" in wb.sheetnames else wb.create_sheet(title="Outcomes")
    else:
        wb = Workbook()
        ws = wb.active
        ws.title = "Outcomes"
    if ws.max_row == 1 and ws.max_column == 1 and ws["A1"].value is None:
        _initialize_sheet(ws, Font, Alignment)

    for record in report.records:
        ws.append(
            [
                report.cycle_id,
                format_path(record.group_path),
                record.label,
                record.outcome.value,
                record.detail,
                report.finished_at or "",
            ]
        )
        outcome_cell = ws.cell(row=ws.max_row, column=4)
        outcome_cell.alignment = Alignment(horizontal="center")
        colour = _FILLS.get(record.outcome)
        if colour:
            outcome_cell.fill = PatternFill(start_color=colour, end_color=colour, fill_type="solid")

    try:
        wb.save(path)
    except Exception as exc:
        logger.warning("Failed to save Excel outcome report: %s", exc)
        return None
    logger.info("Excel outcome report saved: %s", path)
    if attach:
        attach_file(
            path.name,
            path,
            attachment_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    return path


def _initialize_sheet(ws, Font, Alignment) -> None:
    bold = Font(bold=True)
    # Row 1 explicitly; reading A1 during the emptiness check already created it.
    for col_idx, header in enumerate(_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = bold
        cell.alignment = Alignment(horizontal="center")
    ws.freeze_panes = "A2"
    for idx, width in enumerate(_WIDTHS, start=1):
        ws.column_dimensions[chr(ord("A") + idx - 1)].width = width
