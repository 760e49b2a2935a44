"""
Room Export Service

Generates Excel and CSV files from a session snapshot: one row per room with
its dimensions, status and area, followed by a total row.
"""

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Result of a room export."""
    success: bool
    filename: str
    file_bytes: Optional[bytes] = None
    error: Optional[str] = None
    row_count: int = 0


COLORS = {
    "header_bg": "1F4E79",  # Dark blue
    "header_fg": "FFFFFF",  # White
    "total_bg": "FFC000",   # Gold
    "linear_bg": "FFF2CC",  # Light yellow (one dimension missing)
    "empty_bg": "F2F2F2",   # Light grey (no dimensions)
}

HEADERS = {
    "en": ["No.", "Room", "Length", "Width", "Status", "Area"],
    "de": ["Nr.", "Raum", "Länge", "Breite", "Status", "Fläche"],
}

LABELS = {
    "en": {"sheet": "Rooms", "total": "TOTAL", "unnamed": "Room {n}", "prefix": "Rooms"},
    "de": {"sheet": "Räume", "total": "GESAMT", "unnamed": "Raum {n}", "prefix": "Raeume"},
}


def _labels(language: str) -> Dict[str, str]:
    return LABELS.get(language, LABELS["en"])


def _headers(language: str, unit: str) -> List[str]:
    headers = list(HEADERS.get(language, HEADERS["en"]))
    headers[2] = f"{headers[2]} ({unit})"
    headers[3] = f"{headers[3]} ({unit})"
    headers[5] = f"{headers[5]} ({unit}²)"
    return headers


def _room_rows(snapshot: Dict[str, Any], language: str) -> List[List[Any]]:
    """Flatten snapshot rooms into export rows; blank names get a placeholder."""
    rows = []
    for n, room in enumerate(snapshot.get("rooms", []), 1):
        name = (room.get("name") or "").strip() or _labels(language)["unnamed"].format(n=n)
        length = room.get("length")
        width = room.get("width")
        area = round(length * width, 1) if length is not None and width is not None else None
        rows.append([n, name, length, width, room.get("status", ""), area])
    return rows


def _filename(prefix: str, extension: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"


def export_rooms_to_excel(snapshot: Dict[str, Any], language: str = "en") -> ExportResult:
    """
    Export the session rooms to an Excel workbook.

    Args:
        snapshot: RoomSession.snapshot() output
        language: Header language (en/de)

    Returns:
        ExportResult with file bytes
    """
    try:
        labels = _labels(language)
        unit = snapshot.get("unit", "")
        rows = _room_rows(snapshot, language)

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = labels["sheet"]

        header_font = Font(bold=True, color=COLORS["header_fg"])
        header_fill = PatternFill(start_color=COLORS["header_bg"], end_color=COLORS["header_bg"], fill_type="solid")
        total_fill = PatternFill(start_color=COLORS["total_bg"], end_color=COLORS["total_bg"], fill_type="solid")
        status_fills = {
            "linear": PatternFill(start_color=COLORS["linear_bg"], end_color=COLORS["linear_bg"], fill_type="solid"),
            "empty": PatternFill(start_color=COLORS["empty_bg"], end_color=COLORS["empty_bg"], fill_type="solid"),
        }
        thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )

        for col, header in enumerate(_headers(language, unit), 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")
            cell.border = thin_border

        for row_idx, values in enumerate(rows, 2):
            fill = status_fills.get(values[4])
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row_idx, column=col, value=value)
                cell.border = thin_border
                if col in (3, 4, 6):
                    cell.number_format = "#,##0.0"
                if fill is not None:
                    cell.fill = fill

        # Total uses the snapshot figure, which is rounded once over all rooms
        total_row = len(rows) + 2
        ws.cell(row=total_row, column=5, value=labels["total"])
        ws.cell(row=total_row, column=6, value=snapshot.get("derived", {}).get("total_area", 0.0))
        for col in (5, 6):
            ws.cell(row=total_row, column=col).font = Font(bold=True)
            ws.cell(row=total_row, column=col).fill = total_fill
        ws.cell(row=total_row, column=6).number_format = "#,##0.0"

        for col, width in enumerate([6, 28, 12, 12, 10, 12], 1):
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.freeze_panes = "A2"

        buffer = io.BytesIO()
        wb.save(buffer)

        return ExportResult(
            success=True,
            filename=_filename(labels["prefix"], "xlsx"),
            file_bytes=buffer.getvalue(),
            row_count=len(rows),
        )

    except Exception as e:
        logger.error(f"Excel export error: {e}")
        return ExportResult(success=False, filename="", error=str(e))


def export_rooms_to_csv(snapshot: Dict[str, Any], language: str = "en") -> ExportResult:
    """
    Export the session rooms to CSV.

    German output uses semicolons and decimal commas, as German Excel expects.
    """
    try:
        labels = _labels(language)
        rows = _room_rows(snapshot, language)
        german = language == "de"

        def fmt(value: Any) -> Any:
            if isinstance(value, float):
                text = f"{value:.1f}"
                return text.replace(".", ",") if german else text
            return "" if value is None else value

        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=";" if german else ",")
        writer.writerow(_headers(language, snapshot.get("unit", "")))
        for values in rows:
            writer.writerow([fmt(v) for v in values])
        total = float(snapshot.get("derived", {}).get("total_area", 0.0))
        writer.writerow(["", "", "", "", labels["total"], fmt(total)])

        return ExportResult(
            success=True,
            filename=_filename(labels["prefix"], "csv"),
            file_bytes=buffer.getvalue().encode("utf-8-sig"),  # BOM for Excel
            row_count=len(rows),
        )

    except Exception as e:
        logger.error(f"CSV export error: {e}")
        return ExportResult(success=False, filename="", error=str(e))
