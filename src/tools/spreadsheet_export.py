"""
Spreadsheet export of the warehouse configuration.

Each render writes a new .xlsx workbook under the export directory and
returns a handle; ``fetch`` returns the workbook bytes for that handle.
``read_record`` parses an exported workbook back into a record.
"""

import io
import logging
import re
import uuid
import zipfile
from pathlib import Path
from typing import Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from src.config import settings
from src.errors import ExportError, ExportNotFoundError
from src.schemas.attribute_schema import AttributeRecord
from src.tools.visualization import VisualizationSummary

logger = logging.getLogger(__name__)

CONFIG_SHEET = "Warehouse Configuration"
SUMMARY_SHEET = "Summary"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_HANDLE_RE = re.compile(r"^EXP-[0-9a-f]{12}$")

TITLE_FONT = Font(bold=True, size=14)
HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="305496", end_color="305496", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin"),
)

# (document key, label, unit)
EXPORT_ROWS: list[tuple[str, str, str]] = [
    ("length", "Length", "m"),
    ("width", "Width", "m"),
    ("height", "Height", "m"),
    ("palletType", "Pallet Type", ""),
    ("storage", "Storage Capacity", "pallets"),
    ("storageType", "Storage Type", ""),
]
_HEADER_ROW = 3


def _write_header(ws, headers: list[str]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=_HEADER_ROW, column=col, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center")


def _autosize(ws, columns: int) -> None:
    for col in range(1, columns + 1):
        max_len = max(
            (len(str(ws.cell(row=r, column=col).value or "")) for r in range(_HEADER_ROW, ws.max_row + 1)),
            default=10,
        )
        ws.column_dimensions[get_column_letter(col)].width = min(max(max_len + 2, 10), 40)


def build_workbook(record: AttributeRecord) -> openpyxl.Workbook:
    """Lay the record out as a configuration sheet plus a summary sheet."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = CONFIG_SHEET
    ws.cell(row=1, column=1, value=settings.app_name).font = TITLE_FONT

    _write_header(ws, ["Field", "Value", "Unit"])
    document = record.to_document()
    for row_idx, (key, label, unit) in enumerate(EXPORT_ROWS, _HEADER_ROW + 1):
        for col, val in enumerate([label, document[key], unit], 1):
            ws.cell(row=row_idx, column=col, value=val).border = THIN_BORDER
    _autosize(ws, 3)

    summary = VisualizationSummary.from_record(record)
    ws_sum = wb.create_sheet(SUMMARY_SHEET)
    ws_sum.cell(row=1, column=1, value="Summary").font = TITLE_FONT
    _write_header(ws_sum, ["Item", "Value"])
    summary_rows = [
        ("Dimensions", summary.dimensions),
        ("Pallets", summary.pallets),
        ("Storage Type", summary.storage_type),
        ("Floor Area (m²)", summary.floor_area_m2),
        ("Volume (m³)", summary.volume_m3),
    ]
    for row_idx, (label, value) in enumerate(summary_rows, _HEADER_ROW + 1):
        ws_sum.cell(row=row_idx, column=1, value=label).border = THIN_BORDER
        ws_sum.cell(row=row_idx, column=2, value=value).border = THIN_BORDER
    _autosize(ws_sum, 2)
    return wb


def read_record(source: Union[bytes, str, Path]) -> AttributeRecord:
    """Parse the configuration sheet of an exported workbook."""
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    try:
        wb = openpyxl.load_workbook(source, data_only=True)
        ws = wb[CONFIG_SHEET]
    except (OSError, KeyError, ValueError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise ExportError(f"Not a configuration workbook: {exc}") from exc

    labels = {label: key for key, label, _ in EXPORT_ROWS}
    document = {}
    for row in ws.iter_rows(min_row=_HEADER_ROW + 1, max_col=2, values_only=True):
        label, value = row
        if label in labels:
            document[labels[label]] = value
    return AttributeRecord.from_document(document)


class SpreadsheetExporter:
    """Renders records to .xlsx files addressed by opaque handles."""

    def __init__(self, export_dir: Union[str, Path, None] = None) -> None:
        self.export_dir = Path(export_dir or settings.storage.export_dir)

    def _path_for(self, handle: str) -> Path:
        if not _HANDLE_RE.match(handle):
            raise ExportNotFoundError(f"Unknown export handle: {handle!r}")
        return self.export_dir / f"{handle}.xlsx"

    def render(self, record: AttributeRecord) -> str:
        """Write a workbook for the record and return its handle."""
        handle = f"EXP-{uuid.uuid4().hex[:12]}"
        path = self._path_for(handle)
        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            build_workbook(record).save(path)
        except OSError as exc:
            logger.error("Export render failed: %s", exc)
            raise ExportError("Failed to render spreadsheet") from exc
        logger.info("Exported configuration to %s", path)
        return handle

    def fetch(self, handle: str) -> bytes:
        """Return the workbook bytes for a handle."""
        path = self._path_for(handle)
        if not path.is_file():
            raise ExportNotFoundError(f"Unknown export handle: {handle!r}")
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error("Export fetch failed for %s: %s", handle, exc)
            raise ExportError("Failed to read spreadsheet") from exc
