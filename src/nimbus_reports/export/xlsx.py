"""Spreadsheet export of report rows (XLSX via xlsxwriter, CSV via pandas)."""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd

from .schemas import ColumnSchema, ColumnType, columns_from_rows, to_records

logger = logging.getLogger(__name__)

# Excel's maximum row limit (excluding header)
EXCEL_MAX_ROWS = 1_048_575  # 1,048,576 total including header
MAX_COLUMN_WIDTH = 50

HEADER_FORMAT = {
    "bold": True,
    "text_wrap": True,
    "valign": "top",
    "fg_color": "#D7E4BC",
    "border": 1,
}

# Body cell formats per column type; text columns keep the default
COLUMN_FORMATS = {
    ColumnType.NUMBER: {"align": "right"},
    ColumnType.BOOLEAN: {"align": "center"},
}


@dataclass
class ExportResult:
    """Outcome of an export. Exporters report failures here instead of raising."""

    success: bool
    message: str
    file_path: Path | None = None
    extra_paths: list[Path] = field(default_factory=list)


@dataclass
class SheetData:
    """One worksheet of a multi-sheet export."""

    name: str
    rows: list[Any]
    columns: list[ColumnSchema] | None = None


def default_filename(report_name: str, extension: str, today: date | None = None) -> str:
    """``<report_name>_<YYYY-MM-DD>.<ext>`` with unsafe characters replaced."""
    today = today or date.today()
    safe = re.sub(r"[^\w\-]+", "_", report_name).strip("_") or "report"
    return f"{safe}_{today.isoformat()}.{extension}"


def build_frame(rows: list[Any], columns: list[ColumnSchema] | None) -> pd.DataFrame:
    """DataFrame with one column per schema column, in schema order."""
    if columns is None:
        columns = columns_from_rows(rows)
    return pd.DataFrame(to_records(rows, columns), columns=[c.title for c in columns])


class _Exporter:
    extension = ""

    def __init__(self, output_dir: Path | str = Path("output"), today: date | None = None):
        self.output_dir = Path(output_dir)
        self.today = today

    def target_path(self, report_name: str) -> Path:
        return self.output_dir / default_filename(report_name, self.extension, self.today)


class XLSXExporter(_Exporter):
    """Exporter for XLSX output format."""

    extension = "xlsx"

    @staticmethod
    def safe_sheet_name(name: str) -> str:
        """Ensure Excel worksheet name is <= 31 chars and free of ``[]:*?/\\``."""
        name = re.sub(r"[\[\]:*?/\\]", "_", name) or "Sheet"
        return name[:28] + "..." if len(name) > 31 else name

    def export(
        self,
        rows: list[Any],
        report_name: str,
        columns: list[ColumnSchema] | None = None,
        file_path: Path | None = None,
    ) -> ExportResult:
        """Write *rows* to a single-sheet workbook."""
        return self.export_sheets(
            [SheetData(name="Report", rows=rows, columns=columns)],
            report_name,
            file_path=file_path,
        )

    def export_sheets(
        self,
        sheets: list[SheetData],
        report_name: str,
        file_path: Path | None = None,
    ) -> ExportResult:
        """Write each sheet to its own worksheet of one workbook."""
        output_path = file_path or self.target_path(report_name)
        total_rows = sum(len(sheet.rows) for sheet in sheets)
        logger.debug(f"[Export] Starting Excel export: {len(sheets)} sheets, {total_rows} rows")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
                header_format = writer.book.add_format(HEADER_FORMAT)
                column_formats = {
                    kind: writer.book.add_format(spec) for kind, spec in COLUMN_FORMATS.items()
                }
                for sheet in sheets:
                    self._write_sheet(writer, sheet, header_format, column_formats)
        except Exception as e:
            logger.error(f"Error generating XLSX: {e}")
            return ExportResult(success=False, message=f"Export failed: {e}")

        logger.debug(f"XLSX exported to: {output_path}")
        return ExportResult(
            success=True,
            message=f"Exported {total_rows} rows to {output_path}",
            file_path=output_path,
        )

    def _write_sheet(
        self,
        writer: pd.ExcelWriter,
        sheet: SheetData,
        header_format: Any,
        column_formats: dict[ColumnType, Any],
    ) -> None:
        df = build_frame(sheet.rows, sheet.columns)

        # Check for Excel row limit and truncate if necessary
        if len(df) > EXCEL_MAX_ROWS:
            logger.warning(
                f"Sheet '{sheet.name}' has {len(df):,} rows, exceeding Excel's limit of "
                f"{EXCEL_MAX_ROWS:,}. Truncating. Use CSV for full data."
            )
            df = df.head(EXCEL_MAX_ROWS)

        safe_name = self.safe_sheet_name(sheet.name)
        df.to_excel(writer, sheet_name=safe_name, index=False)
        worksheet = writer.sheets[safe_name]

        # Write the column headers with the defined format
        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_format)

        schema = {c.title: c for c in sheet.columns or []}
        for col_num, column in enumerate(df.columns):
            col = schema.get(column)
            if col and col.width:
                width = col.width
            else:
                longest = df[column].astype(str).map(len).max() if len(df) else 0
                width = min(max(int(longest), len(str(column))) + 2, MAX_COLUMN_WIDTH)
            cell_format = column_formats.get(col.type) if col else None
            worksheet.set_column(col_num, col_num, width, cell_format)


class CSVExporter(_Exporter):
    """Exporter for CSV output format. Multi-sheet exports write one file per sheet."""

    extension = "csv"

    def export(
        self,
        rows: list[Any],
        report_name: str,
        columns: list[ColumnSchema] | None = None,
        file_path: Path | None = None,
    ) -> ExportResult:
        output_path = file_path or self.target_path(report_name)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            build_frame(rows, columns).to_csv(output_path, index=False, encoding="utf-8")
        except Exception as e:
            logger.error(f"Error generating CSV: {e}")
            return ExportResult(success=False, message=f"Export failed: {e}")

        logger.debug(f"CSV exported to: {output_path}")
        return ExportResult(
            success=True,
            message=f"Exported {len(rows)} rows to {output_path}",
            file_path=output_path,
        )

    def export_sheets(
        self,
        sheets: list[SheetData],
        report_name: str,
        file_path: Path | None = None,
    ) -> ExportResult:
        paths: list[Path] = []
        for sheet in sheets:
            result = self.export(sheet.rows, f"{report_name}_{sheet.name}", sheet.columns)
            if not result.success:
                return result
            if result.file_path:
                paths.append(result.file_path)

        total_rows = sum(len(sheet.rows) for sheet in sheets)
        return ExportResult(
            success=True,
            message=f"Exported {total_rows} rows to {len(paths)} files in {self.output_dir}",
            file_path=paths[0] if paths else None,
            extra_paths=paths[1:],
        )


def get_exporter(fmt: str, output_dir: Path | str, today: date | None = None) -> XLSXExporter | CSVExporter:
    """Pick the exporter for an output format name."""
    if fmt == "csv":
        return CSVExporter(output_dir, today=today)
    if fmt == "xlsx":
        return XLSXExporter(output_dir, today=today)
    raise ValueError(f"Unsupported export format: {fmt}")
