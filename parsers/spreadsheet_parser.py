"""
Spreadsheet reader for vendor price lists.

Turns an uploaded .xlsx/.xls/.csv file into a raw 2-D list of cells with no
header detection: row 0 is whatever the first row of the sheet holds. Column
mapping happens later, against this raw structure.
"""

import csv
import io
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union
import structlog

import pandas as pd

from models.import_preview import Cell
from exceptions import InvalidSpreadsheetError

logger = structlog.get_logger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


@dataclass
class SpreadsheetData:
    """Raw rows of the first sheet."""
    rows: list[list[Cell]] = field(default_factory=list)
    sheet_name: Optional[str] = None

    @property
    def column_count(self) -> int:
        """Width of the widest row; vendor files are ragged."""
        return max((len(row) for row in self.rows), default=0)


def parse_spreadsheet(
    file: Union[str, Path, bytes, io.BytesIO],
    filename: Optional[str] = None,
) -> SpreadsheetData:
    """
    Read the first sheet of a spreadsheet into raw rows.

    Args:
        file: Path, raw bytes or file-like object
        filename: Original file name, used to pick the reader

    Returns:
        SpreadsheetData with one list per sheet row

    Raises:
        InvalidSpreadsheetError: Unknown extension or unreadable file
    """
    name = filename or (str(file) if isinstance(file, (str, Path)) else "")
    suffix = Path(name).suffix.lower()

    logger.info("parsing_spreadsheet", filename=name, suffix=suffix)

    if isinstance(file, (str, Path)):
        try:
            payload = Path(file).read_bytes()
        except OSError as e:
            raise InvalidSpreadsheetError(
                "Failed to read spreadsheet file",
                details={"filename": name, "original_error": str(e)}
            )
    elif isinstance(file, bytes):
        payload = file
    else:
        payload = file.read()

    if not payload:
        raise InvalidSpreadsheetError("Spreadsheet file is empty", details={"filename": name})

    if suffix in EXCEL_SUFFIXES:
        data = _read_excel(payload, suffix)
    elif suffix in CSV_SUFFIXES:
        data = _read_csv(payload)
    else:
        raise InvalidSpreadsheetError(
            f"Unsupported file type: {suffix or 'unknown'}",
            details={"filename": name, "supported": sorted(EXCEL_SUFFIXES | CSV_SUFFIXES)}
        )

    logger.info(
        "spreadsheet_parsed",
        filename=name,
        rows=len(data.rows),
        columns=data.column_count
    )
    return data


def _read_excel(payload: bytes, suffix: str) -> SpreadsheetData:
    engine = "xlrd" if suffix == ".xls" else "openpyxl"
    try:
        excel = pd.ExcelFile(io.BytesIO(payload), engine=engine)
        sheet_name = excel.sheet_names[0]
        df = excel.parse(sheet_name, header=None, dtype=object)
    except Exception as e:
        logger.error("excel_read_failed", error=str(e))
        raise InvalidSpreadsheetError(
            "Failed to read Excel file",
            details={"original_error": str(e)}
        )

    return SpreadsheetData(rows=_frame_to_rows(df), sheet_name=str(sheet_name))


def _read_csv(payload: bytes) -> SpreadsheetData:
    text = _decode(payload)

    # pandas rejects rows wider than the first one, so size the frame up front
    width = max((len(row) for row in csv.reader(io.StringIO(text))), default=0)
    if width == 0:
        return SpreadsheetData(rows=[])

    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(width)),
            dtype=object,
            keep_default_na=False,
            skip_blank_lines=False,
            engine="python",
        )
    except Exception as e:
        logger.error("csv_read_failed", error=str(e))
        raise InvalidSpreadsheetError(
            "Failed to read CSV file",
            details={"original_error": str(e)}
        )

    return SpreadsheetData(rows=_frame_to_rows(df))


def _decode(payload: bytes) -> str:
    for encoding in ("utf-8-sig", "cp1252", "latin-1"):
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError:
            continue
    return payload.decode("latin-1", errors="replace")


def _frame_to_rows(df: pd.DataFrame) -> list[list[Cell]]:
    """Convert a header-less frame to ragged lists, trimming trailing blanks."""
    rows = []
    for values in df.itertuples(index=False, name=None):
        row = [_to_cell(v) for v in values]
        while row and row[-1] is None:
            row.pop()
        rows.append(row)
    return rows


def _to_cell(value) -> Cell:
    if value is None:
        return None
    if isinstance(value, str):
        return value if value != "" else None
    if value is pd.NaT or value is pd.NA:
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if hasattr(value, "item"):
        # numpy scalar
        value = value.item()
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if isinstance(value, int):
        return value
    return str(value)
