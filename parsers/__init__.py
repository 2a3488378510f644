"""
Spreadsheet parsers.
"""

from parsers.spreadsheet_parser import (
    parse_spreadsheet,
    SpreadsheetData,
)

__all__ = [
    "parse_spreadsheet",
    "SpreadsheetData",
]
