"""
Row mapper: raw sheet rows + column mapping -> normalized candidates.

Defaults (manufacturer, product type) are deliberately not merged here; the
matcher and executor apply them only when creating new catalog entries.
"""

from typing import Optional, Sequence
import structlog

from models.import_profile import FieldKey, FIELD_LABELS, REQUIRED_FIELDS
from models.import_preview import Cell, ColumnInfo, NormalizedCandidate
from exceptions import MappingValidationError
from utils.text_utils import normalize_cell, is_unparseable_number, cell_to_text

logger = structlog.get_logger(__name__)

SAMPLE_TEXT_LENGTH = 20


def validate_mapping(mapping: dict[FieldKey, int]) -> None:
    """
    Check that every required field has a column.

    Raises:
        MappingValidationError: Lists the labels of unmapped required fields
    """
    missing = [FIELD_LABELS[f] for f in REQUIRED_FIELDS if mapping.get(f) is None]
    if missing:
        raise MappingValidationError(missing)


def map_row(
    row: Sequence[Cell],
    row_index: int,
    mapping: dict[FieldKey, int],
) -> Optional[NormalizedCandidate]:
    """
    Map one raw row. Returns None when the row has no product name.

    Columns outside the row (negative, or past the end of a short row) are
    skipped.
    """
    values: dict[str, object] = {"original_row_index": row_index}
    invalid: list[FieldKey] = []

    for field_key, column in mapping.items():
        if not 0 <= column < len(row):
            continue
        raw = row[column]
        values[field_key.value] = normalize_cell(field_key, raw)
        if is_unparseable_number(field_key, raw):
            invalid.append(field_key)

    if not values.get(FieldKey.PRODUCT_NAME.value):
        return None

    values["invalid_fields"] = tuple(invalid)
    return NormalizedCandidate(**values)


def map_rows(
    raw_rows: Sequence[Sequence[Cell]],
    mapping: dict[FieldKey, int],
) -> list[NormalizedCandidate]:
    """
    Apply a column mapping to every raw row, keeping sheet order.

    Rows without a product name (blank lines, headers mapped as junk,
    subtotal rows) are dropped rather than reported.

    Args:
        raw_rows: 2-D sheet data, row 0 first
        mapping: Target field -> 0-based column index

    Returns:
        Candidates in source order
    """
    candidates = []
    for index, row in enumerate(raw_rows):
        candidate = map_row(row, index, mapping)
        if candidate is not None:
            candidates.append(candidate)

    logger.info(
        "rows_mapped",
        raw_rows=len(raw_rows),
        candidates=len(candidates),
        dropped=len(raw_rows) - len(candidates)
    )
    return candidates


# ===================
# COLUMN HELPERS
# ===================

def column_count(raw_rows: Sequence[Sequence[Cell]]) -> int:
    """Width of the widest row, not just the header."""
    return max((len(row) for row in raw_rows), default=0)


def column_label(index: int) -> str:
    """Spreadsheet column letters: 0 → A, 25 → Z, 26 → AA."""
    if index < 0:
        raise ValueError("column index must be >= 0")
    label = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        label = chr(65 + remainder) + label
    return label


def describe_columns(raw_rows: Sequence[Sequence[Cell]]) -> list[ColumnInfo]:
    """Column choices for the mapping screen, with sample text from the first non-empty row."""
    sample_row = next((row for row in raw_rows if len(row) > 0), [])
    columns = []
    for index in range(column_count(raw_rows)):
        sample = cell_to_text(sample_row[index]) if index < len(sample_row) else None
        columns.append(ColumnInfo(
            index=index,
            label=column_label(index),
            sample=sample[:SAMPLE_TEXT_LENGTH] if sample else None
        ))
    return columns
