"""
Cell cleaning for vendor price-list spreadsheets.

Pure functions: the same raw cell always yields the same value, whether it
comes from a live upload or a replayed test fixture.
"""

import math
import re
from typing import Optional, Union

from models.import_profile import FieldKey, NUMERIC_FIELDS

RawCell = Optional[Union[str, int, float, bool]]

# C0 controls, DEL and C1 controls
_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")

# Anything that is not a digit, decimal point or minus sign
_NON_NUMERIC = re.compile(r"[^0-9.\-]+")


def clean_cell_text(value: RawCell) -> RawCell:
    """
    Strip control characters and surrounding whitespace from string cells.

    - "  Oak\\x00 Plank\\n" → "Oak Plank"
    - "   " → None
    - 3.2 → 3.2 (non-strings pass through)

    Args:
        value: Raw cell value

    Returns:
        Cleaned value, or None if nothing is left
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if not isinstance(value, str):
        return value

    cleaned = _CONTROL_CHARS.sub("", value).strip()
    return cleaned or None


def parse_numeric_cell(value: RawCell) -> Optional[float]:
    """
    Coerce a currency-like cell into a float.

    - "$1,234.56" → 1234.56
    - "-5.00" → -5.0
    - "N/A" → None
    - "" → None
    - 0 → 0.0

    Args:
        value: Cleaned or raw cell value

    Returns:
        Parsed float, or None when the cell does not hold a finite number
    """
    value = clean_cell_text(value)
    if value is None:
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    stripped = _NON_NUMERIC.sub("", value)
    if not stripped:
        return None

    # Only a leading minus is kept as a sign
    sign = -1.0 if stripped.startswith("-") else 1.0
    body = stripped.replace("-", "")
    if not body:
        return None

    try:
        number = float(body)
    except ValueError:
        return None

    if not math.isfinite(number):
        return None
    return sign * number


def cell_to_text(value: RawCell) -> Optional[str]:
    """
    Render a cleaned cell as text for string fields.

    Whole floats lose their ".0" (Excel stores 5 as 5.0).
    """
    value = clean_cell_text(value)
    if value is None:
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return str(int(value))
    return str(value)


def normalize_cell(field: FieldKey, value: RawCell) -> Union[str, float, None]:
    """
    Normalize one cell for a target field.

    Args:
        field: Target field the column is mapped to
        value: Raw cell value

    Returns:
        float for numeric fields, str for text fields, or None
    """
    if field in NUMERIC_FIELDS:
        return parse_numeric_cell(value)
    return cell_to_text(value)


def is_unparseable_number(field: FieldKey, value: RawCell) -> bool:
    """True when a numeric field's cell holds text that did not parse."""
    if field not in NUMERIC_FIELDS:
        return False
    return clean_cell_text(value) is not None and parse_numeric_cell(value) is None


def match_key(text: Optional[str]) -> Optional[str]:
    """
    Comparison key for catalog names: control chars removed, trimmed, casefolded.

    - " Oak PLANK " → "oak plank"
    - "" → None
    """
    cleaned = clean_cell_text(text)
    if cleaned is None:
        return None
    return str(cleaned).casefold()


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ilike() acts as a case-insensitive equals."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
