"""
Review stage for import previews.

Every function here is pure: it takes the current list of review rows and
returns a new list, leaving its input untouched. The caller keeps whichever
version it wants, which makes undo trivial and keeps these testable without
a UI.

Row state: proposed -> included | skipped. Error rows start skipped.
"""

from typing import Callable, Sequence
import structlog

from config import settings
from models.import_preview import (
    BulkSampleAction,
    MatchResult,
    MatchStatus,
    NormalizedCandidate,
)
from utils.text_utils import match_key

logger = structlog.get_logger(__name__)

# Display order only; execute keeps source order
_DISPLAY_RANK = {
    MatchStatus.ERROR: 0,
    MatchStatus.NEW: 1,
    MatchStatus.UPDATE: 2,
    MatchStatus.MATCH: 3,
}

EXECUTABLE_STATUSES = frozenset({MatchStatus.NEW, MatchStatus.UPDATE})


def start_review(results: Sequence[MatchResult]) -> list[MatchResult]:
    """Initial review state: errors skipped, no samples, names seeded from the sheet."""
    return [
        r.model_copy(update={
            "is_skipped": r.status == MatchStatus.ERROR,
            "has_sample": False,
            "product_name": r.product_name or r.candidate.product_name,
        })
        for r in results
    ]


def sort_for_display(rows: Sequence[MatchResult]) -> list[MatchResult]:
    """Stable sort: error, new, update, match."""
    return sorted(rows, key=lambda r: _DISPLAY_RANK[r.status])


# ===================
# PER-ROW EDITS
# ===================

def _replace(rows: Sequence[MatchResult], index: int, **changes) -> list[MatchResult]:
    updated = list(rows)
    updated[index] = rows[index].model_copy(update=changes)
    return updated


def toggle_skip(rows: Sequence[MatchResult], index: int) -> list[MatchResult]:
    """Flip included/skipped for one row."""
    return _replace(rows, index, is_skipped=not rows[index].is_skipped)


def toggle_sample(rows: Sequence[MatchResult], index: int) -> list[MatchResult]:
    """Flip the sample flag for one row."""
    return _replace(rows, index, has_sample=not rows[index].has_sample)


def edit_product_name(rows: Sequence[MatchResult], index: int, name: str) -> list[MatchResult]:
    """
    Override the product name used at execute time.

    The match decision made at preview time is kept as is.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("product name cannot be empty")
    return _replace(rows, index, product_name=name)


# ===================
# BULK SAMPLE ACTIONS
# ===================

def _flag_included(value: bool) -> Callable[[list[MatchResult]], list[MatchResult]]:
    def transform(rows: list[MatchResult]) -> list[MatchResult]:
        return [
            r if r.is_skipped else r.model_copy(update={"has_sample": value})
            for r in rows
        ]
    return transform


def _master_row(source: MatchResult) -> MatchResult:
    """Synthetic line board row for the product line of `source`."""
    name = source.effective_product_name
    renamed = name != source.candidate.product_name
    candidate = NormalizedCandidate(
        original_row_index=None,
        manufacturer=source.candidate.manufacturer,
        product_name=name,
        variant_name=settings.import_master_sample_name,
        unit_cost=0.0,
    )
    return MatchResult(
        candidate=candidate,
        status=MatchStatus.NEW,
        existing_product_id=None if renamed else source.existing_product_id,
        message="Line board master sample.",
        is_skipped=False,
        has_sample=True,
        product_name=name,
        is_master=True,
    )


def _add_line_board(rows: list[MatchResult]) -> list[MatchResult]:
    """
    Prepend one master sample row per included product line lacking one.

    Only the rows passed in are checked, not the catalog.
    """
    covered = {match_key(r.effective_product_name) for r in rows if r.is_master}
    masters = []
    for r in rows:
        if r.is_skipped or r.is_master:
            continue
        key = match_key(r.effective_product_name)
        if key in covered:
            continue
        covered.add(key)
        masters.append(_master_row(r))

    logger.info("line_board_rows_added", added=len(masters))
    return masters + rows


BULK_ACTIONS: dict[BulkSampleAction, Callable[[list[MatchResult]], list[MatchResult]]] = {
    BulkSampleAction.ALL: _flag_included(True),
    BulkSampleAction.NONE: _flag_included(False),
    BulkSampleAction.LINE_BOARD: _add_line_board,
}


def apply_bulk_action(rows: Sequence[MatchResult], action: BulkSampleAction) -> list[MatchResult]:
    """Run a bulk sample action and return the new row list."""
    return BULK_ACTIONS[BulkSampleAction(action)](list(rows))


# ===================
# SUMMARIES
# ===================

def eligible_rows(rows: Sequence[MatchResult]) -> list[MatchResult]:
    """Included rows that would change the catalog, in the given order."""
    return [r for r in rows if not r.is_skipped and r.status in EXECUTABLE_STATUSES]


def status_counts(rows: Sequence[MatchResult]) -> dict[str, int]:
    """Count of rows per status."""
    counts = {status.value: 0 for status in MatchStatus}
    for r in rows:
        counts[r.status.value] += 1
    return counts


def review_stats(rows: Sequence[MatchResult]) -> dict[str, int]:
    """
    Numbers shown above the review table.

    update/new count included rows only; error counts every error row.
    """
    included = [r for r in rows if not r.is_skipped]
    return {
        "total": len(rows),
        "included": len(included),
        "skipped": len(rows) - len(included),
        "updates": sum(1 for r in included if r.status == MatchStatus.UPDATE),
        "new": sum(1 for r in included if r.status == MatchStatus.NEW),
        "errors": sum(1 for r in rows if r.status == MatchStatus.ERROR),
        "samples": sum(1 for r in included if r.has_sample),
        "eligible": len(eligible_rows(rows)),
    }
