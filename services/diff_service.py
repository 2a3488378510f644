"""
Field-level diff between an import candidate and an existing variant.

The diff decides update vs match: a matched variant with no changed field
is a "match", never an "update".
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from models.catalog import CatalogVariant
from models.import_preview import AffectedVariant, MatchStatus, NormalizedCandidate


@dataclass(frozen=True)
class DiffField:
    """One comparable field: candidate attribute, variant attribute, display label."""
    candidate_attr: str
    variant_attr: str
    label: str
    numeric: bool


COST = DiffField("unit_cost", "unit_cost", "Cost", numeric=True)
RETAIL = DiffField("retail_price", "retail_price", "Retail", numeric=True)
SIZE = DiffField("size", "size", "Size", numeric=False)
CARTON_SIZE = DiffField("carton_size", "carton_size", "Carton Size", numeric=True)

# Variant match compares everything; a line match only fans out prices
VARIANT_FIELDS: tuple[DiffField, ...] = (COST, RETAIL, SIZE, CARTON_SIZE)
LINE_FIELDS: tuple[DiffField, ...] = (COST, RETAIL)


@dataclass
class VariantDiff:
    """Changes for one variant. old_cost is the stored cost before the change."""
    old_cost: Optional[float]
    changes: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


def _differs(new, old, numeric: bool) -> bool:
    if numeric:
        if old is None:
            return True
        return float(new) != float(old)
    return (new or "").strip() != (old or "").strip()


def diff_variant(
    candidate: NormalizedCandidate,
    variant: CatalogVariant,
    fields: Sequence[DiffField] = VARIANT_FIELDS,
) -> VariantDiff:
    """
    Compare candidate values against a stored variant.

    Fields the candidate leaves empty are not compared; an unmapped column
    never counts as a change.

    Args:
        candidate: Normalized sheet row
        variant: Existing catalog variant
        fields: Which fields to compare

    Returns:
        VariantDiff with changed field labels in field order
    """
    changes = []
    for f in fields:
        new = getattr(candidate, f.candidate_attr)
        if new is None:
            continue
        if _differs(new, getattr(variant, f.variant_attr), f.numeric):
            changes.append(f.label)
    return VariantDiff(old_cost=variant.unit_cost, changes=changes)


def classify(diffs: Sequence[VariantDiff]) -> MatchStatus:
    """update if any diff has changes, else match."""
    return MatchStatus.UPDATE if any(d.has_changes for d in diffs) else MatchStatus.MATCH


def build_affected_variant(
    candidate: NormalizedCandidate,
    variant: CatalogVariant,
    diff: VariantDiff,
) -> AffectedVariant:
    """Preview record for one variant, carrying old and new prices for display."""
    return AffectedVariant(
        variant_id=variant.id,
        variant_name=variant.name,
        old_cost=diff.old_cost,
        new_cost=candidate.unit_cost,
        old_retail=variant.retail_price,
        new_retail=candidate.retail_price if candidate.retail_price is not None else variant.retail_price,
        changes=list(diff.changes),
    )
