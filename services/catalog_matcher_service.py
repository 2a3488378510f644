"""
Catalog matcher: classifies each import candidate as new, update, match or error.

Read-only against the catalog, so a preview can be re-run any number of
times. Strategies:

    variant_match       SKU first, then product name + variant name.
                        One variant per candidate.
    product_line_match  Product name only. Prices fan out to every variant
                        of the line.

When duplicate catalog rows satisfy a match, the lowest id wins and the row
carries an "Ambiguous match" warning for later cleanup.
"""

from typing import Optional, Sequence, Callable
import structlog

from config import settings
from models.catalog import CatalogProduct, CatalogVariant
from models.import_profile import FieldKey, FIELD_LABELS, ImportDefaults
from models.import_preview import (
    AffectedVariant,
    MatchResult,
    MatchStatus,
    MatchStrategy,
    MatchType,
    NormalizedCandidate,
)
from services.catalog_service import get_catalog_service
from services.diff_service import (
    VARIANT_FIELDS,
    LINE_FIELDS,
    build_affected_variant,
    classify,
    diff_variant,
)
from utils.text_utils import match_key

logger = structlog.get_logger(__name__)


def validate_candidate(candidate: NormalizedCandidate) -> Optional[str]:
    """
    Required-field check. Returns an error message, or None if the row is usable.
    """
    if FieldKey.UNIT_COST in candidate.invalid_fields:
        return f"{FIELD_LABELS[FieldKey.UNIT_COST]} could not be parsed as a number"
    if candidate.unit_cost is None:
        return f"Missing required field: {FIELD_LABELS[FieldKey.UNIT_COST]}"
    if not candidate.product_name:
        return "Missing required field: Product Name"
    return None


class _CatalogLookups:
    """Per-run memo of catalog reads; repeated names in one file hit the DB once."""

    def __init__(self, catalog):
        self.catalog = catalog
        self._products: dict[str, list[CatalogProduct]] = {}
        self._variants: dict[tuple[str, str], list[CatalogVariant]] = {}
        self._skus: dict[str, list[CatalogVariant]] = {}
        self._lines: dict[str, list[CatalogVariant]] = {}

    def products(self, name: str) -> list[CatalogProduct]:
        key = match_key(name)
        if key not in self._products:
            self._products[key] = self.catalog.find_products_by_name(name)
        return self._products[key]

    def variants(self, product_id: str, variant_name: str) -> list[CatalogVariant]:
        key = (product_id, match_key(variant_name))
        if key not in self._variants:
            self._variants[key] = self.catalog.find_variants(product_id, variant_name)
        return self._variants[key]

    def variants_by_sku(self, sku: str) -> list[CatalogVariant]:
        key = sku.strip()
        if key not in self._skus:
            self._skus[key] = self.catalog.find_variants_by_sku(key)
        return self._skus[key]

    def line_variants(self, product_id: str) -> list[CatalogVariant]:
        if product_id not in self._lines:
            self._lines[product_id] = self.catalog.list_variants(product_id)
        return self._lines[product_id]


def _pick_lowest(items: Sequence, kind: str, candidate: NormalizedCandidate) -> tuple:
    """Deterministic tie-break. Returns (chosen, warnings)."""
    chosen = min(items, key=lambda item: item.id)
    if len(items) == 1:
        return chosen, []

    ids = sorted(item.id for item in items)
    logger.warning(
        "catalog_match_ambiguous",
        kind=kind,
        row=candidate.original_row_index,
        product_name=candidate.product_name,
        ids=ids
    )
    return chosen, [f"Ambiguous match: {len(items)} {kind} match; using lowest id {chosen.id}"]


def _result(
    candidate: NormalizedCandidate,
    status: MatchStatus,
    note: Optional[str] = None,
    warnings: Sequence[str] = (),
    **fields
) -> MatchResult:
    message = " ".join(part for part in [note, *warnings] if part) or None
    return MatchResult(
        candidate=candidate,
        status=status,
        message=message,
        warnings=list(warnings),
        **fields
    )


class CatalogMatcherService:
    """Matches normalized candidates against the product/variant catalog."""

    def __init__(self, catalog=None):
        self.catalog = catalog or get_catalog_service()

    def match(
        self,
        candidates: Sequence[NormalizedCandidate],
        strategy: MatchStrategy,
        defaults: Optional[ImportDefaults] = None,
    ) -> list[MatchResult]:
        """
        Classify every candidate. One result per candidate, in input order.

        Per-row problems become status "error" results; they never abort
        the batch.

        Args:
            candidates: Output of the row mapper
            strategy: variant_match or product_line_match (whole run)
            defaults: Import defaults, referenced in messages for new products

        Returns:
            MatchResult list aligned with candidates
        """
        defaults = defaults or ImportDefaults()
        strategies: dict[MatchStrategy, Callable] = {
            MatchStrategy.VARIANT_MATCH: self._match_variant,
            MatchStrategy.PRODUCT_LINE_MATCH: self._match_product_line,
        }
        match_one = strategies[MatchStrategy(strategy)]
        lookups = _CatalogLookups(self.catalog)

        logger.info(
            "catalog_match_started",
            candidates=len(candidates),
            strategy=MatchStrategy(strategy).value
        )

        results = []
        for candidate in candidates:
            error = validate_candidate(candidate)
            if error:
                results.append(_result(candidate, MatchStatus.ERROR, note=error))
                continue
            results.append(match_one(candidate, lookups, defaults))

        counts = {status.value: 0 for status in MatchStatus}
        for r in results:
            counts[r.status.value] += 1
        logger.info("catalog_match_complete", **counts)

        return results

    # ===================
    # STRATEGIES
    # ===================

    def _match_variant(
        self,
        candidate: NormalizedCandidate,
        lookups: _CatalogLookups,
        defaults: ImportDefaults,
    ) -> MatchResult:
        """SKU match first, then product + variant name."""
        if candidate.sku:
            hits = lookups.variants_by_sku(candidate.sku)
            if hits:
                variant, warnings = _pick_lowest(hits, "variants with this SKU", candidate)
                return self._diff_one(candidate, variant, MatchType.SKU, warnings)

        products = lookups.products(candidate.product_name)
        if not products:
            return _result(
                candidate,
                MatchStatus.NEW,
                note=self._new_product_note(candidate, defaults)
            )

        variant_name = candidate.variant_name or settings.import_default_variant_name
        variants = [
            v for p in products for v in lookups.variants(p.id, variant_name)
        ]
        if not variants:
            product, warnings = _pick_lowest(products, "products", candidate)
            return _result(
                candidate,
                MatchStatus.NEW,
                note=f"New variant under existing product '{product.name}'.",
                warnings=warnings,
                existing_product_id=product.id
            )

        variant, warnings = _pick_lowest(variants, "variants", candidate)
        return self._diff_one(candidate, variant, MatchType.VARIANT_NAME, warnings)

    def _match_product_line(
        self,
        candidate: NormalizedCandidate,
        lookups: _CatalogLookups,
        defaults: ImportDefaults,
    ) -> MatchResult:
        """Product name only; prices apply to every variant of the line."""
        products = lookups.products(candidate.product_name)
        if not products:
            return _result(
                candidate,
                MatchStatus.NEW,
                note=self._new_product_note(candidate, defaults)
            )

        product, warnings = _pick_lowest(products, "products", candidate)
        variants = lookups.line_variants(product.id)
        if not variants:
            return _result(
                candidate,
                MatchStatus.NEW,
                note=f"Product line '{product.name}' has no variants; one will be created.",
                warnings=warnings,
                existing_product_id=product.id
            )

        diffs = [(v, diff_variant(candidate, v, LINE_FIELDS)) for v in variants]
        status = classify([d for _, d in diffs])
        affected: list[AffectedVariant] = [
            build_affected_variant(candidate, v, d)
            for v, d in diffs
            if status == MatchStatus.MATCH or d.has_changes
        ]
        return _result(
            candidate,
            status,
            warnings=warnings,
            match_type=MatchType.PRODUCT_LINE,
            existing_product_id=product.id,
            affected_variants=affected
        )

    # ===================
    # HELPERS
    # ===================

    def _diff_one(
        self,
        candidate: NormalizedCandidate,
        variant: CatalogVariant,
        match_type: MatchType,
        warnings: list[str],
    ) -> MatchResult:
        diff = diff_variant(candidate, variant, VARIANT_FIELDS)
        return _result(
            candidate,
            classify([diff]),
            warnings=warnings,
            match_type=match_type,
            existing_product_id=variant.product_id,
            affected_variants=[build_affected_variant(candidate, variant, diff)]
        )

    @staticmethod
    def _new_product_note(candidate: NormalizedCandidate, defaults: ImportDefaults) -> str:
        note = "New product line."
        if not candidate.manufacturer and defaults.manufacturer_id:
            note += " Manufacturer from import defaults."
        return note


# Singleton instance for convenience
_catalog_matcher_service: Optional[CatalogMatcherService] = None


def get_catalog_matcher_service() -> CatalogMatcherService:
    """Get or create CatalogMatcherService instance."""
    global _catalog_matcher_service
    if _catalog_matcher_service is None:
        _catalog_matcher_service = CatalogMatcherService()
    return _catalog_matcher_service
