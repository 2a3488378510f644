"""
Import orchestration: preview (read-only) and execute (one atomic write).

preview   candidates -> MatchResult[]     never writes, safe to repeat
execute   reviewed MatchResult[] -> counts all-or-nothing

Execute uses the decisions frozen at preview time. Rows are not re-matched,
and operations are applied in the order the caller supplies, so when a file
lists the same variant twice the last row wins.
"""

from typing import Optional, Sequence
import structlog

from config import settings
from models.catalog import CatalogOperation, OperationType
from models.import_profile import ImportDefaults
from models.import_preview import (
    ExecuteResponse,
    MatchResult,
    MatchStatus,
    MatchStrategy,
    NormalizedCandidate,
)
from services.catalog_service import get_catalog_service
from services.catalog_matcher_service import CatalogMatcherService
from services.vendor_service import get_vendor_service
from services.import_review_service import eligible_rows
from exceptions import (
    AppError,
    ValidationError,
    ImportTooLargeError,
    ImportConfirmationRequiredError,
    NoEligibleRowsError,
    ExecutionTransactionError,
)

logger = structlog.get_logger(__name__)


class ImportService:
    """
    Preview/execute for spreadsheet price-list imports.

    Collaborators are injectable so tests can run against an in-memory
    catalog.
    """

    def __init__(self, catalog=None, vendors=None, matcher=None):
        self.catalog = catalog or get_catalog_service()
        self.vendors = vendors or get_vendor_service()
        self.matcher = matcher or CatalogMatcherService(self.catalog)

    # ===================
    # DEFAULTS
    # ===================

    def resolve_defaults(self, defaults: Optional[ImportDefaults]) -> ImportDefaults:
        """
        Fill product_type from the default manufacturer's vendor record when unset.
        """
        defaults = defaults or ImportDefaults()
        if defaults.manufacturer_id and not defaults.product_type:
            product_type = self.vendors.default_product_type(defaults.manufacturer_id)
            if product_type:
                return defaults.model_copy(update={"product_type": product_type})
        return defaults

    # ===================
    # PREVIEW
    # ===================

    def preview(
        self,
        candidates: Sequence[NormalizedCandidate],
        strategy: MatchStrategy,
        defaults: Optional[ImportDefaults] = None,
    ) -> list[MatchResult]:
        """
        Match candidates against the catalog without writing anything.

        Returns:
            One MatchResult per candidate, in source order

        Raises:
            ImportTooLargeError: More rows than import_max_rows
        """
        self._check_size(len(candidates))
        defaults = self.resolve_defaults(defaults)

        logger.info(
            "import_preview_started",
            candidates=len(candidates),
            strategy=MatchStrategy(strategy).value,
            default_manufacturer_id=defaults.manufacturer_id
        )

        return self.matcher.match(candidates, strategy, defaults)

    # ===================
    # EXECUTE
    # ===================

    def execute(
        self,
        results: Sequence[MatchResult],
        strategy: MatchStrategy,
        defaults: Optional[ImportDefaults] = None,
        confirmed: bool = False,
    ) -> ExecuteResponse:
        """
        Apply included rows to the catalog as a single transaction.

        Args:
            results: Reviewed preview rows (skips and edits applied)
            strategy: Strategy used for the preview
            defaults: Import defaults, used only for new products
            confirmed: Caller re-confirmed the catalog change

        Returns:
            ExecuteResponse with counts

        Raises:
            ImportConfirmationRequiredError: confirmed is False
            NoEligibleRowsError: Nothing to apply
            ExecutionTransactionError: Apply failed; nothing was changed
        """
        if not confirmed:
            raise ImportConfirmationRequiredError()

        self._check_size(len(results))
        rows = eligible_rows(results)
        if not rows:
            raise NoEligibleRowsError(len(results))

        defaults = self.resolve_defaults(defaults)
        operations = self.build_operations(rows, strategy, defaults)
        if not operations:
            raise NoEligibleRowsError(len(results))

        logger.info(
            "import_execute_started",
            rows=len(rows),
            operations=len(operations),
            strategy=MatchStrategy(strategy).value
        )

        try:
            summary = self.catalog.apply_operations(operations)
        except AppError:
            raise
        except Exception as e:
            logger.error("import_execute_failed", error=str(e), error_type=type(e).__name__)
            raise ExecutionTransactionError(
                str(e),
                details={"operations": len(operations), "error_type": type(e).__name__}
            ) from e

        logger.info(
            "import_execute_complete",
            updates=summary.updates,
            created=summary.created,
            products_created=summary.products_created
        )

        return ExecuteResponse(
            success=True,
            updates=summary.updates,
            created=summary.created,
            products_created=summary.products_created
        )

    def build_operations(
        self,
        rows: Sequence[MatchResult],
        strategy: MatchStrategy,
        defaults: ImportDefaults,
    ) -> list[CatalogOperation]:
        """
        Translate eligible rows into ordered catalog writes.

        Raises:
            ValidationError: An update row lists no variants to change
        """
        line_match = MatchStrategy(strategy) == MatchStrategy.PRODUCT_LINE_MATCH
        manufacturers: dict[str, Optional[int]] = {}
        operations: list[CatalogOperation] = []

        for row in rows:
            if row.status == MatchStatus.UPDATE:
                if not row.affected_variants:
                    raise ValidationError(
                        "Update row has no affected variants",
                        code="IMPORT_INVALID_ROW",
                        details={"row": row.candidate.original_row_index}
                    )
                operations.extend(self._update_operations(row, line_match))
            elif row.status == MatchStatus.NEW:
                operations.append(self._create_operation(row, defaults, manufacturers))

        return operations

    def _update_operations(self, row: MatchResult, line_match: bool) -> list[CatalogOperation]:
        """One update per affected variant; only fields the sheet supplied."""
        c = row.candidate
        operations = []
        for variant in row.affected_variants:
            operations.append(CatalogOperation(
                op=OperationType.UPDATE_VARIANT,
                source_row_index=c.original_row_index,
                variant_id=variant.variant_id,
                unit_cost=c.unit_cost,
                retail_price=c.retail_price,
                size=None if line_match else c.size,
                carton_size=None if line_match else c.carton_size,
                # Sample flags are only ever raised by an import
                has_sample=True if row.has_sample else None,
            ))
        return operations

    def _create_operation(
        self,
        row: MatchResult,
        defaults: ImportDefaults,
        manufacturers: dict[str, Optional[int]],
    ) -> CatalogOperation:
        c = row.candidate
        product_name = row.effective_product_name
        manufacturer_id = self._resolve_manufacturer(c.manufacturer, defaults, manufacturers)

        product_type = defaults.product_type
        if not product_type and manufacturer_id and manufacturer_id != defaults.manufacturer_id:
            product_type = self.vendors.default_product_type(manufacturer_id)

        # An edited name is used verbatim, so the preview's product id no longer applies
        product_id = row.existing_product_id if product_name == c.product_name else None

        return CatalogOperation(
            op=OperationType.CREATE_VARIANT,
            source_row_index=c.original_row_index,
            product_id=product_id,
            product_name=product_name,
            manufacturer_id=manufacturer_id,
            product_type=product_type or settings.import_default_product_type,
            variant_name=c.variant_name or settings.import_default_variant_name,
            sku=c.sku,
            size=c.size,
            unit_cost=c.unit_cost if c.unit_cost is not None else 0.0,
            retail_price=c.retail_price,
            carton_size=c.carton_size,
            is_master=row.is_master,
            has_sample=row.has_sample,
        )

    def _resolve_manufacturer(
        self,
        name: Optional[str],
        defaults: ImportDefaults,
        cache: dict[str, Optional[int]],
    ) -> Optional[int]:
        """Sheet manufacturer name -> vendor id; default only when the sheet has none."""
        if not name:
            return defaults.manufacturer_id

        if name not in cache:
            vendor = self.vendors.find_by_name(name)
            if vendor is None:
                logger.warning("import_manufacturer_unknown", manufacturer=name)
            cache[name] = vendor.id if vendor else None
        return cache[name]

    def _check_size(self, count: int) -> None:
        if count > settings.import_max_rows:
            raise ImportTooLargeError(count, settings.import_max_rows)


# Singleton instance for convenience
_import_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    """Get or create ImportService instance."""
    global _import_service
    if _import_service is None:
        _import_service = ImportService()
    return _import_service
