"""
Catalog access for the import pipeline.

Reads products/variants for matching and applies an import batch through a
single Postgres function call, so the whole batch commits or rolls back as
one transaction (see migrations/001_apply_catalog_import.sql).
"""

from typing import Optional
import structlog

from config import get_supabase_client, DatabaseSession, settings
from models.catalog import CatalogProduct, CatalogVariant, CatalogOperation, ApplySummary
from exceptions import DatabaseError, ExecutionTransactionError
from utils.text_utils import match_key, escape_like

logger = structlog.get_logger(__name__)

PRODUCT_COLUMNS = "id, name, manufacturer_id, product_type, is_discontinued"
VARIANT_COLUMNS = (
    "id, product_id, name, sku, size, unit_cost, retail_price, "
    "carton_size, is_master, has_sample"
)


class CatalogService:
    """
    Products and variants as seen by the importer.

    Name lookups are case-insensitive exact matches. Results are sorted by
    id so that duplicate catalog rows always resolve the same way.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.products_table = "products"
        self.variants_table = "product_variants"

    # ===================
    # READ OPERATIONS
    # ===================

    def find_products_by_name(self, name: str) -> list[CatalogProduct]:
        """
        Active products whose name matches, lowest id first.

        Args:
            name: Product line name from the spreadsheet

        Returns:
            Matching products (empty if none)
        """
        key = match_key(name)
        if key is None:
            return []

        try:
            result = (
                self.db.table(self.products_table)
                .select(PRODUCT_COLUMNS)
                .ilike("name", escape_like(name.strip()))
                .eq("is_discontinued", False)
                .execute()
            )
        except Exception as e:
            logger.error("find_products_by_name_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))

        products = [
            CatalogProduct(**row) for row in result.data
            if match_key(row.get("name")) == key and not row.get("is_discontinued")
        ]
        return sorted(products, key=lambda p: p.id)

    def find_variants(self, product_id: str, variant_name: str) -> list[CatalogVariant]:
        """Variants of a product whose name matches, lowest id first."""
        key = match_key(variant_name)
        if key is None:
            return []

        try:
            result = (
                self.db.table(self.variants_table)
                .select(VARIANT_COLUMNS)
                .eq("product_id", product_id)
                .ilike("name", escape_like(variant_name.strip()))
                .execute()
            )
        except Exception as e:
            logger.error(
                "find_variants_failed",
                product_id=product_id,
                variant_name=variant_name,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

        variants = [
            CatalogVariant(**row) for row in result.data
            if row.get("product_id") == product_id and match_key(row.get("name")) == key
        ]
        return sorted(variants, key=lambda v: v.id)

    def find_variants_by_sku(self, sku: str) -> list[CatalogVariant]:
        """Variants with this exact SKU under active products, lowest id first."""
        sku = (sku or "").strip()
        if not sku:
            return []

        try:
            result = (
                self.db.table(self.variants_table)
                .select(f"{VARIANT_COLUMNS}, products(name, is_discontinued)")
                .eq("sku", sku)
                .execute()
            )
        except Exception as e:
            logger.error("find_variants_by_sku_failed", sku=sku, error=str(e))
            raise DatabaseError("select", str(e))

        variants = []
        for row in result.data:
            row = dict(row)
            parent = row.pop("products", None) or {}
            if parent.get("is_discontinued") or (row.get("sku") or "").strip() != sku:
                continue
            variants.append(CatalogVariant(**row, product_name=parent.get("name")))
        return sorted(variants, key=lambda v: v.id)

    def list_variants(self, product_id: str) -> list[CatalogVariant]:
        """All variants of a product line, lowest id first."""
        try:
            result = (
                self.db.table(self.variants_table)
                .select(VARIANT_COLUMNS)
                .eq("product_id", product_id)
                .order("id")
                .execute()
            )
        except Exception as e:
            logger.error("list_variants_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

        variants = [
            CatalogVariant(**row) for row in result.data
            if row.get("product_id") == product_id
        ]
        return sorted(variants, key=lambda v: v.id)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def apply_operations(self, operations: list[CatalogOperation]) -> ApplySummary:
        """
        Apply an import batch atomically.

        The batch is sent in one RPC; the database function runs every
        operation in order inside a single transaction.

        Args:
            operations: Ordered writes

        Returns:
            ApplySummary with counts reported by the database

        Raises:
            ExecutionTransactionError: Any failure; nothing was applied
        """
        function_name = settings.import_apply_function
        payload = [op.to_payload() for op in operations]

        logger.info(
            "applying_catalog_operations",
            function=function_name,
            operations=len(payload)
        )

        try:
            with DatabaseSession(function_name, client=self.db) as client:
                result = client.rpc(function_name, {"p_operations": payload}).execute()
        except Exception as e:
            raise ExecutionTransactionError(
                str(e),
                details={"operations": len(payload), "error_type": type(e).__name__}
            ) from e

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else {}
        summary = ApplySummary(**(data or {}))

        logger.info(
            "catalog_operations_applied",
            updates=summary.updates,
            created=summary.created,
            products_created=summary.products_created
        )
        return summary


# Singleton instance for convenience
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
