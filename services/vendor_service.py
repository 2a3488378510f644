"""
Vendor directory lookups used by the import pipeline.

Read-only: resolves manufacturer names from spreadsheets to vendor ids and
supplies each vendor's default product type.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.catalog import Vendor
from exceptions import DatabaseError
from utils.text_utils import match_key, escape_like

logger = structlog.get_logger(__name__)


class VendorService:
    """Vendor directory (vendors table)."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "vendors"

    def get_by_id(self, vendor_id: int) -> Optional[Vendor]:
        """Get a vendor by id, or None."""
        try:
            result = (
                self.db.table(self.table)
                .select("id, name, default_product_type")
                .eq("id", vendor_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_vendor_failed", vendor_id=vendor_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return Vendor(**result.data[0])

    def find_by_name(self, name: Optional[str]) -> Optional[Vendor]:
        """
        Find a vendor by case-insensitive exact name.

        Duplicate names resolve to the lowest id.
        """
        key = match_key(name)
        if key is None:
            return None

        try:
            result = (
                self.db.table(self.table)
                .select("id, name, default_product_type")
                .ilike("name", escape_like(name.strip()))
                .execute()
            )
        except Exception as e:
            logger.error("find_vendor_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))

        vendors = sorted(
            (Vendor(**row) for row in result.data if match_key(row.get("name")) == key),
            key=lambda v: v.id
        )
        if len(vendors) > 1:
            logger.warning("vendor_name_ambiguous", name=name, vendor_ids=[v.id for v in vendors])
        return vendors[0] if vendors else None

    def default_product_type(self, manufacturer_id: Optional[int]) -> Optional[str]:
        """Vendor's default product type, used to auto-fill import defaults."""
        if manufacturer_id is None:
            return None
        vendor = self.get_by_id(manufacturer_id)
        return vendor.default_product_type if vendor else None


# Singleton instance for convenience
_vendor_service: Optional[VendorService] = None


def get_vendor_service() -> VendorService:
    """Get or create VendorService instance."""
    global _vendor_service
    if _vendor_service is None:
        _vendor_service = VendorService()
    return _vendor_service
