"""
Business logic services.

Each service handles one stage of the import pipeline.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.vendor_service import VendorService, get_vendor_service
from services.import_profile_service import ImportProfileService, get_import_profile_service
from services.catalog_matcher_service import CatalogMatcherService, get_catalog_matcher_service
from services.import_service import ImportService, get_import_service

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "VendorService",
    "get_vendor_service",
    "ImportProfileService",
    "get_import_profile_service",
    "CatalogMatcherService",
    "get_catalog_matcher_service",
    "ImportService",
    "get_import_service",
]
