"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    FrozenSchema,
)
from models.import_profile import (
    FieldKey,
    FIELD_LABELS,
    REQUIRED_FIELDS,
    NUMERIC_FIELDS,
    MAPPING_RULES_VERSION,
    ImportDefaults,
    MappingRules,
    MappingProfile,
    MappingProfileSave,
    MappingProfileListResponse,
)
from models.catalog import (
    CatalogProduct,
    CatalogVariant,
    Vendor,
    OperationType,
    CatalogOperation,
    ApplySummary,
)
from models.import_preview import (
    Cell,
    MatchStrategy,
    MatchStatus,
    MatchType,
    BulkSampleAction,
    NormalizedCandidate,
    AffectedVariant,
    MatchResult,
    ColumnInfo,
    ParseResponse,
    MapRequest,
    MapResponse,
    PreviewRequest,
    PreviewResponse,
    ReviewRequest,
    BulkSampleRequest,
    ReviewResponse,
    ExecuteRequest,
    ExecuteResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",
    # Profiles
    "FieldKey",
    "FIELD_LABELS",
    "REQUIRED_FIELDS",
    "NUMERIC_FIELDS",
    "MAPPING_RULES_VERSION",
    "ImportDefaults",
    "MappingRules",
    "MappingProfile",
    "MappingProfileSave",
    "MappingProfileListResponse",
    # Catalog
    "CatalogProduct",
    "CatalogVariant",
    "Vendor",
    "OperationType",
    "CatalogOperation",
    "ApplySummary",
    # Preview / execute
    "Cell",
    "MatchStrategy",
    "MatchStatus",
    "MatchType",
    "BulkSampleAction",
    "NormalizedCandidate",
    "AffectedVariant",
    "MatchResult",
    "ColumnInfo",
    "ParseResponse",
    "MapRequest",
    "MapResponse",
    "PreviewRequest",
    "PreviewResponse",
    "ReviewRequest",
    "BulkSampleRequest",
    "ReviewResponse",
    "ExecuteRequest",
    "ExecuteResponse",
]
