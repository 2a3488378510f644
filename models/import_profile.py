"""
Mapping profile schemas.

A profile remembers which spreadsheet column feeds which catalog field for
one vendor's price-list layout, plus the defaults applied to new products.
"""

from pydantic import Field, NonNegativeInt, field_validator
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


class FieldKey(str, Enum):
    """Target catalog fields a column can be mapped to."""
    MANUFACTURER = "manufacturer"
    PRODUCT_NAME = "product_name"
    VARIANT_NAME = "variant_name"
    SKU = "sku"
    SIZE = "size"
    CARTON_SIZE = "carton_size"
    UNIT_COST = "unit_cost"
    RETAIL_PRICE = "retail_price"


FIELD_LABELS: dict[FieldKey, str] = {
    FieldKey.MANUFACTURER: "Manufacturer",
    FieldKey.PRODUCT_NAME: "Product Name (Line)",
    FieldKey.VARIANT_NAME: "Variant Name (Color)",
    FieldKey.SKU: "SKU",
    FieldKey.SIZE: "Size",
    FieldKey.CARTON_SIZE: "Carton Size",
    FieldKey.UNIT_COST: "Unit Cost",
    FieldKey.RETAIL_PRICE: "Retail Price",
}

REQUIRED_FIELDS: tuple[FieldKey, ...] = (FieldKey.PRODUCT_NAME, FieldKey.UNIT_COST)

NUMERIC_FIELDS: frozenset[FieldKey] = frozenset({
    FieldKey.UNIT_COST,
    FieldKey.RETAIL_PRICE,
    FieldKey.CARTON_SIZE,
})

# Current shape of import_profiles.mapping_rules
MAPPING_RULES_VERSION = 2


class ImportDefaults(BaseSchema):
    """
    Values applied only when creating new catalog entries.

    Never used to overwrite an existing product or variant.
    """

    manufacturer_id: Optional[int] = Field(
        None,
        ge=1,
        description="Vendor id used as manufacturer when the row has none"
    )
    product_type: Optional[str] = Field(
        None,
        max_length=100,
        description="Product type for new products"
    )

    @field_validator("manufacturer_id", "product_type", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Saved profiles hold "" for an unselected dropdown."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class MappingRules(BaseSchema):
    """Column mapping plus defaults, as stored in mapping_rules."""

    version: int = Field(default=MAPPING_RULES_VERSION, ge=1)
    mapping: dict[FieldKey, int] = Field(
        default_factory=dict,
        description="Target field -> 0-based column index"
    )
    defaults: ImportDefaults = Field(default_factory=ImportDefaults)

    @field_validator("mapping")
    @classmethod
    def columns_non_negative(cls, v: dict[FieldKey, int]) -> dict[FieldKey, int]:
        for key, index in v.items():
            if index < 0:
                raise ValueError(f"Column index for {key.value} must be >= 0")
        return v


class MappingProfile(BaseSchema):
    """Saved mapping profile."""

    id: int = Field(..., description="Profile id")
    profile_name: str = Field(..., description="Unique, human-chosen name")
    mapping_rules: MappingRules = Field(default_factory=MappingRules)
    created_at: Optional[datetime] = None
    load_error: Optional[str] = Field(
        None,
        description="Set when stored rules could not be read; mapping is then empty"
    )


class MappingProfileSave(BaseSchema):
    """Create or overwrite a profile by name."""

    profile_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["Shaw Hardwood Price List"]
    )
    mapping: dict[FieldKey, NonNegativeInt] = Field(default_factory=dict)
    defaults: ImportDefaults = Field(default_factory=ImportDefaults)


class MappingProfileListResponse(BaseSchema):
    """List of saved profiles."""

    data: list[MappingProfile]
    total: int
