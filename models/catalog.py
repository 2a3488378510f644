"""
Catalog rows read by the import matcher.

The products/variants/vendors schema is owned elsewhere; these models only
cover the columns the import reads.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class CatalogProduct(BaseSchema):
    """Product line (parent of variants)."""

    id: str
    name: str
    manufacturer_id: Optional[int] = None
    product_type: Optional[str] = None
    is_discontinued: bool = False


class CatalogVariant(BaseSchema):
    """Sellable configuration under a product line."""

    id: str
    product_id: str
    name: Optional[str] = None
    sku: Optional[str] = None
    size: Optional[str] = None
    unit_cost: Optional[float] = None
    retail_price: Optional[float] = None
    carton_size: Optional[float] = None
    is_master: bool = False
    has_sample: bool = False
    # Populated when the variant was found through a join on products
    product_name: Optional[str] = None

    @field_validator("unit_cost", "retail_price", "carton_size", mode="before")
    @classmethod
    def numeric_from_text(cls, v):
        """PostgREST returns NUMERIC columns as strings in some configurations."""
        if isinstance(v, str):
            return float(v) if v.strip() else None
        return v


class Vendor(BaseSchema):
    """Vendor directory entry."""

    id: int
    name: str
    default_product_type: Optional[str] = Field(None, description="Product type auto-filled for imports")


class OperationType(str, Enum):
    """Catalog write performed by an import batch."""
    UPDATE_VARIANT = "update_variant"
    CREATE_VARIANT = "create_variant"


class CatalogOperation(BaseModel):
    """
    One write in an import batch.

    Batches are applied in list order inside a single transaction. Unset
    (None) fields are left out of the payload, so an update never touches a
    column the spreadsheet did not supply.
    """

    op: OperationType
    source_row_index: Optional[int] = None

    # update_variant
    variant_id: Optional[str] = None

    # create_variant: product_id when the line is known, else find-or-create by name
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    manufacturer_id: Optional[int] = None
    product_type: Optional[str] = None
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    is_master: Optional[bool] = None

    # both
    size: Optional[str] = None
    unit_cost: Optional[float] = None
    retail_price: Optional[float] = None
    carton_size: Optional[float] = None
    has_sample: Optional[bool] = None

    def to_payload(self) -> dict:
        """JSON object passed to the apply function."""
        return self.model_dump(mode="json", exclude_none=True)


class ApplySummary(BaseModel):
    """Counts returned by an applied batch."""
    updates: int = 0
    created: int = 0
    products_created: int = 0
