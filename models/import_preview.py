"""
Import pipeline schemas: candidates, match results, review and execute payloads.

Flow:
    raw rows -> NormalizedCandidate -> MatchResult (preview)
    MatchResult (reviewed) -> execute -> ExecuteResponse
"""

from pydantic import BaseModel, Field, NonNegativeInt, computed_field, field_validator, model_validator
from typing import Optional, Union
from enum import Enum

from models.base import BaseSchema, FrozenSchema
from models.import_profile import FieldKey, ImportDefaults


# One spreadsheet cell as received from the sheet reader
Cell = Optional[Union[int, float, str]]


class MatchStrategy(str, Enum):
    """How candidates are matched against the catalog. Chosen once per run."""
    VARIANT_MATCH = "variant_match"
    PRODUCT_LINE_MATCH = "product_line_match"


class MatchStatus(str, Enum):
    """Classification of one candidate."""
    NEW = "new"
    UPDATE = "update"
    MATCH = "match"
    ERROR = "error"


class MatchType(str, Enum):
    """Which predicate produced the match."""
    SKU = "sku"
    VARIANT_NAME = "variant_name"
    PRODUCT_LINE = "product_line"


class BulkSampleAction(str, Enum):
    """Bulk sample-flag operations on the review set."""
    ALL = "all"
    NONE = "none"
    LINE_BOARD = "line_board"


class NormalizedCandidate(FrozenSchema):
    """
    One spreadsheet row after mapping and cleaning.

    Immutable: review edits live on MatchResult, never here.
    original_row_index is None only for synthetic rows (line board masters).
    """

    original_row_index: Optional[int] = Field(None, ge=0)
    manufacturer: Optional[str] = None
    product_name: str = Field(..., min_length=1)
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    size: Optional[str] = None
    carton_size: Optional[float] = Field(None, allow_inf_nan=False)
    unit_cost: Optional[float] = Field(None, allow_inf_nan=False)
    retail_price: Optional[float] = Field(None, allow_inf_nan=False)
    invalid_fields: tuple[FieldKey, ...] = Field(
        default=(),
        description="Numeric fields whose cell held text that did not parse"
    )

    @field_validator(
        "manufacturer", "variant_name", "sku", "size",
        "carton_size", "unit_cost", "retail_price",
        mode="before"
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AffectedVariant(BaseSchema):
    """An existing variant touched (or confirmed unchanged) by a candidate."""

    variant_id: str
    variant_name: Optional[str] = None
    old_cost: Optional[float] = None
    new_cost: Optional[float] = None
    old_retail: Optional[float] = None
    new_retail: Optional[float] = None
    changes: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def cost_delta(self) -> Optional[float]:
        """new - old, for display."""
        if self.new_cost is None or self.old_cost is None:
            return None
        return round(self.new_cost - self.old_cost, 4)


class MatchResult(BaseSchema):
    """
    Preview outcome for one candidate plus its review state.

    The review fields (is_skipped, has_sample, product_name, is_master) are
    edited by the review stage and are not persisted.
    """

    candidate: NormalizedCandidate
    status: MatchStatus
    match_type: Optional[MatchType] = None
    existing_product_id: Optional[str] = Field(
        None,
        description="Matched product line, also set for new variants under an existing product"
    )
    affected_variants: list[AffectedVariant] = Field(default_factory=list)
    message: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)

    # Review state
    is_skipped: bool = False
    has_sample: bool = False
    product_name: Optional[str] = Field(None, description="User override of the product name")
    is_master: bool = False

    @model_validator(mode="after")
    def error_needs_message(self):
        if self.status == MatchStatus.ERROR and not self.message:
            raise ValueError("message is required when status is error")
        return self

    @property
    def effective_product_name(self) -> str:
        """Name used at execute time: the edited override, else the sheet value."""
        return self.product_name or self.candidate.product_name


# ===================
# REQUEST / RESPONSE
# ===================

class ColumnInfo(BaseModel):
    """One selectable spreadsheet column."""
    index: int
    label: str
    sample: Optional[str] = None


class ParseResponse(BaseModel):
    """Raw 2-D sheet data returned by the upload endpoint."""
    file_name: str
    rows: list[list[Cell]]
    column_count: int
    columns: list[ColumnInfo]


class MapRequest(BaseSchema):
    """Apply a column mapping (or a saved profile's mapping) to raw rows."""
    rows: list[list[Cell]]
    mapping: Optional[dict[FieldKey, NonNegativeInt]] = None
    profile_id: Optional[int] = None


class MapResponse(BaseModel):
    candidates: list[NormalizedCandidate]
    dropped_rows: int = Field(..., description="Rows removed for having no product name")
    defaults: ImportDefaults = Field(default_factory=ImportDefaults)


class PreviewRequest(BaseSchema):
    candidates: list[NormalizedCandidate]
    strategy: MatchStrategy = MatchStrategy.VARIANT_MATCH
    defaults: ImportDefaults = Field(default_factory=ImportDefaults)


class PreviewResponse(BaseModel):
    results: list[MatchResult]
    stats: dict[str, int]


class ReviewRequest(BaseSchema):
    results: list[MatchResult]


class BulkSampleRequest(BaseSchema):
    rows: list[MatchResult]
    action: BulkSampleAction


class ReviewResponse(BaseModel):
    rows: list[MatchResult]
    stats: dict[str, int]


class ExecuteRequest(BaseSchema):
    results: list[MatchResult]
    strategy: MatchStrategy = MatchStrategy.VARIANT_MATCH
    defaults: ImportDefaults = Field(default_factory=ImportDefaults)
    confirm: bool = Field(False, description="Must be true; execute mutates the catalog")


class ExecuteResponse(BaseModel):
    success: bool = True
    updates: int = Field(..., ge=0, description="Variant updates applied")
    created: int = Field(..., ge=0, description="Variants created")
    products_created: int = Field(0, ge=0, description="New product lines created")
