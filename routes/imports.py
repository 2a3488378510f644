"""
Catalog import API routes.

Flow: parse -> map -> preview -> review -> execute. Only execute writes to
the catalog; every other step can be repeated freely.
"""

from io import BytesIO

from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse
import structlog

from models.import_profile import (
    MappingProfile,
    MappingProfileSave,
    MappingProfileListResponse,
    ImportDefaults,
)
from models.import_preview import (
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
from parsers.spreadsheet_parser import parse_spreadsheet
from services.import_profile_service import get_import_profile_service
from services.import_service import get_import_service
from services.row_mapper_service import (
    describe_columns,
    map_rows,
    validate_mapping,
)
from services.import_review_service import (
    apply_bulk_action,
    review_stats,
    sort_for_display,
    start_review,
    status_counts,
)
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/import", tags=["Import"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# PROFILES
# ===================

@router.get("/profiles", response_model=MappingProfileListResponse)
async def list_profiles():
    """List saved mapping profiles, ordered by name."""
    try:
        service = get_import_profile_service()
        profiles = service.get_all()
        return MappingProfileListResponse(data=profiles, total=len(profiles))

    except Exception as e:
        return handle_error(e)


@router.get("/profiles/{profile_id}", response_model=MappingProfile)
async def get_profile(profile_id: int):
    """
    Get one mapping profile.

    A profile whose stored rules cannot be read comes back with an empty
    mapping and load_error set.

    Raises:
        404: Profile not found
    """
    try:
        service = get_import_profile_service()
        return service.get_by_id(profile_id)

    except Exception as e:
        return handle_error(e)


@router.post("/profiles", response_model=MappingProfile)
async def save_profile(data: MappingProfileSave):
    """Create a profile, or overwrite the existing one with the same name."""
    try:
        service = get_import_profile_service()
        return service.save(data)

    except Exception as e:
        return handle_error(e)


@router.delete("/profiles/{profile_id}")
async def delete_profile(profile_id: int):
    """
    Delete a mapping profile.

    Raises:
        404: Profile not found
    """
    try:
        service = get_import_profile_service()
        service.delete(profile_id)
        return {"success": True, "id": profile_id}

    except Exception as e:
        return handle_error(e)


# ===================
# PARSE / MAP
# ===================

@router.post("/parse", response_model=ParseResponse)
async def parse_file(file: UploadFile = File(..., description="Price list (.xlsx, .xls or .csv)")):
    """
    Read the first sheet of an uploaded price list into raw rows.

    Returns:
        rows: 2-D cell values, sheet order
        columns: Column letters with sample text for the mapping screen
    """
    try:
        content = await file.read()
        data = parse_spreadsheet(BytesIO(content), file.filename)

        return ParseResponse(
            file_name=file.filename or "",
            rows=data.rows,
            column_count=data.column_count,
            columns=describe_columns(data.rows)
        )

    except Exception as e:
        return handle_error(e)


@router.post("/map", response_model=MapResponse)
async def map_file_rows(data: MapRequest):
    """
    Apply a column mapping to raw rows.

    When mapping is omitted, the mapping and defaults of profile_id are used.

    Raises:
        422: Required fields not mapped, or neither mapping nor profile given
        404: Profile not found
    """
    try:
        mapping = data.mapping
        defaults = ImportDefaults()

        if mapping is None:
            if data.profile_id is None:
                raise ValidationError(
                    "Provide a column mapping or a profile_id",
                    code="MAPPING_REQUIRED"
                )
            profile = get_import_profile_service().get_by_id(data.profile_id)
            mapping = profile.mapping_rules.mapping
            defaults = profile.mapping_rules.defaults

        validate_mapping(mapping)
        candidates = map_rows(data.rows, mapping)

        return MapResponse(
            candidates=candidates,
            dropped_rows=len(data.rows) - len(candidates),
            defaults=defaults
        )

    except Exception as e:
        return handle_error(e)


# ===================
# PREVIEW / REVIEW
# ===================

@router.post("/preview", response_model=PreviewResponse)
async def preview_import(data: PreviewRequest):
    """
    Match candidates against the catalog. Read-only.

    Results are in source order; error rows come back skipped.

    Raises:
        413: Too many rows
    """
    try:
        service = get_import_service()
        results = service.preview(data.candidates, data.strategy, data.defaults)

        return PreviewResponse(
            results=start_review(results),
            stats=status_counts(results)
        )

    except Exception as e:
        return handle_error(e)


@router.post("/review", response_model=ReviewResponse)
async def start_import_review(data: ReviewRequest):
    """Initial review rows, sorted for display (error, new, update, match)."""
    try:
        rows = sort_for_display(start_review(data.results))
        return ReviewResponse(rows=rows, stats=review_stats(rows))

    except Exception as e:
        return handle_error(e)


@router.post("/review/bulk-sample", response_model=ReviewResponse)
async def bulk_sample(data: BulkSampleRequest):
    """
    Apply a bulk sample action: all, none or line_board.

    line_board adds one master sample row per included product line.
    """
    try:
        rows = apply_bulk_action(data.rows, data.action)

        logger.info(
            "bulk_sample_applied",
            action=data.action.value,
            rows_in=len(data.rows),
            rows_out=len(rows)
        )

        return ReviewResponse(rows=rows, stats=review_stats(rows))

    except Exception as e:
        return handle_error(e)


# ===================
# EXECUTE
# ===================

@router.post("/execute", response_model=ExecuteResponse)
async def execute_import(data: ExecuteRequest):
    """
    Apply the reviewed rows to the catalog in one transaction.

    Raises:
        409: confirm was not true
        422: No eligible rows
        500: Apply failed and was rolled back
    """
    try:
        service = get_import_service()
        return service.execute(
            data.results,
            data.strategy,
            data.defaults,
            confirmed=data.confirm
        )

    except Exception as e:
        return handle_error(e)
