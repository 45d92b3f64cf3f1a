"""
Channel SKU mapping API routes.

CRUD over single mappings, CSV/Excel downloads, and the bulk CSV upload
(preview + upload).
"""

from fastapi import APIRouter, Query, UploadFile, File, Form
from fastapi.responses import JSONResponse, Response
from typing import Optional
import structlog

from models.channel_mapping import (
    ChannelSkuMappingCreate,
    ChannelSkuMappingUpdate,
    ChannelSkuMappingResponse,
    ChannelSkuMappingListResponse,
    MappingStatus,
    PreviewResponse,
    UploadOutcome,
)
from services.channel_mapping_service import get_channel_mapping_service
from services.bulk_upload_service import get_bulk_upload_service
from services.export_service import (
    get_export_service,
    TEMPLATE_FILENAME,
    EXPORT_FILENAME,
    EXPORT_XLSX_FILENAME,
)
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


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


def attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


# ===================
# DOWNLOADS
# ===================

@router.get("/template")
async def download_template():
    """Upload template with the expected header and three example rows."""
    content = get_export_service().template_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers=attachment(TEMPLATE_FILENAME)
    )


@router.get("/export")
async def export_mappings(
    search: Optional[str] = Query(None, description="Search SKUs and channel"),
    status: Optional[MappingStatus] = Query(None, description="Filter by status"),
    channel: Optional[str] = Query(None, description="Filter by channel name")
):
    """Export matching mappings as CSV."""
    try:
        mappings = get_channel_mapping_service().get_all_unpaginated(
            search=search,
            status=status,
            channel=channel
        )
        content = get_export_service().mappings_csv(mappings)
        return Response(
            content=content,
            media_type="text/csv",
            headers=attachment(EXPORT_FILENAME)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/export/xlsx")
async def export_mappings_excel(
    search: Optional[str] = Query(None, description="Search SKUs and channel"),
    status: Optional[MappingStatus] = Query(None, description="Filter by status"),
    channel: Optional[str] = Query(None, description="Filter by channel name")
):
    """Export matching mappings as an Excel workbook."""
    try:
        mappings = get_channel_mapping_service().get_all_unpaginated(
            search=search,
            status=status,
            channel=channel
        )
        workbook = get_export_service().mappings_excel(mappings)
        return Response(
            content=workbook.getvalue(),
            media_type=XLSX_MEDIA_TYPE,
            headers=attachment(EXPORT_XLSX_FILENAME)
        )

    except Exception as e:
        return handle_error(e)


# ===================
# BULK UPLOAD
# ===================

@router.post("/upload/preview", response_model=PreviewResponse)
async def preview_upload(file: UploadFile = File(...)):
    """
    Validate the first rows of a CSV without writing anything.

    Raises:
        422: Not a CSV, not UTF-8, or no data rows
    """
    try:
        contents = await file.read()
        return get_bulk_upload_service().preview(file.filename, contents)

    except Exception as e:
        return handle_error(e)


@router.post("/upload", response_model=UploadOutcome)
def upload_mappings(
    file: UploadFile = File(...),
    skip_master_sku_validation: bool = Form(False)
):
    """
    Bulk upsert mappings from a CSV file.

    Sync handler: the batched writes block, so FastAPI runs it in its
    threadpool.

    Always returns an UploadOutcome; check `outcome` for success, partial
    or failed.
    """
    contents = file.file.read()

    outcome = get_bulk_upload_service().upload(
        file.filename,
        contents,
        skip_master_sku_validation=skip_master_sku_validation
    )

    logger.info(
        "upload_request_complete",
        filename=file.filename,
        outcome=outcome.outcome,
        processed=outcome.processed_count
    )

    return outcome


# ===================
# LIST ROUTES
# ===================

@router.get("", response_model=ChannelSkuMappingListResponse)
async def list_mappings(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(200, ge=1, le=1000, description="Items per page"),
    search: Optional[str] = Query(None, description="Search SKUs and channel"),
    status: Optional[MappingStatus] = Query(None, description="Filter by status"),
    channel: Optional[str] = Query(None, description="Filter by channel name")
):
    """
    List mappings with optional filters.

    Returns paginated list, newest first.
    """
    try:
        service = get_channel_mapping_service()

        mappings, total = service.get_all(
            page=page,
            page_size=page_size,
            search=search,
            status=status,
            channel=channel
        )

        total_pages = (total + page_size - 1) // page_size

        return ChannelSkuMappingListResponse(
            data=mappings,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages
        )

    except Exception as e:
        return handle_error(e)


@router.get("/all", response_model=list[ChannelSkuMappingResponse])
async def list_all_mappings(
    search: Optional[str] = Query(None, description="Search SKUs and channel"),
    status: Optional[MappingStatus] = Query(None, description="Filter by status"),
    channel: Optional[str] = Query(None, description="Filter by channel name")
):
    """List every matching mapping without pagination."""
    try:
        return get_channel_mapping_service().get_all_unpaginated(
            search=search,
            status=status,
            channel=channel
        )

    except Exception as e:
        return handle_error(e)


@router.get("/channels", response_model=list[str])
async def list_channels():
    """Distinct channel names for filter dropdowns."""
    try:
        return get_channel_mapping_service().get_channels()

    except Exception as e:
        return handle_error(e)


# ===================
# SINGLE MAPPING ROUTES
# ===================

@router.get("/{mapping_id}", response_model=ChannelSkuMappingResponse)
async def get_mapping(mapping_id: int):
    """
    Get a single mapping by ID.

    Raises:
        404: Mapping not found
    """
    try:
        return get_channel_mapping_service().get_by_id(mapping_id)

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=ChannelSkuMappingResponse, status_code=201)
async def create_mapping(data: ChannelSkuMappingCreate):
    """
    Create a new mapping.

    Raises:
        409: Channel SKU already mapped on this channel
        422: Validation error
    """
    try:
        return get_channel_mapping_service().create(data)

    except Exception as e:
        return handle_error(e)


@router.patch("/{mapping_id}", response_model=ChannelSkuMappingResponse)
async def update_mapping(mapping_id: int, data: ChannelSkuMappingUpdate):
    """
    Update an existing mapping.

    Only provided fields are updated.

    Raises:
        404: Mapping not found
        409: New channel SKU / channel pair already exists
    """
    try:
        return get_channel_mapping_service().update(mapping_id, data)

    except Exception as e:
        return handle_error(e)


@router.delete("/{mapping_id}", status_code=204)
async def delete_mapping(mapping_id: int):
    """
    Delete a mapping.

    Raises:
        404: Mapping not found
    """
    try:
        get_channel_mapping_service().delete(mapping_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)
