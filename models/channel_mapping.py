"""
Channel SKU mapping schemas for validation and serialization.

A mapping says: on sales channel `channel_name`, the listing `channel_sku`
is our product `master_sku`. The pair (channel_sku, channel_name) is unique.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.base import BaseSchema, StoredRowMixin


class MappingStatus(str, Enum):
    """Mapping lifecycle status."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class ChannelSkuMappingCreate(BaseSchema):
    """
    A single mapping ready to be written.

    Built from one CSV row or one API request. Frozen: duplicates are
    replaced, never edited in place.
    """

    model_config = ConfigDict(frozen=True)

    channel_sku: str = Field(
        ...,
        min_length=1,
        description="SKU as listed on the sales channel",
        examples=["AMZ-001"]
    )
    channel_name: str = Field(
        ...,
        min_length=1,
        description="Sales channel / marketplace name",
        examples=["Amazon"]
    )
    master_sku: str = Field(
        ...,
        min_length=1,
        description="SKU in the products table",
        examples=["PROD-001"]
    )
    status: MappingStatus = Field(
        default=MappingStatus.ACTIVE,
        description="Active or Inactive"
    )

    @property
    def key(self) -> tuple[str, str]:
        """Identity key used for dedup and upsert conflicts."""
        return (self.channel_sku, self.channel_name)

    def to_row(self) -> dict:
        """Plain dict with only the business columns (no id/timestamps)."""
        return self.model_dump(mode="json")


class ChannelSkuMappingUpdate(BaseSchema):
    """
    Update existing mapping.

    All fields optional - only provided fields are updated.
    """

    channel_sku: Optional[str] = Field(None, min_length=1)
    channel_name: Optional[str] = Field(None, min_length=1)
    master_sku: Optional[str] = Field(None, min_length=1)
    status: Optional[MappingStatus] = None


class ChannelSkuMappingResponse(BaseSchema, StoredRowMixin):
    """Mapping row as stored."""

    channel_sku: str
    channel_name: str
    master_sku: str
    status: MappingStatus


class ChannelSkuMappingListResponse(BaseSchema):
    """List of mappings with pagination."""

    data: list[ChannelSkuMappingResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ===================
# BULK UPLOAD
# ===================

class PreviewRow(BaseModel):
    """One previewed CSV row. Never persisted."""

    channel_sku: str = ""
    channel_name: str = ""
    master_sku: str = ""
    status: str = MappingStatus.ACTIVE.value
    is_valid: bool
    error: Optional[str] = None


class PreviewResponse(BaseModel):
    """Preview of the first rows of an upload file."""

    rows: list[PreviewRow]
    total_rows: int = Field(..., description="Data rows in the whole file")
    valid_count: int
    invalid_count: int


class UploadProgress(BaseModel):
    """Progress snapshot emitted after each batch."""

    current_batch: int
    total_batches: int
    processed_records: int
    total_records: int


class UploadState(str, Enum):
    """Bulk upload pipeline stages."""
    IDLE = "Idle"
    PARSING = "Parsing"
    VALIDATING = "Validating"
    KEY_CHECKING = "KeyChecking"
    DEDUPLICATING = "Deduplicating"
    BATCHING = "Batching"
    DONE = "Done"


UploadResult = Literal["success", "partial", "failed"]


class UploadOutcome(BaseModel):
    """
    Aggregate result of one bulk upload.

    success=True means errors is empty and processed_count equals the number
    of unique valid records submitted.
    """

    success: bool
    outcome: UploadResult
    message: str
    errors: list[str] = Field(default_factory=list)
    processed_count: int = 0
    duplicates_removed: int = 0
    total_batches: int = 0
    display_message: str = ""
