"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    StoredRowMixin,
)
from models.channel_mapping import (
    MappingStatus,
    ChannelSkuMappingCreate,
    ChannelSkuMappingUpdate,
    ChannelSkuMappingResponse,
    ChannelSkuMappingListResponse,
    PreviewRow,
    PreviewResponse,
    UploadProgress,
    UploadState,
    UploadOutcome,
)

__all__ = [
    # Base
    "BaseSchema",
    "StoredRowMixin",

    # Channel SKU mappings
    "MappingStatus",
    "ChannelSkuMappingCreate",
    "ChannelSkuMappingUpdate",
    "ChannelSkuMappingResponse",
    "ChannelSkuMappingListResponse",
    "PreviewRow",
    "PreviewResponse",
    "UploadProgress",
    "UploadState",
    "UploadOutcome",
]
