"""
Business logic services.

Each service handles one domain area.
"""

from services.channel_mapping_service import (
    ChannelMappingService,
    get_channel_mapping_service,
)
from services.bulk_upload_service import (
    BulkUploadService,
    get_bulk_upload_service,
)
from services.batch_upserter import BatchUpserter, UpsertSummary
from services.master_sku_checker import MasterSkuChecker, MasterSkuCheck
from services.deduplicator import deduplicate, DedupResult
from services.export_service import ExportService, get_export_service

__all__ = [
    "ChannelMappingService",
    "get_channel_mapping_service",
    "BulkUploadService",
    "get_bulk_upload_service",
    "BatchUpserter",
    "UpsertSummary",
    "MasterSkuChecker",
    "MasterSkuCheck",
    "deduplicate",
    "DedupResult",
    "ExportService",
    "get_export_service",
]
