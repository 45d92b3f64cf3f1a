"""
Duplicate collapsing for mapping records.

Last occurrence wins. Output keeps the position where each key was first
seen. Duplicates are logged and counted, never treated as errors.
"""

from dataclasses import dataclass, field
from typing import Optional
import structlog

from models.channel_mapping import ChannelSkuMappingCreate

logger = structlog.get_logger(__name__)


@dataclass
class DedupResult:
    """Deduplicated records plus one note per collapsed duplicate."""
    records: list[ChannelSkuMappingCreate] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.duplicates)


def deduplicate(
    records: list[ChannelSkuMappingCreate],
    scope: str = "upload",
    batch: Optional[int] = None
) -> DedupResult:
    """
    Keep one record per (channel_sku, channel_name).

    Args:
        records: Records in file order
        scope: "upload" or "batch", used only for logging
        batch: 1-based batch number when scope is "batch"

    Returns:
        DedupResult
    """
    unique: dict[tuple[str, str], ChannelSkuMappingCreate] = {}
    duplicates: list[str] = []

    for record in records:
        if record.key in unique:
            duplicates.append(f"Duplicate: {record.channel_sku} on {record.channel_name}")
        # Reassigning an existing key keeps its original position
        unique[record.key] = record

    if duplicates:
        logger.warning(
            "duplicates_collapsed",
            scope=scope,
            batch=batch,
            count=len(duplicates),
            sample=duplicates[:5]
        )

    return DedupResult(records=list(unique.values()), duplicates=duplicates)
