"""
Batched upsert of channel SKU mappings.

Records are written in fixed-size batches with one upsert call per batch,
conflicting on (channel_sku, channel_name). Batches run one after another;
a failed batch is recorded and the next batch still runs. Batches already
written are never rolled back.
"""

from dataclasses import dataclass, field
from math import ceil
from typing import Callable, Iterator, Optional
import structlog

from config import get_supabase_client, settings
from models.channel_mapping import ChannelSkuMappingCreate, UploadProgress
from services.deduplicator import deduplicate
from utils.store_errors import (
    CHECK_VIOLATION,
    FOREIGN_KEY_VIOLATION,
    INVALID_TEXT_REPRESENTATION,
    error_code,
    error_message,
    is_uniqueness_conflict,
)

logger = structlog.get_logger(__name__)

CONFLICT_TARGET = "channel_sku,channel_name"

ProgressCallback = Callable[[UploadProgress], None]


def partition(
    records: list[ChannelSkuMappingCreate],
    size: int
) -> Iterator[list[ChannelSkuMappingCreate]]:
    """Consecutive slices of at most `size` records."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for start in range(0, len(records), size):
        yield records[start:start + size]


def count_batches(total: int, size: int) -> int:
    return ceil(total / size) if total else 0


def notify_progress(on_progress: Optional[ProgressCallback], progress: UploadProgress) -> None:
    """Report progress; a failing callback is logged and never stops the upload."""
    if on_progress is None:
        return
    try:
        on_progress(progress)
    except Exception as e:
        logger.error(
            "progress_callback_failed",
            batch=progress.current_batch,
            error=str(e),
            error_type=type(e).__name__
        )


def describe_batch_error(batch_number: int, exc: Exception) -> str:
    """
    Turn a failed batch upsert into a readable message.

    Known constraint codes get a specific hint instead of the raw store
    message.
    """
    code = error_code(exc)
    prefix = f"Batch {batch_number}"

    if code == FOREIGN_KEY_VIOLATION:
        return (
            f"{prefix}: Foreign key constraint violation. "
            "Ensure all master_sku values exist in the products table."
        )
    if code == CHECK_VIOLATION:
        return (
            f"{prefix}: Status constraint violation. "
            "Status must be 'Active' or 'Inactive'."
        )
    if code == INVALID_TEXT_REPRESENTATION:
        return (
            f"{prefix}: Invalid data format. "
            "Check for special characters or invalid values."
        )
    if code:
        return f"{prefix}: {error_message(exc)} (Code: {code})"
    return f"{prefix}: Unexpected error - {error_message(exc)}"


@dataclass
class UpsertSummary:
    """Totals across all batches."""
    processed_count: int = 0
    total_batches: int = 0
    failed_batches: int = 0
    errors: list[str] = field(default_factory=list)


class BatchUpserter:
    """
    Writes deduplicated mappings to the mappings table.

    Usage:
        upserter = BatchUpserter()
        summary = upserter.upsert_all(records, on_progress=print)
    """

    def __init__(
        self,
        db=None,
        table: Optional[str] = None,
        batch_size: Optional[int] = None
    ):
        self.db = db if db is not None else get_supabase_client()
        self.table = table or settings.mappings_table
        self.batch_size = batch_size or settings.upload_batch_size

    def _upsert(self, rows: list[dict]):
        return (
            self.db.table(self.table)
            .upsert(rows, on_conflict=CONFLICT_TARGET, ignore_duplicates=False)
            .execute()
        )

    def upsert_all(
        self,
        records: list[ChannelSkuMappingCreate],
        on_progress: Optional[ProgressCallback] = None
    ) -> UpsertSummary:
        """
        Upsert every record in batches.

        Args:
            records: Records, ideally already deduplicated
            on_progress: Called after each batch with running totals

        Returns:
            UpsertSummary with success count and collected errors
        """
        total_batches = count_batches(len(records), self.batch_size)
        summary = UpsertSummary(total_batches=total_batches)

        logger.info(
            "batch_upsert_started",
            records=len(records),
            batches=total_batches,
            batch_size=self.batch_size
        )

        for index, batch in enumerate(partition(records, self.batch_size)):
            batch_number = index + 1
            processed, errors = self.upsert_batch(batch, batch_number)

            summary.processed_count += processed
            if errors:
                summary.failed_batches += 1
                summary.errors.extend(errors)

            notify_progress(on_progress, UploadProgress(
                current_batch=batch_number,
                total_batches=total_batches,
                processed_records=summary.processed_count,
                total_records=len(records)
            ))

        logger.info(
            "batch_upsert_complete",
            processed=summary.processed_count,
            failed_batches=summary.failed_batches,
            errors=len(summary.errors)
        )

        return summary

    def upsert_batch(
        self,
        batch: list[ChannelSkuMappingCreate],
        batch_number: int
    ) -> tuple[int, list[str]]:
        """
        Upsert one batch.

        On a uniqueness conflict the batch is retried one record at a time.

        Returns:
            (records written, error strings)
        """
        unique = deduplicate(batch, scope="batch", batch=batch_number).records
        rows = [record.to_row() for record in unique]

        logger.debug("upserting_batch", batch=batch_number, records=len(rows))

        try:
            result = self._upsert(rows)
        except Exception as e:
            logger.error(
                "batch_upsert_failed",
                batch=batch_number,
                code=error_code(e),
                error=error_message(e)
            )
            if is_uniqueness_conflict(e):
                return self._upsert_individually(rows, batch_number)
            return 0, [describe_batch_error(batch_number, e)]

        processed = len(result.data) if result.data else len(rows)
        logger.info("batch_upserted", batch=batch_number, count=processed)
        return processed, []

    def _upsert_individually(
        self,
        rows: list[dict],
        batch_number: int
    ) -> tuple[int, list[str]]:
        logger.info("batch_individual_fallback", batch=batch_number, records=len(rows))

        succeeded = 0
        record_errors: list[str] = []

        for row in rows:
            try:
                self._upsert([row])
                succeeded += 1
            except Exception as e:
                record_errors.append(
                    f"Record {row['channel_sku']} on {row['channel_name']}: {error_message(e)}"
                )

        logger.info(
            "batch_individual_complete",
            batch=batch_number,
            succeeded=succeeded,
            failed=len(record_errors)
        )

        if not record_errors:
            return succeeded, []

        summary = (
            f"Batch {batch_number}: {len(record_errors)} records failed "
            "during individual processing"
        )
        return succeeded, [summary, *record_errors]
