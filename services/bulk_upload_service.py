"""
Bulk upload of channel SKU mappings from CSV.

Pipeline: parse -> validate -> check master SKUs -> deduplicate -> batch
upsert. Validation and master SKU failures reject the whole file before any
write. Batch failures are collected and reported as a partial upload.

upload() never raises; every failure ends up in the returned UploadOutcome.
"""

from typing import Callable, Optional, Union
import structlog

from config import get_supabase_client, settings
from exceptions import CSVParseError, InvalidFileTypeError
from models.channel_mapping import (
    PreviewResponse,
    UploadOutcome,
    UploadProgress,
    UploadState,
)
from parsers.csv_parser import decode_csv_bytes, parse_csv_text
from services.batch_upserter import (
    BatchUpserter,
    ProgressCallback,
    count_batches,
    notify_progress,
)
from services.deduplicator import deduplicate
from services.mapping_validator import build_preview, validate_rows
from services.master_sku_checker import MasterSkuChecker
from utils.store_errors import error_message

logger = structlog.get_logger(__name__)

# Errors shown inline before truncating to "... and N more"
DISPLAY_ERROR_LIMIT = 3


def format_display_message(message: str, errors: list[str]) -> str:
    """
    Build the user-facing notification text.

    Up to three errors are listed in full; beyond that the first three are
    shown with a count of the rest.
    """
    if not errors:
        return message
    if len(errors) <= DISPLAY_ERROR_LIMIT:
        return f"{message}\n\nErrors:\n" + "\n".join(errors)
    shown = "\n".join(errors[:DISPLAY_ERROR_LIMIT])
    remaining = len(errors) - DISPLAY_ERROR_LIMIT
    return (
        f"{message}\n\nFirst {DISPLAY_ERROR_LIMIT} errors:\n{shown}\n\n"
        f"... and {remaining} more errors. Check the logs for full details."
    )


def describe_unexpected_error(exc: Exception) -> str:
    """Classify an unexpected failure into a message a user can act on."""
    message = error_message(exc) or "Failed to process bulk upload"
    lowered = message.lower()

    if "network" in lowered or "fetch" in lowered or "timed out" in lowered:
        return "Network error: Please check your internet connection and try again."
    if "permission" in lowered or "auth" in lowered:
        return "Authentication error: Please ensure you are logged in and have proper permissions."
    if "database" in lowered or "connection" in lowered:
        return "Database connection error: Please try again later or contact support."
    return message


def is_csv_filename(filename: Optional[str]) -> bool:
    return bool(filename) and filename.lower().endswith(".csv")


class BulkUploadService:
    """
    Runs CSV uploads of channel SKU mappings.

    Usage:
        service = get_bulk_upload_service()
        outcome = service.upload("mappings.csv", content)
    """

    def __init__(
        self,
        db=None,
        checker: Optional[MasterSkuChecker] = None,
        upserter: Optional[BatchUpserter] = None,
        preview_limit: Optional[int] = None
    ):
        self.db = db if db is not None else get_supabase_client()
        self.checker = checker or MasterSkuChecker(db=self.db)
        self.upserter = upserter or BatchUpserter(db=self.db)
        self.preview_limit = preview_limit or settings.preview_row_limit

    # ===================
    # PREVIEW
    # ===================

    def preview(self, filename: Optional[str], content: Union[bytes, str]) -> PreviewResponse:
        """
        Validate the first rows of a file for display.

        Raises:
            InvalidFileTypeError: If the file is not a .csv
            CSVParseError: If the file cannot be decoded
            EmptyFileError: If there is no header plus data row
        """
        if not is_csv_filename(filename):
            raise InvalidFileTypeError(filename)

        text = decode_csv_bytes(content) if isinstance(content, bytes) else content
        rows = parse_csv_text(text)
        preview = build_preview(rows, limit=self.preview_limit)

        logger.info(
            "upload_preview_built",
            filename=filename,
            total_rows=preview.total_rows,
            previewed=len(preview.rows),
            invalid=preview.invalid_count
        )

        return preview

    # ===================
    # UPLOAD
    # ===================

    def upload(
        self,
        filename: Optional[str],
        content: Union[bytes, str],
        skip_master_sku_validation: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        on_refresh: Optional[Callable[[], None]] = None
    ) -> UploadOutcome:
        """
        Run the full upload pipeline.

        Args:
            filename: Original file name, must end in .csv
            content: Raw bytes or already-decoded text
            skip_master_sku_validation: Skip the products table check
            on_progress: Called with UploadProgress before and after each batch
            on_refresh: Called once after all batches, to reload mapping views

        Returns:
            UploadOutcome (success, partial or failed)
        """
        logger.info(
            "bulk_upload_started",
            filename=filename,
            skip_master_sku_validation=skip_master_sku_validation
        )

        try:
            return self._run(
                filename,
                content,
                skip_master_sku_validation,
                on_progress,
                on_refresh
            )
        except Exception as e:
            logger.error(
                "bulk_upload_exception",
                error=str(e),
                error_type=type(e).__name__
            )
            detail = describe_unexpected_error(e)
            return self._failed(detail, [detail])

    def _run(
        self,
        filename: Optional[str],
        content: Union[bytes, str],
        skip_master_sku_validation: bool,
        on_progress: Optional[ProgressCallback],
        on_refresh: Optional[Callable[[], None]]
    ) -> UploadOutcome:
        if not is_csv_filename(filename):
            error = InvalidFileTypeError(filename)
            return self._failed(error.message, [error.message])

        # Parsing
        self._enter(UploadState.PARSING)
        try:
            text = decode_csv_bytes(content) if isinstance(content, bytes) else content
            rows = parse_csv_text(text)
        except CSVParseError as e:
            return self._failed(e.message, [e.message])

        # Validating
        self._enter(UploadState.VALIDATING, rows=len(rows))
        records, row_errors = validate_rows(rows)

        if row_errors:
            return self._failed(
                f"Found {len(row_errors)} validation errors in upload file",
                row_errors
            )

        # Key checking
        if not skip_master_sku_validation:
            self._enter(UploadState.KEY_CHECKING)
        check = self.checker.check(records, skip=skip_master_sku_validation)

        if not check.passed:
            if check.lookup_error is not None:
                message = f"Failed to validate master SKUs: {check.lookup_error}"
            else:
                message = (
                    f"Found {len(check.missing)} master SKUs that don't exist "
                    "in the products table"
                )
            return self._failed(message, check.errors)

        # Deduplicating
        self._enter(UploadState.DEDUPLICATING, records=len(records))
        deduped = deduplicate(records, scope="upload")
        unique_records = deduped.records

        # Batching
        total_batches = count_batches(len(unique_records), self.upserter.batch_size)
        self._enter(
            UploadState.BATCHING,
            records=len(unique_records),
            batches=total_batches,
            duplicates_removed=deduped.removed
        )

        notify_progress(on_progress, UploadProgress(
            current_batch=0,
            total_batches=total_batches,
            processed_records=0,
            total_records=len(unique_records)
        ))

        summary = self.upserter.upsert_all(unique_records, on_progress=on_progress)

        self._refresh(on_refresh)

        duplicate_note = ""
        if deduped.removed:
            duplicate_note = f"{deduped.removed} duplicates were automatically removed"

        if summary.errors:
            message = (
                f"Partial upload completed. {summary.processed_count} records processed, "
                f"but {summary.failed_batches} batches failed."
            )
            if duplicate_note:
                message += f" {duplicate_note}."
            return self._done(
                UploadOutcome(
                    success=False,
                    outcome="partial",
                    message=message,
                    errors=summary.errors,
                    processed_count=summary.processed_count,
                    duplicates_removed=deduped.removed,
                    total_batches=summary.total_batches,
                )
            )

        message = (
            f"Successfully processed {summary.processed_count} mappings "
            f"in {summary.total_batches} batches"
        )
        if duplicate_note:
            message += f" ({duplicate_note})"
        return self._done(
            UploadOutcome(
                success=True,
                outcome="success",
                message=message,
                processed_count=summary.processed_count,
                duplicates_removed=deduped.removed,
                total_batches=summary.total_batches,
            )
        )

    # ===================
    # HELPERS
    # ===================

    def _enter(self, state: UploadState, **context) -> None:
        logger.debug("bulk_upload_state", state=state.value, **context)

    def _refresh(self, on_refresh: Optional[Callable[[], None]]) -> None:
        if on_refresh is None:
            return
        try:
            on_refresh()
        except Exception as e:
            # Batches are already committed; the outcome stands
            logger.error("mapping_refresh_failed", error=str(e))

    def _failed(self, message: str, errors: list[str]) -> UploadOutcome:
        return self._done(
            UploadOutcome(
                success=False,
                outcome="failed",
                message=message,
                errors=errors,
            )
        )

    def _done(self, outcome: UploadOutcome) -> UploadOutcome:
        outcome.display_message = format_display_message(outcome.message, outcome.errors)
        self._enter(UploadState.DONE, outcome=outcome.outcome)

        if outcome.errors:
            logger.error(
                "bulk_upload_errors",
                outcome=outcome.outcome,
                count=len(outcome.errors),
                errors=outcome.errors
            )

        logger.info(
            "bulk_upload_finished",
            outcome=outcome.outcome,
            processed=outcome.processed_count,
            duplicates_removed=outcome.duplicates_removed
        )
        return outcome


# Singleton instance for convenience
_bulk_upload_service: Optional[BulkUploadService] = None


def get_bulk_upload_service() -> BulkUploadService:
    """Get or create BulkUploadService instance."""
    global _bulk_upload_service
    if _bulk_upload_service is None:
        _bulk_upload_service = BulkUploadService()
    return _bulk_upload_service
