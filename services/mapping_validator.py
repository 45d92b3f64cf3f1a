"""
Row validation for channel SKU mapping uploads.

The same checks back the upload preview (first rows only) and the full
upload (every row). No I/O happens here.
"""

from dataclasses import dataclass
from typing import Optional

from models.channel_mapping import (
    ChannelSkuMappingCreate,
    MappingStatus,
    PreviewRow,
    PreviewResponse,
)

MIN_COLUMNS = 3
VALID_STATUSES = [s.value for s in MappingStatus]

ERROR_INSUFFICIENT_COLUMNS = "Insufficient columns"
ERROR_MISSING_FIELDS = "Missing required fields"
ERROR_INVALID_STATUS = "Invalid status"


@dataclass
class RowValidation:
    """Outcome of validating one parsed row."""
    is_valid: bool
    channel_sku: str = ""
    channel_name: str = ""
    master_sku: str = ""
    status: str = MappingStatus.ACTIVE.value
    error: Optional[str] = None     # short reason, shown in the preview
    detail: Optional[str] = None    # full message, used in upload errors
    record: Optional[ChannelSkuMappingCreate] = None


def _column(fields: list[str], index: int) -> str:
    return fields[index].strip() if len(fields) > index else ""


def validate_row(fields: list[str]) -> RowValidation:
    """
    Classify one parsed row.

    Checks, in order: column count, required fields, status value. A
    missing or empty status column means Active; any other value must match
    Active/Inactive exactly.

    Args:
        fields: Fields from parse_csv_text()

    Returns:
        RowValidation; record is set only when the row is valid
    """
    channel_sku = _column(fields, 0)
    channel_name = _column(fields, 1)
    master_sku = _column(fields, 2)
    status = _column(fields, 3) or MappingStatus.ACTIVE.value

    result = RowValidation(
        is_valid=False,
        channel_sku=channel_sku,
        channel_name=channel_name,
        master_sku=master_sku,
        status=status,
    )

    if len(fields) < MIN_COLUMNS:
        result.error = ERROR_INSUFFICIENT_COLUMNS
        result.detail = (
            f"{ERROR_INSUFFICIENT_COLUMNS}. Expected 3-4 columns, got {len(fields)}"
        )
        return result

    if not channel_sku or not channel_name or not master_sku:
        result.error = ERROR_MISSING_FIELDS
        result.detail = (
            f'{ERROR_MISSING_FIELDS} (channel_sku: "{channel_sku}", '
            f'channel_name: "{channel_name}", master_sku: "{master_sku}")'
        )
        return result

    if status not in VALID_STATUSES:
        result.error = f"{ERROR_INVALID_STATUS} (must be Active or Inactive)"
        result.detail = (
            f"{ERROR_INVALID_STATUS} \"{status}\". Must be 'Active' or 'Inactive'"
        )
        return result

    result.is_valid = True
    result.record = ChannelSkuMappingCreate(
        channel_sku=channel_sku,
        channel_name=channel_name,
        master_sku=master_sku,
        status=MappingStatus(status),
    )
    return result


def validate_rows(rows: list[list[str]]) -> tuple[list[ChannelSkuMappingCreate], list[str]]:
    """
    Validate every data row of an upload.

    Row numbers in messages count the header as row 1, so the first data
    row is "Row 2".

    Returns:
        (valid records in file order, one error string per invalid row)
    """
    records: list[ChannelSkuMappingCreate] = []
    errors: list[str] = []

    for index, fields in enumerate(rows):
        check = validate_row(fields)
        if check.is_valid:
            records.append(check.record)
        else:
            errors.append(f"Row {index + 2}: {check.detail}")

    return records, errors


def build_preview(rows: list[list[str]], limit: int = 30) -> PreviewResponse:
    """
    Validate the first `limit` data rows for display.

    Args:
        rows: All data rows from parse_csv_text()
        limit: How many rows to include

    Returns:
        PreviewResponse with per-row validity
    """
    preview = []
    for fields in rows[:limit]:
        check = validate_row(fields)
        preview.append(PreviewRow(
            channel_sku=check.channel_sku,
            channel_name=check.channel_name,
            master_sku=check.master_sku,
            status=check.status,
            is_valid=check.is_valid,
            error=check.error,
        ))

    valid_count = sum(1 for row in preview if row.is_valid)

    return PreviewResponse(
        rows=preview,
        total_rows=len(rows),
        valid_count=valid_count,
        invalid_count=len(preview) - valid_count,
    )
