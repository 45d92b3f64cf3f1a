"""
CSV parser for channel SKU mapping uploads.

Expected columns: channel_sku, channel_name, master_sku, status (optional).
The first non-empty line is a header and is ignored.

Known limitation: lines are split naively on commas. Quoted commas and
embedded newlines are not supported.
"""

import structlog

from exceptions import CSVParseError, EmptyFileError

logger = structlog.get_logger(__name__)

TEMPLATE_HEADER = ["Channel_SKU", "Channel_Name", "Master_SKU", "Status"]


def decode_csv_bytes(data: bytes) -> str:
    """
    Decode uploaded bytes as UTF-8, dropping a BOM if Excel added one.

    Raises:
        CSVParseError: If the bytes are not valid UTF-8
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.warning("csv_decode_failed", error=str(e))
        raise CSVParseError(
            message="File must be UTF-8 encoded text",
            details={"position": e.start}
        )


def _clean_field(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def split_csv_line(line: str) -> list[str]:
    """
    Split one line into trimmed fields.

    '"AMZ-1", Amazon ,SKU-1' -> ['AMZ-1', 'Amazon', 'SKU-1']
    """
    return [_clean_field(part) for part in line.split(",")]


def non_empty_lines(text: str) -> list[str]:
    """All lines that are not blank, header included."""
    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


def parse_csv_text(text: str) -> list[list[str]]:
    """
    Parse raw CSV text into data rows.

    Args:
        text: Whole file contents

    Returns:
        One list of fields per data row, in file order. Column counts are
        not checked here.

    Raises:
        EmptyFileError: If there is no header plus at least one data row
    """
    lines = non_empty_lines(text)

    if len(lines) < 2:
        raise EmptyFileError(len(lines))

    rows = [split_csv_line(line) for line in lines[1:]]

    logger.debug("csv_parsed", data_rows=len(rows))

    return rows
