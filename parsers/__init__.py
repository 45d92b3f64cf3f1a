"""
File parsers module.
"""

from parsers.csv_parser import (
    parse_csv_text,
    split_csv_line,
    decode_csv_bytes,
    TEMPLATE_HEADER,
)

__all__ = [
    "parse_csv_text",
    "split_csv_line",
    "decode_csv_bytes",
    "TEMPLATE_HEADER",
]
