"""
Helpers for reading Supabase/PostgREST errors.

supabase-py raises postgrest APIError objects that carry a Postgres (or
PostgREST) error code and message. Code lists here are the ones the upload
pipeline reacts to.
"""

from typing import Optional

# Uniqueness conflicts. 21000 is "ON CONFLICT DO UPDATE command cannot affect
# row a second time", raised when one upsert payload repeats a conflict key.
UNIQUENESS_CONFLICT_CODES = frozenset({"21000", "23505"})

FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"
INVALID_TEXT_REPRESENTATION = "22P02"

# 42P01 from Postgres, PGRST205 from PostgREST's schema cache.
MISSING_TABLE_CODES = frozenset({"42P01", "PGRST205"})


def error_code(exc: BaseException) -> Optional[str]:
    """Store error code, or None for non-store exceptions."""
    code = getattr(exc, "code", None)
    return str(code) if code else None


def error_message(exc: BaseException) -> str:
    """Human message from a store error, falling back to str(exc)."""
    message = getattr(exc, "message", None)
    return str(message) if message else str(exc)


def is_uniqueness_conflict(exc: BaseException) -> bool:
    return error_code(exc) in UNIQUENESS_CONFLICT_CODES


def is_missing_table(exc: BaseException) -> bool:
    if error_code(exc) in MISSING_TABLE_CODES:
        return True
    return "does not exist" in error_message(exc) and "relation" in error_message(exc)
