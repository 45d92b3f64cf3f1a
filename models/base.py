"""
Shared schema bases.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """
    Base for request and record schemas.

    Strings are trimmed before validation, so "  " fails a min_length=1
    field the same way "" does.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )


class StoredRowMixin(BaseModel):
    """Columns the store adds to every persisted row."""
    id: int = Field(..., description="Row ID")
    created_at: datetime
    updated_at: Optional[datetime] = None
