"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Mappings
    MappingNotFoundError,
    MappingExistsError,

    # CSV upload
    CSVParseError,
    EmptyFileError,
    InvalidFileTypeError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Mappings
    "MappingNotFoundError",
    "MappingExistsError",

    # CSV upload
    "CSVParseError",
    "EmptyFileError",
    "InvalidFileTypeError",
]
