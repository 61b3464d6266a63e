"""Utility functions and helpers."""

from canvass.utils.exceptions import (
    CanvassError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    UnauthorizedError,
    ValidationError,
)
from canvass.utils.responses import created, error, not_found, success, validation_error

__all__ = [
    # Response helpers
    "success",
    "created",
    "error",
    "validation_error",
    "not_found",
    # Exceptions
    "CanvassError",
    "NotFoundError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "StoreError",
]
