"""
errors/ - Error Taxonomy

Structured exceptions shared by the canvas adapters and the calculator core.
"""

from .taxonomy import (
    ErrorCategory,
    ErrorCode,
    CalcNoteError,
    ItemNotFoundError,
    SelectionValidationError,
    TransientIOError,
    CalculationFailedError,
    PersistedIndexError,
)

__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "CalcNoteError",
    "ItemNotFoundError",
    "SelectionValidationError",
    "TransientIOError",
    "CalculationFailedError",
    "PersistedIndexError",
]
