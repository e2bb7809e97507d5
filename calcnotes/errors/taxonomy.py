"""
errors/taxonomy.py - Error classification system

Three kinds of failure reach the calculator core:
- NotFound: a referenced canvas item is gone (expected, drives pruning)
- ValidationFailure: a selection cannot be turned into a calculation
- TransientIO: a canvas or metadata call failed for an unspecified reason
"""

from __future__ import annotations
from typing import Any, Dict, Optional
from enum import Enum


class ErrorCategory(Enum):
    """Error categories."""
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    TRANSIENT_IO = "transient_io"
    PERSISTENCE = "persistence"


class ErrorCode(Enum):
    """Specific error codes."""

    # NotFound (1xxx)
    NF_ITEM = 1001

    # Validation (2xxx)
    VAL_SELECTION = 2001

    # Transient IO (3xxx)
    IO_CANVAS = 3001
    IO_CREATE = 3003

    # Persistence (4xxx)
    PER_FORMAT = 4001


class CalcNoteError(Exception):
    """Base exception for calculator note operations."""

    code: ErrorCode = ErrorCode.IO_CANVAS
    category: ErrorCategory = ErrorCategory.TRANSIENT_IO

    def __init__(
        self,
        message: str,
        recoverable: bool = True,
        item_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.item_id = item_id

    def __str__(self) -> str:
        parts = [self.message]
        if self.item_id:
            parts.append(f"[item_id={self.item_id}]")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
            "item_id": self.item_id,
            "recoverable": self.recoverable,
        }


class ItemNotFoundError(CalcNoteError):
    """Raised when a referenced canvas item no longer exists."""

    code = ErrorCode.NF_ITEM
    category = ErrorCategory.NOT_FOUND

    def __init__(self, item_id: str, message: Optional[str] = None):
        super().__init__(message or f"Item not found: {item_id}", item_id=item_id)


class SelectionValidationError(CalcNoteError):
    """Raised when a selection cannot be used for a calculation."""

    code = ErrorCode.VAL_SELECTION
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, numeric_count: int = 0, required: int = 2):
        super().__init__(message, recoverable=True)
        self.numeric_count = numeric_count
        self.required = required

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"numeric_count": self.numeric_count, "required": self.required})
        return data


class TransientIOError(CalcNoteError):
    """Raised by canvas adapters for failures other than a missing item."""

    code = ErrorCode.IO_CANVAS
    category = ErrorCategory.TRANSIENT_IO

    def __init__(
        self,
        message: str,
        item_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, recoverable=True, item_id=item_id)
        self.original_error = original_error


class CalculationFailedError(TransientIOError):
    """Raised when the canvas could not create a calculator note."""

    code = ErrorCode.IO_CREATE


class PersistedIndexError(CalcNoteError):
    """Raised when stored calculator metadata cannot be interpreted."""

    code = ErrorCode.PER_FORMAT
    category = ErrorCategory.PERSISTENCE

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message, recoverable=False)
        self.payload = payload
