"""
calcnotes Core Enumerations

The operation set is closed: every consumer matches on SUM and PRODUCT.
"""

from enum import Enum


class Operation(str, Enum):
    """
    Fold applied by a calculator note over its source values.
    """
    SUM = "sum"
    PRODUCT = "product"

    @property
    def symbol(self) -> str:
        """Display symbol stored alongside persisted notes."""
        if self is Operation.SUM:
            return "+"
        return "×"

    @property
    def identity(self) -> float:
        """Fold seed (0 for sum, 1 for product)."""
        if self is Operation.SUM:
            return 0.0
        return 1.0

    @property
    def label(self) -> str:
        return "Sum" if self is Operation.SUM else "Product"

    def apply(self, acc: float, value: float) -> float:
        if self is Operation.SUM:
            return acc + value
        return acc * value


class RecomputeOutcome(str, Enum):
    """
    What a single recompute pass did to a calculator note.
    """
    UPDATED = "updated"      # New result written to the canvas
    RETIRED = "retired"      # No usable sources left; note deleted
    DETACHED = "detached"    # Write-back failed; note dropped from tracking
    FAILED = "failed"        # Pass aborted; nothing changed


class StatusLevel(str, Enum):
    """Severity of a user-facing status message."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
