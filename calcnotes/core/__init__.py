"""
calcnotes Core Module

Foundation layer:
- Operation variant and outcome enums
- Canvas item and calculator note dataclasses
- Numeric filter, aggregation and result formatting
"""

from calcnotes.core.enums import (
    Operation,
    RecomputeOutcome,
    StatusLevel,
)
from calcnotes.core.dataclasses import (
    CanvasItem,
    Position,
    NoteStyle,
    DerivedNote,
    CalculationResult,
    StatusMessage,
)
from calcnotes.core.numeric import (
    is_numeric_content,
    is_numeric_item,
    parse_numeric,
    aggregate,
    format_result,
)

__all__ = [
    "Operation",
    "RecomputeOutcome",
    "StatusLevel",
    "CanvasItem",
    "Position",
    "NoteStyle",
    "DerivedNote",
    "CalculationResult",
    "StatusMessage",
    "is_numeric_content",
    "is_numeric_item",
    "parse_numeric",
    "aggregate",
    "format_result",
]
