"""
calcnotes Core Dataclasses

Data carried between the canvas adapter and the calculator core.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from calcnotes.core.constants import NUMERIC_NOTE_TYPE
from calcnotes.core.enums import Operation, StatusLevel


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=int(ms))


# =============================================================================
# CANVAS SHAPES
# =============================================================================

@dataclass
class CanvasItem:
    """An item as reported by the canvas."""
    id: str
    type: str = NUMERIC_NOTE_TYPE
    content: Any = ""
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "x": self.x,
            "y": self.y,
        }


@dataclass(frozen=True)
class Position:
    """Canvas coordinates for a new item."""
    x: float
    y: float


@dataclass(frozen=True)
class NoteStyle:
    """Visual style requested for a calculator note."""
    fill_color: str
    text_align: str = "center"

    def to_dict(self) -> Dict[str, str]:
        return {"fillColor": self.fill_color, "textAlign": self.text_align}


# =============================================================================
# DERIVED NOTE
# =============================================================================

@dataclass
class DerivedNote:
    """
    A calculator note: a canvas item whose content is computed from sources.

    ``source_ids`` is fixed at creation. Duplicates are allowed and order is
    kept for display only.
    """
    id: str
    operation: Operation
    source_ids: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    @property
    def operation_symbol(self) -> str:
        return self.operation.symbol

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted record shape."""
        return {
            "operation": self.operation.value,
            "sourceIds": list(self.source_ids),
            "operationSymbol": self.operation.symbol,
            "createdAt": to_epoch_ms(self.created_at),
        }


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class CalculationResult:
    """Outcome of creating a calculator note."""
    note: DerivedNote
    content: str
    value: float
    position: Position
    persisted: bool = True

    @property
    def note_id(self) -> str:
        return self.note.id


@dataclass
class StatusMessage:
    """User-facing status line; rendering is up to the host."""
    text: str
    level: StatusLevel = StatusLevel.INFO
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_error(self) -> bool:
        return self.level == StatusLevel.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "level": self.level.value,
            "created_at": self.created_at.isoformat(),
        }
