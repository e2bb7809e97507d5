"""
calcnotes Kernel Events

Typed events delivered to the session mailbox. Host callbacks are turned
into these and queued; they are handled strictly one at a time.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from calcnotes.core.dataclasses import CanvasItem
from calcnotes.core.enums import Operation


class KernelEventType(str, Enum):
    """Types of kernel events."""
    SELECTION_CHANGED = "selection_changed"
    ITEMS_CHANGED = "items_changed"
    ITEMS_DELETED = "items_deleted"
    CALCULATION_REQUESTED = "calculation_requested"
    RECOMPUTE_REQUESTED = "recompute_requested"
    RECONCILE_REQUESTED = "reconcile_requested"


@dataclass
class KernelEvent:
    """
    Base class for kernel events.
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    event_type: KernelEventType = KernelEventType.ITEMS_CHANGED
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass
class SelectionChangedEvent(KernelEvent):
    event_type: KernelEventType = field(default=KernelEventType.SELECTION_CHANGED)


@dataclass
class ItemsChangedEvent(KernelEvent):
    """A batch of items changed on the canvas."""
    event_type: KernelEventType = field(default=KernelEventType.ITEMS_CHANGED)
    items: List[CanvasItem] = field(default_factory=list)

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["item_ids"] = self.item_ids
        return base


@dataclass
class ItemsDeletedEvent(KernelEvent):
    """A batch of items was deleted on the canvas."""
    event_type: KernelEventType = field(default=KernelEventType.ITEMS_DELETED)
    item_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["item_ids"] = list(self.item_ids)
        return base


@dataclass
class CalculationRequestedEvent(KernelEvent):
    """The user asked for a new calculator note."""
    event_type: KernelEventType = field(default=KernelEventType.CALCULATION_REQUESTED)
    operation: Operation = Operation.SUM
    items: Optional[List[CanvasItem]] = None  # None = use current selection

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["operation"] = self.operation.value
        return base


@dataclass
class RecomputeRequestedEvent(KernelEvent):
    event_type: KernelEventType = field(default=KernelEventType.RECOMPUTE_REQUESTED)


@dataclass
class ReconcileRequestedEvent(KernelEvent):
    event_type: KernelEventType = field(default=KernelEventType.RECONCILE_REQUESTED)
