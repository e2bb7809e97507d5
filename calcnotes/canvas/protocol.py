"""
calcnotes/canvas/protocol.py - Canvas capability interface

The calculator core never talks to a host platform directly. Adapters
implement this interface over the real board API; ``InMemoryCanvas`` is the
reference implementation.

Contract for adapters:
- "not found" is reported through return values (None / False)
- any other failure raises TransientIOError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, List, Optional

from calcnotes.core.dataclasses import CanvasItem, NoteStyle, Position


class CanvasEventKind(str, Enum):
    """Host events the calculator core listens to."""
    SELECTION_CHANGED = "selection_changed"
    ITEMS_CHANGED = "items_changed"    # payload: List[CanvasItem]
    ITEMS_DELETED = "items_deleted"    # payload: List[str]


# Host callback; the payload shape depends on the event kind
CanvasEventHandler = Callable[[Any], None]


class CanvasAdapter(ABC):
    """
    Abstract capability interface to a shared canvas.
    """

    @abstractmethod
    async def fetch_item(self, item_id: str) -> Optional[CanvasItem]:
        """Get a live item, or None if it no longer exists."""

    @abstractmethod
    async def create_numeric_note(
        self,
        content: str,
        position: Position,
        style: NoteStyle,
    ) -> CanvasItem:
        """
        Create a numeric note.

        Raises:
            TransientIOError: if the canvas rejected the request
        """

    @abstractmethod
    async def update_item_content(self, item_id: str, content: str) -> bool:
        """Replace item content. Returns False if the item does not exist."""

    @abstractmethod
    async def delete_item(self, item_id: str) -> bool:
        """Delete an item. Returns False if the item does not exist."""

    @abstractmethod
    async def get_selection(self) -> List[CanvasItem]:
        """Get the currently selected items."""

    @abstractmethod
    def subscribe(self, event_kind: CanvasEventKind, handler: CanvasEventHandler) -> None:
        """Register a host callback for an event kind."""

    @abstractmethod
    async def read_metadata(self, key: str) -> Optional[Any]:
        """Read a JSON metadata record, or None if absent."""

    @abstractmethod
    async def write_metadata(self, key: str, value: Any) -> None:
        """Write a JSON metadata record, replacing any previous value."""
