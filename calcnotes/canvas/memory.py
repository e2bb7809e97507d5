"""
calcnotes/canvas/memory.py - In-memory canvas adapter

Reference CanvasAdapter used by tests and local tooling.

Adapter calls (fetch/create/update/delete) behave like host API calls and do
not emit events. The ``edit_item`` / ``remove_items`` / ``select`` helpers
simulate other users acting on the board and emit the matching events.
Metadata is stored as JSON text so persisted bytes can be compared.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from calcnotes.canvas.protocol import CanvasAdapter, CanvasEventHandler, CanvasEventKind
from calcnotes.core.constants import NUMERIC_NOTE_TYPE
from calcnotes.core.dataclasses import CanvasItem, NoteStyle, Position
from calcnotes.errors import ItemNotFoundError, TransientIOError

logger = logging.getLogger("canvas.memory")


class InMemoryCanvas(CanvasAdapter):
    """
    Dictionary-backed canvas with failure injection.

    Usage:
        canvas = InMemoryCanvas()
        a = canvas.add_item("4", x=0, y=0)
        canvas.fail_next("create_numeric_note")
    """

    def __init__(self, id_prefix: str = "item"):
        self._id_prefix = id_prefix
        self._counter = 0
        self._items: Dict[str, CanvasItem] = {}
        self._styles: Dict[str, NoteStyle] = {}
        self._selection: List[str] = []
        self._metadata: Dict[str, str] = {}
        self._handlers: Dict[CanvasEventKind, List[CanvasEventHandler]] = {}
        self._failures: Dict[str, List[Exception]] = {}

        # Operation log for assertions
        self.calls: List[tuple] = []

    # -------------------------------------------------------------------------
    # Failure injection
    # -------------------------------------------------------------------------

    def fail_next(self, operation: str, error: Optional[Exception] = None) -> None:
        """Make the next call of ``operation`` raise ``error``."""
        err = error or TransientIOError(f"Injected failure in {operation}")
        self._failures.setdefault(operation, []).append(err)

    def _maybe_fail(self, operation: str) -> None:
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _next_id(self) -> str:
        self._counter += 1
        return f"{self._id_prefix}-{self._counter}"

    # -------------------------------------------------------------------------
    # CanvasAdapter
    # -------------------------------------------------------------------------

    async def fetch_item(self, item_id: str) -> Optional[CanvasItem]:
        self.calls.append(("fetch_item", item_id))
        self._maybe_fail("fetch_item")
        item = self._items.get(item_id)
        if item is None:
            return None
        return CanvasItem(id=item.id, type=item.type, content=item.content, x=item.x, y=item.y)

    async def create_numeric_note(
        self,
        content: str,
        position: Position,
        style: NoteStyle,
    ) -> CanvasItem:
        self.calls.append(("create_numeric_note", content))
        self._maybe_fail("create_numeric_note")
        item = CanvasItem(
            id=self._next_id(),
            type=NUMERIC_NOTE_TYPE,
            content=content,
            x=position.x,
            y=position.y,
        )
        self._items[item.id] = item
        self._styles[item.id] = style
        return CanvasItem(id=item.id, type=item.type, content=item.content, x=item.x, y=item.y)

    async def update_item_content(self, item_id: str, content: str) -> bool:
        self.calls.append(("update_item_content", item_id, content))
        self._maybe_fail("update_item_content")
        item = self._items.get(item_id)
        if item is None:
            return False
        item.content = content
        return True

    async def delete_item(self, item_id: str) -> bool:
        self.calls.append(("delete_item", item_id))
        self._maybe_fail("delete_item")
        if self._items.pop(item_id, None) is None:
            return False
        self._styles.pop(item_id, None)
        if item_id in self._selection:
            self._selection.remove(item_id)
        return True

    async def get_selection(self) -> List[CanvasItem]:
        self._maybe_fail("get_selection")
        return [self._items[i] for i in self._selection if i in self._items]

    def subscribe(self, event_kind: CanvasEventKind, handler: CanvasEventHandler) -> None:
        self._handlers.setdefault(event_kind, []).append(handler)

    async def read_metadata(self, key: str) -> Optional[Any]:
        self.calls.append(("read_metadata", key))
        self._maybe_fail("read_metadata")
        raw = self._metadata.get(key)
        return json.loads(raw) if raw is not None else None

    async def write_metadata(self, key: str, value: Any) -> None:
        self.calls.append(("write_metadata", key))
        self._maybe_fail("write_metadata")
        self._metadata[key] = json.dumps(value, ensure_ascii=False)

    # -------------------------------------------------------------------------
    # Board helpers (outside the adapter contract)
    # -------------------------------------------------------------------------

    def add_item(
        self,
        content: Any,
        x: float = 0.0,
        y: float = 0.0,
        item_type: str = NUMERIC_NOTE_TYPE,
        item_id: Optional[str] = None,
    ) -> CanvasItem:
        """Place an item on the board without emitting events."""
        item = CanvasItem(id=item_id or self._next_id(), type=item_type, content=content, x=x, y=y)
        self._items[item.id] = item
        return item

    def get(self, item_id: str) -> Optional[CanvasItem]:
        return self._items.get(item_id)

    def has_item(self, item_id: str) -> bool:
        return item_id in self._items

    def style_of(self, item_id: str) -> Optional[NoteStyle]:
        return self._styles.get(item_id)

    def raw_metadata(self, key: str) -> Optional[str]:
        """Stored JSON text for a metadata key."""
        return self._metadata.get(key)

    def set_raw_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = json.dumps(value, ensure_ascii=False)

    def edit_item(self, item_id: str, content: Any) -> None:
        """
        Change an item as another user would and emit items_changed.

        Raises:
            ItemNotFoundError: if the item is not on the board
        """
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        item.content = content
        self.emit(CanvasEventKind.ITEMS_CHANGED, [item])

    def remove_items(self, item_ids: Iterable[str]) -> None:
        """Delete items as another user would and emit items_deleted."""
        removed = []
        for item_id in item_ids:
            if self._items.pop(item_id, None) is not None:
                removed.append(item_id)
            self._styles.pop(item_id, None)
        self._selection = [i for i in self._selection if i not in removed]
        if removed:
            self.emit(CanvasEventKind.ITEMS_DELETED, removed)

    def select(self, item_ids: Iterable[str]) -> None:
        self._selection = [i for i in item_ids if i in self._items]
        self.emit(CanvasEventKind.SELECTION_CHANGED, None)

    def emit(self, event_kind: CanvasEventKind, payload: Any) -> None:
        for handler in self._handlers.get(event_kind, []):
            handler(payload)

    @property
    def item_count(self) -> int:
        return len(self._items)
