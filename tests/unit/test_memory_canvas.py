"""
Unit tests for canvas/memory.py
"""

import pytest
from unittest.mock import Mock

from calcnotes.canvas.memory import InMemoryCanvas
from calcnotes.canvas.protocol import CanvasAdapter, CanvasEventKind
from calcnotes.core.dataclasses import NoteStyle, Position
from calcnotes.errors import ItemNotFoundError, TransientIOError


class TestInMemoryCanvas:

    def test_is_adapter(self, canvas):
        assert isinstance(canvas, CanvasAdapter)

    @pytest.mark.asyncio
    async def test_fetch_returns_copy(self, canvas):
        item = canvas.add_item("5")

        fetched = await canvas.fetch_item(item.id)
        fetched.content = "changed"

        assert canvas.get(item.id).content == "5"
        assert await canvas.fetch_item("missing") is None

    @pytest.mark.asyncio
    async def test_create_update_delete(self, canvas):
        created = await canvas.create_numeric_note("3", Position(1, 2), NoteStyle(fill_color="#000"))

        assert await canvas.update_item_content(created.id, "4") is True
        assert canvas.get(created.id).content == "4"
        assert await canvas.delete_item(created.id) is True
        assert await canvas.delete_item(created.id) is False
        assert await canvas.update_item_content(created.id, "5") is False

    @pytest.mark.asyncio
    async def test_metadata_round_trip(self, canvas):
        assert await canvas.read_metadata("k") is None
        await canvas.write_metadata("k", {"a": [1, 2]})
        assert await canvas.read_metadata("k") == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_fail_next(self, canvas):
        canvas.fail_next("read_metadata")

        with pytest.raises(TransientIOError):
            await canvas.read_metadata("k")
        assert await canvas.read_metadata("k") is None

    def test_external_helpers_emit(self, canvas):
        changed, deleted, selected = Mock(), Mock(), Mock()
        canvas.subscribe(CanvasEventKind.ITEMS_CHANGED, changed)
        canvas.subscribe(CanvasEventKind.ITEMS_DELETED, deleted)
        canvas.subscribe(CanvasEventKind.SELECTION_CHANGED, selected)
        item = canvas.add_item("1")

        canvas.select([item.id])
        canvas.edit_item(item.id, "2")
        canvas.remove_items([item.id, "never-existed"])

        selected.assert_called_once()
        assert changed.call_args[0][0][0].content == "2"
        deleted.assert_called_once_with([item.id])

    def test_editing_missing_item_raises(self, canvas):
        handler = Mock()
        canvas.subscribe(CanvasEventKind.ITEMS_CHANGED, handler)

        with pytest.raises(ItemNotFoundError) as exc_info:
            canvas.edit_item("ghost", "1")

        assert exc_info.value.item_id == "ghost"
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_selection_drops_removed_items(self, canvas):
        a = canvas.add_item("1")
        b = canvas.add_item("2")
        canvas.select([a.id, b.id])
        canvas.remove_items([a.id])

        selection = await canvas.get_selection()

        assert [i.id for i in selection] == [b.id]
