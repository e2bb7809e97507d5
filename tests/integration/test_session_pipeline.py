"""
Integration tests for the calculator session

Drives a CalculatorSession end to end over the in-memory canvas: canvas
events go through the mailbox, the engine and the persisted index.
"""

import json
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from calcnotes.bootstrap.config import CalcNotesConfig
from calcnotes.core.constants import DEFAULT_METADATA_KEY
from calcnotes.core.enums import Operation, StatusLevel
from calcnotes.errors import TransientIOError
from calcnotes.kernel.session import CALCULATION_ERROR_TEXT, CalculatorSession


def _stored_notes(canvas):
    raw = canvas.raw_metadata(DEFAULT_METADATA_KEY)
    return json.loads(raw)["notes"] if raw else {}


@pytest_asyncio.fixture
async def session(canvas):
    session = CalculatorSession(canvas)
    await session.start()
    await session.idle()
    yield session
    await session.stop()


async def _create_sum(canvas, session, *contents):
    items = [canvas.add_item(c, x=100 * n, y=0) for n, c in enumerate(contents)]
    canvas.select([i.id for i in items])
    await session.idle()
    status = await session.calculate(Operation.SUM)
    derived_id = session.index.ids()[-1] if len(session.index) else None
    return items, status, derived_id


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_calculate_before_start(self, canvas):
        session = CalculatorSession(canvas)

        with pytest.raises(RuntimeError):
            await session.calculate(Operation.SUM)

    @pytest.mark.asyncio
    async def test_corrupt_metadata_starts_empty(self, canvas):
        canvas.set_raw_metadata(DEFAULT_METADATA_KEY, [1, 2, 3])
        session = CalculatorSession(canvas)

        await session.start()
        await session.stop()

        assert len(session.index) == 0
        assert session.is_started is False

    @pytest.mark.asyncio
    async def test_one_bad_record_does_not_block_start(self, canvas):
        live = canvas.add_item("3")
        canvas.set_raw_metadata(DEFAULT_METADATA_KEY, {
            "schemaVersion": 1,
            "notes": {
                live.id: {"operation": "sum", "sourceIds": ["a"], "createdAt": 1700000000000},
                "broken": {"operation": "sum", "sourceIds": ["a"], "createdAt": 10 ** 20},
            },
        })
        session = CalculatorSession(canvas)

        await session.start()
        await session.stop()

        assert session.index.ids() == [live.id]
        assert set(_stored_notes(canvas)) == {live.id}

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, session):
        await session.start()
        assert session.is_started is True


class TestSelection:

    @pytest.mark.asyncio
    async def test_selection_listener(self, canvas, session):
        seen = []
        session.add_selection_listener(seen.append)
        a = canvas.add_item("4")
        b = canvas.add_item("words")

        canvas.select([a.id, b.id])
        await session.idle()

        assert seen[-1].count == 1
        assert session.selection.message == "1 numeric sticky note selected. Select at least 1 more."


class TestCalculate:

    @pytest.mark.asyncio
    async def test_sum_from_selection(self, canvas, session):
        statuses = []
        session.add_status_listener(statuses.append)

        items, status, derived_id = await _create_sum(canvas, session, "4", "6")

        assert status.text == "Sum sticky note created successfully!"
        assert status.level == StatusLevel.SUCCESS
        assert statuses == [status]
        assert canvas.get(derived_id).content == "10"
        assert _stored_notes(canvas)[derived_id]["sourceIds"] == [i.id for i in items]

    @pytest.mark.asyncio
    async def test_product_with_explicit_items(self, canvas, session):
        a = canvas.add_item("2")
        b = canvas.add_item("3.5")

        status = await session.calculate(Operation.PRODUCT, items=[a, b])

        assert status.text == "Product sticky note created successfully!"
        derived_id = session.index.ids()[0]
        assert canvas.get(derived_id).content == "7"
        assert _stored_notes(canvas)[derived_id]["operationSymbol"] == "×"

    @pytest.mark.asyncio
    async def test_too_few_numeric_notes(self, canvas, session):
        a = canvas.add_item("4")
        canvas.select([a.id])
        await session.idle()

        status = await session.calculate(Operation.SUM)

        assert status.is_error
        assert status.text == "Please select at least 2 numeric sticky notes"
        assert len(session.index) == 0

    @pytest.mark.asyncio
    async def test_creation_failure(self, canvas, session):
        canvas.fail_next("create_numeric_note")

        _, status, _ = await _create_sum(canvas, session, "1", "2")

        assert status.is_error
        assert status.text == CALCULATION_ERROR_TEXT
        assert len(session.index) == 0
        assert canvas.raw_metadata(DEFAULT_METADATA_KEY) is None


class TestPropagation:

    @pytest.mark.asyncio
    async def test_source_edit_recomputes(self, canvas, session):
        items, _, derived_id = await _create_sum(canvas, session, "4", "6")

        canvas.edit_item(items[0].id, "14")
        await session.idle()

        assert canvas.get(derived_id).content == "20"
        assert session.last_report.updated_count == 1

    @pytest.mark.asyncio
    async def test_non_numeric_source_is_skipped(self, canvas, session):
        items, _, derived_id = await _create_sum(canvas, session, "4", "6", "1")

        canvas.edit_item(items[1].id, "six")
        await session.idle()

        assert canvas.get(derived_id).content == "5"
        assert derived_id in session.index

    @pytest.mark.asyncio
    async def test_deleted_sources_retire_on_sweep(self, canvas, session):
        items, _, derived_id = await _create_sum(canvas, session, "4", "6")

        canvas.remove_items([i.id for i in items])
        await session.idle()
        assert derived_id in session.index

        report = await session.recompute_all()

        assert report.retired_count == 1
        assert not canvas.has_item(derived_id)
        assert _stored_notes(canvas) == {}

        restarted = CalculatorSession(canvas)
        await restarted.start()
        await restarted.stop()
        assert len(restarted.index) == 0

    @pytest.mark.asyncio
    async def test_external_delete_of_calculator_note(self, canvas, session):
        _, _, first_id = await _create_sum(canvas, session, "1", "2")

        canvas.remove_items([first_id])
        await session.idle()
        items, _, second_id = await _create_sum(canvas, session, "3", "4")

        assert session.index.ids() == [second_id]
        assert set(_stored_notes(canvas)) == {second_id}


class TestRestore:

    @pytest.mark.asyncio
    async def test_restart_restores_and_keeps_propagating(self, canvas):
        first = CalculatorSession(canvas)
        await first.start()
        a = canvas.add_item("4")
        b = canvas.add_item("6")
        await first.calculate(Operation.SUM, items=[a, b])
        await first.stop()
        stored = canvas.raw_metadata(DEFAULT_METADATA_KEY)

        second = CalculatorSession(canvas)
        await second.start()
        canvas.edit_item(b.id, "16")
        await second.idle()
        await second.stop()

        assert len(second.index) == 1
        derived_id = second.index.ids()[0]
        assert canvas.get(derived_id).content == "20"
        assert canvas.raw_metadata(DEFAULT_METADATA_KEY) == stored

    @pytest.mark.asyncio
    async def test_reconcile_prunes_missing_notes(self, canvas, session):
        _, _, derived_id = await _create_sum(canvas, session, "1", "2")
        # adapter calls do not emit events
        await canvas.delete_item(derived_id)

        report = await session.reconcile()

        assert report.pruned == [derived_id]
        assert len(session.index) == 0

    @pytest.mark.asyncio
    async def test_custom_metadata_key(self, canvas):
        session = CalculatorSession(canvas, CalcNotesConfig(metadata_key="custom"))
        await session.start()
        a = canvas.add_item("1")
        b = canvas.add_item("2")
        await session.calculate(Operation.SUM, items=[a, b])
        await session.stop()

        assert canvas.raw_metadata("custom") is not None
        assert canvas.raw_metadata(DEFAULT_METADATA_KEY) is None


class TestFailedRequests:

    @pytest.mark.asyncio
    async def test_failed_sweep_raises(self, session, monkeypatch):
        error = TransientIOError("board unavailable")
        monkeypatch.setattr(session.engine, "recompute_all", AsyncMock(side_effect=error))

        with pytest.raises(TransientIOError) as exc_info:
            await session.recompute_all()

        assert exc_info.value is error
        assert session.is_started is True

    @pytest.mark.asyncio
    async def test_failed_reconcile_raises(self, session, monkeypatch):
        monkeypatch.setattr(session.bridge, "reconcile", AsyncMock(side_effect=TransientIOError("offline")))

        with pytest.raises(TransientIOError):
            await session.reconcile()

    @pytest.mark.asyncio
    async def test_mailbox_keeps_running_after_failure(self, canvas, session, monkeypatch):
        monkeypatch.setattr(session.engine, "recompute_all", AsyncMock(side_effect=TransientIOError("x")))
        with pytest.raises(TransientIOError):
            await session.recompute_all()
        monkeypatch.undo()

        report = await session.recompute_all()

        assert report.trigger == "recompute_all"
