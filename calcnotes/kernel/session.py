"""
calcnotes Calculator Session

Owns one dependency index and wires it to a canvas:

    init -> start() (load + reconcile, subscribe) -> events mutate the index
         -> every membership change is saved -> stop()

Host callbacks only post events into the EventDispatcher; all engine work
happens inside its single consumer.
"""

from __future__ import annotations
from typing import Any, Callable, List, Optional
import logging

from calcnotes.bootstrap.config import CalcNotesConfig
from calcnotes.canvas.protocol import CanvasAdapter, CanvasEventKind
from calcnotes.core.constants import NUMERIC_NOTE_TYPE
from calcnotes.core.dataclasses import CalculationResult, CanvasItem, StatusMessage
from calcnotes.core.enums import Operation, StatusLevel
from calcnotes.dependencies.index import DependencyIndex
from calcnotes.dependencies.propagation import PropagationEngine, PropagationReport
from calcnotes.errors import (
    CalcNoteError,
    PersistedIndexError,
    SelectionValidationError,
    TransientIOError,
)
from calcnotes.kernel.event_dispatcher import EventDispatcher
from calcnotes.kernel.events import (
    CalculationRequestedEvent,
    ItemsChangedEvent,
    ItemsDeletedEvent,
    KernelEvent,
    KernelEventType,
    ReconcileRequestedEvent,
    RecomputeRequestedEvent,
    SelectionChangedEvent,
)
from calcnotes.kernel.orchestrator import CalculationOrchestrator
from calcnotes.kernel.selection import SelectionSummary, summarize_selection
from calcnotes.persistence.bridge import PersistenceBridge, ReconciliationReport

logger = logging.getLogger("kernel.session")


SelectionListener = Callable[[SelectionSummary], None]
StatusListener = Callable[[StatusMessage], None]

CALCULATION_ERROR_TEXT = "Error creating calculation. Please try again."


class CalculatorSession:
    """
    Calculator notes for one canvas.

    Usage:
        session = CalculatorSession(canvas)
        await session.start()
        status = await session.calculate(Operation.SUM)
        await session.stop()
    """

    def __init__(self, canvas: CanvasAdapter, config: Optional[CalcNotesConfig] = None):
        self._canvas = canvas
        self._config = config or CalcNotesConfig()

        self.index = DependencyIndex()
        self.bridge = PersistenceBridge(canvas, metadata_key=self._config.metadata_key)
        self.engine = PropagationEngine(
            self.index, canvas, self.bridge, decimal_places=self._config.decimal_places,
        )
        self.orchestrator = CalculationOrchestrator(self.index, canvas, self.bridge, self._config)
        self.dispatcher = EventDispatcher(max_history=self._config.dispatcher_history)

        self._selection = SelectionSummary(min_sources=self._config.min_sources)
        self._selection_listeners: List[SelectionListener] = []
        self._status_listeners: List[StatusListener] = []
        self._subscribed = False
        self._started = False

        self.last_status: Optional[StatusMessage] = None
        self.last_report: Optional[PropagationReport] = None

        self.dispatcher.subscribe(KernelEventType.SELECTION_CHANGED, self._handle_selection_changed)
        self.dispatcher.subscribe(KernelEventType.ITEMS_CHANGED, self._handle_items_changed)
        self.dispatcher.subscribe(KernelEventType.ITEMS_DELETED, self._handle_items_deleted)
        self.dispatcher.subscribe(KernelEventType.CALCULATION_REQUESTED, self._handle_calculation)
        self.dispatcher.subscribe(KernelEventType.RECOMPUTE_REQUESTED, self._handle_recompute)
        self.dispatcher.subscribe(KernelEventType.RECONCILE_REQUESTED, self._handle_reconcile)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Restore the index, hook up canvas events and start the mailbox.

        Raises:
            TransientIOError: if stored metadata could not be read
        """
        if self._started:
            return

        try:
            await self.bridge.load(self.index)
        except PersistedIndexError as e:
            logger.error(f"Error restoring calculator notes: {e}")

        if not self._subscribed:
            self._canvas.subscribe(CanvasEventKind.SELECTION_CHANGED, self._on_canvas_selection)
            self._canvas.subscribe(CanvasEventKind.ITEMS_CHANGED, self._on_canvas_items_changed)
            self._canvas.subscribe(CanvasEventKind.ITEMS_DELETED, self._on_canvas_items_deleted)
            self._subscribed = True

        self.dispatcher.start()
        self._started = True
        self.dispatcher.post(SelectionChangedEvent())
        logger.info(f"Calculator session started with {len(self.index)} tracked note(s)")

    async def stop(self) -> None:
        """Let queued events finish, then stop the mailbox."""
        if not self._started:
            return
        await self.dispatcher.join()
        await self.dispatcher.stop()
        self._started = False

    async def idle(self) -> None:
        """Wait until all queued events have been handled."""
        await self.dispatcher.join()

    @property
    def is_started(self) -> bool:
        return self._started

    # -------------------------------------------------------------------------
    # Host callbacks (sync, enqueue only)
    # -------------------------------------------------------------------------

    def _on_canvas_selection(self, payload: Any = None) -> None:
        self.dispatcher.post(SelectionChangedEvent())

    def _on_canvas_items_changed(self, items: List[CanvasItem]) -> None:
        self.dispatcher.post(ItemsChangedEvent(items=list(items or [])))

    def _on_canvas_items_deleted(self, item_ids: List[Any]) -> None:
        ids = [getattr(i, "id", i) for i in (item_ids or [])]
        self.dispatcher.post(ItemsDeletedEvent(item_ids=[str(i) for i in ids]))

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    async def calculate(
        self,
        operation: Operation,
        items: Optional[List[CanvasItem]] = None,
    ) -> StatusMessage:
        """
        Create a calculator note from the current selection (or ``items``).

        Returns:
            Status message describing the outcome
        """
        results = await self._submit(
            CalculationRequestedEvent(operation=Operation(operation), items=items)
        )
        status = results[0] if results else None
        if status is None:
            status = self._publish_status(CALCULATION_ERROR_TEXT, StatusLevel.ERROR)
        return status

    async def recompute_all(self) -> PropagationReport:
        """
        Recompute every tracked note through the mailbox.

        Raises:
            Exception: the engine's error if the sweep failed
        """
        return await self._submit_for_result(RecomputeRequestedEvent())

    async def reconcile(self) -> ReconciliationReport:
        """
        Prune notes whose canvas item is gone, through the mailbox.

        Raises:
            Exception: the bridge's error if reconciliation failed
        """
        return await self._submit_for_result(ReconcileRequestedEvent())

    async def _submit_for_result(self, event: KernelEvent) -> Any:
        results = await self._submit(event)
        if results and results[0] is not None:
            return results[0]
        for failure in reversed(self.dispatcher.failures):
            if failure.event is event:
                raise failure.error
        raise RuntimeError(f"No result for {event.event_type.value}")

    async def _submit(self, event: KernelEvent) -> List[Any]:
        if not self.dispatcher.is_running:
            raise RuntimeError("Calculator session is not started")
        return await self.dispatcher.submit(event)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    @property
    def selection(self) -> SelectionSummary:
        return self._selection

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self._selection_listeners.append(listener)

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def _publish_status(self, text: str, level: StatusLevel) -> StatusMessage:
        status = StatusMessage(text=text, level=level)
        self.last_status = status
        for listener in self._status_listeners:
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Status listener failed: {e}")
        return status

    # -------------------------------------------------------------------------
    # Event handlers (run inside the dispatcher)
    # -------------------------------------------------------------------------

    async def _handle_selection_changed(self, event: SelectionChangedEvent) -> SelectionSummary:
        try:
            items = await self._canvas.get_selection()
        except TransientIOError as e:
            logger.error(f"Error updating selection: {e}")
            return self._selection

        self._selection = summarize_selection(items, self._config.min_sources)
        for listener in self._selection_listeners:
            try:
                listener(self._selection)
            except Exception as e:
                logger.error(f"Selection listener failed: {e}")
        return self._selection

    async def _handle_items_changed(self, event: ItemsChangedEvent) -> PropagationReport:
        ids = [item.id for item in event.items if item.type == NUMERIC_NOTE_TYPE]
        self.last_report = await self.engine.on_items_changed(ids)
        return self.last_report

    async def _handle_items_deleted(self, event: ItemsDeletedEvent) -> PropagationReport:
        self.last_report = await self.engine.on_items_deleted(event.item_ids)
        return self.last_report

    async def _handle_recompute(self, event: RecomputeRequestedEvent) -> PropagationReport:
        self.last_report = await self.engine.recompute_all()
        return self.last_report

    async def _handle_reconcile(self, event: ReconcileRequestedEvent) -> ReconciliationReport:
        return await self.bridge.reconcile(self.index)

    async def _handle_calculation(self, event: CalculationRequestedEvent) -> StatusMessage:
        items = event.items if event.items is not None else self._selection.items
        try:
            result: CalculationResult = await self.orchestrator.create_calculation(event.operation, items)
        except SelectionValidationError as e:
            return self._publish_status(e.message, StatusLevel.ERROR)
        except CalcNoteError as e:
            logger.error(f"Error creating calculation: {e}")
            return self._publish_status(CALCULATION_ERROR_TEXT, StatusLevel.ERROR)

        return self._publish_status(
            f"{result.note.operation.label} sticky note created successfully!",
            StatusLevel.SUCCESS,
        )
