"""
calcnotes EventDispatcher

Instance-scoped mailbox for kernel events.

Host callbacks only enqueue. A single consumer task takes events off the
queue and awaits every handler of an event before looking at the next one,
so engine logic never interleaves across events and events are handled in
delivery order.

INVARIANT: at most one event is being handled at any time.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
import asyncio
import inspect
import logging

from calcnotes.kernel.events import KernelEvent, KernelEventType


logger = logging.getLogger("kernel.event_dispatcher")


# Handlers may be plain functions or coroutines
EventHandler = Callable[[KernelEvent], Any]


@dataclass
class HandlerFailure:
    """A handler raised while processing an event."""
    event: KernelEvent
    handler_name: str
    error: Exception


class EventDispatcher:
    """
    Serializing event mailbox.

    Usage:
        dispatcher = EventDispatcher()
        dispatcher.subscribe(KernelEventType.ITEMS_CHANGED, handler)
        dispatcher.start()

        dispatcher.post(ItemsChangedEvent(items=[...]))   # from host callbacks
        results = await dispatcher.submit(event)          # wait for handling
        await dispatcher.join()
    """

    def __init__(self, max_history: int = 100):
        """
        Initialize the dispatcher.

        Args:
            max_history: Maximum handled events to retain in history
        """
        self._max_history = max_history
        self._handlers: Dict[KernelEventType, List[EventHandler]] = {}
        self._queue: "asyncio.Queue[Tuple[KernelEvent, Optional[asyncio.Future]]]" = asyncio.Queue()
        self._history: List[KernelEvent] = []
        self._failures: List[HandlerFailure] = []
        self._task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, event_type: KernelEventType, handler: EventHandler) -> bool:
        """
        Subscribe a handler to an event type.

        Returns:
            False if the handler was already subscribed
        """
        handlers = self._handlers.setdefault(event_type, [])
        if handler in handlers:
            return False
        handlers.append(handler)
        logger.debug(f"Subscribed handler to {event_type.value}")
        return True

    def unsubscribe(self, event_type: KernelEventType, handler: EventHandler) -> bool:
        try:
            self._handlers.get(event_type, []).remove(handler)
            return True
        except ValueError:
            return False

    @property
    def handler_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    # -------------------------------------------------------------------------
    # Posting
    # -------------------------------------------------------------------------

    def post(self, event: KernelEvent) -> None:
        """Queue an event without waiting for it (safe from sync callbacks)."""
        self._queue.put_nowait((event, None))
        logger.debug(f"Queued {event.event_type.value} ({event.event_id})")

    def submit(self, event: KernelEvent) -> "asyncio.Future[List[Any]]":
        """
        Queue an event and get a future for its handler results.

        The future resolves to the list of handler return values once the
        event has been handled. Handler errors are logged, not raised.
        """
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((event, future))
        return future

    # -------------------------------------------------------------------------
    # Consumer
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._consume())
        logger.debug("EventDispatcher started")

    async def stop(self) -> None:
        """Stop the consumer; queued events stay queued."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("EventDispatcher stopped")

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def process_pending(self) -> int:
        """
        Handle queued events in the caller's task (no consumer needed).

        Returns:
            Number of events handled
        """
        if self.is_running:
            raise RuntimeError("Consumer task is running; use join() instead")
        handled = 0
        while not self._queue.empty():
            event, future = self._queue.get_nowait()
            try:
                await self._handle(event, future)
            finally:
                self._queue.task_done()
            handled += 1
        return handled

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _consume(self) -> None:
        while True:
            event, future = await self._queue.get()
            try:
                await self._handle(event, future)
            finally:
                self._queue.task_done()

    async def _handle(self, event: KernelEvent, future: Optional[asyncio.Future]) -> None:
        results: List[Any] = []
        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as e:
                name = getattr(handler, "__name__", repr(handler))
                logger.error(f"Handler {name} failed for {event.event_type.value}: {e}")
                self._failures.append(HandlerFailure(event=event, handler_name=name, error=e))
                results.append(None)

        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        if future is not None and not future.done():
            future.set_result(results)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_history(
        self,
        limit: int = 20,
        event_type: Optional[KernelEventType] = None,
    ) -> List[KernelEvent]:
        history = self._history
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return history[-limit:]

    @property
    def failures(self) -> List[HandlerFailure]:
        return list(self._failures)

    @property
    def event_count(self) -> int:
        return len(self._history)
