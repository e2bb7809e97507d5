"""
calcnotes Kernel

Event mailbox, calculation orchestration and session wiring.
"""

from calcnotes.kernel.events import (
    KernelEventType,
    KernelEvent,
    SelectionChangedEvent,
    ItemsChangedEvent,
    ItemsDeletedEvent,
    CalculationRequestedEvent,
    RecomputeRequestedEvent,
    ReconcileRequestedEvent,
)
from calcnotes.kernel.event_dispatcher import EventDispatcher, HandlerFailure
from calcnotes.kernel.selection import SelectionSummary, summarize_selection
from calcnotes.kernel.orchestrator import CalculationOrchestrator, place_below
from calcnotes.kernel.session import CalculatorSession

__all__ = [
    "KernelEventType",
    "KernelEvent",
    "SelectionChangedEvent",
    "ItemsChangedEvent",
    "ItemsDeletedEvent",
    "CalculationRequestedEvent",
    "RecomputeRequestedEvent",
    "ReconcileRequestedEvent",
    "EventDispatcher",
    "HandlerFailure",
    "SelectionSummary",
    "summarize_selection",
    "CalculationOrchestrator",
    "place_below",
    "CalculatorSession",
]
