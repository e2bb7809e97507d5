"""
calcnotes Test Configuration and Fixtures
"""

import pytest
from datetime import datetime, timezone
from typing import List

from calcnotes.canvas.memory import InMemoryCanvas
from calcnotes.core.dataclasses import DerivedNote
from calcnotes.core.enums import Operation
from calcnotes.dependencies.index import DependencyIndex
from calcnotes.dependencies.propagation import PropagationEngine
from calcnotes.kernel.orchestrator import CalculationOrchestrator
from calcnotes.persistence.bridge import PersistenceBridge


FIXED_CREATED_AT = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def make_note(note_id: str, source_ids: List[str], operation: Operation = Operation.SUM) -> DerivedNote:
    return DerivedNote(
        id=note_id,
        operation=operation,
        source_ids=list(source_ids),
        created_at=FIXED_CREATED_AT,
    )


@pytest.fixture
def canvas():
    """Fresh in-memory canvas."""
    return InMemoryCanvas()


@pytest.fixture
def index():
    return DependencyIndex()


@pytest.fixture
def bridge(canvas):
    return PersistenceBridge(canvas)


@pytest.fixture
def engine(index, canvas, bridge):
    return PropagationEngine(index, canvas, bridge)


@pytest.fixture
def orchestrator(index, canvas, bridge):
    return CalculationOrchestrator(index, canvas, bridge)


@pytest.fixture
def tracked_sum(canvas, index):
    """A sum note over two sources (4 and 6) already on the canvas and tracked."""
    a = canvas.add_item("4", x=0, y=0)
    b = canvas.add_item("6", x=100, y=50)
    derived = canvas.add_item("10", x=50, y=250)
    note = make_note(derived.id, [a.id, b.id])
    index.register(note.id, note)
    return a, b, note
