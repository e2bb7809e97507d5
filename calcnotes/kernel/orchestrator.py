"""
calcnotes Calculation Orchestrator

Creates a calculator note from a selection: validate, compute, place, ask
the canvas for the item, then register and persist. Nothing is registered
unless the canvas item was actually created.
"""

from __future__ import annotations
from statistics import fmean
from typing import List, Optional, Sequence, TYPE_CHECKING
import logging

from calcnotes.bootstrap.config import CalcNotesConfig
from calcnotes.core.dataclasses import CalculationResult, CanvasItem, DerivedNote, Position, utc_now
from calcnotes.core.enums import Operation
from calcnotes.core.numeric import aggregate, format_result, is_numeric_item, parse_numeric
from calcnotes.errors import CalculationFailedError, SelectionValidationError, TransientIOError

if TYPE_CHECKING:
    from calcnotes.canvas.protocol import CanvasAdapter
    from calcnotes.dependencies.index import DependencyIndex
    from calcnotes.persistence.bridge import PersistenceBridge

logger = logging.getLogger(__name__)


def place_below(items: Sequence[CanvasItem], offset: float) -> Position:
    """Horizontal centroid of the sources, ``offset`` below the lowest one."""
    return Position(
        x=fmean(item.x for item in items),
        y=max(item.y for item in items) + offset,
    )


class CalculationOrchestrator:
    """
    Handles user-initiated creation of calculator notes.
    """

    def __init__(
        self,
        index: "DependencyIndex",
        canvas: "CanvasAdapter",
        bridge: "PersistenceBridge",
        config: Optional[CalcNotesConfig] = None,
    ):
        self._index = index
        self._canvas = canvas
        self._bridge = bridge
        self._config = config or CalcNotesConfig()

    def validate_selection(self, selected_items: Sequence[CanvasItem]) -> List[CanvasItem]:
        """
        Keep the numeric notes of a selection.

        Raises:
            SelectionValidationError: if fewer than ``min_sources`` remain
        """
        required = self._config.min_sources
        numeric = [item for item in selected_items if is_numeric_item(item)]
        if len(numeric) < required:
            raise SelectionValidationError(
                f"Please select at least {required} numeric sticky notes",
                numeric_count=len(numeric),
                required=required,
            )
        return numeric

    async def create_calculation(
        self,
        operation: Operation,
        selected_items: Sequence[CanvasItem],
    ) -> CalculationResult:
        """
        Create and track a new calculator note.

        Args:
            operation: Fold to apply
            selected_items: Selected canvas items; non-numeric ones are ignored

        Returns:
            CalculationResult for the new note

        Raises:
            SelectionValidationError: selection unusable or result undefined
                (nothing was changed)
            CalculationFailedError: canvas refused to create the item
        """
        operation = Operation(operation)
        sources = self.validate_selection(selected_items)

        value = aggregate(operation, [parse_numeric(item.content) for item in sources])
        try:
            content = format_result(value, self._config.decimal_places)
        except ValueError:
            raise SelectionValidationError(
                f"The {operation.label.lower()} of the selected notes is undefined",
                numeric_count=len(sources),
                required=self._config.min_sources,
            )
        position = place_below(sources, self._config.placement_offset)
        style = self._config.note_style.style_for(operation)

        try:
            created = await self._canvas.create_numeric_note(content, position, style)
        except TransientIOError as e:
            logger.error(f"Error creating calculation: {e}")
            raise CalculationFailedError(
                f"Could not create {operation.label.lower()} note: {e.message}",
                original_error=e,
            ) from e

        note = DerivedNote(
            id=created.id,
            operation=operation,
            source_ids=[item.id for item in sources],
            created_at=utc_now(),
        )
        self._index.register(note.id, note)
        persisted = await self._bridge.save(self._index)

        logger.info(
            f"Created {operation.value} note {note.id} = {content} "
            f"from {len(note.source_ids)} source(s)"
        )
        return CalculationResult(
            note=note,
            content=content,
            value=value,
            position=position,
            persisted=persisted,
        )
