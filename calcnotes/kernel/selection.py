"""
calcnotes Selection Summary

Turns the raw canvas selection into the numeric notes a calculation would
use and the hint shown to the user.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List

from calcnotes.core.constants import MIN_SOURCES
from calcnotes.core.dataclasses import CanvasItem
from calcnotes.core.numeric import is_numeric_item


@dataclass
class SelectionSummary:
    items: List[CanvasItem] = field(default_factory=list)
    min_sources: int = MIN_SOURCES

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def can_calculate(self) -> bool:
        return self.count >= self.min_sources

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    @property
    def message(self) -> str:
        if self.count == 0:
            return f"Select {self.min_sources} or more sticky notes with numbers"
        if self.count < self.min_sources:
            missing = self.min_sources - self.count
            noun = "note" if self.count == 1 else "notes"
            return (
                f"{self.count} numeric sticky {noun} selected. "
                f"Select at least {missing} more."
            )
        return f"{self.count} numeric sticky notes selected"


def summarize_selection(items: Iterable[CanvasItem], min_sources: int = MIN_SOURCES) -> SelectionSummary:
    """Keep the numeric notes of a selection, in selection order."""
    return SelectionSummary(
        items=[item for item in items if is_numeric_item(item)],
        min_sources=min_sources,
    )
