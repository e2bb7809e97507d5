"""
calcnotes Propagation Engine

Reacts to canvas change and delete batches: recomputes calculator notes
whose sources changed and retires notes that can no longer be computed.

Deleting a source does not trigger anything by itself. The note notices
the missing source the next time it is recomputed, either because a sibling
source changed or because a full sweep ran.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING
import asyncio
import logging
import time

from calcnotes.core.dataclasses import DerivedNote, utc_now
from calcnotes.core.enums import RecomputeOutcome
from calcnotes.core.numeric import aggregate, format_result, is_numeric_item, parse_numeric
from calcnotes.core.constants import DECIMAL_PLACES
from calcnotes.errors import TransientIOError

if TYPE_CHECKING:
    from calcnotes.canvas.protocol import CanvasAdapter
    from calcnotes.dependencies.index import DependencyIndex
    from calcnotes.persistence.bridge import PersistenceBridge

logger = logging.getLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class RecomputeResult:
    """Result of recomputing a single calculator note."""
    derived_id: str
    outcome: RecomputeOutcome
    content: Optional[str] = None
    used_sources: List[str] = field(default_factory=list)
    dropped_sources: List[str] = field(default_factory=list)
    execution_time_ms: int = 0
    error: Optional[str] = None

    @property
    def membership_changed(self) -> bool:
        return self.outcome in (RecomputeOutcome.RETIRED, RecomputeOutcome.DETACHED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "derived_id": self.derived_id,
            "outcome": self.outcome.value,
            "content": self.content,
            "used_sources": self.used_sources,
            "dropped_sources": self.dropped_sources,
            "execution_time_ms": self.execution_time_ms,
            "error": self.error,
        }


@dataclass
class PropagationReport:
    """Result of handling one event batch."""
    trigger: str
    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    trigger_ids: List[str] = field(default_factory=list)
    results: Dict[str, RecomputeResult] = field(default_factory=dict)
    removed: List[str] = field(default_factory=list)
    persisted: Optional[bool] = None

    def _count(self, outcome: RecomputeOutcome) -> int:
        return sum(1 for r in self.results.values() if r.outcome == outcome)

    @property
    def updated_count(self) -> int:
        return self._count(RecomputeOutcome.UPDATED)

    @property
    def retired_count(self) -> int:
        return self._count(RecomputeOutcome.RETIRED)

    @property
    def detached_count(self) -> int:
        return self._count(RecomputeOutcome.DETACHED)

    @property
    def failed_count(self) -> int:
        return self._count(RecomputeOutcome.FAILED)

    @property
    def membership_changed(self) -> bool:
        return bool(self.removed) or any(r.membership_changed for r in self.results.values())

    @property
    def success(self) -> bool:
        return self.failed_count == 0

    def get_summary(self) -> Dict[str, Any]:
        return {
            "trigger": self.trigger,
            "success": self.success,
            "recomputed": len(self.results),
            "updated": self.updated_count,
            "retired": self.retired_count,
            "detached": self.detached_count,
            "failed": self.failed_count,
            "removed": len(self.removed),
            "persisted": self.persisted,
        }


# =============================================================================
# PROPAGATION ENGINE
# =============================================================================

class PropagationEngine:
    """
    Keeps calculator notes consistent with their sources.

    All index mutations happen synchronously after the canvas call they
    depend on has completed; callers must not run two batches at once
    (the session's EventDispatcher guarantees this).
    """

    def __init__(
        self,
        index: "DependencyIndex",
        canvas: "CanvasAdapter",
        bridge: "PersistenceBridge",
        decimal_places: int = DECIMAL_PLACES,
    ):
        self._index = index
        self._canvas = canvas
        self._bridge = bridge
        self._decimal_places = decimal_places

    @property
    def index(self) -> "DependencyIndex":
        return self._index

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    async def on_items_changed(self, item_ids: Iterable[str]) -> PropagationReport:
        """
        Recompute every calculator note that depends on a changed item.

        Each affected note is recomputed once per batch, however many of
        its sources changed. One note failing does not stop the others.
        """
        report = PropagationReport(trigger="items_changed", trigger_ids=list(item_ids))

        affected: Dict[str, DerivedNote] = {}
        for item_id in report.trigger_ids:
            for derived_id, note in self._index.entries_depending_on(item_id):
                affected.setdefault(derived_id, note)

        if affected:
            logger.debug(f"{len(affected)} calculator note(s) affected by {len(report.trigger_ids)} change(s)")
            await self._recompute_many(list(affected.values()), report)

        return await self._finish(report)

    async def on_items_deleted(self, item_ids: Iterable[str]) -> PropagationReport:
        """
        Stop tracking calculator notes that were deleted on the canvas.

        Deleted sources are left alone here.
        """
        report = PropagationReport(trigger="items_deleted", trigger_ids=list(item_ids))

        for item_id in report.trigger_ids:
            if self._index.unregister(item_id) is not None:
                logger.info(f"Calculator note {item_id} deleted on canvas")
                report.removed.append(item_id)

        return await self._finish(report)

    async def recompute_all(self) -> PropagationReport:
        """Recompute every tracked note (explicit sweep, never scheduled)."""
        report = PropagationReport(trigger="recompute_all", trigger_ids=self._index.ids())
        notes = [note for _, note in self._index.items()]
        if notes:
            await self._recompute_many(notes, report)
        return await self._finish(report)

    async def _recompute_many(self, notes: List[DerivedNote], report: PropagationReport) -> None:
        results = await asyncio.gather(
            *(self.recompute(note, persist=False) for note in notes),
            return_exceptions=True,
        )
        for note, result in zip(notes, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(f"Error updating calculator note {note.id}: {result}")
                result = RecomputeResult(
                    derived_id=note.id,
                    outcome=RecomputeOutcome.FAILED,
                    error=str(result),
                )
            report.results[note.id] = result

    async def _finish(self, report: PropagationReport) -> PropagationReport:
        if report.membership_changed:
            report.persisted = await self._bridge.save(self._index)
        report.completed_at = utc_now()
        logger.debug(f"Propagation finished: {report.get_summary()}")
        return report

    # -------------------------------------------------------------------------
    # Recompute
    # -------------------------------------------------------------------------

    async def recompute(self, note: DerivedNote, persist: bool = True) -> RecomputeResult:
        """
        Recompute one calculator note from its live sources.

        Args:
            note: Note to recompute
            persist: Save the index if the note is retired or detached

        Returns:
            RecomputeResult; this method does not raise for canvas failures
        """
        start = time.perf_counter()
        result = await self._recompute(note)
        result.execution_time_ms = int((time.perf_counter() - start) * 1000)

        if persist and result.membership_changed:
            await self._bridge.save(self._index)
        return result

    async def _recompute(self, note: DerivedNote) -> RecomputeResult:
        result = RecomputeResult(derived_id=note.id, outcome=RecomputeOutcome.FAILED)

        # Step 1: live, numeric sources for this pass only
        fetched: Dict[str, Any] = {}
        values: List[float] = []
        for source_id in note.source_ids:
            if source_id not in fetched:
                try:
                    fetched[source_id] = await self._canvas.fetch_item(source_id)
                except TransientIOError as e:
                    logger.error(f"Error fetching source {source_id} of {note.id}: {e}")
                    result.error = str(e)
                    return result

            item = fetched[source_id]
            if is_numeric_item(item):
                values.append(parse_numeric(item.content))
                result.used_sources.append(source_id)
            else:
                logger.debug(f"Source item not usable: {source_id}")
                result.dropped_sources.append(source_id)

        # Step 2: nothing left to compute from
        if not values:
            return await self._retire(note, result)

        # Step 3: write the new result
        try:
            content = format_result(aggregate(note.operation, values), self._decimal_places)
        except ValueError as e:
            # Undefined result; leave the note as it is
            logger.warning(f"Calculator note {note.id} has no defined result: {e}")
            result.error = str(e)
            return result
        result.content = content
        try:
            written = await self._canvas.update_item_content(note.id, content)
        except TransientIOError as e:
            logger.error(f"Error updating calculator note {note.id}: {e}")
            result.error = str(e)
            written = False

        # Step 4: a failed write means the note is gone
        if not written:
            if self._index.get(note.id) is note:
                self._index.unregister(note.id)
            logger.info(f"Calculator note {note.id} no longer writable; stopped tracking")
            result.outcome = RecomputeOutcome.DETACHED
            return result

        result.outcome = RecomputeOutcome.UPDATED
        return result

    async def _retire(self, note: DerivedNote, result: RecomputeResult) -> RecomputeResult:
        try:
            deleted = await self._canvas.delete_item(note.id)
        except TransientIOError as e:
            # Item may still exist; keep tracking it
            logger.error(f"Error deleting orphaned calculator note {note.id}: {e}")
            result.error = str(e)
            return result

        if not deleted:
            logger.debug(f"Calculator note already deleted: {note.id}")
        if self._index.get(note.id) is note:
            self._index.unregister(note.id)
        logger.info(f"Retired calculator note {note.id}: no usable sources left")
        result.outcome = RecomputeOutcome.RETIRED
        return result
