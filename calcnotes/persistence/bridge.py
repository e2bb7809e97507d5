"""
calcnotes/persistence/bridge.py - Persistence Bridge

Mirrors the dependency index into canvas metadata and rebuilds it on start.

Saves are wholesale and last-writer-wins. Loading reconciles the stored
entries against the live canvas and writes the pruned index back at once,
so the store never lags reality by more than one restart.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from calcnotes.core.constants import DEFAULT_METADATA_KEY
from calcnotes.dependencies.index import DependencyIndex
from calcnotes.errors import TransientIOError
from calcnotes.persistence.schema import dump_notes, parse_payload

if TYPE_CHECKING:
    from calcnotes.canvas.protocol import CanvasAdapter

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    """What a load/reconcile pass found."""
    schema_version: Optional[int] = None
    loaded: int = 0
    kept: List[str] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    unverified: List[str] = field(default_factory=list)
    rewritten: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.pruned or self.rejected)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "loaded": self.loaded,
            "kept": self.kept,
            "pruned": self.pruned,
            "rejected": self.rejected,
            "unverified": self.unverified,
            "rewritten": self.rewritten,
        }


class PersistenceBridge:
    """
    Serializes the dependency index to a single metadata record.
    """

    def __init__(
        self,
        canvas: "CanvasAdapter",
        metadata_key: str = DEFAULT_METADATA_KEY,
    ):
        self._canvas = canvas
        self._metadata_key = metadata_key
        self._lock = asyncio.Lock()

        self.last_error: Optional[Exception] = None
        self.last_report: Optional[ReconciliationReport] = None
        self.save_count = 0

    @property
    def metadata_key(self) -> str:
        return self._metadata_key

    def snapshot(self, index: DependencyIndex) -> Dict[str, Any]:
        """Serialize the index as it is right now."""
        return dump_notes([note for _, note in index.items()])

    async def save(self, index: DependencyIndex) -> bool:
        """
        Write the whole index to metadata.

        Failures are logged and reported through the return value; the
        in-memory index stays authoritative until a later save succeeds.
        """
        async with self._lock:
            # Snapshot under the lock: the last write to finish carries the newest state
            payload = self.snapshot(index)
            try:
                await self._canvas.write_metadata(self._metadata_key, payload)
            except TransientIOError as e:
                self.last_error = e
                logger.error(f"Error saving calculator notes metadata: {e}")
                return False

        self.last_error = None
        self.save_count += 1
        logger.debug(f"Saved {len(payload['notes'])} calculator note(s)")
        return True

    async def load(self, index: Optional[DependencyIndex] = None) -> DependencyIndex:
        """
        Rebuild the index from metadata and reconcile it with the canvas.

        Args:
            index: Index to fill (cleared first); a new one if omitted

        Raises:
            TransientIOError: if the metadata could not be read
            PersistedIndexError: if the stored record is unreadable
        """
        index = index if index is not None else DependencyIndex()
        index.clear()
        report = ReconciliationReport()
        self.last_report = report

        payload = await self._canvas.read_metadata(self._metadata_key)
        if payload is None:
            logger.info("No stored calculator notes")
            return index

        version, notes, rejected = parse_payload(payload)
        report.schema_version = version
        report.loaded = len(notes)
        report.rejected = rejected
        for note in notes:
            index.register(note.id, note)

        await self._reconcile_into(index, report)

        if report.changed:
            report.rewritten = await self.save(index)

        logger.info(
            f"Restored {len(index)} calculator note(s) "
            f"({len(report.pruned)} pruned, {len(report.rejected)} unreadable)"
        )
        return index

    async def reconcile(self, index: DependencyIndex) -> ReconciliationReport:
        """
        Drop entries whose calculator note no longer exists on the canvas.

        Only the notes themselves are probed; stale sources are left to the
        next recompute.
        """
        report = ReconciliationReport(loaded=len(index))
        await self._reconcile_into(index, report)
        if report.changed:
            report.rewritten = await self.save(index)
        self.last_report = report
        return report

    async def _reconcile_into(self, index: DependencyIndex, report: ReconciliationReport) -> None:
        for derived_id in index.ids():
            try:
                item = await self._canvas.fetch_item(derived_id)
            except TransientIOError as e:
                # Absence not proven; keep the entry
                logger.warning(f"Could not verify calculator note {derived_id}: {e}")
                report.unverified.append(derived_id)
                report.kept.append(derived_id)
                continue

            if item is None:
                logger.info(f"Removing deleted calculator note from tracking: {derived_id}")
                index.unregister(derived_id)
                report.pruned.append(derived_id)
            else:
                report.kept.append(derived_id)
