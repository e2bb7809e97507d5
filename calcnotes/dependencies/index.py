"""
calcnotes Dependency Index

Authoritative in-memory mapping from calculator note id to its descriptor,
plus a reverse lookup from source item to the notes computed from it.

The reverse lookup is a directed graph with edges source -> derived. A
calculator note can itself be a source of another note, so the same id may
carry both incoming and outgoing edges.
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Optional, Tuple
import logging

import networkx as nx

from calcnotes.core.dataclasses import DerivedNote

logger = logging.getLogger(__name__)


class DependencyIndex:
    """
    Index of calculator notes keyed by canvas item id.

    Usage:
        index = DependencyIndex()
        index.register(note.id, note)
        for derived_id, note in index.entries_depending_on("source-1"):
            ...
    """

    def __init__(self):
        self._notes: Dict[str, DerivedNote] = {}
        self._graph = nx.DiGraph()

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def register(self, derived_id: str, note: DerivedNote) -> None:
        """
        Track a calculator note, replacing any previous entry for the id.

        Raises:
            ValueError: if the descriptor belongs to a different item
        """
        if note.id != derived_id:
            raise ValueError(f"Descriptor id {note.id!r} does not match {derived_id!r}")

        if derived_id in self._notes:
            self._drop_edges(derived_id)

        self._notes[derived_id] = note
        self._graph.add_node(derived_id)
        for source_id in note.source_ids:
            self._graph.add_edge(source_id, derived_id)

        logger.debug(
            f"Registered {derived_id} ({note.operation.value}, {len(note.source_ids)} sources)"
        )

    def unregister(self, derived_id: str) -> Optional[DerivedNote]:
        """Stop tracking a calculator note. Returns the removed descriptor."""
        note = self._notes.pop(derived_id, None)
        if note is None:
            return None

        self._drop_edges(derived_id)
        logger.debug(f"Unregistered {derived_id}")
        return note

    def clear(self) -> None:
        self._notes.clear()
        self._graph.clear()

    def _drop_edges(self, derived_id: str) -> None:
        sources = list(self._graph.predecessors(derived_id))
        self._graph.remove_edges_from((source_id, derived_id) for source_id in sources)

        for node in sources + [derived_id]:
            if node in self._graph and self._graph.degree(node) == 0 and node not in self._notes:
                self._graph.remove_node(node)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, derived_id: str) -> Optional[DerivedNote]:
        return self._notes.get(derived_id)

    def entries_depending_on(self, source_id: str) -> List[Tuple[str, DerivedNote]]:
        """
        Get every calculator note whose sources include ``source_id``.

        Each note appears once even if the source is listed several times.
        """
        if source_id not in self._graph:
            return []
        return [
            (derived_id, self._notes[derived_id])
            for derived_id in self._graph.successors(source_id)
            if derived_id in self._notes
        ]

    def sources_of(self, derived_id: str) -> List[str]:
        """Distinct source ids of a tracked note (empty if untracked)."""
        if derived_id not in self._notes:
            return []
        return list(self._graph.predecessors(derived_id))

    def ids(self) -> List[str]:
        return list(self._notes.keys())

    def items(self) -> List[Tuple[str, DerivedNote]]:
        return list(self._notes.items())

    def __contains__(self, derived_id: object) -> bool:
        return derived_id in self._notes

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._notes))

    def __repr__(self) -> str:
        return f"DependencyIndex(notes={len(self._notes)}, edges={self._graph.number_of_edges()})"
