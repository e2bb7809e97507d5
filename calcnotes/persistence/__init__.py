"""
calcnotes/persistence - Persisted dependency index
"""

from .schema import (
    PersistedNote,
    PersistedIndexHeader,
    LEGACY_SCHEMA_VERSION,
    dump_notes,
    parse_payload,
)
from .bridge import PersistenceBridge, ReconciliationReport

__all__ = [
    "PersistedNote",
    "PersistedIndexHeader",
    "LEGACY_SCHEMA_VERSION",
    "dump_notes",
    "parse_payload",
    "PersistenceBridge",
    "ReconciliationReport",
]
