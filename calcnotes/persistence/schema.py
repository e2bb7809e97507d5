"""
calcnotes/persistence/schema.py - Persisted index record

Pydantic models for the metadata record holding the dependency index.

Layout (version 1):
    {"schemaVersion": 1,
     "notes": {"<id>": {"operation": "sum", "sourceIds": [...],
                        "operationSymbol": "+", "createdAt": <epoch ms>}}}

Unversioned records (a bare id -> note mapping) are read as legacy data.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from calcnotes.core.constants import SCHEMA_VERSION
from calcnotes.core.dataclasses import DerivedNote, from_epoch_ms, to_epoch_ms, utc_now
from calcnotes.core.enums import Operation
from calcnotes.errors import PersistedIndexError

logger = logging.getLogger(__name__)

LEGACY_SCHEMA_VERSION = 0

# Representable datetime range, in epoch milliseconds
MIN_CREATED_AT_MS = to_epoch_ms(datetime.min.replace(tzinfo=timezone.utc))
MAX_CREATED_AT_MS = to_epoch_ms(datetime.max.replace(tzinfo=timezone.utc))


class PersistedNote(BaseModel):
    """One calculator note as stored in metadata."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    operation: Operation = Field(..., description="Fold applied to the sources")
    source_ids: List[str] = Field(..., alias="sourceIds", description="Source item ids")
    operation_symbol: Optional[str] = Field(None, alias="operationSymbol")
    created_at: Optional[int] = Field(
        None,
        alias="createdAt",
        ge=MIN_CREATED_AT_MS,
        le=MAX_CREATED_AT_MS,
        description="Epoch milliseconds",
    )

    def to_note(self, note_id: str) -> DerivedNote:
        return DerivedNote(
            id=note_id,
            operation=self.operation,
            source_ids=list(self.source_ids),
            created_at=from_epoch_ms(self.created_at) if self.created_at is not None else utc_now(),
        )


class PersistedIndexHeader(BaseModel):
    """Envelope of a versioned record. Notes are validated one by one."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    schema_version: int = Field(..., alias="schemaVersion", ge=1)
    notes: Dict[str, Any] = Field(default_factory=dict)


def dump_notes(notes: List[DerivedNote]) -> Dict[str, Any]:
    """Build the versioned record for a list of notes."""
    return {
        "schemaVersion": SCHEMA_VERSION,
        "notes": {note.id: note.to_dict() for note in notes},
    }


def parse_payload(payload: Any) -> Tuple[int, List[DerivedNote], List[str]]:
    """
    Interpret a stored record.

    Returns:
        (schema_version, notes, rejected_ids). Records that fail validation
        are skipped and their ids returned in ``rejected_ids``.

    Raises:
        PersistedIndexError: if the payload is not a record this version
            can read
    """
    if not isinstance(payload, dict):
        raise PersistedIndexError(
            f"Expected a mapping, got {type(payload).__name__}", payload=payload
        )

    if "schemaVersion" in payload:
        try:
            header = PersistedIndexHeader.model_validate(payload)
        except PydanticValidationError as e:
            raise PersistedIndexError(f"Invalid index envelope: {e}", payload=payload)
        if header.schema_version > SCHEMA_VERSION:
            raise PersistedIndexError(
                f"Unsupported schema version {header.schema_version} "
                f"(this build reads up to {SCHEMA_VERSION})",
                payload=payload,
            )
        version = header.schema_version
        records = header.notes
    else:
        version = LEGACY_SCHEMA_VERSION
        records = payload

    notes: List[DerivedNote] = []
    rejected: List[str] = []
    for note_id, record in records.items():
        try:
            notes.append(PersistedNote.model_validate(record).to_note(str(note_id)))
        except PydanticValidationError as e:
            logger.warning(f"Dropping unreadable note record {note_id}: {e.error_count()} error(s)")
            rejected.append(str(note_id))

    return version, notes, rejected
