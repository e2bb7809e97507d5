"""
calcnotes/bootstrap - Configuration and entry points

Entry points live in ``calcnotes.bootstrap.entrypoints`` and are imported
from there directly.
"""

from .config import (
    CalcNotesConfig,
    NoteStyleConfig,
    LoggingConfig,
    load_config,
    get_config,
)

__all__ = [
    "CalcNotesConfig",
    "NoteStyleConfig",
    "LoggingConfig",
    "load_config",
    "get_config",
]
