"""
bootstrap/config.py - Application configuration

Configuration loading from JSON files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from calcnotes.core import constants
from calcnotes.core.dataclasses import NoteStyle
from calcnotes.core.enums import Operation

logger = logging.getLogger("bootstrap.config")


@dataclass
class NoteStyleConfig:
    """Look of newly created calculator notes."""

    sum_fill_color: str = constants.SUM_FILL_COLOR
    product_fill_color: str = constants.PRODUCT_FILL_COLOR
    text_align: str = constants.TEXT_ALIGN

    def style_for(self, operation: Operation) -> NoteStyle:
        if operation is Operation.SUM:
            return NoteStyle(fill_color=self.sum_fill_color, text_align=self.text_align)
        return NoteStyle(fill_color=self.product_fill_color, text_align=self.text_align)

    @classmethod
    def from_env(cls) -> "NoteStyleConfig":
        return cls(
            sum_fill_color=os.getenv("CALCNOTES_SUM_COLOR", constants.SUM_FILL_COLOR),
            product_fill_color=os.getenv("CALCNOTES_PRODUCT_COLOR", constants.PRODUCT_FILL_COLOR),
            text_align=os.getenv("CALCNOTES_TEXT_ALIGN", constants.TEXT_ALIGN),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("CALCNOTES_LOG_LEVEL", "INFO"),
            format=os.getenv("CALCNOTES_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("CALCNOTES_LOG_FILE"),
            json_logs=os.getenv("CALCNOTES_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class CalcNotesConfig:
    """Root configuration."""

    metadata_key: str = constants.DEFAULT_METADATA_KEY
    min_sources: int = constants.MIN_SOURCES
    decimal_places: int = constants.DECIMAL_PLACES
    placement_offset: float = constants.PLACEMENT_OFFSET
    dispatcher_history: int = 100

    note_style: NoteStyleConfig = field(default_factory=NoteStyleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "CalcNotesConfig":
        """Create configuration from environment variables."""
        return cls(
            metadata_key=os.getenv("CALCNOTES_METADATA_KEY", constants.DEFAULT_METADATA_KEY),
            min_sources=int(os.getenv("CALCNOTES_MIN_SOURCES", str(constants.MIN_SOURCES))),
            decimal_places=int(os.getenv("CALCNOTES_DECIMAL_PLACES", str(constants.DECIMAL_PLACES))),
            placement_offset=float(os.getenv("CALCNOTES_PLACEMENT_OFFSET", str(constants.PLACEMENT_OFFSET))),
            dispatcher_history=int(os.getenv("CALCNOTES_DISPATCHER_HISTORY", "100")),
            note_style=NoteStyleConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "CalcNotesConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "CalcNotesConfig":
        """Create config from dictionary (environment first, file values on top)."""
        config = cls.from_env()

        for key in ("metadata_key", "min_sources", "decimal_places", "placement_offset", "dispatcher_history"):
            if key in data:
                setattr(config, key, data[key])

        if "note_style" in data:
            for key, value in data["note_style"].items():
                if hasattr(config.note_style, key):
                    setattr(config.note_style, key, value)

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, value)

        if config.min_sources < 1:
            raise ValueError(f"min_sources must be at least 1, got {config.min_sources}")

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "metadata_key": self.metadata_key,
            "min_sources": self.min_sources,
            "decimal_places": self.decimal_places,
            "placement_offset": self.placement_offset,
            "dispatcher_history": self.dispatcher_history,
            "note_style": {
                "sum_fill_color": self.note_style.sum_fill_color,
                "product_fill_color": self.note_style.product_fill_color,
                "text_align": self.note_style.text_align,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[CalcNotesConfig] = None


def load_config(filepath: str = None) -> CalcNotesConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file
    """
    global _config

    if filepath:
        _config = CalcNotesConfig.from_file(filepath)
    else:
        default_paths = [
            "./calcnotes.json",
            os.path.expanduser("~/.calcnotes/config.json"),
        ]
        for path in default_paths:
            if Path(path).exists():
                _config = CalcNotesConfig.from_file(path)
                break
        else:
            _config = CalcNotesConfig.from_env()

    return _config


def get_config() -> CalcNotesConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
