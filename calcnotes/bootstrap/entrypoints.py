"""
bootstrap/entrypoints.py - Host entry points

Logging setup and session construction for host adapters.
"""

from __future__ import annotations
from typing import Optional, TYPE_CHECKING
import json
import logging
import sys

from calcnotes.bootstrap.config import CalcNotesConfig, get_config

if TYPE_CHECKING:
    from calcnotes.canvas.protocol import CanvasAdapter
    from calcnotes.kernel.session import CalculatorSession

logger = logging.getLogger("bootstrap.entrypoints")


class JSONFormatter(logging.Formatter):
    def format(self, record):
        return json.dumps({
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        })


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False,
    fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        fmt: Format string for plain-text logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JSONFormatter() if json_format else logging.Formatter(fmt)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)


def create_session(
    canvas: "CanvasAdapter",
    config: Optional[CalcNotesConfig] = None,
    configure_logging: bool = False,
) -> "CalculatorSession":
    """
    Build a calculator session for a canvas adapter.

    Args:
        canvas: Host adapter
        config: Configuration (process-wide config if omitted)
        configure_logging: Apply the logging section of the config
    """
    from calcnotes.kernel.session import CalculatorSession

    config = config or get_config()
    if configure_logging:
        setup_logging(
            level=config.logging.level,
            log_file=config.logging.log_file,
            json_format=config.logging.json_logs,
            fmt=config.logging.format,
        )
    logger.debug(f"Creating calculator session (metadata_key={config.metadata_key})")
    return CalculatorSession(canvas, config)
