"""
calcnotes/canvas - Canvas capability interface and reference adapter
"""

from .protocol import CanvasAdapter, CanvasEventKind, CanvasEventHandler
from .memory import InMemoryCanvas

__all__ = [
    "CanvasAdapter",
    "CanvasEventKind",
    "CanvasEventHandler",
    "InMemoryCanvas",
]
