"""
calcnotes Dependency & Propagation Engine

Provides:
- DependencyIndex: calculator note id -> descriptor, with reverse source lookup
- PropagationEngine: recomputes or retires notes on canvas events
"""

from .index import DependencyIndex
from .propagation import (
    PropagationEngine,
    PropagationReport,
    RecomputeResult,
)

__all__ = [
    "DependencyIndex",
    "PropagationEngine",
    "PropagationReport",
    "RecomputeResult",
]
