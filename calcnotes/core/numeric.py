"""
calcnotes Numeric Filter and Aggregator

Pure helpers shared by the orchestrator and the propagation engine:
deciding whether note content is a usable number, folding values with an
Operation, and rendering a result back into note content.
"""

from __future__ import annotations
from functools import reduce
from typing import Any, Iterable, Optional, TYPE_CHECKING
import math

from calcnotes.core.constants import DECIMAL_PLACES, NUMERIC_NOTE_TYPE
from calcnotes.core.enums import Operation

if TYPE_CHECKING:
    from calcnotes.core.dataclasses import CanvasItem


def _clean(text: Any) -> Optional[str]:
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, float) and math.isinf(text):
        return "-Infinity" if text < 0 else "Infinity"
    if isinstance(text, (int, float)):
        return repr(text)
    if not isinstance(text, str):
        return None
    return text.strip()


def is_numeric_content(text: Any) -> bool:
    """
    Check whether note content parses fully as a number.

    Whitespace is trimmed. Empty strings, partial numbers ("12abc"),
    digit grouping ("1_000", "1,000") and NaN are rejected. The only
    spelled-out value is "Infinity"; "inf" and "infinity" are not numbers.
    """
    cleaned = _clean(text)
    if not cleaned or "_" in cleaned:
        return False
    word = cleaned.lstrip("+-")
    if word[:1].isalpha() and word != "Infinity":
        return False
    try:
        value = float(cleaned)
    except ValueError:
        return False
    return not math.isnan(value)


def parse_numeric(text: Any) -> float:
    """
    Parse numeric note content.

    Raises:
        ValueError: if the content is not numeric
    """
    if not is_numeric_content(text):
        raise ValueError(f"Not numeric content: {text!r}")
    return float(_clean(text))


def is_numeric_item(item: Optional["CanvasItem"]) -> bool:
    """Check that an item exists, is a numeric note, and holds a number."""
    if item is None:
        return False
    return item.type == NUMERIC_NOTE_TYPE and is_numeric_content(item.content)


def aggregate(operation: Operation, values: Iterable[float]) -> float:
    """
    Fold values with the operation, seeded with its identity element.

    An empty sequence yields the identity; callers treat "no sources" as a
    reason to retire a note rather than as a valid result.
    """
    return reduce(operation.apply, values, operation.identity)


def format_result(value: float, decimal_places: int = DECIMAL_PLACES) -> str:
    """
    Render a computed value as note content.

    Integral values have no fractional part; anything else is rounded to
    ``decimal_places`` with trailing zeros stripped, so 1.1 + 2.2 reads
    "3.3". Infinite values read "Infinity" or "-Infinity".

    Raises:
        ValueError: if the value is NaN (e.g. Infinity + -Infinity)
    """
    if math.isnan(value):
        raise ValueError("Result is not a number")
    if math.isinf(value):
        return "-Infinity" if value < 0 else "Infinity"
    if float(value).is_integer():
        return str(int(value))

    text = f"{value:.{decimal_places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text
