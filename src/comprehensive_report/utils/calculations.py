"""
Numeric helpers shared by the recomputation, chart and workbook code.

Every figure printed in the report goes through these functions so that the
chart labels, the summary cards and the audit workbook agree to the character.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

NEUTRAL_DELTA = "–"


def to_fixed(value: float, decimals: int) -> str:
    """
    Fixed-point text identical to the dashboard's ``Number.prototype.toFixed``.

    Ties round away from zero on the exact binary value of the float, and the
    sign is applied to the rounded magnitude.
    """
    quantum = Decimal(1).scaleb(-decimals)
    text = str(Decimal(abs(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    return "-" + text if value < 0 else text


def js_round(value: float) -> int:
    """Integer rounding with ties towards positive infinity, as ``Math.round``."""
    return int(math.floor(value + 0.5))


def percent_delta(current: float, previous: float) -> Optional[float]:
    """
    Percentage change between two consecutive period values.

    Args:
        current: Current period value
        previous: Previous period value

    Returns:
        (current - previous) / |previous| * 100, or None when previous is zero
    """
    if previous == 0:
        return None
    return ((current - previous) / abs(previous)) * 100


def consecutive_deltas(values: Sequence[float]) -> List[Optional[float]]:
    """Deltas between each value and the one before it; the first entry is None."""
    deltas: List[Optional[float]] = [None]
    for idx in range(1, len(values)):
        deltas.append(percent_delta(values[idx], values[idx - 1]))
    return deltas[:len(values)]


def format_compact(value: float) -> str:
    """
    Format a value the way the dashboard labels bars and cards.

    Magnitudes of a million or more render as ``n.nn M``, of a thousand or more
    as ``n.n K``, anything smaller as a rounded integer.
    """
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"{to_fixed(value / 1_000_000, 2)} M"
    if magnitude >= 1_000:
        return f"{to_fixed(value / 1_000, 1)} K"
    return str(js_round(value))


def format_delta(delta: Optional[float]) -> str:
    """Sign-prefixed one-decimal percentage, or the neutral glyph for no delta."""
    if delta is None or math.isnan(delta):
        return NEUTRAL_DELTA
    text = f"{to_fixed(delta, 1)}%"
    if delta > 0 and text != "0.0%":
        return "+" + text
    if text == "-0.0%":
        return "0.0%"
    return text


def delta_direction(delta: Optional[float]) -> str:
    """Classify a delta as up, down or flat for colouring."""
    if delta is None or to_fixed(abs(delta), 1) == "0.0":
        return "flat"
    return "up" if delta > 0 else "down"


def safe_ratio(numerator: float, denominator: float) -> float:
    """Division that returns zero for a zero or negative denominator."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def percent_of(part: float, whole: float) -> float:
    """Share of ``whole`` as a percentage, zero when ``whole`` is zero."""
    if whole == 0:
        return 0.0
    return (part / whole) * 100


def format_percent(value: float, decimals: int = 1) -> str:
    """Plain percentage without a sign prefix."""
    return f"{to_fixed(value, decimals)}%"


def format_per_kg(value: float) -> str:
    """Two-decimal amount per kilogram."""
    return f"{to_fixed(value, 2)} /kg"
