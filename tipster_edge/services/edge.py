"""
Edge normalization and derivation.

Upstream producers are inconsistent about how they encode a parlay's edge:
some emit a decimal fraction (``0.0833`` = 8.33%), others a percentage
(``8.33``), and a known bug occasionally multiplies an already-percentage
value by ten again (``833.33``).  Every consumer in this package goes
through :func:`normalize_edge` so the disambiguation policy lives in one
place.

The policy is a heuristic, not a law of nature:

* ``|edge| > DECIMAL_EDGE_THRESHOLD`` (1): already a percentage.  Decimal
  edges live in the 0-1 band (typically 0.05-0.30), while percentage-scale
  edges routinely sit between 5 and 50.
* ``|edge| > SUSPICIOUS_EDGE_THRESHOLD`` (100): the scaling bug; divide by
  ``SUSPICIOUS_EDGE_DIVISOR`` (10).
* otherwise: a decimal fraction; multiply by 100.

A consequence is that the function is not idempotent for small inputs:
``normalize_edge(0.005) == 0.5`` but ``normalize_edge(0.5) == 50.0``.  It
is stable once the result lies outside the decimal band.

None of these helpers raise.  Unparseable input is treated as a zero edge.
"""

import logging
import math
from typing import Final, Optional, Tuple, Union

logger = logging.getLogger(__name__)

EdgeValue = Union[float, int, str, None]

#: At or below this magnitude a value is read as a decimal fraction.
DECIMAL_EDGE_THRESHOLD: Final[float] = 1.0

#: Above this magnitude a percentage is assumed to carry the ×10 upstream bug.
SUSPICIOUS_EDGE_THRESHOLD: Final[float] = 100.0

#: Correction applied to suspicious magnitudes.
SUSPICIOUS_EDGE_DIVISOR: Final[float] = 10.0

_EDGE_COLORS: Tuple[Tuple[float, str], ...] = (
    (20, "text-emerald-400"),
    (10, "text-yellow-400"),
    (5, "text-blue-400"),
)
_EDGE_COLOR_FALLBACK = "text-slate-400"


def _parse_edge(edge: EdgeValue) -> Optional[float]:
    """Float value of ``edge`` or None when it is not a finite number."""
    if edge is None:
        return 0.0
    if isinstance(edge, str):
        text = edge.strip()
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        try:
            value = float(edge)
        except (TypeError, ValueError):
            return None
    return value if math.isfinite(value) else None


def normalize_edge(edge: EdgeValue) -> float:
    """Return ``edge`` on the percentage scale (8.33 means 8.33%)."""
    value = _parse_edge(edge)
    if value is None:
        logger.debug("Unparseable edge %r treated as 0", edge)
        return 0.0

    if abs(value) > DECIMAL_EDGE_THRESHOLD:
        if abs(value) > SUSPICIOUS_EDGE_THRESHOLD:
            logger.debug("Suspicious edge %.4f rescaled by 1/%g", value, SUSPICIOUS_EDGE_DIVISOR)
            return value / SUSPICIOUS_EDGE_DIVISOR
        return value

    return value * 100.0


def format_edge(edge: EdgeValue) -> str:
    """Normalized edge with an explicit sign: ``-0.05`` → ``-5.00%``."""
    normalized = normalize_edge(edge)
    if normalized == 0:
        normalized = 0.0  # drop the sign of -0.0
    return f"{normalized:+.2f}%"


def is_suspicious_edge(edge: EdgeValue) -> bool:
    """True when the edge is still implausibly large after normalization."""
    return abs(normalize_edge(edge)) > SUSPICIOUS_EDGE_THRESHOLD


def calculate_edge(model_prob: float, decimal_odds: float) -> float:
    """
    Edge of a model probability against a market price, in percent.

    ``(model_prob / (1 / decimal_odds) − 1) · 100``.  Returns 0 when either
    input is non-positive.

    Example::

        calculate_edge(0.55, 2.0) → 10.0
    """
    if decimal_odds <= 0 or model_prob <= 0:
        return 0.0
    implied = 1.0 / decimal_odds
    return (model_prob / implied - 1.0) * 100.0


def get_edge_color(edge: EdgeValue) -> str:
    """Text colour class for the magnitude of a normalized edge (four tiers)."""
    magnitude = abs(normalize_edge(edge))
    for threshold, label in _EDGE_COLORS:
        if magnitude >= threshold:
            return label
    return _EDGE_COLOR_FALLBACK
