"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Odds conversion** — American ↔ decimal.
2. **Implied probability** — reciprocal of the decimal price.
3. **Expected value** — EV of a price against an assumed-true probability.
4. **Logistic squashing** — bounded, saturating transform used for the
   confidence score.

Design decisions
----------------
* Decimal odds are the working currency.  The feeds that supply entry and
  closing prices quote decimal (European) odds; American odds are accepted
  at the API edge only and converted once with :func:`american_to_decimal`.
* No de-vigging happens here.  The closing price handed to the CLV
  calculator is assumed to already be a fair / market-consensus price.
* Arithmetic on raw prices follows IEEE-754 semantics (``numpy.float64``
  with divide/invalid warnings silenced): a zero price produces ``inf`` and
  the resulting ``nan``s propagate instead of raising ``ZeroDivisionError``.
  Callers that want a hard failure call :func:`validate_decimal_odds` first.
* The logistic uses :func:`scipy.special.expit`, which saturates cleanly at
  0 and 1 for arguments where ``math.exp`` would overflow.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final

import numpy as np
from scipy.special import expit

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  |odds| < 100 is not a representable
#: American price and indicates a parsing error upstream.
_MIN_AMERICAN_MAGNITUDE: Final[int] = 100


class InvalidOddsError(ValueError):
    """Raised when a price cannot be turned into a meaningful probability."""


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091   (risk 110 to win 100)
        american_to_decimal(+150) → 2.5000   (risk 100 to win 150)

    Raises:
        InvalidOddsError: If ``|american| < 100``.
    """
    if abs(american) < _MIN_AMERICAN_MAGNITUDE:
        raise InvalidOddsError(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100. "
            "Check upstream odds parsing for data errors."
        )
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Inverse of :func:`american_to_decimal`, rounded for display.  Values
    ≥ 2.0 come back positive (underdog), values below 2.0 negative.

    Raises:
        InvalidOddsError: If ``decimal_odds <= 1.0`` (no American equivalent).
    """
    if not decimal_odds > 1.0:
        raise InvalidOddsError(
            f"Decimal odds {decimal_odds!r} must be > 1.0 to express in American format."
        )
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    return round(-100.0 / (decimal_odds - 1.0))


def validate_decimal_odds(decimal_odds: float, name: str = "odds") -> None:
    """Raise :class:`InvalidOddsError` unless ``decimal_odds`` is a usable price.

    Usable means positive, finite, and large enough that its implied
    probability is finite too: a subnormal price such as ``1e-320`` passes
    ``> 0`` but ``1 / odds`` overflows to ``inf``.
    """
    if not math.isfinite(decimal_odds) or decimal_odds <= 0.0:
        raise InvalidOddsError(
            f"{name}={decimal_odds!r} is not a valid decimal price; must be > 0."
        )
    if not math.isfinite(implied_prob(decimal_odds)):
        raise InvalidOddsError(
            f"{name}={decimal_odds!r} is too small; its implied probability overflows."
        )


# ---------------------------------------------------------------------------
# Probability and value
# ---------------------------------------------------------------------------


def implied_prob(decimal_odds: float) -> float:
    """Raw implied probability of a decimal price: ``1 / decimal_odds``.

    No overround is removed.  A zero price returns ``inf`` rather than
    raising, matching IEEE division.

    Examples::

        implied_prob(2.0)  → 0.5
        implied_prob(1.8)  → 0.5556
    """
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        return float(np.float64(1.0) / np.float64(decimal_odds))


def expected_value(true_prob: float, decimal_odds: float) -> float:
    """Expected profit per unit staked at ``decimal_odds``.

    ``EV = p · odds − 1``.  A fair bet has EV 0; positive EV means the price
    is longer than the true probability warrants.
    """
    with np.errstate(invalid="ignore", over="ignore"):
        return float(np.float64(true_prob) * np.float64(decimal_odds) - 1.0)


def logistic(x: float, steepness: float, midpoint: float) -> float:
    """Standard logistic ``1 / (1 + exp(−steepness · (x − midpoint)))``.

    Returns a value in ``[0, 1]`` (exactly 0.5 at ``x == midpoint``).
    ``nan`` input yields ``nan``; ``±inf`` saturates to 1 or 0.
    """
    with np.errstate(invalid="ignore"):
        return float(expit(np.float64(steepness) * (np.float64(x) - np.float64(midpoint))))
