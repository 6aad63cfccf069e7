"""Kelly criterion sizing — the single source of truth for stake math.

All functions here are **pure**: no I/O, no database, no logging.
Import from this module; never reimplement Kelly locally in services.

1. :func:`kelly_fraction` — full Kelly from a known edge and decimal price.
2. :func:`capped_stake` — fractional Kelly with a hard bankroll cap.
3. :func:`kelly_to_units` / :func:`units_to_dollars` — display helpers.

Design decisions
----------------
* The edge passed in is the EV per unit staked (``p · odds − 1``), so the
  closed-form Kelly ``f* = (p · b − q) / b`` reduces to ``edge / b`` with
  ``b = odds − 1`` the net payout.  Only positive edges are sized; a zero or
  negative edge yields 0, never a negative (short) position.
* **Fractional Kelly** (half by default) because the "true" probability is
  itself an estimate; overbetting is punished far harder than underbetting.
* The cap is applied *after* the fraction.  ``numpy.minimum``/``maximum`` are
  used so a ``nan`` produced by degenerate prices stays ``nan`` instead of
  being silently swallowed by Python's ``min``/``max`` ordering rules.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from typing import Final

import numpy as np

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Half-Kelly.  Halves growth-rate variance for a 25% loss of growth rate.
DEFAULT_KELLY_MULTIPLIER: Final[float] = 0.5

#: Hard cap on any single recommended stake: 5% of bankroll.
DEFAULT_MAX_STAKE_FRACTION: Final[float] = 0.05


# ---------------------------------------------------------------------------
# Kelly
# ---------------------------------------------------------------------------


def kelly_fraction(edge: float, decimal_odds: float) -> float:
    """Full Kelly fraction for a bet with known edge.

    Args:
        edge: Expected value per unit staked (``0.10`` = +10% EV).
        decimal_odds: Decimal price taken.  Net odds ``b = decimal_odds − 1``.

    Returns:
        ``edge / b`` when ``edge > 0``, otherwise ``0.0``.

    Examples::

        kelly_fraction(0.1111, 2.0)  → 0.1111
        kelly_fraction(0.10, 3.0)    → 0.05
        kelly_fraction(-0.09, 2.0)   → 0.0
    """
    if not edge > 0.0:
        return 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(edge) / (np.float64(decimal_odds) - 1.0))


def capped_stake(
    kelly: float,
    max_stake_fraction: float = DEFAULT_MAX_STAKE_FRACTION,
    *,
    multiplier: float = DEFAULT_KELLY_MULTIPLIER,
) -> float:
    """Fractional Kelly stake, capped at ``max_stake_fraction`` and floored at 0.

    ``max(0, min(kelly · multiplier, max_stake_fraction))``

    Examples::

        capped_stake(0.1111)        → 0.05     (0.0556 capped)
        capped_stake(0.04)          → 0.02
        capped_stake(0.04, 0.01)    → 0.01
    """
    with np.errstate(invalid="ignore"):
        stake = np.minimum(np.float64(kelly) * multiplier, np.float64(max_stake_fraction))
        return float(np.maximum(0.0, stake))


# ---------------------------------------------------------------------------
# Utility — unit conversion
# ---------------------------------------------------------------------------


def kelly_to_units(fraction: float) -> float:
    """Convert a bankroll fraction to units (1 unit = 1% of bankroll).

    Examples::

        kelly_to_units(0.025) → 2.5
        kelly_to_units(0.005) → 0.5
    """
    return fraction * 100.0


def units_to_dollars(units: float, bankroll: float) -> float:
    """Dollar amount for ``units`` of a ``bankroll`` (1 unit = 1%).

    Examples::

        units_to_dollars(2.5, 1000.0)  →  25.0
    """
    return (units / 100.0) * bankroll
