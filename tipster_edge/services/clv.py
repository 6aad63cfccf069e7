"""
Closing Line Value (CLV) and expected-value calculation service.

CLV is the primary edge-validation metric in sports betting.  Positive CLV
means the entry price was better than where the market settled (the
closing line), which is correlated with long-term profitability
independent of win/loss outcomes.

For a single (entry, close) pair of decimal prices the calculator returns:

    p_entry, p_close    implied probabilities (1 / odds, no de-vig)
    clv_percent         (p_close − p_entry) / p_entry · 100
    ev_percent          (p_close · entry_odds − 1) · 100
    confidence          round(100 · logistic(0.8 · (ev% − 1.5))), in [0, 100]
    kelly_fraction      ev / (entry_odds − 1) when ev > 0, else 0
    recommended_stake   min(kelly · 0.5, max_stake_fraction), floored at 0

The closing price is treated as the "true" probability: EV answers "what
is the bet at entry_odds worth if the close is right?".  Raw EV% is
unbounded and noisy in the tails, so UI thresholds and summaries use the
bounded, monotonic confidence score instead.

Degenerate prices (≤ 0) are not rejected by default: the arithmetic is
IEEE so ``inf``/``nan`` propagate into every derived field.  Pass
``strict=True`` (or configure ``EngineConfig.strict_odds``) to raise
:class:`~tipster_edge.core.odds_math.InvalidOddsError` instead.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from tipster_edge.core.engine_config import EngineConfig
from tipster_edge.core.kelly import capped_stake, kelly_fraction as _kelly_fraction
from tipster_edge.core.odds_math import (
    expected_value,
    implied_prob,
    logistic,
    validate_decimal_odds,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = EngineConfig.default()

# Highest threshold wins.  Anything below the last rung gets the fallback.
_CONFIDENCE_COLORS: Tuple[Tuple[float, str], ...] = (
    (85, "text-emerald-400"),
    (70, "text-green-400"),
    (55, "text-lime-400"),
    (40, "text-yellow-400"),
    (25, "text-orange-400"),
)
_CONFIDENCE_COLOR_FALLBACK = "text-red-400"

_CONFIDENCE_BG_COLORS: Tuple[Tuple[float, str], ...] = (
    (85, "bg-emerald-500/20"),
    (70, "bg-green-500/20"),
    (55, "bg-lime-500/20"),
    (40, "bg-yellow-500/20"),
    (25, "bg-orange-500/20"),
)
_CONFIDENCE_BG_FALLBACK = "bg-red-500/20"

_CONFIDENCE_TIERS: Tuple[Tuple[float, str], ...] = (
    (80, "High Confidence"),
    (60, "Moderate Confidence"),
    (40, "Low Confidence"),
)
_CONFIDENCE_TIER_FALLBACK = "Very Low Confidence"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CLVResult:
    """All CLV metrics for a single entry/close price pair."""

    entry_odds: float
    close_odds: float

    p_entry: float              # Implied probability of the entry price
    p_close: float              # Implied probability of the closing price
    clv_percent: float          # Relative move in implied probability (positive = good)
    ev_percent: float           # EV of the entry price against the close
    confidence: float           # Bounded 0-100 score derived from ev_percent
    kelly_fraction: float       # Full Kelly, never negative
    recommended_stake: float    # Fractional Kelly, capped

    def is_positive(self) -> bool:
        """True when we beat the closing line."""
        return self.clv_percent > 0

    def confidence_color(self) -> str:
        return get_confidence_color(self.confidence)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CLVSummary:
    """Aggregate metrics over a batch of opportunities."""

    count: int                  # Pairs supplied
    evaluated: int              # Pairs with both prices present and non-zero
    avg_confidence: float       # Sum of confidences / count (skipped pairs count as 0)
    high_confidence_count: int
    total_ev_percent: float
    best: Optional[CLVResult]   # Highest EV%, first wins on ties


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _ladder(value: float, rungs: Sequence[Tuple[float, str]], fallback: str) -> str:
    for threshold, label in rungs:
        if value >= threshold:
            return label
    return fallback


def _is_missing(odds: Optional[float]) -> bool:
    return odds is None or odds == 0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def confidence_score(
    ev_percent: float,
    steepness: float = _DEFAULT_CONFIG.confidence_steepness,
    midpoint: float = _DEFAULT_CONFIG.confidence_midpoint,
) -> float:
    """
    Map EV% onto a bounded 0-100 confidence score.

    ``round(100 / (1 + exp(-steepness · (ev% − midpoint))))`` clamped to
    [0, 100].  Rounding is half-up so ``ev% == midpoint`` lands on exactly
    50.  A ``nan`` EV% yields ``nan``.
    """
    raw = 100.0 * logistic(ev_percent, steepness, midpoint)
    with np.errstate(invalid="ignore"):
        return float(np.clip(np.floor(raw + 0.5), 0.0, 100.0))


def calculate_clv(
    entry_odds: float,
    close_odds: float,
    max_stake_fraction: Optional[float] = None,
    *,
    strict: Optional[bool] = None,
    config: Optional[EngineConfig] = None,
) -> CLVResult:
    """
    CLV, EV, confidence and stake for one bet.

    Args:
        entry_odds:         Decimal price at which the position was entered.
        close_odds:         Decimal price at market close (assumed fair).
        max_stake_fraction: Cap on the recommended stake.  Defaults to the
                            config value (0.05).
        strict:             Raise InvalidOddsError on unusable prices (≤ 0,
                            non-finite, or too small to invert).  Defaults
                            to ``config.strict_odds`` (False).
        config:             Policy constants; ``EngineConfig.default()``
                            when omitted.

    Returns:
        CLVResult.  Never raises in permissive mode.

    Example::

        >>> r = calculate_clv(2.0, 1.8)
        >>> round(r.ev_percent, 2), r.recommended_stake
        (11.11, 0.05)
    """
    cfg = config or _DEFAULT_CONFIG
    cap = cfg.max_stake_fraction if max_stake_fraction is None else max_stake_fraction
    if strict is None:
        strict = cfg.strict_odds
    if strict:
        validate_decimal_odds(entry_odds, "entry_odds")
        validate_decimal_odds(close_odds, "close_odds")

    p_entry = implied_prob(entry_odds)
    p_close = implied_prob(close_odds)

    with np.errstate(divide="ignore", invalid="ignore"):
        clv_percent = float((np.float64(p_close) - p_entry) / np.float64(p_entry) * 100.0)

    ev = expected_value(p_close, entry_odds)
    ev_percent = ev * 100.0

    confidence = confidence_score(ev_percent, cfg.confidence_steepness, cfg.confidence_midpoint)

    kelly = _kelly_fraction(ev, entry_odds)
    stake = capped_stake(kelly, cap, multiplier=cfg.kelly_multiplier)

    return CLVResult(
        entry_odds=entry_odds,
        close_odds=close_odds,
        p_entry=p_entry,
        p_close=p_close,
        clv_percent=clv_percent,
        ev_percent=ev_percent,
        confidence=confidence,
        kelly_fraction=kelly,
        recommended_stake=stake,
    )


def summarize_opportunities(
    pairs: Iterable[Tuple[Optional[float], Optional[float]]],
    max_stake_fraction: Optional[float] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> CLVSummary:
    """
    Dashboard aggregates over (entry_odds, close_odds) pairs.

    Pairs with a missing or zero price are skipped but still count toward
    the average-confidence denominator.
    """
    cfg = config or _DEFAULT_CONFIG
    pairs = list(pairs)

    results: List[CLVResult] = []
    for entry_odds, close_odds in pairs:
        if _is_missing(entry_odds) or _is_missing(close_odds):
            logger.debug("Skipping opportunity with missing price: entry=%s close=%s", entry_odds, close_odds)
            continue
        results.append(calculate_clv(entry_odds, close_odds, max_stake_fraction, config=cfg))

    if not results:
        return CLVSummary(
            count=len(pairs),
            evaluated=0,
            avg_confidence=0.0,
            high_confidence_count=0,
            total_ev_percent=0.0,
            best=None,
        )

    confidences = np.array([r.confidence for r in results], dtype=float)
    evs = np.array([r.ev_percent for r in results], dtype=float)

    finite = [r for r in results if math.isfinite(r.ev_percent)]
    best = max(finite, key=lambda r: r.ev_percent) if finite else None

    summary = CLVSummary(
        count=len(pairs),
        evaluated=len(results),
        avg_confidence=float(np.sum(confidences) / len(pairs)),
        high_confidence_count=int(np.sum(confidences >= cfg.high_confidence)),
        total_ev_percent=float(np.sum(evs)),
        best=best,
    )
    logger.info(
        "CLV summary: %d/%d evaluated, avg confidence %.1f, %d high-confidence",
        summary.evaluated, summary.count, summary.avg_confidence, summary.high_confidence_count,
    )
    return summary


def get_confidence_color(confidence: float) -> str:
    """Text colour class for a confidence score (six tiers, ≥85 … else)."""
    return _ladder(confidence, _CONFIDENCE_COLORS, _CONFIDENCE_COLOR_FALLBACK)


def get_confidence_bg_color(confidence: float) -> str:
    """Background colour class matching :func:`get_confidence_color`."""
    return _ladder(confidence, _CONFIDENCE_BG_COLORS, _CONFIDENCE_BG_FALLBACK)


def get_confidence_tier(confidence: float) -> str:
    """Human-readable confidence tier for reports."""
    return _ladder(confidence, _CONFIDENCE_TIERS, _CONFIDENCE_TIER_FALLBACK)


def format_percent(value: float, decimals: int = 2) -> str:
    """``+11.11%`` / ``-9.09%`` / ``0.00%``; sign only added for positives."""
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.{decimals}f}%"


def format_stake(fraction: float) -> str:
    """Bankroll fraction as a percentage string: ``0.05`` → ``5.00%``."""
    return f"{fraction * 100:.2f}%"
