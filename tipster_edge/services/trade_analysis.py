"""
Structured trade reports for CLV opportunities and suggested parlays.

These are the numbers and labels behind the premium "intelligence" cards:
tiers, a verdict, a risk level, stake guidance and warnings.  Everything is
derived from the engine outputs; nothing here fetches data.
"""

import logging
import math
from typing import Any, List, Optional, Sequence, Tuple

from tipster_edge.core.engine_config import EngineConfig
from tipster_edge.core.kelly import kelly_to_units, units_to_dollars
from tipster_edge.core.odds_math import decimal_to_american
from tipster_edge.services.clv import calculate_clv, get_confidence_tier
from tipster_edge.services.parlay_quality import (
    calculate_quality_score,
    get_quality_tier,
    get_risk_level,
    is_tradable,
)
from tipster_edge.services.parlay_selector import ParlayCandidate

logger = logging.getLogger(__name__)

_EXCHANGE_MARKERS = ("betfair", "smarkets", "exchange")

_CLV_EDGE_TIERS: Tuple[Tuple[float, str], ...] = (
    (5, "Excellent Edge"),
    (3, "Strong Edge"),
    (2, "Good Edge"),
    (1, "Moderate Edge"),
)
_CLV_VERDICTS: Tuple[Tuple[float, str], ...] = ((5, "STRONG_BUY"), (3, "BUY"), (2, "CONSIDER"))
_CLV_RISK: Tuple[Tuple[float, str], ...] = ((5, "LOW"), (3, "MODERATE"))
_CLV_ALLOCATION: Tuple[Tuple[float, str], ...] = ((5, "HIGH_PRIORITY"), (3, "MEDIUM_PRIORITY"))

_PARLAY_EDGE_TIERS: Tuple[Tuple[float, str], ...] = (
    (25, "Excellent Edge"),
    (15, "Strong Edge"),
    (10, "Good Edge"),
    (5, "Moderate Edge"),
)
_PARLAY_VERDICTS: Tuple[Tuple[float, str], ...] = ((25, "STRONG_BUY"), (15, "BUY"), (10, "CONSIDER"))
_PARLAY_ALLOCATION: Tuple[Tuple[float, str], ...] = ((25, "HIGH_PRIORITY"), (15, "MEDIUM_PRIORITY"))
_PARLAY_ACTIONS: Tuple[Tuple[float, str], ...] = (
    (15, "Take the parlay"),
    (10, "Consider as part of portfolio"),
)
#: Base bankroll fraction by edge, before the leg-count haircut.
_PARLAY_BASE_STAKE: Tuple[Tuple[float, float], ...] = ((25, 0.01), (15, 0.0075), (10, 0.005))
_PARLAY_BASE_STAKE_FALLBACK = 0.0025
_PARLAY_LEG_STAKE_MULTIPLIER = {2: 1.0, 3: 0.75}
_PARLAY_LEG_STAKE_FALLBACK = 0.5

#: Win probability (percent) below which a parlay is flagged.
LOW_WIN_PROB_WARNING = 15.0
#: Probability haircut above which legs are treated as heavily correlated.
HIGH_CORRELATION_HAIRCUT = 0.15

#: Entry prices above this are flagged as high variance.
LONG_ODDS_THRESHOLD = 5.0


def _tier(value: float, rungs: Sequence[Tuple[float, Any]], fallback: Any) -> Any:
    for threshold, label in rungs:
        if value >= threshold:
            return label
    return fallback


def _american(decimal_odds: float) -> Optional[int]:
    if not math.isfinite(decimal_odds) or decimal_odds <= 1.0:
        return None
    return decimal_to_american(decimal_odds)


def is_exchange(book_id: str) -> bool:
    book = (book_id or "").lower()
    return any(marker in book for marker in _EXCHANGE_MARKERS)


def stake_guidance(clv_pct: float, confidence: float) -> str:
    if clv_pct >= 5 and confidence >= 80:
        return "0.75-1.0 units (moderate)"
    if clv_pct >= 3 and confidence >= 60:
        return "0.5-0.75 units (small-to-moderate)"
    if clv_pct >= 2:
        return "0.25-0.5 units (small)"
    return "0.1-0.25 units (minimal)"


def clv_warnings(clv_pct: float, confidence: float, entry_odds: float) -> List[str]:
    warnings = []
    if entry_odds > LONG_ODDS_THRESHOLD:
        warnings.append("High variance - long odds mean lower win probability")
    if confidence < 50:
        warnings.append("Lower confidence means more noise in the data")
    if clv_pct < 2:
        warnings.append("Thin edge may not overcome variance")
    return warnings


def analyze_clv_opportunity(
    entry_odds: float,
    close_odds: float,
    clv_pct: float,
    books_used: int = 0,
    best_book: str = "",
    bankroll: Optional[float] = None,
    *,
    strict: Optional[bool] = None,
    config: Optional[EngineConfig] = None,
) -> dict:
    """
    Trade report for one CLV opportunity.

    ``clv_pct`` is the feed's own CLV figure (percent) and drives the
    tiers; the calculator supplies confidence, EV and the Kelly stake.
    ``strict`` is passed through to :func:`calculate_clv`.

    Raises:
        InvalidOddsError: In strict mode, for a price that is not usable.
    """
    calc = calculate_clv(entry_odds, close_odds, strict=strict, config=config)
    exchange = is_exchange(best_book)
    units = kelly_to_units(calc.recommended_stake)

    report = {
        "market": {
            "entry_odds": entry_odds,
            "entry_odds_american": _american(entry_odds),
            "consensus_odds": close_odds,
            "clv_pct": clv_pct,
            "edge_tier": _tier(clv_pct, _CLV_EDGE_TIERS, "Weak Edge"),
            "confidence_score": calc.confidence,
            "confidence_tier": get_confidence_tier(calc.confidence),
            "ev_percent": calc.ev_percent,
        },
        "liquidity": {
            "books_used": books_used,
            "best_book": best_book,
            "is_exchange": exchange,
            "has_exit_optionality": exchange,
        },
        "trading": {
            "verdict": _tier(clv_pct, _CLV_VERDICTS, "WEAK"),
            "risk_level": _tier(clv_pct, _CLV_RISK, "HIGH"),
            "allocation": _tier(clv_pct, _CLV_ALLOCATION, "LOW_PRIORITY"),
            "stake_size": stake_guidance(clv_pct, calc.confidence),
            "kelly_units": units,
            "stake_dollars": units_to_dollars(units, bankroll) if bankroll else None,
        },
        "warnings": clv_warnings(clv_pct, calc.confidence, entry_odds),
    }
    logger.debug("CLV analysis %.2f/%.2f → %s", entry_odds, close_odds, report["trading"]["verdict"])
    return report


def parlay_stake_fraction(edge_pct: float, leg_count: int) -> float:
    """Bankroll fraction for a parlay: edge-based base stake, cut for extra legs."""
    base = _tier(edge_pct, _PARLAY_BASE_STAKE, _PARLAY_BASE_STAKE_FALLBACK)
    return base * _PARLAY_LEG_STAKE_MULTIPLIER.get(leg_count, _PARLAY_LEG_STAKE_FALLBACK)


def parlay_risk_level(leg_count: int) -> str:
    if leg_count >= 4:
        return "HIGH"
    if leg_count == 3:
        return "MODERATE"
    return "MODERATE_LOW"


def correlation_haircut(correlation_penalty: Optional[float]) -> Optional[float]:
    """Share of the joint probability removed by the penalty (0.92 → 0.08)."""
    if correlation_penalty is None:
        return None
    return 1.0 - correlation_penalty


def parlay_warnings(leg_count: int, win_probability: float, haircut: Optional[float]) -> List[str]:
    warnings = [f"{leg_count}-leg parlay means all legs must win - this is variance-heavy"]
    if win_probability < LOW_WIN_PROB_WARNING:
        warnings.append("Low win probability means you will lose most of the time")
    if haircut is not None and haircut > HIGH_CORRELATION_HAIRCUT:
        warnings.append("High correlation penalty reduces true edge")
    return warnings


def analyze_parlay(candidate: ParlayCandidate, bankroll: Optional[float] = None) -> dict:
    """
    Trade report for one parlay from the pool.

    Parlays are staked well below singles: 1% of bankroll at most (edge
    ≥ 25%), scaled by 0.75 for three legs and 0.5 beyond that.  ``risk_level``
    follows the leg count; the probability-based label is kept as
    ``probability_risk``.
    """
    edge = candidate.normalized_edge
    win_probability = candidate.adjusted_prob * 100.0
    quality = calculate_quality_score(edge, candidate.adjusted_prob, candidate.confidence_tier)
    haircut = correlation_haircut(candidate.correlation_penalty)

    stake = parlay_stake_fraction(edge, candidate.leg_count)
    units = kelly_to_units(stake)

    report = {
        "parlay_id": candidate.parlay_id,
        "leg_count": candidate.leg_count,
        "edge_pct": edge,
        "edge_tier": _tier(edge, _PARLAY_EDGE_TIERS, "Weak Edge"),
        "verdict": _tier(edge, _PARLAY_VERDICTS, "WEAK"),
        "action": _tier(edge, _PARLAY_ACTIONS, "Skip or minimal stake"),
        "implied_odds": candidate.implied_odds,
        "implied_odds_american": _american(candidate.implied_odds),
        "win_probability": win_probability,
        "correlation_haircut": haircut,
        "risk_level": parlay_risk_level(candidate.leg_count),
        "probability_risk": get_risk_level(candidate.adjusted_prob),
        "allocation": _tier(edge, _PARLAY_ALLOCATION, "LOW_PRIORITY"),
        "stake_fraction": stake,
        "stake_size": f"{stake * 100:.2f}% of bankroll ({units:.2f} units)",
        "stake_units": units,
        "stake_dollars": units_to_dollars(units, bankroll) if bankroll else None,
        "quality_score": quality,
        "quality_tier": get_quality_tier(quality),
        "tradable": is_tradable(edge, candidate.adjusted_prob),
        "warnings": parlay_warnings(candidate.leg_count, win_probability, haircut),
    }
    logger.debug("Parlay analysis %s → %s", candidate.parlay_id, report["verdict"])
    return report
