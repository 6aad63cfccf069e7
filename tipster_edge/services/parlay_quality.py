"""
Parlay construction metrics and quality scoring.

Turns a list of legs into the numbers the suggested-parlay pool stores
(adjusted probability, implied odds, edge, confidence tier) and grades
finished parlays for display.

Correlation is handled with a flat multiplicative penalty on the joint
probability rather than a covariance model:

    adjusted_prob = Π p_i · penalty(legs, correlated, multi_game)

Same-match ("single-game") parlays are penalised harder than cross-match
ones, and a detected correlated pair (home win + over 2.5, home win +
BTTS yes, over 2.5 + BTTS yes) shaves off a little more.
"""

import logging
import math
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Optional, Sequence

from tipster_edge.services.parlay_selector import ParlayCandidate

logger = logging.getLogger(__name__)

# Probability multipliers by leg count.  Legs beyond 5 use the 5-leg value.
_MULTI_GAME_PENALTY: Dict[int, float] = {2: 0.92, 3: 0.90, 4: 0.88, 5: 0.85}
_SINGLE_GAME_PENALTY: Dict[int, float] = {2: 0.85, 3: 0.80, 4: 0.75, 5: 0.70}
_MULTI_GAME_CORRELATED = 0.95
_SINGLE_GAME_CORRELATED = 0.90

_TIER_WEIGHTS: Dict[str, float] = {"high": 1.0, "medium": 0.7, "low": 0.4}

#: Minimum edge (percent) and win probability for a parlay to be tradable.
TRADABLE_MIN_EDGE = 5.0
TRADABLE_MIN_PROB = 0.05

OVER_LINE_THRESHOLD = 2.5


@dataclass(frozen=True)
class ParlayLeg:
    """One selection in a parlay."""

    match_id: str
    market_type: str                # "1X2", "TOTALS", "BTTS", ...
    consensus_prob: float
    market_subtype: Optional[str] = None    # "HOME", "OVER", "YES", ...
    line: Optional[float] = None
    model_agreement: float = 0.0
    risk_level: str = "medium"      # "low" | "medium" | "high"
    edge_consensus: float = 0.0     # per-leg edge, percent

    @property
    def is_home_win(self) -> bool:
        return self.market_type == "1X2" and self.market_subtype == "HOME"

    @property
    def is_over_goals(self) -> bool:
        return (
            self.market_type == "TOTALS"
            and self.market_subtype == "OVER"
            and self.line is not None
            and self.line >= OVER_LINE_THRESHOLD
        )

    @property
    def is_btts_yes(self) -> bool:
        return self.market_type == "BTTS" and self.market_subtype == "YES"


@dataclass(frozen=True)
class ParlayMetrics:
    """Derived numbers for a combination of legs."""

    legs: Sequence[ParlayLeg]
    combined_prob: float
    correlation_penalty: float
    adjusted_prob: float
    implied_odds: float
    parlay_edge: float          # percent
    confidence_tier: str
    is_multi_game: bool
    has_correlation: bool

    @property
    def leg_count(self) -> int:
        return len(self.legs)

    def to_candidate(self, parlay_id: Optional[str] = None) -> ParlayCandidate:
        return ParlayCandidate(
            leg_count=self.leg_count,
            edge_pct=self.parlay_edge,
            adjusted_prob=self.adjusted_prob,
            implied_odds=self.implied_odds,
            parlay_id=parlay_id,
            confidence_tier=self.confidence_tier,
            correlation_penalty=self.correlation_penalty,
        )


def are_legs_correlated(leg_a: ParlayLeg, leg_b: ParlayLeg) -> bool:
    """True for known positively-correlated pairs from the same match."""
    if leg_a.match_id != leg_b.match_id:
        return False
    pairs = (
        (leg_a.is_home_win and leg_b.is_over_goals) or (leg_b.is_home_win and leg_a.is_over_goals),
        (leg_a.is_home_win and leg_b.is_btts_yes) or (leg_b.is_home_win and leg_a.is_btts_yes),
        (leg_a.is_over_goals and leg_b.is_btts_yes) or (leg_b.is_over_goals and leg_a.is_btts_yes),
    )
    return any(pairs)


def calculate_correlation_penalty(
    leg_count: int,
    has_correlation: bool,
    is_multi_game: bool = True,
) -> float:
    """Multiplier (< 1) applied to the joint probability."""
    table = _MULTI_GAME_PENALTY if is_multi_game else _SINGLE_GAME_PENALTY
    base = table.get(leg_count, table[5])
    if has_correlation:
        return base * (_MULTI_GAME_CORRELATED if is_multi_game else _SINGLE_GAME_CORRELATED)
    return base


def _confidence_tier(avg_agreement: float, parlay_edge: float) -> str:
    if avg_agreement >= 0.80 and parlay_edge >= 15:
        return "high"
    if avg_agreement >= 0.70 and parlay_edge >= 10:
        return "medium"
    return "low"


def build_parlay(legs: Sequence[ParlayLeg]) -> ParlayMetrics:
    """
    Metrics for a combination of legs.

    The parlay is multi-game when every leg comes from a different match;
    otherwise the single-game penalty table applies.

    Raises:
        ValueError: If ``legs`` is empty or the joint probability is not
            in (0, 1].
    """
    if not legs:
        raise ValueError("a parlay needs at least one leg")

    combined_prob = math.prod(leg.consensus_prob for leg in legs)
    if not 0.0 < combined_prob <= 1.0:
        raise ValueError(f"combined probability {combined_prob!r} is outside (0, 1]")

    is_multi_game = len({leg.match_id for leg in legs}) == len(legs)
    has_correlation = any(are_legs_correlated(a, b) for a, b in combinations(legs, 2))

    penalty = calculate_correlation_penalty(len(legs), has_correlation, is_multi_game)
    adjusted_prob = combined_prob * penalty

    implied_odds = 1.0 / adjusted_prob
    fair_odds = 1.0 / combined_prob
    parlay_edge = (implied_odds - fair_odds) / fair_odds * 100.0

    avg_agreement = sum(leg.model_agreement for leg in legs) / len(legs)

    metrics = ParlayMetrics(
        legs=tuple(legs),
        combined_prob=combined_prob,
        correlation_penalty=penalty,
        adjusted_prob=adjusted_prob,
        implied_odds=implied_odds,
        parlay_edge=parlay_edge,
        confidence_tier=_confidence_tier(avg_agreement, parlay_edge),
        is_multi_game=is_multi_game,
        has_correlation=has_correlation,
    )
    logger.debug(
        "Built %d-leg parlay: joint %.4f, adjusted %.4f, edge %.2f%%, tier %s",
        metrics.leg_count, combined_prob, adjusted_prob, parlay_edge, metrics.confidence_tier,
    )
    return metrics


def calculate_quality_score(edge_pct: float, combined_prob: float, confidence_tier: Optional[str]) -> float:
    """
    Composite 0-100-ish quality score.

    edge (capped 0-50) weighted 0.4, probability points (0-30) weighted
    0.3, confidence points (high 30 / medium 21 / low 12) weighted 0.3.
    """
    edge_score = min(max(edge_pct, 0.0), 50.0)
    prob_score = min(max(combined_prob * 100.0, 0.0), 100.0) * 0.3
    weight = _TIER_WEIGHTS.get((confidence_tier or "").lower(), _TIER_WEIGHTS["low"])
    confidence_score = weight * 30.0
    return edge_score * 0.4 + prob_score * 0.3 + confidence_score * 0.3


def is_tradable(edge_pct: float, combined_prob: float) -> bool:
    return edge_pct >= TRADABLE_MIN_EDGE and combined_prob >= TRADABLE_MIN_PROB


def get_risk_level(combined_prob: float) -> str:
    if combined_prob >= 0.20:
        return "low"
    if combined_prob >= 0.10:
        return "medium"
    if combined_prob >= 0.05:
        return "high"
    return "very_high"


def get_quality_tier(quality_score: float) -> str:
    if quality_score >= 70:
        return "excellent"
    if quality_score >= 50:
        return "good"
    if quality_score >= 30:
        return "fair"
    return "poor"
