"""
Best-parlay generation from a pool of candidate legs.

Feeds the suggested-parlay pool.  The pipeline is:

    1. Candidate pool   legs with probability ≥ 50% and enough model
                        agreement, strongest first, capped at 100
    2. Multi-game       top 2 legs (by edge) per match, then every
                        combination whose legs come from distinct matches
    3. Single-game      per match, every combination of that match's legs
    4. Filter           drop parlays under the minimum edge or minimum
                        adjusted probability
    5. Rank             generation score (edge 35, probability 25, model
                        agreement 20, diversity 10, leg risk 10), scores
                        within 0.1 of each other fall back to edge
    6. Cap              at most ``max_results`` parlays per leg count

Combination counts are bounded (20 matches for multi-game, 10 legs per
match for single-game, 5000 combinations per leg count) so a large leg
pool cannot blow up the search.
"""

import hashlib
import logging
from dataclasses import dataclass
from functools import cmp_to_key
from itertools import combinations, islice
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from tipster_edge.services.parlay_quality import ParlayLeg, ParlayMetrics, build_parlay
from tipster_edge.services.parlay_selector import ParlayCandidate

logger = logging.getLogger(__name__)

PARLAY_TYPES = ("multi_game", "single_game", "both")

MIN_LEG_PROB = 0.50
MAX_POOL_SIZE = 100
LEGS_PER_MATCH_MULTI_GAME = 2
MAX_MULTI_GAME_MATCHES = 20
MAX_SINGLE_GAME_LEGS = 10
MAX_COMBINATIONS = 5000

#: Scores closer than this are ranked by edge instead.
SCORE_TIE_BAND = 0.1

_LEG_RISK_VALUES: Dict[str, float] = {"low": 1.0, "medium": 0.8}
_LEG_RISK_FALLBACK = 0.6


@dataclass(frozen=True)
class GenerationConfig:
    """Thresholds for one generation run."""

    min_leg_edge: float = 0.0           # percent, per leg
    min_parlay_edge: float = 5.0        # percent
    min_combined_prob: float = 0.15     # after the correlation penalty
    max_leg_count: int = 5
    min_model_agreement: float = 0.65
    max_results: int = 20               # per leg count
    parlay_type: str = "both"

    def __post_init__(self):
        if self.parlay_type not in PARLAY_TYPES:
            raise ValueError(f"parlay_type must be one of {PARLAY_TYPES}, got {self.parlay_type!r}")
        if self.max_leg_count < 2:
            raise ValueError(f"max_leg_count must be ≥ 2, got {self.max_leg_count}")
        if self.max_results < 1:
            raise ValueError(f"max_results must be ≥ 1, got {self.max_results}")


@dataclass(frozen=True)
class GeneratedParlay:
    metrics: ParlayMetrics
    score: float
    parlay_type: str            # "multi_game" | "single_game"

    @property
    def leg_count(self) -> int:
        return self.metrics.leg_count

    @property
    def parlay_edge(self) -> float:
        return self.metrics.parlay_edge

    @property
    def adjusted_prob(self) -> float:
        return self.metrics.adjusted_prob

    @property
    def match_ids(self) -> Tuple[str, ...]:
        return tuple(leg.match_id for leg in self.metrics.legs)

    @property
    def parlay_id(self) -> str:
        """Stable id derived from the legs, so reruns upsert instead of duplicating."""
        key = "|".join(_leg_key(leg) for leg in self.metrics.legs)
        return f"gen-{hashlib.sha1(key.encode()).hexdigest()[:16]}"

    def to_candidate(self) -> ParlayCandidate:
        return self.metrics.to_candidate(self.parlay_id)


def _leg_key(leg: ParlayLeg) -> str:
    line = "" if leg.line is None else f"@{leg.line:g}"
    return f"{leg.match_id}:{leg.market_type}:{leg.market_subtype or '-'}{line}"


def _group_by_match(legs: Iterable[ParlayLeg]) -> Dict[str, List[ParlayLeg]]:
    groups: Dict[str, List[ParlayLeg]] = {}
    for leg in legs:
        groups.setdefault(leg.match_id, []).append(leg)
    return groups


# ---------------------------------------------------------------------------
# Leg filtering
# ---------------------------------------------------------------------------

def candidate_leg_pool(legs: Iterable[ParlayLeg], config: GenerationConfig) -> List[ParlayLeg]:
    """
    Eligible legs, strongest first.

    Ordered by probability, then model agreement, then edge.  Ties keep
    input order.
    """
    eligible = [
        leg for leg in legs
        if MIN_LEG_PROB <= leg.consensus_prob <= 1.0
        and leg.model_agreement >= config.min_model_agreement
        and leg.edge_consensus >= config.min_leg_edge
    ]
    eligible.sort(key=lambda l: (l.consensus_prob, l.model_agreement, l.edge_consensus), reverse=True)
    return eligible[:MAX_POOL_SIZE]


def filter_multi_game_legs(legs: Sequence[ParlayLeg]) -> List[ParlayLeg]:
    """Keep the best two legs (by edge) from each match."""
    filtered: List[ParlayLeg] = []
    for match_legs in _group_by_match(legs).values():
        ranked = sorted(match_legs, key=lambda l: l.edge_consensus, reverse=True)
        filtered.extend(ranked[:LEGS_PER_MATCH_MULTI_GAME])
    return filtered


# ---------------------------------------------------------------------------
# Combinations
# ---------------------------------------------------------------------------

def _multi_game_combinations(legs: Sequence[ParlayLeg], leg_count: int) -> Iterator[Tuple[ParlayLeg, ...]]:
    groups = list(_group_by_match(legs).values())[:MAX_MULTI_GAME_MATCHES]
    if len(groups) < leg_count:
        return iter(())
    pool = [leg for group in groups for leg in group]
    distinct = (
        combo for combo in combinations(pool, leg_count)
        if len({leg.match_id for leg in combo}) == leg_count
    )
    return islice(distinct, MAX_COMBINATIONS)


def _single_game_combinations(match_legs: Sequence[ParlayLeg], leg_count: int) -> Iterator[Tuple[ParlayLeg, ...]]:
    return islice(combinations(match_legs[:MAX_SINGLE_GAME_LEGS], leg_count), MAX_COMBINATIONS)


# ---------------------------------------------------------------------------
# Scoring and ranking
# ---------------------------------------------------------------------------

def generation_score(metrics: ParlayMetrics) -> float:
    """
    Ranking score used while generating (roughly 0-100).

    edge        min(edge, 50) / 50 · 35
    probability min(adjusted · 100, 100) · 0.25
    agreement   mean model agreement · 20
    diversity   10 for a fully cross-match parlay, 5 otherwise
    risk        mean leg risk (low 1.0, medium 0.8, other 0.6) · 10
    """
    legs = metrics.legs
    edge_score = min(metrics.parlay_edge, 50.0) / 50.0 * 35.0
    prob_score = min(metrics.adjusted_prob * 100.0, 100.0) * 0.25
    agreement_score = sum(leg.model_agreement for leg in legs) / len(legs) * 20.0

    if metrics.is_multi_game:
        unique_matches = len({leg.match_id for leg in legs})
        diversity_score = (1.0 if unique_matches == len(legs) else 0.5) * 10.0
    else:
        diversity_score = 0.5 * 10.0

    risk_values = [_LEG_RISK_VALUES.get((leg.risk_level or "").lower(), _LEG_RISK_FALLBACK) for leg in legs]
    risk_score = sum(risk_values) / len(risk_values) * 10.0

    return edge_score + prob_score + agreement_score + diversity_score + risk_score


def _compare(a: GeneratedParlay, b: GeneratedParlay) -> int:
    if abs(a.score - b.score) > SCORE_TIE_BAND:
        return -1 if a.score > b.score else 1
    return (a.parlay_edge < b.parlay_edge) - (a.parlay_edge > b.parlay_edge)


def _evaluate(
    combos: Iterable[Sequence[ParlayLeg]],
    parlay_type: str,
    config: GenerationConfig,
) -> List[GeneratedParlay]:
    kept = []
    for legs in combos:
        metrics = build_parlay(legs)
        if metrics.parlay_edge < config.min_parlay_edge or metrics.adjusted_prob < config.min_combined_prob:
            continue
        kept.append(GeneratedParlay(metrics, generation_score(metrics), parlay_type))
    return kept


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_best_parlays(
    legs: Iterable[ParlayLeg],
    config: Optional[GenerationConfig] = None,
) -> List[GeneratedParlay]:
    """
    Best multi-game and/or single-game parlays from a leg pool.

    Args:
        legs:   Candidate legs from any number of matches.
        config: Thresholds; ``GenerationConfig()`` when omitted.

    Returns:
        Parlays sorted by generation score, at most ``config.max_results``
        per leg count.  Empty when no leg survives the pool filter.
    """
    cfg = config or GenerationConfig()
    pool = candidate_leg_pool(legs, cfg)
    if not pool:
        logger.info("No eligible legs for parlay generation")
        return []

    leg_counts = range(2, cfg.max_leg_count + 1)
    found: List[GeneratedParlay] = []

    if cfg.parlay_type in ("both", "multi_game"):
        multi_legs = filter_multi_game_legs(pool)
        for n in leg_counts:
            found.extend(_evaluate(_multi_game_combinations(multi_legs, n), "multi_game", cfg))

    if cfg.parlay_type in ("both", "single_game"):
        for match_legs in _group_by_match(pool).values():
            if len(match_legs) < 2:
                continue
            for n in leg_counts:
                found.extend(_evaluate(_single_game_combinations(match_legs, n), "single_game", cfg))

    ranked = sorted(found, key=cmp_to_key(_compare))

    by_leg_count: Dict[int, List[GeneratedParlay]] = {}
    for parlay in ranked:
        bucket = by_leg_count.setdefault(parlay.leg_count, [])
        if len(bucket) < cfg.max_results:
            bucket.append(parlay)

    results = [parlay for bucket in by_leg_count.values() for parlay in bucket]
    results.sort(key=lambda p: p.score, reverse=True)

    logger.info(
        "Generated %d parlays from %d eligible legs (%d passed filters)",
        len(results), len(pool), len(found),
    )
    return results
