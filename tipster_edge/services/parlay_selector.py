"""
Suggested-parlay selection.

Given a pool of pre-built multi-leg parlays, pick two curated
recommendations:

    Conservative — legs ≤ 3 and 10% ≤ edge ≤ 20%; highest win probability.
                   Fewer legs, moderate edge, certainty over edge size.
    Aggressive   — legs ≥ 3 and edge ≥ 20%; highest edge.
                   More legs, large edge, edge size over certainty.

Edges are run through :func:`~tipster_edge.services.edge.normalize_edge`
before any comparison because pool rows mix decimal and percentage
encodings.  An empty filter result is a normal outcome and yields ``None``.
Ties on the sort key keep pool order (``sorted`` is stable, also with
``reverse=True``), so identical pools always produce identical picks.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

from tipster_edge.services.edge import EdgeValue, normalize_edge

logger = logging.getLogger(__name__)

CONSERVATIVE_MAX_LEGS = 3
CONSERVATIVE_MIN_EDGE = 10.0  # percent
CONSERVATIVE_MAX_EDGE = 20.0  # percent

AGGRESSIVE_MIN_LEGS = 3
AGGRESSIVE_MIN_EDGE = 20.0  # percent


@dataclass(frozen=True)
class ParlayCandidate:
    """A parlay from the externally supplied pool (read-only)."""

    leg_count: int
    edge_pct: EdgeValue         # Raw edge, decimal or percentage encoded
    adjusted_prob: float        # Win probability after correlation penalty
    implied_odds: float         # Decimal odds implied by the combined legs
    parlay_id: Optional[str] = None
    confidence_tier: Optional[str] = None
    correlation_penalty: Optional[float] = None     # multiplier applied to the joint probability

    @property
    def normalized_edge(self) -> float:
        return normalize_edge(self.edge_pct)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "ParlayCandidate":
        """
        Build a candidate from an API/DB row.

        Accepts both camelCase (``legCount``, ``edgePct``, ``adjustedProb``,
        ``impliedOdds``) and snake_case keys.

        Raises:
            ValueError: If the leg count is missing or not a whole number ≥ 1,
                or a probability/odds field is not numeric.
        """
        leg_count = _as_leg_count(_first(row, "leg_count", "legCount", "num_legs"))
        if leg_count < 1:
            raise ValueError(f"leg_count must be ≥ 1, got {leg_count}")

        parlay_id = _first(row, "parlay_id", "parlayId", "id")
        penalty = _first(row, "correlation_penalty", "correlationPenalty")
        return cls(
            leg_count=leg_count,
            edge_pct=_first(row, "edge_pct", "edgePct", "parlay_edge", "parlayEdge"),
            adjusted_prob=float(_first(row, "adjusted_prob", "adjustedProb") or 0.0),
            implied_odds=float(_first(row, "implied_odds", "impliedOdds") or 0.0),
            parlay_id=str(parlay_id) if parlay_id is not None else None,
            confidence_tier=_first(row, "confidence_tier", "confidenceTier"),
            correlation_penalty=float(penalty) if penalty is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "parlay_id": self.parlay_id,
            "leg_count": self.leg_count,
            "edge_pct": self.normalized_edge,
            "adjusted_prob": self.adjusted_prob,
            "implied_odds": self.implied_odds,
            "confidence_tier": self.confidence_tier,
            "correlation_penalty": self.correlation_penalty,
        }


@dataclass(frozen=True)
class SuggestedParlays:
    conservative: Optional[ParlayCandidate]
    aggressive: Optional[ParlayCandidate]


PoolItem = Union[ParlayCandidate, Mapping[str, Any]]


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def _as_leg_count(raw: Any) -> int:
    if raw is None:
        raise ValueError("parlay row has no leg count")
    if isinstance(raw, bool):
        raise ValueError(f"leg_count must be a number, got {raw!r}")
    number = float(raw)
    if not number.is_integer():
        raise ValueError(f"leg_count must be a whole number, got {raw!r}")
    return int(number)


def _coerce_pool(pool: Iterable[PoolItem]) -> List[ParlayCandidate]:
    candidates: List[ParlayCandidate] = []
    for item in pool:
        if isinstance(item, ParlayCandidate):
            candidates.append(item)
            continue
        try:
            candidates.append(ParlayCandidate.from_mapping(item))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed parlay row %r: %s", item, exc)
    return candidates


def is_conservative(candidate: ParlayCandidate) -> bool:
    edge = candidate.normalized_edge
    return (
        candidate.leg_count <= CONSERVATIVE_MAX_LEGS
        and CONSERVATIVE_MIN_EDGE <= edge <= CONSERVATIVE_MAX_EDGE
    )


def is_aggressive(candidate: ParlayCandidate) -> bool:
    return (
        candidate.leg_count >= AGGRESSIVE_MIN_LEGS
        and candidate.normalized_edge >= AGGRESSIVE_MIN_EDGE
    )


def select_conservative(pool: Iterable[PoolItem]) -> Optional[ParlayCandidate]:
    """Highest-probability parlay among the conservative survivors, or None."""
    survivors = [c for c in _coerce_pool(pool) if is_conservative(c)]
    if not survivors:
        return None
    return sorted(survivors, key=lambda c: c.adjusted_prob, reverse=True)[0]


def select_aggressive(pool: Iterable[PoolItem]) -> Optional[ParlayCandidate]:
    """Highest-edge parlay among the aggressive survivors, or None."""
    survivors = [c for c in _coerce_pool(pool) if is_aggressive(c)]
    if not survivors:
        return None
    return sorted(survivors, key=lambda c: c.normalized_edge, reverse=True)[0]


def suggest_parlays(pool: Iterable[PoolItem]) -> SuggestedParlays:
    """
    Conservative and aggressive picks from one pool.

    Args:
        pool: ParlayCandidate objects or row mappings.  Iterated once.

    Returns:
        SuggestedParlays; either field may be None.
    """
    candidates = _coerce_pool(pool)
    suggestion = SuggestedParlays(
        conservative=select_conservative(candidates),
        aggressive=select_aggressive(candidates),
    )
    logger.info(
        "Suggested parlays from pool of %d: conservative=%s aggressive=%s",
        len(candidates),
        suggestion.conservative.parlay_id if suggestion.conservative else None,
        suggestion.aggressive.parlay_id if suggestion.aggressive else None,
    )
    return suggestion


def format_suggestion(candidate: ParlayCandidate, label: str) -> str:
    """One-line human-readable summary for logs and notifications."""
    return (
        f"{label}: {candidate.leg_count}-leg @ {candidate.implied_odds:.2f} "
        f"| edge {candidate.normalized_edge:+.2f}% "
        f"| win prob {candidate.adjusted_prob:.1%}"
    )
