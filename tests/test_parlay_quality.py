"""
Tests for services/parlay_quality.py

Run with: pytest tests/test_parlay_quality.py -v
"""

import pytest

from tipster_edge.services.parlay_quality import (
    ParlayLeg,
    are_legs_correlated,
    build_parlay,
    calculate_correlation_penalty,
    calculate_quality_score,
    get_quality_tier,
    get_risk_level,
    is_tradable,
)
from tipster_edge.services.parlay_selector import is_conservative


def home(match, prob=0.6, agreement=0.85):
    return ParlayLeg(match, "1X2", prob, "HOME", model_agreement=agreement)


def over(match, prob=0.55, line=2.5, agreement=0.85):
    return ParlayLeg(match, "TOTALS", prob, "OVER", line=line, model_agreement=agreement)


def btts(match, prob=0.5, agreement=0.85):
    return ParlayLeg(match, "BTTS", prob, "YES", model_agreement=agreement)


class TestCorrelationPenalty:

    def test_multi_game_table(self):
        """Cross-match multipliers for 2-5 legs."""
        assert calculate_correlation_penalty(2, False) == pytest.approx(0.92)
        assert calculate_correlation_penalty(3, False) == pytest.approx(0.90)
        assert calculate_correlation_penalty(4, False) == pytest.approx(0.88)
        assert calculate_correlation_penalty(5, False) == pytest.approx(0.85)

    def test_single_game_table(self):
        """Same-match parlays use the harsher table."""
        assert calculate_correlation_penalty(2, False, is_multi_game=False) == pytest.approx(0.85)
        assert calculate_correlation_penalty(5, False, is_multi_game=False) == pytest.approx(0.70)

    def test_correlation_extra(self):
        """A correlated pair shaves off 5% (multi-game) or 10% (single-game) more."""
        assert calculate_correlation_penalty(3, True) == pytest.approx(0.90 * 0.95)
        assert calculate_correlation_penalty(3, True, is_multi_game=False) == pytest.approx(0.80 * 0.90)

    def test_outside_table_uses_five_leg_value(self):
        """Leg counts missing from the table use the 5-leg multiplier."""
        assert calculate_correlation_penalty(8, False) == pytest.approx(0.85)
        assert calculate_correlation_penalty(1, False) == pytest.approx(0.85)


class TestLegCorrelation:

    def test_same_match_pairs(self):
        """Home win, over 2.5 and BTTS yes correlate pairwise within a match."""
        assert are_legs_correlated(home("m1"), over("m1"))
        assert are_legs_correlated(btts("m1"), home("m1"))
        assert are_legs_correlated(over("m1"), btts("m1"))

    def test_different_matches_never_correlated(self):
        """Legs from different matches are independent."""
        assert not are_legs_correlated(home("m1"), over("m2"))

    def test_low_total_line_not_counted(self):
        """Only over lines of 2.5 and above count as correlated."""
        assert not are_legs_correlated(home("m1"), over("m1", line=1.5))


class TestBuildParlay:

    def test_cross_match_two_legs(self):
        """Test metrics of an uncorrelated cross-match double."""
        metrics = build_parlay([home("m1", 0.6), over("m2", 0.5)])

        assert metrics.is_multi_game
        assert not metrics.has_correlation
        assert metrics.combined_prob == pytest.approx(0.30)
        assert metrics.correlation_penalty == pytest.approx(0.92)
        assert metrics.adjusted_prob == pytest.approx(0.276)
        assert metrics.implied_odds == pytest.approx(1 / 0.276)
        # Edge depends only on the penalty: (1/0.92 - 1) * 100
        assert metrics.parlay_edge == pytest.approx(8.6957, abs=1e-3)
        assert metrics.confidence_tier == "low"
        assert metrics.leg_count == 2

    def test_same_game_correlated(self):
        """Test metrics of a correlated same-game treble."""
        metrics = build_parlay([home("m1"), over("m1"), btts("m1")])

        assert not metrics.is_multi_game
        assert metrics.has_correlation
        assert metrics.correlation_penalty == pytest.approx(0.72)
        assert metrics.parlay_edge == pytest.approx(38.889, abs=1e-3)
        assert metrics.confidence_tier == "high"

    def test_medium_tier(self):
        """Agreement ≥ 0.70 with edge ≥ 10 is medium confidence."""
        legs = [home("m1", agreement=0.75), ParlayLeg("m1", "DC", 0.7, "1X", model_agreement=0.75)]
        metrics = build_parlay(legs)
        assert metrics.parlay_edge == pytest.approx(17.647, abs=1e-3)
        assert metrics.confidence_tier == "medium"

    @pytest.mark.parametrize("legs", [[], [home("m1", 0.0)], [home("m1", 1.5)]])
    def test_invalid_legs(self, legs):
        """Empty legs or a joint probability outside (0, 1] raise."""
        with pytest.raises(ValueError):
            build_parlay(legs)

    def test_to_candidate_feeds_selector(self):
        """Metrics convert to a selector candidate."""
        metrics = build_parlay([home("m1", 0.7), over("m1", 0.8, line=3.5)])
        candidate = metrics.to_candidate("sgp-1")

        assert candidate.parlay_id == "sgp-1"
        assert candidate.leg_count == 2
        assert candidate.adjusted_prob == pytest.approx(metrics.adjusted_prob)
        assert candidate.confidence_tier == metrics.confidence_tier
        assert candidate.correlation_penalty == pytest.approx(0.85 * 0.90)
        # 2-leg correlated same-game: (1/(0.85*0.9) - 1) * 100 ≈ 30.7
        assert not is_conservative(candidate)


class TestQualityHelpers:

    def test_quality_score(self):
        """Test the weighted composite quality score."""
        # 20 * 0.4 + (30 * 0.3) * 0.3 + 30 * 0.3
        assert calculate_quality_score(20, 0.30, "high") == pytest.approx(19.7)

    def test_edge_capped_at_50(self):
        """Edge contributes at most 50 points before weighting."""
        assert calculate_quality_score(80, 0.0, "low") == pytest.approx(50 * 0.4 + 12 * 0.3)

    def test_negative_edge_floored(self):
        """Negative edges contribute nothing."""
        assert calculate_quality_score(-10, 0.0, "medium") == pytest.approx(21 * 0.3)

    def test_unknown_tier_scores_as_low(self):
        """Missing tiers weigh like low; tier names are case-insensitive."""
        assert calculate_quality_score(10, 0.2, None) == pytest.approx(calculate_quality_score(10, 0.2, "low"))
        assert calculate_quality_score(10, 0.2, "HIGH") == pytest.approx(calculate_quality_score(10, 0.2, "high"))

    def test_is_tradable(self):
        """Tradable needs edge ≥ 5% and win probability ≥ 5%."""
        assert is_tradable(5.0, 0.05)
        assert not is_tradable(4.99, 0.5)
        assert not is_tradable(10.0, 0.049)

    @pytest.mark.parametrize("prob,expected", [
        (0.25, "low"), (0.20, "low"), (0.10, "medium"), (0.05, "high"), (0.04, "very_high"),
    ])
    def test_risk_level(self, prob, expected):
        """Probability-based risk ladder."""
        assert get_risk_level(prob) == expected

    @pytest.mark.parametrize("score,expected", [
        (70, "excellent"), (50, "good"), (30, "fair"), (29.9, "poor"),
    ])
    def test_quality_tier(self, score, expected):
        """Quality score tiers."""
        assert get_quality_tier(score) == expected
