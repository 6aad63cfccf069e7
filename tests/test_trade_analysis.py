"""
Tests for services/trade_analysis.py

Run with: pytest tests/test_trade_analysis.py -v
"""

import math

import pytest

from tipster_edge.core.odds_math import InvalidOddsError
from tipster_edge.services.parlay_selector import ParlayCandidate
from tipster_edge.services.trade_analysis import (
    analyze_clv_opportunity,
    analyze_parlay,
    clv_warnings,
    correlation_haircut,
    is_exchange,
    parlay_risk_level,
    parlay_stake_fraction,
    parlay_warnings,
    stake_guidance,
)


class TestAnalyzeCLVOpportunity:

    def test_strong_opportunity(self):
        """Test a 6% CLV opportunity at an exchange."""
        report = analyze_clv_opportunity(
            2.0, 1.8, 6.0, books_used=5, best_book="Betfair Exchange", bankroll=1000.0
        )

        market = report["market"]
        assert market["edge_tier"] == "Excellent Edge"
        assert market["confidence_score"] == 100
        assert market["confidence_tier"] == "High Confidence"
        assert market["ev_percent"] == pytest.approx(11.11, abs=0.01)
        assert market["entry_odds_american"] == 100

        assert report["liquidity"]["books_used"] == 5
        assert report["liquidity"]["is_exchange"] is True
        assert report["liquidity"]["has_exit_optionality"] is True

        trading = report["trading"]
        assert trading["verdict"] == "STRONG_BUY"
        assert trading["risk_level"] == "LOW"
        assert trading["allocation"] == "HIGH_PRIORITY"
        assert trading["stake_size"] == "0.75-1.0 units (moderate)"
        # Capped 5% stake = 5 units = $50 of $1000
        assert trading["kelly_units"] == pytest.approx(5.0)
        assert trading["stake_dollars"] == pytest.approx(50.0)

        assert report["warnings"] == []

    def test_weak_long_odds_opportunity(self):
        """Test a thin-edge long shot at a sportsbook."""
        report = analyze_clv_opportunity(6.0, 6.2, 1.5, best_book="pinnacle")

        assert report["market"]["edge_tier"] == "Moderate Edge"
        assert report["market"]["confidence_score"] < 50
        assert report["market"]["entry_odds_american"] == 500
        assert report["liquidity"]["is_exchange"] is False

        trading = report["trading"]
        assert trading["verdict"] == "WEAK"
        assert trading["risk_level"] == "HIGH"
        assert trading["allocation"] == "LOW_PRIORITY"
        assert trading["kelly_units"] == 0.0
        assert trading["stake_dollars"] is None

        assert len(report["warnings"]) == 3

    @pytest.mark.parametrize("clv,verdict,tier", [
        (3.0, "BUY", "Strong Edge"),
        (2.0, "CONSIDER", "Good Edge"),
        (0.5, "WEAK", "Weak Edge"),
    ])
    def test_verdict_ladder(self, clv, verdict, tier):
        """Feed CLV drives verdict and edge tier."""
        report = analyze_clv_opportunity(2.0, 1.9, clv)
        assert report["trading"]["verdict"] == verdict
        assert report["market"]["edge_tier"] == tier

    def test_favourite_entry_shown_negative(self):
        """Entry prices under 2.0 are shown as negative American odds."""
        report = analyze_clv_opportunity(1.5, 1.45, 3.0)
        assert report["market"]["entry_odds_american"] == -200

    @pytest.mark.parametrize("entry,close", [(2.0, 1e-320), (0.0, 1.8), (2.0, -1.5)])
    def test_strict_rejects_unusable_prices(self, entry, close):
        """Strict mode raises instead of reporting inf/nan metrics."""
        with pytest.raises(InvalidOddsError):
            analyze_clv_opportunity(entry, close, 3.0, strict=True)

    def test_permissive_by_default(self):
        """Without strict, a zero entry price still produces a report."""
        report = analyze_clv_opportunity(0.0, 1.8, 3.0)
        # EV of a zero price is p_close * 0 - 1
        assert report["market"]["ev_percent"] == pytest.approx(-100.0)
        assert report["market"]["entry_odds_american"] is None
        assert report["trading"]["kelly_units"] == 0.0

    def test_permissive_subnormal_close(self):
        """Without strict, an overflowing close price propagates inf."""
        report = analyze_clv_opportunity(2.0, 1e-320, 3.0)
        assert math.isinf(report["market"]["ev_percent"])


class TestHelpers:

    @pytest.mark.parametrize("clv,confidence,expected", [
        (5.0, 80, "0.75-1.0 units (moderate)"),
        (5.0, 70, "0.5-0.75 units (small-to-moderate)"),
        (3.5, 65, "0.5-0.75 units (small-to-moderate)"),
        (2.0, 10, "0.25-0.5 units (small)"),
        (1.0, 90, "0.1-0.25 units (minimal)"),
    ])
    def test_stake_guidance(self, clv, confidence, expected):
        """Stake guidance needs both CLV and confidence for the larger sizes."""
        assert stake_guidance(clv, confidence) == expected

    def test_warnings(self):
        """Long odds, low confidence and thin edges each add a warning."""
        assert clv_warnings(5.0, 90, 2.0) == []
        assert len(clv_warnings(1.0, 40, 7.5)) == 3
        assert clv_warnings(3.0, 40, 2.0) == ["Lower confidence means more noise in the data"]

    @pytest.mark.parametrize("book,expected", [
        ("betfair", True), ("Smarkets", True), ("matchbook_exchange", True),
        ("pinnacle", False), ("", False), (None, False),
    ])
    def test_is_exchange(self, book, expected):
        """Exchanges are recognised by name."""
        assert is_exchange(book) is expected


class TestParlayStaking:

    @pytest.mark.parametrize("edge,legs,expected", [
        (30, 2, 0.01),
        (25, 3, 0.0075),
        (20, 2, 0.0075),
        (15, 4, 0.00375),
        (12, 3, 0.00375),
        (10, 2, 0.005),
        (9.9, 2, 0.0025),
        (5, 6, 0.00125),
        (30, 1, 0.005),
    ])
    def test_stake_fraction(self, edge, legs, expected):
        """Base stake by edge, times 1.0 / 0.75 / 0.5 for 2 / 3 / other leg counts."""
        assert parlay_stake_fraction(edge, legs) == pytest.approx(expected)

    @pytest.mark.parametrize("legs,expected", [
        (2, "MODERATE_LOW"), (3, "MODERATE"), (4, "HIGH"), (6, "HIGH"), (1, "MODERATE_LOW"),
    ])
    def test_risk_level_by_leg_count(self, legs, expected):
        assert parlay_risk_level(legs) == expected

    def test_correlation_haircut(self):
        """The haircut is the share of probability the penalty removes."""
        assert correlation_haircut(0.92) == pytest.approx(0.08)
        assert correlation_haircut(0.765) == pytest.approx(0.235)
        assert correlation_haircut(None) is None

    def test_parlay_warnings(self):
        """Every parlay gets the all-legs warning; low probability and heavy correlation add more."""
        assert parlay_warnings(2, 40.0, 0.08) == [
            "2-leg parlay means all legs must win - this is variance-heavy",
        ]
        assert parlay_warnings(4, 12.0, 0.235) == [
            "4-leg parlay means all legs must win - this is variance-heavy",
            "Low win probability means you will lose most of the time",
            "High correlation penalty reduces true edge",
        ]

    def test_warning_thresholds_are_strict(self):
        """15% win probability and a 0.15 haircut are not flagged."""
        assert len(parlay_warnings(3, 15.0, 0.15)) == 1
        assert len(parlay_warnings(3, 20.0, None)) == 1


class TestAnalyzeParlay:

    def test_strong_parlay(self):
        """Test a 4-leg, 27% edge parlay."""
        candidate = ParlayCandidate(4, 0.27, 0.12, 8.33, "p1", "high")
        report = analyze_parlay(candidate)

        assert report["parlay_id"] == "p1"
        assert report["edge_pct"] == pytest.approx(27.0)
        assert report["edge_tier"] == "Excellent Edge"
        assert report["verdict"] == "STRONG_BUY"
        assert report["action"] == "Take the parlay"
        assert report["implied_odds_american"] == 733
        assert report["win_probability"] == pytest.approx(12.0)
        assert report["risk_level"] == "HIGH"
        assert report["probability_risk"] == "medium"
        assert report["allocation"] == "HIGH_PRIORITY"
        # 1% base stake, halved for four legs
        assert report["stake_fraction"] == pytest.approx(0.005)
        assert report["stake_size"] == "0.50% of bankroll (0.50 units)"
        assert report["stake_units"] == pytest.approx(0.5)
        assert report["stake_dollars"] is None
        # 27 * 0.4 + (12 * 0.3) * 0.3 + 30 * 0.3
        assert report["quality_score"] == pytest.approx(20.88)
        assert report["quality_tier"] == "poor"
        assert report["tradable"] is True
        assert report["correlation_haircut"] is None
        assert report["warnings"] == [
            "4-leg parlay means all legs must win - this is variance-heavy",
            "Low win probability means you will lose most of the time",
        ]

    def test_correlated_double_with_bankroll(self):
        """A correlated same-game double with a bankroll gets a dollar stake and a correlation warning."""
        candidate = ParlayCandidate(2, 30, 0.4, 2.5, "sgp", "high", correlation_penalty=0.765)
        report = analyze_parlay(candidate, bankroll=1000.0)

        assert report["risk_level"] == "MODERATE_LOW"
        assert report["implied_odds_american"] == 150
        assert report["stake_fraction"] == pytest.approx(0.01)
        assert report["stake_size"] == "1.00% of bankroll (1.00 units)"
        assert report["stake_dollars"] == pytest.approx(10.0)
        assert report["correlation_haircut"] == pytest.approx(0.235)
        assert report["warnings"] == [
            "2-leg parlay means all legs must win - this is variance-heavy",
            "High correlation penalty reduces true edge",
        ]

    @pytest.mark.parametrize("edge,tier,verdict,allocation,action", [
        (16, "Strong Edge", "BUY", "MEDIUM_PRIORITY", "Take the parlay"),
        (12, "Good Edge", "CONSIDER", "LOW_PRIORITY", "Consider as part of portfolio"),
        (6, "Moderate Edge", "WEAK", "LOW_PRIORITY", "Skip or minimal stake"),
        (3, "Weak Edge", "WEAK", "LOW_PRIORITY", "Skip or minimal stake"),
    ])
    def test_edge_ladder(self, edge, tier, verdict, allocation, action):
        """Edge drives tier, verdict, allocation and action."""
        report = analyze_parlay(ParlayCandidate(3, edge, 0.2, 5.0))
        assert report["edge_tier"] == tier
        assert report["verdict"] == verdict
        assert report["allocation"] == allocation
        assert report["action"] == action
        assert report["risk_level"] == "MODERATE"

    def test_untradable(self):
        """A 1% win probability parlay is not tradable."""
        report = analyze_parlay(ParlayCandidate(6, 30, 0.01, 100.0))
        assert report["tradable"] is False
        assert report["risk_level"] == "HIGH"
        assert report["probability_risk"] == "very_high"
        assert report["stake_fraction"] == pytest.approx(0.005)

    def test_missing_implied_odds(self):
        """Pool rows without odds have no American price."""
        report = analyze_parlay(ParlayCandidate(2, 12, 0.3, 0.0))
        assert report["implied_odds_american"] is None
