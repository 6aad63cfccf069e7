"""
Tests for core/odds_math.py

Run with: pytest tests/test_odds_math.py -v
"""

import math
import warnings

import pytest

from tipster_edge.core.odds_math import (
    InvalidOddsError,
    american_to_decimal,
    decimal_to_american,
    expected_value,
    implied_prob,
    logistic,
    validate_decimal_odds,
)


class TestAmericanToDecimal:
    """Test odds conversion."""

    def test_positive_odds(self):
        """Test conversion of positive American odds."""
        assert american_to_decimal(100) == pytest.approx(2.0)
        assert american_to_decimal(150) == pytest.approx(2.5)
        assert american_to_decimal(200) == pytest.approx(3.0)

    def test_negative_odds(self):
        """Test conversion of negative American odds."""
        assert american_to_decimal(-110) == pytest.approx(1.909, abs=0.001)
        assert american_to_decimal(-200) == pytest.approx(1.5)

    def test_magnitude_below_100_rejected(self):
        """|odds| < 100 is a parsing error upstream."""
        with pytest.raises(InvalidOddsError):
            american_to_decimal(50)
        with pytest.raises(InvalidOddsError):
            american_to_decimal(-99)

    def test_invalid_odds_error_is_value_error(self):
        """Callers catching ValueError also catch InvalidOddsError."""
        with pytest.raises(ValueError):
            american_to_decimal(0)


class TestDecimalToAmerican:

    def test_underdog_positive(self):
        """Prices of 2.0 and above come back positive."""
        assert decimal_to_american(2.5) == 150

    def test_favourite_negative(self):
        """Prices under 2.0 come back negative."""
        assert decimal_to_american(1.5) == -200

    def test_even_money(self):
        assert decimal_to_american(2.0) == 100

    def test_no_american_equivalent(self):
        """1.0 and below have no American price."""
        with pytest.raises(InvalidOddsError):
            decimal_to_american(1.0)


class TestValidateDecimalOdds:

    def test_positive_price_passes(self):
        validate_decimal_odds(1.01)

    @pytest.mark.parametrize("odds", [0.0, -1.5, float("inf"), float("nan")])
    def test_bad_prices_raise(self, odds):
        """Zero, negative and non-finite prices are rejected."""
        with pytest.raises(InvalidOddsError):
            validate_decimal_odds(odds, "entry_odds")

    @pytest.mark.parametrize("odds", [1e-320, 5e-324])
    def test_subnormal_price_raises(self, odds):
        """A positive price whose implied probability overflows is rejected."""
        with pytest.raises(InvalidOddsError, match="close_odds"):
            validate_decimal_odds(odds, "close_odds")

    def test_tiny_but_normal_price_passes(self):
        """Small normal floats still have a finite implied probability."""
        validate_decimal_odds(1e-300)

    def test_message_names_field(self):
        """The error message names the offending field."""
        with pytest.raises(InvalidOddsError, match="close_odds"):
            validate_decimal_odds(0.0, "close_odds")


class TestImpliedProbAndEV:

    def test_implied_prob(self):
        """Test implied probability of decimal prices."""
        assert implied_prob(2.0) == pytest.approx(0.5)
        assert implied_prob(1.8) == pytest.approx(0.5556, abs=1e-4)

    def test_zero_price_is_inf_not_error(self):
        """Division by zero follows IEEE instead of raising."""
        assert math.isinf(implied_prob(0.0))

    def test_subnormal_price_overflows_quietly(self):
        """Overflow gives inf without a RuntimeWarning."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert math.isinf(implied_prob(1e-320))

    def test_expected_value(self):
        """EV = p * odds - 1."""
        assert expected_value(0.5556, 2.0) == pytest.approx(0.1111, abs=1e-4)
        assert expected_value(0.5, 2.0) == pytest.approx(0.0)

    def test_expected_value_nan_propagates(self):
        """inf * 0 is nan and stays nan."""
        assert math.isnan(expected_value(float("inf"), 0.0))


class TestLogistic:

    def test_midpoint_is_half(self):
        """The curve passes through 0.5 at its midpoint."""
        assert logistic(1.5, 0.8, 1.5) == pytest.approx(0.5)

    def test_saturates_without_overflow(self):
        """Huge arguments saturate to 0 or 1 instead of overflowing."""
        assert logistic(1e6, 0.8, 1.5) == pytest.approx(1.0)
        assert logistic(-1e6, 0.8, 1.5) == pytest.approx(0.0)

    def test_nan_in_nan_out(self):
        assert math.isnan(logistic(float("nan"), 0.8, 1.5))
