"""Engine configuration — every tunable policy constant in one place.

Nothing elsewhere in the codebase should hard-code the confidence curve,
the Kelly multiplier, or the stake cap.  Services take an optional
:class:`EngineConfig` and fall back to :meth:`EngineConfig.default`.

The defaults are **policy choices**, not derived constants:

* ``confidence_steepness = 0.8`` and ``confidence_midpoint = 1.5`` put
  +1.5% EV at a confidence of 50 and saturate near 100 by ~+8% EV.
* ``kelly_multiplier = 0.5`` is half-Kelly.
* ``max_stake_fraction = 0.05`` caps any single stake at 5% of bankroll.

Typical usage::

    from tipster_edge.core.engine_config import EngineConfig

    cfg = EngineConfig.from_env()          # reads .env / process env
    result = calculate_clv(2.0, 1.8, config=cfg)

    # Override one constant for an experiment:
    from dataclasses import replace
    aggressive = replace(cfg, kelly_multiplier=0.75)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from dotenv import load_dotenv

from tipster_edge.core.kelly import DEFAULT_KELLY_MULTIPLIER, DEFAULT_MAX_STAKE_FRACTION

#: Logistic steepness ``a`` of the confidence curve.
DEFAULT_CONFIDENCE_STEEPNESS: Final[float] = 0.8

#: Logistic midpoint ``m`` (in EV percent) of the confidence curve.
DEFAULT_CONFIDENCE_MIDPOINT: Final[float] = 1.5

#: Confidence at or above which an opportunity counts as "high confidence"
#: in dashboard summaries.
DEFAULT_HIGH_CONFIDENCE: Final[float] = 70.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineConfig:
    """Immutable bundle of engine policy constants.

    Attributes:
        confidence_steepness: Logistic ``a``.  Larger = sharper transition
            from low to high confidence around the midpoint.
        confidence_midpoint: EV% mapped to a confidence of exactly 50.
        kelly_multiplier: Fraction of full Kelly recommended (0.5 = half).
        max_stake_fraction: Hard cap on the recommended stake.
        strict_odds: When True, :func:`~tipster_edge.services.clv.calculate_clv`
            raises :class:`~tipster_edge.core.odds_math.InvalidOddsError` on
            prices ≤ 0 instead of propagating ``inf``/``nan``.
        high_confidence: Threshold used by batch summaries.
    """

    confidence_steepness: float = DEFAULT_CONFIDENCE_STEEPNESS
    confidence_midpoint: float = DEFAULT_CONFIDENCE_MIDPOINT
    kelly_multiplier: float = DEFAULT_KELLY_MULTIPLIER
    max_stake_fraction: float = DEFAULT_MAX_STAKE_FRACTION
    strict_odds: bool = False
    high_confidence: float = DEFAULT_HIGH_CONFIDENCE

    @classmethod
    def default(cls) -> "EngineConfig":
        return cls()

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables (``.env`` is loaded first).

        Raises:
            ValueError: If a numeric variable is set but not a number.
        """
        load_dotenv()
        return cls(
            confidence_steepness=_env_float("CONFIDENCE_STEEPNESS", DEFAULT_CONFIDENCE_STEEPNESS),
            confidence_midpoint=_env_float("CONFIDENCE_MIDPOINT", DEFAULT_CONFIDENCE_MIDPOINT),
            kelly_multiplier=_env_float("KELLY_MULTIPLIER", DEFAULT_KELLY_MULTIPLIER),
            max_stake_fraction=_env_float("MAX_STAKE_FRACTION", DEFAULT_MAX_STAKE_FRACTION),
            strict_odds=os.getenv("CLV_STRICT_ODDS", "false").strip().lower() in _TRUTHY,
            high_confidence=_env_float("HIGH_CONFIDENCE_THRESHOLD", DEFAULT_HIGH_CONFIDENCE),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name}={raw!r} is not a number") from None
