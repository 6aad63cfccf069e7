"""Core mathematics and configuration for the Tipster Edge engine.

This package contains pure, market-agnostic building blocks:

- ``odds_math``     — decimal/American conversion, implied probability, EV,
                      logistic squashing
- ``kelly``         — Kelly criterion sizing and the stake cap
- ``engine_config`` — tunable policy constants (confidence curve, stake cap)

Nothing in this package imports from ``tipster_edge.services`` or
``tipster_edge.models``.  All modules are side-effect-free and unit-testable
in isolation.
"""
