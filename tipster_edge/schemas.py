"""
Pydantic request/response schemas for the Tipster Edge API.

Using explicit schemas instead of raw dicts keeps the OpenAPI docs
accurate and rejects malformed numeric input before it reaches the engine.
Parlay rows are accepted in both camelCase (as the pool producer emits
them) and snake_case; responses are always snake_case.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator

from tipster_edge.core.odds_math import validate_decimal_odds
from tipster_edge.services.clv import (
    CLVResult,
    CLVSummary,
    format_percent,
    format_stake,
    get_confidence_bg_color,
    get_confidence_color,
    get_confidence_tier,
)
from tipster_edge.services.edge import format_edge, get_edge_color
from tipster_edge.services.parlay_generator import GeneratedParlay, GenerationConfig
from tipster_edge.services.parlay_quality import ParlayLeg
from tipster_edge.services.parlay_selector import ParlayCandidate


# ---------------------------------------------------------------------------
# CLV
# ---------------------------------------------------------------------------

class CLVRequest(BaseModel):
    """Payload for POST /api/clv/calculate."""

    entry_odds: float = Field(..., allow_inf_nan=False, description="Price at entry")
    close_odds: float = Field(..., allow_inf_nan=False, description="Closing / market-consensus price")
    odds_format: Literal["decimal", "american"] = Field(
        "decimal", description="Format of both prices; American is converted to decimal"
    )
    max_stake_fraction: Optional[float] = Field(
        None, gt=0, le=1, description="Stake cap as bankroll fraction (default from config)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {"entry_odds": 2.0, "close_odds": 1.8, "odds_format": "decimal"}
        }
    }


class CLVResponse(BaseModel):
    entry_odds: float
    close_odds: float
    p_entry: float
    p_close: float
    clv_percent: float
    ev_percent: float
    confidence: float
    kelly_fraction: float
    recommended_stake: float

    is_positive: bool
    confidence_tier: str
    confidence_color: str
    confidence_bg_color: str
    clv_display: str
    ev_display: str
    stake_display: str
    kelly_display: str

    @classmethod
    def from_result(cls, result: CLVResult) -> "CLVResponse":
        return cls(
            **result.to_dict(),
            is_positive=result.is_positive(),
            confidence_tier=get_confidence_tier(result.confidence),
            confidence_color=get_confidence_color(result.confidence),
            confidence_bg_color=get_confidence_bg_color(result.confidence),
            clv_display=format_percent(result.clv_percent),
            ev_display=format_percent(result.ev_percent),
            stake_display=format_stake(result.recommended_stake),
            kelly_display=format_stake(result.kelly_fraction),
        )


class OddsPairIn(BaseModel):
    """One opportunity in a batch.  Missing or zero prices are skipped."""

    entry_odds: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    close_odds: Optional[float] = Field(None, ge=0, allow_inf_nan=False)

    @field_validator("entry_odds", "close_odds")
    @classmethod
    def validate_price(cls, v: Optional[float], info: ValidationInfo) -> Optional[float]:
        # None and 0 mean "no price yet"
        if v:
            validate_decimal_odds(v, info.field_name)
        return v


class CLVBatchRequest(BaseModel):
    """Payload for POST /api/clv/summary."""

    opportunities: List[OddsPairIn] = Field(..., max_length=1000)
    max_stake_fraction: Optional[float] = Field(None, gt=0, le=1)


class CLVSummaryResponse(BaseModel):
    count: int
    evaluated: int
    avg_confidence: float
    high_confidence_count: int
    total_ev_percent: float
    best: Optional[CLVResponse] = None

    @classmethod
    def from_summary(cls, summary: CLVSummary) -> "CLVSummaryResponse":
        return cls(
            count=summary.count,
            evaluated=summary.evaluated,
            avg_confidence=summary.avg_confidence,
            high_confidence_count=summary.high_confidence_count,
            total_ev_percent=summary.total_ev_percent,
            best=CLVResponse.from_result(summary.best) if summary.best else None,
        )


class CLVAnalysisRequest(BaseModel):
    """Payload for POST /api/clv/analysis."""

    entry_odds: float = Field(..., gt=0, allow_inf_nan=False)
    close_odds: float = Field(..., gt=0, allow_inf_nan=False)
    clv_pct: float = Field(..., description="Feed CLV in percent (e.g. 3.2)")
    books_used: int = Field(0, ge=0)
    best_book: str = Field("", max_length=120)
    bankroll: Optional[float] = Field(None, gt=0)


# ---------------------------------------------------------------------------
# Edge
# ---------------------------------------------------------------------------

class EdgeNormalizeRequest(BaseModel):
    edge: Optional[Union[float, str]] = Field(
        None, description="Decimal (0.0833) or percentage (8.33) encoded edge"
    )


class EdgeNormalizeResponse(BaseModel):
    normalized: float
    formatted: str
    suspicious: bool
    color: str


class EdgeCalculateRequest(BaseModel):
    model_prob: float = Field(..., description="Model win probability (0-1)")
    decimal_odds: float = Field(..., description="Market decimal price")

    model_config = {"protected_namespaces": ()}


class EdgeCalculateResponse(BaseModel):
    edge_pct: float
    formatted: str


# ---------------------------------------------------------------------------
# Parlays
# ---------------------------------------------------------------------------

class ParlayCandidateIn(BaseModel):
    """A pool row, camelCase or snake_case."""

    parlay_id: Optional[str] = Field(None, validation_alias=AliasChoices("parlay_id", "parlayId", "id"))
    leg_count: int = Field(..., ge=1, validation_alias=AliasChoices("leg_count", "legCount"))
    edge_pct: Optional[Union[float, str]] = Field(
        None, validation_alias=AliasChoices("edge_pct", "edgePct")
    )
    adjusted_prob: float = Field(
        0.0, ge=0.0, le=1.0, validation_alias=AliasChoices("adjusted_prob", "adjustedProb")
    )
    implied_odds: float = Field(0.0, ge=0.0, validation_alias=AliasChoices("implied_odds", "impliedOdds"))
    confidence_tier: Optional[str] = Field(
        None, validation_alias=AliasChoices("confidence_tier", "confidenceTier")
    )
    correlation_penalty: Optional[float] = Field(
        None, gt=0.0, le=1.0, validation_alias=AliasChoices("correlation_penalty", "correlationPenalty"),
        description="Multiplier applied to the joint probability (0.92 = 8% haircut)",
    )

    def to_candidate(self) -> ParlayCandidate:
        return ParlayCandidate(
            leg_count=self.leg_count,
            edge_pct=self.edge_pct,
            adjusted_prob=self.adjusted_prob,
            implied_odds=self.implied_odds,
            parlay_id=self.parlay_id,
            confidence_tier=self.confidence_tier,
            correlation_penalty=self.correlation_penalty,
        )


class ParlayAnalysisRequest(ParlayCandidateIn):
    """Payload for POST /api/parlays/analysis."""

    bankroll: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class ParlayPoolRequest(BaseModel):
    """Payload for POST /api/parlays/suggested."""

    parlays: List[ParlayCandidateIn] = Field(..., max_length=5000)


class SuggestedParlayOut(BaseModel):
    parlay_id: Optional[str]
    leg_count: int
    edge_pct: float
    edge_display: str
    edge_color: str
    adjusted_prob: float
    implied_odds: float
    confidence_tier: Optional[str]

    @classmethod
    def from_candidate(cls, candidate: ParlayCandidate) -> "SuggestedParlayOut":
        return cls(
            parlay_id=candidate.parlay_id,
            leg_count=candidate.leg_count,
            edge_pct=candidate.normalized_edge,
            edge_display=format_edge(candidate.edge_pct),
            edge_color=get_edge_color(candidate.edge_pct),
            adjusted_prob=candidate.adjusted_prob,
            implied_odds=candidate.implied_odds,
            confidence_tier=candidate.confidence_tier,
        )


class SuggestedParlaysResponse(BaseModel):
    pool_size: int
    conservative: Optional[SuggestedParlayOut] = None
    aggressive: Optional[SuggestedParlayOut] = None


class ParlayLegIn(BaseModel):
    """A candidate leg for parlay generation, camelCase or snake_case."""

    match_id: str = Field(..., min_length=1, validation_alias=AliasChoices("match_id", "matchId"))
    market_type: str = Field(..., validation_alias=AliasChoices("market_type", "marketType"))
    consensus_prob: float = Field(
        ..., gt=0.0, le=1.0, validation_alias=AliasChoices("consensus_prob", "consensusProb")
    )
    market_subtype: Optional[str] = Field(
        None, validation_alias=AliasChoices("market_subtype", "marketSubtype")
    )
    line: Optional[float] = Field(None, allow_inf_nan=False)
    model_agreement: float = Field(
        0.0, ge=0.0, le=1.0, validation_alias=AliasChoices("model_agreement", "modelAgreement")
    )
    risk_level: str = Field("medium", validation_alias=AliasChoices("risk_level", "riskLevel"))
    edge_consensus: float = Field(
        0.0, allow_inf_nan=False, validation_alias=AliasChoices("edge_consensus", "edgeConsensus"),
        description="Per-leg edge in percent",
    )

    model_config = {"protected_namespaces": ()}

    def to_leg(self) -> ParlayLeg:
        return ParlayLeg(
            match_id=self.match_id,
            market_type=self.market_type,
            consensus_prob=self.consensus_prob,
            market_subtype=self.market_subtype,
            line=self.line,
            model_agreement=self.model_agreement,
            risk_level=self.risk_level,
            edge_consensus=self.edge_consensus,
        )


class ParlayGenerateRequest(BaseModel):
    """Payload for POST /api/parlays/generate."""

    legs: List[ParlayLegIn] = Field(..., max_length=500)
    parlay_type: Literal["multi_game", "single_game", "both"] = "both"
    min_parlay_edge: float = Field(5.0, allow_inf_nan=False)
    min_combined_prob: float = Field(0.15, ge=0.0, le=1.0)
    max_leg_count: int = Field(5, ge=2, le=8)
    min_model_agreement: float = Field(0.65, ge=0.0, le=1.0)
    max_results: int = Field(20, ge=1, le=100)

    def to_config(self) -> GenerationConfig:
        return GenerationConfig(
            min_parlay_edge=self.min_parlay_edge,
            min_combined_prob=self.min_combined_prob,
            max_leg_count=self.max_leg_count,
            min_model_agreement=self.min_model_agreement,
            max_results=self.max_results,
            parlay_type=self.parlay_type,
        )


class GeneratedParlayOut(BaseModel):
    parlay_id: str
    parlay_type: str
    leg_count: int
    match_ids: List[str]
    combined_prob: float
    correlation_penalty: float
    adjusted_prob: float
    implied_odds: float
    parlay_edge: float
    edge_display: str
    confidence_tier: str
    score: float

    @classmethod
    def from_generated(cls, parlay: GeneratedParlay) -> "GeneratedParlayOut":
        metrics = parlay.metrics
        return cls(
            parlay_id=parlay.parlay_id,
            parlay_type=parlay.parlay_type,
            leg_count=parlay.leg_count,
            match_ids=list(parlay.match_ids),
            combined_prob=metrics.combined_prob,
            correlation_penalty=metrics.correlation_penalty,
            adjusted_prob=metrics.adjusted_prob,
            implied_odds=metrics.implied_odds,
            parlay_edge=metrics.parlay_edge,
            edge_display=format_edge(metrics.parlay_edge),
            confidence_tier=metrics.confidence_tier,
            score=parlay.score,
        )


class GeneratedParlaysResponse(BaseModel):
    eligible_legs: int
    parlays: List[GeneratedParlayOut]
