"""
FastAPI application for the Tipster Edge engine
Exposes CLV / EV metrics, edge normalization and suggested parlays
"""

from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import os

from tipster_edge.auth import verify_api_key
from tipster_edge.core.engine_config import EngineConfig
from tipster_edge.core.odds_math import InvalidOddsError, american_to_decimal
from tipster_edge.models import get_db, ParlayPoolEntry
from tipster_edge.services.clv import calculate_clv, summarize_opportunities
from tipster_edge.services.edge import (
    calculate_edge,
    format_edge,
    get_edge_color,
    is_suspicious_edge,
    normalize_edge,
)
from tipster_edge.services.parlay_generator import candidate_leg_pool, generate_best_parlays
from tipster_edge.services.parlay_selector import format_suggestion, suggest_parlays
from tipster_edge.services.trade_analysis import analyze_clv_opportunity, analyze_parlay
from tipster_edge.schemas import (
    CLVRequest,
    CLVResponse,
    CLVBatchRequest,
    CLVSummaryResponse,
    CLVAnalysisRequest,
    EdgeNormalizeRequest,
    EdgeNormalizeResponse,
    EdgeCalculateRequest,
    EdgeCalculateResponse,
    GeneratedParlayOut,
    GeneratedParlaysResponse,
    ParlayAnalysisRequest,
    ParlayGenerateRequest,
    ParlayPoolRequest,
    SuggestedParlayOut,
    SuggestedParlaysResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0"

engine_config = EngineConfig.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(
        "🚀 Starting Tipster Edge engine (confidence a=%.2f m=%.2f, kelly x%.2f, cap %.3f)",
        engine_config.confidence_steepness,
        engine_config.confidence_midpoint,
        engine_config.kelly_multiplier,
        engine_config.max_stake_fraction,
    )
    yield
    logger.info("👋 Shutting down Tipster Edge engine")


app = FastAPI(
    title="Tipster Edge",
    description="Betting edge & closing-line-value engine",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _to_decimal(odds: float, odds_format: str) -> float:
    return american_to_decimal(odds) if odds_format == "american" else odds


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "Tipster Edge",
        "version": APP_VERSION,
        "status": "operational",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    return health


# ============================================================================
# AUTHENTICATED ENDPOINTS - CLV
# ============================================================================

@app.post("/api/clv/calculate", response_model=CLVResponse)
async def calculate_clv_endpoint(
    payload: CLVRequest,
    user: str = Depends(verify_api_key),
):
    """
    CLV, EV, confidence and Kelly stake for one entry/close pair.

    Prices ≤ 0 are rejected with 422 regardless of the library's strict
    setting: NaN/inf cannot be serialized to JSON.
    """
    try:
        entry = _to_decimal(payload.entry_odds, payload.odds_format)
        close = _to_decimal(payload.close_odds, payload.odds_format)
        result = calculate_clv(
            entry, close, payload.max_stake_fraction, strict=True, config=engine_config
        )
    except InvalidOddsError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return CLVResponse.from_result(result)


@app.post("/api/clv/summary", response_model=CLVSummaryResponse)
async def clv_summary_endpoint(
    payload: CLVBatchRequest,
    user: str = Depends(verify_api_key),
):
    """Dashboard aggregates: average confidence, high-confidence count, total EV, best edge."""
    summary = summarize_opportunities(
        [(o.entry_odds, o.close_odds) for o in payload.opportunities],
        payload.max_stake_fraction,
        config=engine_config,
    )
    return CLVSummaryResponse.from_summary(summary)


@app.post("/api/clv/analysis")
async def clv_analysis_endpoint(
    payload: CLVAnalysisRequest,
    user: str = Depends(verify_api_key),
):
    """Trade report (tiers, verdict, stake guidance, warnings) for one opportunity.

    Runs strict like /api/clv/calculate: an unusable price is a 422.
    """
    try:
        return analyze_clv_opportunity(
            payload.entry_odds,
            payload.close_odds,
            payload.clv_pct,
            books_used=payload.books_used,
            best_book=payload.best_book,
            bankroll=payload.bankroll,
            strict=True,
            config=engine_config,
        )
    except InvalidOddsError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


# ============================================================================
# AUTHENTICATED ENDPOINTS - EDGE
# ============================================================================

@app.post("/api/edge/normalize", response_model=EdgeNormalizeResponse)
async def normalize_edge_endpoint(
    payload: EdgeNormalizeRequest,
    user: str = Depends(verify_api_key),
):
    """Normalize a decimal- or percentage-encoded edge."""
    suspicious = is_suspicious_edge(payload.edge)
    if suspicious:
        logger.warning("Suspicious edge value received: %r", payload.edge)
    return EdgeNormalizeResponse(
        normalized=normalize_edge(payload.edge),
        formatted=format_edge(payload.edge),
        suspicious=suspicious,
        color=get_edge_color(payload.edge),
    )


@app.post("/api/edge/calculate", response_model=EdgeCalculateResponse)
async def calculate_edge_endpoint(
    payload: EdgeCalculateRequest,
    user: str = Depends(verify_api_key),
):
    """Edge of a model probability against a market price."""
    edge = calculate_edge(payload.model_prob, payload.decimal_odds)
    return EdgeCalculateResponse(edge_pct=edge, formatted=format_edge(edge))


# ============================================================================
# AUTHENTICATED ENDPOINTS - PARLAYS
# ============================================================================

def _suggestion_response(pool) -> SuggestedParlaysResponse:
    suggestion = suggest_parlays(pool)
    for label, pick in (("Conservative", suggestion.conservative), ("Aggressive", suggestion.aggressive)):
        if pick is not None:
            logger.info(format_suggestion(pick, label))
    return SuggestedParlaysResponse(
        pool_size=len(pool),
        conservative=SuggestedParlayOut.from_candidate(suggestion.conservative) if suggestion.conservative else None,
        aggressive=SuggestedParlayOut.from_candidate(suggestion.aggressive) if suggestion.aggressive else None,
    )


@app.get("/api/parlays/suggested", response_model=SuggestedParlaysResponse)
async def get_suggested_parlays(
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Conservative and aggressive picks from the active parlay pool."""
    rows = (
        db.query(ParlayPoolEntry)
        .filter(ParlayPoolEntry.status == "active")
        .order_by(ParlayPoolEntry.created_at.asc(), ParlayPoolEntry.id.asc())
        .all()
    )
    return _suggestion_response([row.to_candidate() for row in rows])


@app.post("/api/parlays/suggested", response_model=SuggestedParlaysResponse)
async def suggest_parlays_endpoint(
    payload: ParlayPoolRequest,
    user: str = Depends(verify_api_key),
):
    """Conservative and aggressive picks from a caller-supplied pool."""
    return _suggestion_response([p.to_candidate() for p in payload.parlays])


@app.post("/api/parlays/analysis")
async def parlay_analysis_endpoint(
    payload: ParlayAnalysisRequest,
    user: str = Depends(verify_api_key),
):
    """Trade report (verdict, stake size, risk, warnings) for a single parlay."""
    return analyze_parlay(payload.to_candidate(), bankroll=payload.bankroll)


@app.post("/api/parlays/generate", response_model=GeneratedParlaysResponse)
async def generate_parlays_endpoint(
    payload: ParlayGenerateRequest,
    user: str = Depends(verify_api_key),
):
    """Best multi-game and single-game parlays from a caller-supplied leg pool."""
    legs = [leg.to_leg() for leg in payload.legs]
    config = payload.to_config()
    parlays = generate_best_parlays(legs, config)
    return GeneratedParlaysResponse(
        eligible_legs=len(candidate_leg_pool(legs, config)),
        parlays=[GeneratedParlayOut.from_generated(p) for p in parlays],
    )


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
