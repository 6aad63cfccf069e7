"""
Database models for the Tipster Edge engine
SQLAlchemy ORM with PostgreSQL

Only the suggested-parlay pool lives here.  Rows are written by the
parlay generation job (outside this package) and read by the
suggested-parlays endpoint.
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime
import os
from dotenv import load_dotenv

from tipster_edge.services.parlay_selector import ParlayCandidate

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://postgres@127.0.0.1:5432/tipster_edge")

# pool_pre_ping keeps long-lived connections from going stale
engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class ParlayPoolEntry(Base):
    """A generated parlay available for suggestion"""

    __tablename__ = "parlay_pool"

    id = Column(Integer, primary_key=True, index=True)
    parlay_id = Column(String(64), unique=True, index=True, nullable=False)
    leg_count = Column(Integer, nullable=False)

    # Producers store either a decimal fraction or a percentage here;
    # always read it through normalize_edge().
    edge_pct = Column(Float)
    adjusted_prob = Column(Float, nullable=False, default=0.0)
    implied_odds = Column(Float, nullable=False, default=0.0)
    confidence_tier = Column(String(20))
    correlation_penalty = Column(Float)   # multiplier, e.g. 0.92

    status = Column(String(20), nullable=False, default="active", index=True)  # active | expired
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_candidate(self) -> ParlayCandidate:
        return ParlayCandidate(
            leg_count=self.leg_count,
            edge_pct=self.edge_pct,
            adjusted_prob=self.adjusted_prob or 0.0,
            implied_odds=self.implied_odds or 0.0,
            parlay_id=self.parlay_id,
            confidence_tier=self.confidence_tier,
            correlation_penalty=self.correlation_penalty,
        )


def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)
