#!/usr/bin/env python3
"""
Parlay pool database tool

    python scripts/init_db.py                 create missing tables
    python scripts/init_db.py --seed          ...and insert parlays generated from the sample legs
    python scripts/init_db.py --expire        mark every active pool row expired
    python scripts/init_db.py --reset --yes   drop and recreate (data loss!)
    python scripts/init_db.py --check         connectivity only
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import inspect, text

from tipster_edge.models import Base, ParlayPoolEntry, SessionLocal, engine, init_db
from tipster_edge.services.parlay_generator import generate_best_parlays
from tipster_edge.services.parlay_quality import ParlayLeg

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("init_db")


SAMPLE_LEGS = [
    ParlayLeg("EPL-ARS-CHE", "1X2", 0.62, "HOME", model_agreement=0.85, risk_level="low", edge_consensus=7.5),
    ParlayLeg("EPL-LIV-TOT", "TOTALS", 0.58, "OVER", line=2.5, model_agreement=0.80, edge_consensus=6.1),
    ParlayLeg("LIGA-RMA-SEV", "1X2", 0.70, "HOME", model_agreement=0.82, risk_level="low", edge_consensus=5.4),
    ParlayLeg("SERIEA-INT-LAZ", "BTTS", 0.55, "YES", model_agreement=0.74, edge_consensus=8.2),
    ParlayLeg("BUN-BAY-FRE", "TOTALS", 0.66, "OVER", line=2.5, model_agreement=0.78, edge_consensus=4.9),
    ParlayLeg("EPL-MCI-NEW", "1X2", 0.68, "HOME", model_agreement=0.86, risk_level="low", edge_consensus=6.6),
    ParlayLeg("EPL-MCI-NEW", "TOTALS", 0.61, "OVER", line=2.5, model_agreement=0.84, edge_consensus=5.8),
    ParlayLeg("EPL-MCI-NEW", "BTTS", 0.52, "YES", model_agreement=0.81, risk_level="high", edge_consensus=3.9),
]


def database_reachable() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"❌ Cannot reach {engine.url.render_as_string(hide_password=True)}: {e}")
        return False
    logger.info("✅ Database reachable")
    return True


def create_tables(reset: bool = False):
    """Create the parlay pool schema; ``reset`` drops it first."""
    if reset:
        logger.warning("⚠️  Dropping parlay pool tables")
        Base.metadata.drop_all(bind=engine)

    init_db()
    logger.info(f"📋 Tables: {', '.join(inspect(engine).get_table_names())}")


def seed_sample_parlays() -> int:
    """Generate parlays from SAMPLE_LEGS and insert the new ones; returns rows added."""
    generated = {p.parlay_id: p for p in generate_best_parlays(SAMPLE_LEGS)}
    added = 0
    with SessionLocal() as db:
        existing = {
            pid for (pid,) in db.query(ParlayPoolEntry.parlay_id)
            .filter(ParlayPoolEntry.parlay_id.in_(list(generated)))
        }
        for parlay_id, parlay in generated.items():
            if parlay_id in existing:
                continue
            metrics = parlay.metrics
            db.add(ParlayPoolEntry(
                parlay_id=parlay_id,
                leg_count=metrics.leg_count,
                edge_pct=metrics.parlay_edge,
                adjusted_prob=metrics.adjusted_prob,
                implied_odds=metrics.implied_odds,
                confidence_tier=metrics.confidence_tier,
                correlation_penalty=metrics.correlation_penalty,
            ))
            logger.info(
                f"🌱 {parlay_id} ({parlay.parlay_type}): {metrics.leg_count} legs @ {metrics.implied_odds:.2f}, "
                f"edge {metrics.parlay_edge:.2f}%, score {parlay.score:.1f}"
            )
            added += 1
        db.commit()
    return added


def expire_active_parlays() -> int:
    """Retire the current pool ahead of a fresh generation run."""
    with SessionLocal() as db:
        count = (
            db.query(ParlayPoolEntry)
            .filter(ParlayPoolEntry.status == "active")
            .update({ParlayPoolEntry.status: "expired"}, synchronize_session=False)
        )
        db.commit()
    logger.info(f"🗄️  Expired {count} active parlays")
    return count


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Manage the Tipster Edge parlay pool database")
    parser.add_argument("--check", action="store_true", help="Only check connectivity")
    parser.add_argument("--seed", action="store_true", help="Insert parlays generated from the sample legs")
    parser.add_argument("--expire", action="store_true", help="Expire all active parlays")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate tables (DANGER!)")
    parser.add_argument("--yes", action="store_true", help="Confirm --reset")
    args = parser.parse_args(argv)

    if not database_reachable():
        return 1
    if args.check:
        return 0

    if args.reset and not args.yes:
        logger.error("--reset deletes the whole pool; re-run with --yes to confirm")
        return 2

    create_tables(reset=args.reset)
    if args.expire:
        expire_active_parlays()
    if args.seed:
        logger.info(f"✅ Seeded {seed_sample_parlays()} sample parlays")
    return 0


if __name__ == "__main__":
    sys.exit(main())
