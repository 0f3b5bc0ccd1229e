#!/usr/bin/env python3
"""
Wipe the freight reconciliation tables by migrating down to base and back up
to head, so the schema always matches the alembic history.

Usage:
    python scripts/reset_database.py           # asks for confirmation
    python scripts/reset_database.py --yes     # no prompt (CI / local dev)
    python scripts/reset_database.py --seed    # reseed synthetic shipments afterwards
"""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv
load_dotenv(ROOT / ".env")

from alembic import command
from alembic.config import Config
from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from freight_recon.database import Base, engine
from freight_recon.models import BillOfLading, File, Invoice, MatchingResult, PurchaseOrder

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Child tables first so the counts read in dependency order
FREIGHT_MODELS = [MatchingResult, Invoice, BillOfLading, PurchaseOrder, File]


def row_counts() -> dict:
    """Rows per freight table, skipping tables the database does not have yet"""
    existing = set(inspect(engine).get_table_names())
    counts = {}
    with Session(engine) as db:
        for model in FREIGHT_MODELS:
            if model.__tablename__ in existing:
                counts[model.__tablename__] = db.query(func.count()).select_from(model).scalar()
    return counts


def alembic_config() -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return config


def reset_database(confirm: bool = True, seed: bool = False):
    counts = row_counts()
    logger.warning(f"Resetting freight tables on {engine.url.render_as_string(hide_password=True)}")
    for table, count in counts.items():
        logger.warning(f"  {table}: {count} row(s)")

    if confirm and sum(counts.values()):
        response = input("Type 'reset freight' to delete these rows: ")
        if response.strip().lower() != "reset freight":
            logger.info("Aborted.")
            return

    if "alembic_version" not in inspect(engine).get_table_names():
        # Tables created by seed_data's create_all carry no revision to downgrade from
        logger.info("No alembic revision recorded, dropping freight tables directly")
        Base.metadata.drop_all(bind=engine, tables=[model.__table__ for model in FREIGHT_MODELS])

    config = alembic_config()
    logger.info("Downgrading to base...")
    command.downgrade(config, "base")
    logger.info("Upgrading to head...")
    command.upgrade(config, "head")
    logger.info(f"Freight tables recreated: {', '.join(model.__tablename__ for model in reversed(FREIGHT_MODELS))}")

    if seed:
        from seed_data import main as seed_main
        seed_main()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reset the freight reconciliation database")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    parser.add_argument("--seed", action="store_true", help="load synthetic shipments after the reset")
    args = parser.parse_args()

    reset_database(confirm=not args.yes, seed=args.seed)
