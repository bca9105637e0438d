from __future__ import annotations

import argparse
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from prizepool.config import load_config_from_env
from prizepool.db.engine import get_sessionmaker, make_engine
from prizepool.models import Lottery
from prizepool.workflows import create_lottery

logger = logging.getLogger("prizepool.scripts.init_db")


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables() -> None:
    """Inspect the configured database and print all table names."""
    engine = make_engine()
    insp = inspect(engine)
    print("Current tables:", ", ".join(sorted(insp.get_table_names())))


def bootstrap_lottery(name: str, owner: str) -> None:
    """Create lottery ``name`` from the environment configuration unless it exists."""
    engine = make_engine()
    Session = get_sessionmaker(engine)
    with Session.begin() as session:
        existing = Lottery.get_by_name(session, name)
        if existing is not None:
            print(f"Lottery {name!r} already exists (id={existing.id}, round={existing.round_id})")
            return
        lottery = create_lottery(session, load_config_from_env(), name=name, owner=owner)
        print(f"Created lottery {name!r} (id={lottery.id})")


def main() -> None:
    """Apply migrations (default to head), report the schema, optionally create a lottery."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--revision", default="head")
    parser.add_argument("--lottery", help="name of a lottery to create from LOTTERY_* env vars")
    parser.add_argument("--owner", help="owner account of the created lottery")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    upgrade_db(args.revision)
    print_tables()
    if args.lottery:
        if not args.owner:
            parser.error("--owner is required with --lottery")
        bootstrap_lottery(args.lottery, args.owner)


if __name__ == "__main__":
    main()
