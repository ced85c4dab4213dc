# src/welo_stage/scripts/migrate.py
"""Apply or roll back Alembic migrations without an alembic.ini."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from welo_stage.core.settings import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def build_config(database_url: str | None = None) -> Config:
    """Return an Alembic config pointed at the project's migrations folder."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", database_url or settings.database_url_sync)
    return cfg


def run_upgrade(revision: str = "head", database_url: str | None = None) -> None:
    logger.info("Upgrading database schema to %s", revision)
    command.upgrade(build_config(database_url), revision)


def run_downgrade(revision: str = "base", database_url: str | None = None) -> None:
    logger.info("Downgrading database schema to %s", revision)
    command.downgrade(build_config(database_url), revision)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Manage the Welo database schema")
    parser.add_argument("action", choices=("upgrade", "downgrade"))
    parser.add_argument("revision", nargs="?")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())
    if args.action == "upgrade":
        run_upgrade(args.revision or "head")
    else:
        run_downgrade(args.revision or "base")


if __name__ == "__main__":
    main()
