"""Administrative commands for the translation store.

Usage:
    carol-translations-admin init-db
    carol-translations-admin migrate [--revision head]
    carol-translations-admin expire-proposals
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

from carol_translations.core.errors import StoreError
from carol_translations.core.settings import settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def run_upgrade(revision: str = "head") -> None:
    """Apply Alembic migrations up to ``revision``."""
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    command.upgrade(cfg, revision)


def _cmd_init_db(_: argparse.Namespace) -> int:
    from carol_translations.db.session import create_tables

    create_tables()
    print(f"Tables created at {settings.effective_database_url}")
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    run_upgrade(args.revision)
    return 0


def _cmd_expire(_: argparse.Namespace) -> int:
    from carol_translations.services.expiry import run_expiry_sweep

    try:
        expired = run_expiry_sweep()
    except StoreError as exc:
        print(f"Expiry sweep failed: {exc}", file=sys.stderr)
        return 1
    print(f"Expired {len(expired)} proposal(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="carol-translations-admin", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables directly from the ORM metadata").set_defaults(
        func=_cmd_init_db
    )

    migrate = sub.add_parser("migrate", help="Run Alembic migrations")
    migrate.add_argument("--revision", default="head")
    migrate.set_defaults(func=_cmd_migrate)

    sub.add_parser(
        "expire-proposals",
        help="Reject pending proposals whose voting window has elapsed",
    ).set_defaults(func=_cmd_expire)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=settings.log_level.upper())
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
