"""Database maintenance commands.

Usage:
  python scripts/manage_db.py upgrade [--revision head]
  python scripts/manage_db.py tables
  python scripts/manage_db.py check-drift
  python scripts/manage_db.py cleanup-tickets [--days 7] [--batch-size 500]
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Sequence

from alembic import command
from alembic.autogenerate import api as ag_api
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect

from lottomoji.config import Settings
from lottomoji.db.engine import get_sessionmaker, make_engine
from lottomoji.logging_config import configure_logging
from lottomoji.models import Base
from lottomoji.workflows import cleanup_old_tickets

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to ``target_revision``."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables() -> None:
    engine = make_engine()
    print("Current tables:", ", ".join(sorted(inspect(engine).get_table_names())))


def _print_ops(ops, indent: int = 0) -> None:
    for op in ops:
        print(f"{'  ' * indent}- {op}")
        if getattr(op, "ops", None):
            _print_ops(op.ops, indent + 1)


def check_drift() -> int:
    """Compare the live schema with the models; 0 = clean, 1 = drift, 2 = error."""
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    if upgrade_ops is None or upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}. Differences detected:")
    _print_ops(upgrade_ops.ops or [])
    return 1


def cleanup_tickets(days: Optional[int], batch_size: Optional[int]) -> int:
    settings = Settings.from_env()
    retention = days or settings.ticket_retention_days
    cutoff = datetime.now(timezone.utc) - timedelta(days=retention)
    Session = get_sessionmaker(make_engine())
    with Session.begin() as session:
        report = cleanup_old_tickets(
            session, older_than=cutoff, batch_size=batch_size, settings=settings
        )
    print(
        f"Deleted {report.deleted_count} of {report.total_old_tickets} tickets "
        f"older than {retention} days."
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LottoMoji database maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    upgrade = sub.add_parser("upgrade", help="apply Alembic migrations")
    upgrade.add_argument("--revision", default="head")

    sub.add_parser("tables", help="list tables in the configured database")
    sub.add_parser("check-drift", help="compare the schema against the models")

    cleanup = sub.add_parser("cleanup-tickets", help="delete old tickets")
    cleanup.add_argument("--days", type=int, default=None)
    cleanup.add_argument("--batch-size", type=int, default=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    if args.command == "upgrade":
        upgrade_db(args.revision)
        print_tables()
        return 0
    if args.command == "tables":
        print_tables()
        return 0
    if args.command == "check-drift":
        return check_drift()
    return cleanup_tickets(args.days, args.batch_size)


if __name__ == "__main__":
    raise SystemExit(main())
