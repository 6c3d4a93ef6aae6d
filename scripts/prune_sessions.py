#!/usr/bin/env python3
"""Delete expired session rows.

The store never removes dead rows on its own; run this from cron or a
scheduler.

Usage:
    python scripts/prune_sessions.py --database-url sqlite:///./sessions.db

With no --database-url, DATABASE_URL (or the settings default) is used.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone

from sqlsession.config import get_settings
from sqlsession.session import SQLAlchemyExecutor

logger = logging.getLogger("prune_sessions")


def prune(database_url: str) -> int:
    executor = SQLAlchemyExecutor.from_url(database_url)
    try:
        return executor.delete_expired(datetime.now(timezone.utc))
    finally:
        executor.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete expired session rows")
    parser.add_argument("--database-url", default="", help="SQLAlchemy database URL")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    database_url = args.database_url or get_settings().database_url
    try:
        deleted = prune(database_url)
    except Exception as e:
        logger.error("Prune failed: %s", e)
        return 1
    print(f"Removed {deleted} expired sessions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
