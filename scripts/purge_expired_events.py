#!/usr/bin/env python3
"""
Delete expired events and join codes from the SQL event store.

Expired rows already read as absent; this only reclaims the space. Safe to
run from cron at any interval.

Usage:
    python scripts/purge_expired_events.py
    python scripts/purge_expired_events.py --database-url postgresql://...
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from draftpod.config import settings
from draftpod.db.session import get_engine, init_db, make_session_factory
from draftpod.exceptions import StorageError
from draftpod.logging_config import configure_logging
from draftpod.storage.sql import SqlEventStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Purge expired draftpod events")
    parser.add_argument("--database-url", default=settings.database_url,
                        help="Database to purge (defaults to DATABASE_URL)")
    args = parser.parse_args()

    configure_logging(settings.log_level, settings.log_format)

    engine = get_engine(args.database_url)
    init_db(engine)
    store = SqlEventStore(make_session_factory(engine))
    try:
        events, codes = store.purge_expired()
    except StorageError as exc:
        logger.error("Purge failed: %s", exc)
        return 1

    print(f"Removed {events} expired events and {codes} expired codes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
