#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from wingman import create_app
from wingman.extensions import db
from wingman.models import Chat

logger = logging.getLogger("wingman.scripts.purge_old_chats")


def purge_chats_older_than(days: int) -> int:
    cutoff = datetime.utcnow() - timedelta(days=days)
    chats = Chat.query.filter(Chat.timestamp < cutoff).all()
    for chat in chats:
        db.session.delete(chat)
    db.session.commit()
    return len(chats)


def main() -> None:
    parser = argparse.ArgumentParser(description="Purge chats with no activity for a number of days")
    parser.add_argument("--days", type=int, default=30, help="Delete chats idle longer than this many days")
    args = parser.parse_args()

    if args.days < 0:
        raise SystemExit("--days must be >= 0")

    app = create_app()
    with app.app_context():
        deleted = purge_chats_older_than(args.days)

    logger.info("Purged %d chat(s) idle for more than %d day(s).", deleted, args.days)


if __name__ == "__main__":
    main()
