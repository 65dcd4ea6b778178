#!/usr/bin/env python3
"""
Regenerate mood_gradient for existing analyses from their mood_summary,
using the current color mappings.

Usage:
  python scripts/fix_mood_gradients.py              # rewrite changed gradients
  python scripts/fix_mood_gradients.py --dry-run    # report only
  python scripts/fix_mood_gradients.py --cleanup 365
"""

import os
import sys
import argparse
import logging

from dotenv import load_dotenv

# Ensure the project root is in python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mood_diary.adapters.repositories.mongo import DatabaseConnection, get_store
from mood_diary.core.errors import MoodDiaryError
from mood_diary.utils.db_maintenance import regenerate_gradients, run_retention_cleanup
from mood_diary.utils.logger import setup_logger

logger = logging.getLogger("mood_diary.scripts.fix_mood_gradients")


def main() -> int:
    parser = argparse.ArgumentParser(description="Regenerate stored mood gradients")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    parser.add_argument("--cleanup", type=int, metavar="DAYS",
                        help="Also delete analyses older than DAYS days")
    args = parser.parse_args()

    load_dotenv()
    setup_logger()

    try:
        store = get_store()
        report = regenerate_gradients(store, dry_run=args.dry_run)
        print(f"Updated: {report.updated}")
        print(f"Skipped: {report.skipped}")

        if args.cleanup:
            deleted = run_retention_cleanup(store, args.cleanup)
            print(f"Deleted: {deleted}")
    except MoodDiaryError as e:
        logger.error(f"Migration failed: {e}")
        return 1
    finally:
        DatabaseConnection().close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
