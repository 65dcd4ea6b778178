"""
Database Maintenance Utility

- Regenerates stored mood gradients from stored mood labels, so existing
  analyses pick up changes to the color table
- Deletes analyses older than the retention period
"""

import logging
from dataclasses import dataclass
from typing import Optional

from mood_diary.core.colors import create_mood_gradient

logger = logging.getLogger(__name__)

# Constants
DEFAULT_RETENTION_DAYS = 365 * 3


@dataclass
class GradientMigrationReport:
    total: int = 0
    updated: int = 0
    skipped: int = 0


def regenerate_gradients(store, dry_run: bool = False) -> GradientMigrationReport:
    """
    Re-derives every stored gradient from its mood summary.

    Only the derived gradient field is rewritten, completed days included;
    mood text, track ids and completeness are never touched.

    Args:
        store: DailyAnalysisStore (iter_all / update_gradient).
        dry_run: Report what would change without writing.

    Returns:
        Counts of updated and unchanged analyses.
    """
    report = GradientMigrationReport()

    for analysis in store.iter_all():
        report.total += 1
        new_gradient = create_mood_gradient(analysis.mood_summary).to_dict()

        if analysis.mood_gradient == new_gradient:
            report.skipped += 1
            logger.debug(f"- Skipped {analysis.date}: already has correct gradient")
            continue

        if not dry_run:
            store.update_gradient(analysis.user_id, analysis.date, new_gradient)
        report.updated += 1
        logger.info(f"[OK] Updated {analysis.date}: \"{analysis.mood_summary}\"")

    logger.info(
        f"Gradient migration complete: {report.updated} updated, "
        f"{report.skipped} skipped ({report.total} total)"
    )
    return report


def run_retention_cleanup(store, retention_days: Optional[int] = None) -> int:
    """
    Deletes analyses older than the retention period.

    Returns:
        Number of deleted analyses (0 when cleanup fails).
    """
    retention_days = retention_days or DEFAULT_RETENTION_DAYS
    logger.info(f"Running retention cleanup ({retention_days} days)...")
    return store.delete_older_than(retention_days)
