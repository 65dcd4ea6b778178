"""
Update-decision policy for cached daily analyses.

An existing analysis is refreshed when any of three independent triggers fires:
- absolute: enough new songs since the last analysis
- proportional: new songs make up a large enough share of the window
- staleness: enough time has passed, even with no new songs at all
"""

import logging
from datetime import datetime
from typing import AbstractSet, List, Optional

from mood_diary.core.config import MoodDiaryConfig
from mood_diary.core.listening import occurrence_ids
from mood_diary.core.models import DailyAnalysis, PlayEvent, UpdateDecision
from mood_diary.utils.date_utils import hours_since, utc_now

logger = logging.getLogger(__name__)


def should_update(
    new_track_ids: AbstractSet[str],
    total_track_count: int,
    last_updated_at: datetime,
    config: Optional[MoodDiaryConfig] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Decides whether an existing analysis should be regenerated.

    Args:
        new_track_ids: Ids in the latest fetch that are not yet analyzed.
        total_track_count: Number of tracks currently in the window.
        last_updated_at: When the existing analysis was last written.
        config: Thresholds (defaults if omitted).
        now: Reference time (current UTC time if omitted).

    Returns:
        True if any trigger fires. Thresholds are inclusive.
    """
    config = config or MoodDiaryConfig()
    now = now or utc_now()

    new_count = len(new_track_ids)
    change_fraction = new_count / total_track_count if total_track_count > 0 else 0.0
    elapsed_hours = hours_since(last_updated_at, now)

    absolute = new_count >= config.new_songs_threshold
    proportional = new_count > 0 and change_fraction >= config.change_fraction_threshold
    stale = elapsed_hours >= config.stale_hours_threshold

    return absolute or proportional or stale


def build_update_decision(
    prior: DailyAnalysis,
    window_events: List[PlayEvent],
    config: Optional[MoodDiaryConfig] = None,
    now: Optional[datetime] = None,
) -> UpdateDecision:
    """
    Derives the transient update decision for an existing analysis.

    Args:
        prior: The stored analysis for the window's date.
        window_events: Plays currently attributed to that date.
        config: Thresholds.
        now: Reference time.

    Returns:
        UpdateDecision with the new ids and the policy verdict.
    """
    config = config or MoodDiaryConfig()
    now = now or utc_now()

    current_ids = occurrence_ids(window_events)
    new_ids = frozenset(current_ids - prior.analyzed_track_ids)
    elapsed_hours = hours_since(prior.updated_at, now)

    verdict = should_update(new_ids, len(current_ids), prior.updated_at, config, now)

    logger.debug(
        f"Update decision for {prior.date}: {len(new_ids)}/{len(current_ids)} new, "
        f"{elapsed_hours:.1f}h since update -> {'update' if verdict else 'keep'}"
    )
    return UpdateDecision(
        new_track_ids=new_ids,
        total_track_count=len(current_ids),
        hours_since_update=elapsed_hours,
        should_update=verdict,
    )
