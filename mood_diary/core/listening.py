"""
Play-event normalization and track sampling.

Normalizer:
- Counts plays per song (SongKey = track name + primary artist)
- Deduplicates plays, keeping the first (most recent) occurrence

Sample selector:
- Heavy rotation tracks first (play count >= threshold)
- Then fills with the most recent distinct tracks
"""

import logging
from collections import Counter
from datetime import tzinfo
from typing import Dict, List, Optional

from mood_diary.core.config import DEFAULT_HEAVY_ROTATION_PLAYS, DEFAULT_SAMPLE_TRACKS_COUNT
from mood_diary.core.models import PlayEvent, SampleTrack, SongKey
from mood_diary.utils.date_utils import to_local_date_string

logger = logging.getLogger(__name__)


# ============================================================================
# NORMALIZER
# ============================================================================

def count_song_plays(events: List[PlayEvent]) -> Dict[SongKey, int]:
    """
    Counts plays per song within a window.

    Args:
        events: Plays for a single window.

    Returns:
        Mapping SongKey -> play count. Counts always sum to len(events).
    """
    return dict(Counter(event.song_key for event in events))


def deduplicate_tracks(events: List[PlayEvent]) -> List[PlayEvent]:
    """
    Returns distinct songs in listening order, first occurrence wins.

    Input is reverse-chronological, so the kept play is the most recent one.
    """
    seen = set()
    distinct: List[PlayEvent] = []
    for event in events:
        if event.song_key in seen:
            continue
        seen.add(event.song_key)
        distinct.append(event)
    return distinct


def occurrence_ids(events: List[PlayEvent]) -> frozenset:
    """Set of occurrence ids present in a window."""
    return frozenset(event.occurrence_id for event in events)


# ============================================================================
# WINDOWS
# ============================================================================

def filter_to_date(events: List[PlayEvent], target_date: str, tz: tzinfo) -> List[PlayEvent]:
    """Keeps the plays whose local calendar date is `target_date`, order preserved."""
    return [e for e in events if to_local_date_string(e.played_at, tz) == target_date]


def most_recent_listening_date(events: List[PlayEvent], tz: tzinfo) -> Optional[str]:
    """Calendar date of the latest play in the history, or None when empty."""
    if not events:
        return None
    latest = max(events, key=lambda e: e.played_at)
    return to_local_date_string(latest.played_at, tz)


# ============================================================================
# SAMPLE SELECTOR
# ============================================================================

def select_sample_tracks(
    events: List[PlayEvent],
    counts: Optional[Dict[SongKey, int]] = None,
    max_size: int = DEFAULT_SAMPLE_TRACKS_COUNT,
    heavy_rotation_plays: int = DEFAULT_HEAVY_ROTATION_PLAYS,
) -> List[SampleTrack]:
    """
    Picks a bounded, prioritized sample of tracks to show with a mood summary.

    1. Heavy rotation (play count >= heavy_rotation_plays), by count desc,
       ties broken by listening order (most recent first).
    2. Remaining slots filled with distinct tracks in listening order,
       skipping any track name already selected.

    Args:
        events: Plays for the window (reverse-chronological).
        counts: Precomputed play counts (computed from events if omitted).
        max_size: Maximum number of tracks to return.
        heavy_rotation_plays: Repeat threshold for heavy rotation.

    Returns:
        At most max_size SampleTracks with unique track names.
    """
    if counts is None:
        counts = count_song_plays(events)
    distinct = deduplicate_tracks(events)

    # sorted() is stable, so equal counts keep listening order
    heavy_rotation = sorted(
        (e for e in distinct if counts.get(e.song_key, 1) >= heavy_rotation_plays),
        key=lambda e: counts[e.song_key],
        reverse=True,
    )

    sample: List[SampleTrack] = []
    selected_names = set()

    for event in heavy_rotation + distinct:
        if len(sample) >= max_size:
            break
        if event.track_name in selected_names:
            continue
        selected_names.add(event.track_name)
        sample.append(SampleTrack(
            track_name=event.track_name,
            artist=event.artist_name,
            play_count=counts.get(event.song_key, 1),
            album_art_url=event.album_art_url,
        ))

    logger.debug(
        f"Sampled {len(sample)} tracks "
        f"({min(len(heavy_rotation), max_size)} heavy rotation) from {len(distinct)} distinct"
    )
    return sample
