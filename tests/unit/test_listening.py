import pytest
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from mood_diary.core.listening import (
    count_song_plays, deduplicate_tracks, occurrence_ids,
    filter_to_date, most_recent_listening_date, select_sample_tracks
)
from mood_diary.core.models import SongKey

from conftest import make_event, make_window


class TestPlayEventNormalizer:
    """Test suite for play counting and deduplication."""

    # ========================================================================
    # 1. COUNTING
    # ========================================================================

    def test_counts_repeated_plays(self):
        events = [
            make_event("A", minutes_ago=0),
            make_event("B", minutes_ago=1),
            make_event("A", minutes_ago=2),
            make_event("C", minutes_ago=3),
            make_event("A", minutes_ago=4),
        ]

        counts = count_song_plays(events)

        assert counts[SongKey("A", "Artist")] == 3
        assert counts[SongKey("B", "Artist")] == 1
        assert sum(counts.values()) == len(events)

    def test_same_name_different_artist_is_a_different_song(self):
        events = [make_event("Intro", artist="X"), make_event("Intro", artist="Y", minutes_ago=1)]

        assert len(count_song_plays(events)) == 2
        assert len(deduplicate_tracks(events)) == 2

    def test_identity_ignores_track_id(self):
        """Two releases of the same song (different ids) count as one song."""
        events = [
            make_event("Song", track_id="single-id"),
            make_event("Song", track_id="album-id", minutes_ago=5),
        ]

        assert count_song_plays(events) == {SongKey("Song", "Artist"): 2}

    def test_empty_input(self):
        assert count_song_plays([]) == {}
        assert deduplicate_tracks([]) == []

    # ========================================================================
    # 2. DEDUPLICATION
    # ========================================================================

    def test_dedup_keeps_first_occurrence_in_order(self):
        first_a = make_event("A", minutes_ago=0)
        events = [first_a, make_event("B", minutes_ago=1), make_event("A", minutes_ago=2)]

        distinct = deduplicate_tracks(events)

        assert [e.track_name for e in distinct] == ["A", "B"]
        assert distinct[0] is first_a

    def test_occurrence_id_falls_back_for_local_files(self):
        local = make_event("Demo", artist="Me", track_id="")

        assert local.occurrence_id == "local:Demo:Me"
        assert occurrence_ids([local, make_event("X", track_id="abc")]) == frozenset({"local:Demo:Me", "abc"})


class TestWindows:
    """Test suite for calendar-date windows."""

    def test_filter_to_date_uses_configured_timezone(self):
        late_utc = make_event("Late", played_at=datetime(2024, 1, 16, 3, 0, tzinfo=timezone.utc))

        assert filter_to_date([late_utc], "2024-01-16", timezone.utc) == [late_utc]
        # 03:00 UTC is still the evening before in New York
        assert filter_to_date([late_utc], "2024-01-15", ZoneInfo("America/New_York")) == [late_utc]

    def test_filter_preserves_order(self):
        events = make_window(4)
        assert filter_to_date(events, "2024-01-15", timezone.utc) == events

    def test_most_recent_listening_date(self):
        older = make_event("Old", played_at=datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc))
        newer = make_event("New", played_at=datetime(2024, 1, 12, 9, 0, tzinfo=timezone.utc))

        # Order of the input does not matter
        assert most_recent_listening_date([older, newer], timezone.utc) == "2024-01-12"
        assert most_recent_listening_date([], timezone.utc) is None


class TestSampleSelector:
    """Test suite for representative track sampling."""

    def test_heavy_rotation_first_then_recency(self):
        names = ["X", "Y", "Z", "Y", "W", "Y", "Z", "Z", "Z"]
        events = [make_event(name, minutes_ago=i) for i, name in enumerate(names)]

        sample = select_sample_tracks(events)

        assert [t.track_name for t in sample] == ["Z", "Y", "X", "W"]
        assert [t.play_count for t in sample] == [4, 3, 1, 1]

    def test_heavy_rotation_ties_keep_recency_order(self):
        names = ["B", "A", "B", "A", "B", "A"]
        events = [make_event(name, minutes_ago=i) for i, name in enumerate(names)]

        sample = select_sample_tracks(events)

        assert [t.track_name for t in sample] == ["B", "A"]

    def test_never_exceeds_max_size(self):
        sample = select_sample_tracks(make_window(10))

        assert len(sample) == 5
        assert [t.track_name for t in sample] == [f"Song {i}" for i in range(5)]

    def test_heavy_rotation_truncated_to_max_size(self):
        events = []
        for i in range(4):
            events.extend(make_event(f"Loop {i}", minutes_ago=i * 10 + k) for k in range(3))

        sample = select_sample_tracks(events, max_size=2)

        assert len(sample) == 2
        assert all(t.play_count == 3 for t in sample)

    def test_track_names_unique_across_artists(self):
        events = [
            make_event("Intro", artist="X", minutes_ago=0),
            make_event("Intro", artist="Y", minutes_ago=1),
            make_event("Outro", artist="X", minutes_ago=2),
        ]

        sample = select_sample_tracks(events)

        assert [(t.track_name, t.artist) for t in sample] == [("Intro", "X"), ("Outro", "X")]

    def test_carries_album_art(self):
        events = [make_event("A", album_art_url="https://img/a.jpg")]

        assert select_sample_tracks(events)[0].album_art_url == "https://img/a.jpg"

    def test_custom_heavy_rotation_threshold(self):
        names = ["A", "B", "B"]
        events = [make_event(name, minutes_ago=i) for i, name in enumerate(names)]

        sample = select_sample_tracks(events, heavy_rotation_plays=2)

        assert [t.track_name for t in sample] == ["B", "A"]

    def test_empty_window(self):
        assert select_sample_tracks([]) == []
