import pytest
import os
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

# Add project root to Python Path so modules can be imported
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mood_diary.core.analyzer import MoodDiaryAnalyzer
from mood_diary.core.config import MoodDiaryConfig
from mood_diary.core.errors import AnalysisLockedError
from mood_diary.core.models import DailyAnalysis, PlayEvent

# Fixed "now" for every time-dependent test: 2024-01-15 18:00 UTC
NOW = datetime(2024, 1, 15, 18, 0, tzinfo=timezone.utc)
TODAY = "2024-01-15"
YESTERDAY = "2024-01-14"

DEFAULT_RESPONSE = (
    "MOOD: dreamy, restless, hopeful\n"
    "ANALYSIS: Your day leaned soft and floaty. The late picks brought a restless edge."
)


# ============================================================================
# 1. GLOBAL MOCKS (ENV VARS & APIS)
# ============================================================================

@pytest.fixture(autouse=True)
def mock_env_vars():
    """Sets up fake environment variables for all tests."""
    with patch.dict(os.environ, {
        "GEMINI_API_KEY": "fake_key",
        "MONGODB_URI": "mongodb://localhost:27017/test",
        "SPOTIFY_ACCESS_TOKEN": "fake_token",
        "MOOD_DIARY_USER": "user-1",
    }):
        yield


@pytest.fixture
def mock_genai():
    """Mocks Google Generative AI (Gemini)."""
    with patch("mood_diary.adapters.clients.gemini.genai") as mock:
        mock.configure = MagicMock()

        model_instance = MagicMock()
        mock.GenerativeModel.return_value = model_instance

        # Default happy path response
        response = MagicMock()
        response.text = DEFAULT_RESPONSE
        model_instance.generate_content.return_value = response

        yield mock


@pytest.fixture
def mock_requests():
    """Mocks requests.get as seen by the Spotify client."""
    with patch("mood_diary.adapters.clients.spotify.requests.get") as mock_get:
        yield mock_get


# ============================================================================
# 2. FAKE COLLABORATORS
# ============================================================================

class InMemoryStore:
    """Dict-backed store with the same merge semantics as the Mongo upsert."""

    def __init__(self):
        self.records = {}
        self.save_calls = 0

    def get(self, user_id, date):
        return self.records.get((user_id, date))

    def save(self, analysis):
        self.save_calls += 1
        key = (analysis.user_id, analysis.date)
        existing = self.records.get(key)
        if existing is not None and existing.is_complete:
            raise AnalysisLockedError(analysis.user_id, analysis.date)

        merged = replace(
            analysis,
            analyzed_track_ids=analysis.analyzed_track_ids | (
                existing.analyzed_track_ids if existing else frozenset()
            ),
            created_at=existing.created_at if existing else (analysis.created_at or analysis.updated_at),
        )
        self.records[key] = merged
        return merged

    def list_for_user(self, user_id, limit=30):
        entries = [a for (uid, _), a in self.records.items() if uid == user_id]
        return sorted(entries, key=lambda a: a.date, reverse=True)[:limit]

    def iter_all(self):
        return iter(sorted(self.records.values(), key=lambda a: a.date, reverse=True))

    def update_gradient(self, user_id, date, gradient):
        key = (user_id, date)
        if key not in self.records:
            return False
        self.records[key] = replace(self.records[key], mood_gradient=gradient)
        return True


class ScriptedGenerator:
    """Text generator returning canned responses and recording prompts."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [DEFAULT_RESPONSE])
        self.error = error
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    @property
    def call_count(self):
        return len(self.prompts)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def config():
    return MoodDiaryConfig()


@pytest.fixture
def clock():
    """Mutable clock: tests advance it via clock.now."""
    class Clock:
        now = NOW

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def analyzer(store, generator, config, clock):
    return MoodDiaryAnalyzer(store, generator, config, clock=clock)


# ============================================================================
# 3. LISTENING DATA FIXTURES
# ============================================================================

def make_event(name, artist="Artist", track_id=None, played_at=None,
               minutes_ago=0, album_art_url=None):
    """Builds a PlayEvent; ids default to a per-play unique value."""
    moment = played_at or (NOW - timedelta(minutes=minutes_ago))
    return PlayEvent(
        track_id=track_id if track_id is not None else f"{name}-{moment.isoformat()}",
        track_name=name,
        artist_name=artist,
        played_at=moment,
        album_art_url=album_art_url,
    )


def make_window(count, start_minutes_ago=0, prefix="Song"):
    """`count` distinct plays, newest first, one minute apart."""
    return [
        make_event(f"{prefix} {i}", minutes_ago=start_minutes_ago + i)
        for i in range(count)
    ]


def make_analysis(events, date=TODAY, user_id="user-1", updated_at=None,
                  is_complete=False, mood="calm, content, hopeful",
                  ai_analysis="A calm, steady morning."):
    """A stored analysis that already covers `events`."""
    return DailyAnalysis(
        user_id=user_id,
        date=date,
        mood_summary=mood,
        ai_analysis=ai_analysis,
        sample_tracks=[],
        mood_gradient={},
        analyzed_track_ids=frozenset(e.occurrence_id for e in events),
        is_complete=is_complete,
        updated_at=updated_at or NOW,
        created_at=updated_at or NOW,
    )


@pytest.fixture
def event_factory():
    return make_event
