"""
Configuration for the incremental mood analysis engine.

Defaults mirror the production thresholds; every value can be overridden
through environment variables (loaded from `.env` by the CLI).
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_NEW_SONGS_THRESHOLD = 8
DEFAULT_CHANGE_FRACTION_THRESHOLD = 0.4
DEFAULT_STALE_HOURS_THRESHOLD = 6.0
DEFAULT_HEAVY_ROTATION_PLAYS = 3
DEFAULT_SAMPLE_TRACKS_COUNT = 5
DEFAULT_SPOTIFY_TRACKS_LIMIT = 50
DEFAULT_TIMEZONE = "UTC"
DEFAULT_ANALYSIS_SENTENCES = 2
DEFAULT_ANALYSIS_MAX_WORDS = 50
DEFAULT_HISTORY_LIMIT = 30

# field name -> (env var, parser)
ENV_VARIABLES: Dict[str, tuple] = {
    "new_songs_threshold": ("NEW_SONGS_THRESHOLD", int),
    "change_fraction_threshold": ("CHANGE_PERCENT_THRESHOLD", float),
    "stale_hours_threshold": ("HOURS_SINCE_UPDATE", float),
    "heavy_rotation_plays": ("HEAVY_ROTATION_PLAYS", int),
    "sample_tracks_count": ("SAMPLE_TRACKS_COUNT", int),
    "spotify_tracks_limit": ("SPOTIFY_TRACKS_LIMIT", int),
    "timezone": ("MOOD_DIARY_TIMEZONE", str),
    "analysis_sentences": ("ANALYSIS_SENTENCES", int),
    "analysis_max_words": ("ANALYSIS_MAX_WORDS", int),
    "history_limit": ("MOOD_HISTORY_LIMIT", int),
}


@dataclass(frozen=True)
class MoodDiaryConfig:
    """Thresholds and limits for analysis, sampling and prompting."""

    # Update triggers
    new_songs_threshold: int = DEFAULT_NEW_SONGS_THRESHOLD
    change_fraction_threshold: float = DEFAULT_CHANGE_FRACTION_THRESHOLD
    stale_hours_threshold: float = DEFAULT_STALE_HOURS_THRESHOLD

    # Track sampling
    heavy_rotation_plays: int = DEFAULT_HEAVY_ROTATION_PLAYS
    sample_tracks_count: int = DEFAULT_SAMPLE_TRACKS_COUNT

    # Listening history
    spotify_tracks_limit: int = DEFAULT_SPOTIFY_TRACKS_LIMIT
    timezone: str = DEFAULT_TIMEZONE

    # Prompt constraints
    analysis_sentences: int = DEFAULT_ANALYSIS_SENTENCES
    analysis_max_words: int = DEFAULT_ANALYSIS_MAX_WORDS

    history_limit: int = DEFAULT_HISTORY_LIMIT

    def __post_init__(self) -> None:
        if self.new_songs_threshold < 1:
            raise ValueError("new_songs_threshold must be >= 1")
        if not 0 < self.change_fraction_threshold <= 1:
            raise ValueError("change_fraction_threshold must be in (0, 1]")
        if self.stale_hours_threshold <= 0:
            raise ValueError("stale_hours_threshold must be > 0")
        if self.heavy_rotation_plays < 2:
            raise ValueError("heavy_rotation_plays must be >= 2")
        if self.sample_tracks_count < 1:
            raise ValueError("sample_tracks_count must be >= 1")
        if not 1 <= self.spotify_tracks_limit <= 50:
            raise ValueError("spotify_tracks_limit must be between 1 and 50")
        if self.analysis_sentences < 1 or self.analysis_max_words < 1:
            raise ValueError("analysis constraints must be positive")
        if self.history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.timezone}") from e

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MoodDiaryConfig":
        """
        Builds a config from environment variables, falling back to defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            Validated MoodDiaryConfig.

        Raises:
            ValueError: If a variable cannot be parsed or is out of range.
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for field_name, (env_name, parser) in ENV_VARIABLES.items():
            raw = environ.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            overrides[field_name] = _parse_value(env_name, raw.strip(), parser)

        return cls(**overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _parse_value(env_name: str, raw: str, parser: Callable[[str], Any]) -> Any:
    try:
        return parser(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e
