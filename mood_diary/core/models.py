"""
Domain types for the mood diary.

- PlayEvent: one observed play from the listening history
- SongKey: dedup identity of a song (name + primary artist)
- SampleTrack: a representative track shown alongside a mood summary
- DailyAnalysis: the persisted per-(user, date) mood record
- UpdateDecision: transient result of the update-decision policy
- AnalysisOutcome: what an analysis request resolved to
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional


# ============================================================================
# LISTENING DATA
# ============================================================================

class SongKey(NamedTuple):
    """
    Identity used to decide whether two plays are the same song.

    Deliberately independent of the opaque track id: ids can repeat across
    releases or be missing entirely (local files).
    """
    track_name: str
    artist_name: str


@dataclass(frozen=True)
class PlayEvent:
    """A single play of a track, as reported by the listening-history source."""

    track_id: Optional[str]
    track_name: str
    artist_name: str
    played_at: datetime
    album_art_url: Optional[str] = None

    @property
    def song_key(self) -> SongKey:
        return SongKey(self.track_name, self.artist_name)

    @property
    def occurrence_id(self) -> str:
        """Identifier folded into `analyzed_track_ids`."""
        if self.track_id:
            return self.track_id
        return f"local:{self.track_name}:{self.artist_name}"


@dataclass(frozen=True)
class SampleTrack:
    """A track summary annotated with its play count in the window."""

    track_name: str
    artist: str
    play_count: int
    album_art_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track_name": self.track_name,
            "artist": self.artist,
            "play_count": self.play_count,
            "album_art_url": self.album_art_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SampleTrack":
        return cls(
            track_name=data.get("track_name", ""),
            artist=data.get("artist", ""),
            play_count=int(data.get("play_count", 1)),
            album_art_url=data.get("album_art_url"),
        )


# ============================================================================
# DAILY ANALYSIS
# ============================================================================

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """MongoDB hands back naive datetimes unless tz_aware is set; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class DailyAnalysis:
    """
    The mood record for one user on one calendar date.

    `analyzed_track_ids` is the cumulative set of occurrence ids already
    folded into the mood summary; it only grows while the day is mutable.
    """

    user_id: str
    date: str
    mood_summary: str
    ai_analysis: str
    sample_tracks: List[SampleTrack]
    mood_gradient: Dict[str, Any]
    analyzed_track_ids: FrozenSet[str]
    is_complete: bool
    updated_at: datetime
    created_at: Optional[datetime] = None

    @property
    def track_count(self) -> int:
        return len(self.analyzed_track_ids)

    def to_document(self) -> Dict[str, Any]:
        """Serializes to a MongoDB document (ids sorted for stable output)."""
        return {
            "user_id": self.user_id,
            "date": self.date,
            "mood_summary": self.mood_summary,
            "ai_analysis": self.ai_analysis,
            "sample_tracks": [t.to_dict() for t in self.sample_tracks],
            "mood_gradient": self.mood_gradient,
            "analyzed_track_ids": sorted(self.analyzed_track_ids),
            "is_complete": self.is_complete,
            "updated_at": self.updated_at,
            "created_at": self.created_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "DailyAnalysis":
        return cls(
            user_id=str(doc["user_id"]),
            date=str(doc["date"]),
            mood_summary=doc.get("mood_summary") or "neutral",
            ai_analysis=doc.get("ai_analysis") or "",
            sample_tracks=[SampleTrack.from_dict(t) for t in doc.get("sample_tracks") or []],
            mood_gradient=doc.get("mood_gradient") or {},
            analyzed_track_ids=frozenset(doc.get("analyzed_track_ids") or []),
            is_complete=bool(doc.get("is_complete", False)),
            updated_at=_as_utc(doc.get("updated_at")) or datetime.now(timezone.utc),
            created_at=_as_utc(doc.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view, as returned to callers."""
        payload = self.to_document()
        payload["updated_at"] = self.updated_at.isoformat()
        payload["created_at"] = self.created_at.isoformat() if self.created_at else None
        payload["track_count"] = self.track_count
        return payload


# ============================================================================
# TRANSIENT RESULTS
# ============================================================================

@dataclass(frozen=True)
class UpdateDecision:
    """Derived fresh on every request against an existing analysis; never persisted."""

    new_track_ids: FrozenSet[str]
    total_track_count: int
    hours_since_update: float
    should_update: bool

    @property
    def new_song_count(self) -> int:
        return len(self.new_track_ids)

    @property
    def change_fraction(self) -> float:
        if self.total_track_count <= 0:
            return 0.0
        return self.new_song_count / self.total_track_count


class OutcomeStatus(Enum):
    """How an analysis request was resolved."""
    CREATED = "created"
    UPDATED = "updated"
    CACHED = "cached"
    SUGGEST_RECENT_DAY = "suggest_recent_day"
    NOTHING_TO_ANALYZE = "nothing_to_analyze"
    DRY_RUN = "dry_run"


@dataclass
class AnalysisOutcome:
    """Result of an analysis request."""

    status: OutcomeStatus
    date: str
    message: str
    analysis: Optional[DailyAnalysis] = None
    new_song_count: int = 0
    track_count: int = 0
    suggested_date: Optional[str] = None
    suggested_count: int = 0
    prompt: Optional[str] = field(default=None, repr=False)

    @property
    def success(self) -> bool:
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.UPDATED, OutcomeStatus.CACHED)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "status": self.status.value,
            "date": self.date,
            "message": self.message,
            "track_count": self.track_count,
        }
        if self.analysis is not None:
            payload.update({
                "mood_summary": self.analysis.mood_summary,
                "ai_analysis": self.analysis.ai_analysis,
                "sample_tracks": [t.to_dict() for t in self.analysis.sample_tracks],
                "mood_gradient": self.analysis.mood_gradient,
                "last_updated": self.analysis.updated_at.isoformat(),
            })
        if self.status == OutcomeStatus.UPDATED:
            payload["new_song_count"] = self.new_song_count
        if self.status == OutcomeStatus.SUGGEST_RECENT_DAY:
            payload["recent_date"] = self.suggested_date
            payload["recent_count"] = self.suggested_count
        if self.status == OutcomeStatus.DRY_RUN:
            payload["prompt"] = self.prompt
        return payload
