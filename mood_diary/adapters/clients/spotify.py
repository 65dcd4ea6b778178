"""
Spotify API client for listening history.

Fetches the user's "recently played" tracks and converts them into
PlayEvents for the analyzer. Token acquisition and refresh are out of scope:
the client is handed a ready-to-use user access token.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from mood_diary.core.errors import ListeningHistoryError
from mood_diary.core.models import PlayEvent

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

SPOTIFY_RECENTLY_PLAYED_URL = "https://api.spotify.com/v1/me/player/recently-played"

API_TIMEOUT = 10
DEFAULT_TRACKS_LIMIT = 50
MAX_TRACKS_LIMIT = 50  # API hard cap per request


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SpotifyAPIError(ListeningHistoryError):
    """Raised when Spotify API call fails."""
    code = "SPOTIFY_API_ERROR"


# ============================================================================
# PARSING
# ============================================================================

def _parse_played_at(value: str) -> datetime:
    """Parses Spotify's ISO-8601 timestamps ("2024-01-15T10:30:00.123Z")."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def parse_play_item(item: Dict[str, Any]) -> Optional[PlayEvent]:
    """
    Converts one "recently played" item to a PlayEvent.

    Returns:
        PlayEvent, or None if the item has no track or timestamp.
    """
    track = item.get("track") or {}
    played_at = item.get("played_at")
    if not track or not played_at:
        return None

    artists = track.get("artists") or []
    images = (track.get("album") or {}).get("images") or []

    try:
        moment = _parse_played_at(played_at)
    except ValueError:
        logger.debug(f"Skipping item with unparseable played_at: {played_at}")
        return None

    return PlayEvent(
        track_id=track.get("id"),
        track_name=track.get("name", ""),
        artist_name=artists[0].get("name", "") if artists else "",
        played_at=moment,
        album_art_url=images[0].get("url") if images else None,
    )


def parse_recently_played(payload: Dict[str, Any]) -> List[PlayEvent]:
    """
    Converts a /me/player/recently-played response into PlayEvents.

    Order is preserved (the API returns newest first); malformed items are
    skipped.
    """
    events = []
    for item in payload.get("items") or []:
        event = parse_play_item(item)
        if event is not None:
            events.append(event)
    return events


# ============================================================================
# SPOTIFY API CLIENT
# ============================================================================

class SpotifyHistoryClient:
    """Client for a user's recently played tracks."""

    def __init__(self, access_token: Optional[str] = None, timeout: float = API_TIMEOUT) -> None:
        """
        Initialize client.

        Args:
            access_token: User access token (defaults to SPOTIFY_ACCESS_TOKEN env var)
            timeout: Request timeout in seconds.

        Raises:
            ValueError: If no token is available.
        """
        self.access_token = access_token or os.environ.get("SPOTIFY_ACCESS_TOKEN")
        if not self.access_token:
            raise ValueError("Spotify access token not configured (SPOTIFY_ACCESS_TOKEN)")
        self.timeout = timeout

    def get_recently_played(self, limit: int = DEFAULT_TRACKS_LIMIT) -> List[PlayEvent]:
        """
        Fetches the user's recently played tracks.

        Args:
            limit: Number of plays to request (1-50).

        Returns:
            PlayEvents, newest first. Empty when Spotify has nothing (204).

        Raises:
            SpotifyAPIError: On timeouts, HTTP errors or malformed responses.
        """
        limit = max(1, min(limit, MAX_TRACKS_LIMIT))
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            response = requests.get(
                SPOTIFY_RECENTLY_PLAYED_URL,
                headers=headers,
                params={"limit": limit},
                timeout=self.timeout
            )
            if response.status_code == 204:
                logger.info("Spotify returned no content")
                return []
            response.raise_for_status()
            payload = response.json()

        except requests.exceptions.Timeout:
            logger.error("Spotify recently-played timeout")
            raise SpotifyAPIError("Spotify API timeout") from None
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"Spotify API HTTP error: {status}")
            raise SpotifyAPIError(f"Spotify API error: {status}", details={"status": status}) from None
        except Exception as e:
            logger.error(f"Spotify recently-played failed: {e}")
            raise SpotifyAPIError(str(e)) from e

        events = parse_recently_played(payload)
        logger.info(f"[OK] Fetched {len(events)} recently played tracks")
        return events
