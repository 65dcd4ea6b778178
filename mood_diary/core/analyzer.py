"""
Incremental mood analysis engine.

For a (user, date) request this module decides whether the listening window
should be:
- served from the stored analysis (CACHED_VALID)
- analyzed for the first time (NEEDS_FIRST_ANALYSIS)
- folded into the stored analysis as an update (NEEDS_UPDATE)

and, when generation is needed, builds the prompt, calls the injected text
generator once, and writes the merged record through the injected store.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from mood_diary.core.colors import create_mood_gradient
from mood_diary.core.config import MoodDiaryConfig
from mood_diary.core.errors import (
    InvalidDateError,
    NoListeningHistoryError,
    StorageError,
    TextGenerationError,
)
from mood_diary.core.listening import (
    count_song_plays,
    filter_to_date,
    most_recent_listening_date,
    occurrence_ids,
    select_sample_tracks,
)
from mood_diary.core.models import (
    AnalysisOutcome,
    DailyAnalysis,
    OutcomeStatus,
    PlayEvent,
    UpdateDecision,
)
from mood_diary.core.prompts import PromptBuilder, parse_mood_response
from mood_diary.core.update_policy import build_update_decision
from mood_diary.utils.date_utils import (
    format_time_since,
    parse_date,
    to_local_date_string,
    utc_now,
)

logger = logging.getLogger(__name__)

NO_SONGS_TODAY_MESSAGE = "No songs played today yet!"


# ============================================================================
# STATE MACHINE
# ============================================================================

class AnalysisState(Enum):
    """
    Per-request states.

    NO_PRIOR_ANALYSIS always moves to NEEDS_FIRST_ANALYSIS; a prior analysis
    moves to CACHED_VALID or NEEDS_UPDATE depending on the update policy.
    """
    NO_PRIOR_ANALYSIS = "no_prior_analysis"
    CACHED_VALID = "cached_valid"
    NEEDS_FIRST_ANALYSIS = "needs_first_analysis"
    NEEDS_UPDATE = "needs_update"


def resolve_state(prior: Optional[DailyAnalysis],
                  decision: Optional[UpdateDecision]) -> AnalysisState:
    """
    Resolves the action for a request.

    Args:
        prior: Stored analysis for the date, if any.
        decision: Update policy result for the prior (None when not evaluated).

    Returns:
        CACHED_VALID, NEEDS_FIRST_ANALYSIS or NEEDS_UPDATE.
    """
    if prior is None:
        logger.debug(f"{AnalysisState.NO_PRIOR_ANALYSIS.name} -> {AnalysisState.NEEDS_FIRST_ANALYSIS.name}")
        return AnalysisState.NEEDS_FIRST_ANALYSIS

    # Completed days are frozen
    if prior.is_complete or decision is None or not decision.should_update:
        return AnalysisState.CACHED_VALID

    return AnalysisState.NEEDS_UPDATE


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class MoodDiaryAnalyzer:
    """
    Orchestrates daily mood analysis.

    Collaborators are injected:
    - store: get(user_id, date), save(analysis), list_for_user(user_id, limit)
    - generate: prompt -> free text (e.g. a GeminiTextGenerator)
    """

    def __init__(self, store, generate: Callable[[str], str],
                 config: Optional[MoodDiaryConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.generate = generate
        self.config = config or MoodDiaryConfig()
        self.clock = clock or utc_now
        self.prompt_builder = PromptBuilder(self.config)

    # ------------------------------------------------------------------
    # Calendar helpers
    # ------------------------------------------------------------------

    def today(self, now: Optional[datetime] = None) -> str:
        return to_local_date_string(now or self.clock(), self.config.tzinfo)

    # ------------------------------------------------------------------
    # Core operation
    # ------------------------------------------------------------------

    def analyze_day(self, user_id: str, target_date: str, events: List[PlayEvent],
                    prior: Optional[DailyAnalysis] = None, mark_complete: bool = False,
                    dry_run: bool = False) -> AnalysisOutcome:
        """
        Analyzes one day's listening window.

        Args:
            user_id: Owner of the diary.
            target_date: YYYY-MM-DD date of the window.
            events: Plays in the window (reverse-chronological).
            prior: Stored analysis for (user_id, target_date), if any.
            mark_complete: Freeze the record after this write (past dates).
            dry_run: Build the prompt only; no generation, no write.

        Returns:
            AnalysisOutcome (CREATED, UPDATED, CACHED or DRY_RUN).

        Raises:
            NoListeningHistoryError: If the window is empty.
            TextGenerationError: If the generator fails (nothing is written).
            StorageError: If the write fails.
        """
        if not events:
            raise NoListeningHistoryError(f"No songs found for {target_date}")

        now = self.clock()
        decision = None
        if prior is not None and not prior.is_complete:
            decision = build_update_decision(prior, events, self.config, now)

        state = resolve_state(prior, decision)
        logger.info(f"[{state.name}] user={user_id} date={target_date} plays={len(events)}")

        if state == AnalysisState.CACHED_VALID:
            return self._cached_outcome(prior, decision, now)

        counts = count_song_plays(events)

        if state == AnalysisState.NEEDS_UPDATE:
            new_events = [e for e in events if e.occurrence_id in decision.new_track_ids]
            prompt = self.prompt_builder.build_update_prompt(
                new_events, counts, prior.ai_analysis,
                format_time_since(prior.updated_at, now),
            )
        else:
            prompt = self.prompt_builder.build_first_analysis_prompt(events, counts)

        if dry_run:
            logger.info("Dry run: prompt built, skipping generation and save")
            return AnalysisOutcome(
                status=OutcomeStatus.DRY_RUN,
                date=target_date,
                message=f"Dry run ({state.value})",
                new_song_count=decision.new_song_count if decision else len(occurrence_ids(events)),
                track_count=prior.track_count if prior else 0,
                prompt=prompt,
            )

        response_text = self._generate(prompt)
        parsed = parse_mood_response(response_text)

        record = DailyAnalysis(
            user_id=user_id,
            date=target_date,
            mood_summary=parsed.mood_summary,
            ai_analysis=parsed.ai_analysis,
            sample_tracks=select_sample_tracks(
                events, counts,
                max_size=self.config.sample_tracks_count,
                heavy_rotation_plays=self.config.heavy_rotation_plays,
            ),
            mood_gradient=create_mood_gradient(parsed.mood_summary).to_dict(),
            analyzed_track_ids=(prior.analyzed_track_ids if prior else frozenset()) | occurrence_ids(events),
            is_complete=mark_complete,
            updated_at=now,
            created_at=prior.created_at if prior and prior.created_at else now,
        )
        saved = self._save(record)

        if state == AnalysisState.NEEDS_UPDATE:
            new_count = decision.new_song_count
            logger.info(f"[UPDATE] {target_date}: '{saved.mood_summary}' ({_plural(new_count, 'new song')})")
            return AnalysisOutcome(
                status=OutcomeStatus.UPDATED,
                date=target_date,
                message=f"Analysis updated ({_plural(new_count, 'new song')} since last check)",
                analysis=saved,
                new_song_count=new_count,
                track_count=saved.track_count,
            )

        logger.info(f"[OK] {target_date}: '{saved.mood_summary}' from {_plural(len(events), 'play')}")
        return AnalysisOutcome(
            status=OutcomeStatus.CREATED,
            date=target_date,
            message=f"Analysis created from {_plural(len(events), 'play')}",
            analysis=saved,
            new_song_count=saved.track_count,
            track_count=saved.track_count,
        )

    # ------------------------------------------------------------------
    # Request entry points
    # ------------------------------------------------------------------

    def analyze_today(self, user_id: str, history: List[PlayEvent],
                      dry_run: bool = False) -> AnalysisOutcome:
        """
        Analyzes today's window from a fetched listening history.

        When nothing was played today, suggests the most recent day with
        listening if that day still needs an analysis.

        Raises:
            NoListeningHistoryError: If the history is empty.
        """
        if not history:
            raise NoListeningHistoryError("No recent listening history found")

        now = self.clock()
        tz = self.config.tzinfo
        today = self.today(now)
        window = filter_to_date(history, today, tz)
        prior = self.store.get(user_id, today)

        if window:
            return self.analyze_day(user_id, today, window, prior,
                                    mark_complete=False, dry_run=dry_run)

        return self._handle_no_songs_today(user_id, history, prior, today, now)

    def analyze_date(self, user_id: str, date_text: str, history: List[PlayEvent],
                     dry_run: bool = False) -> AnalysisOutcome:
        """
        Analyzes an explicitly requested date (today or earlier).

        Past dates are marked complete and never change afterwards.

        Raises:
            InvalidDateError: Malformed or future date.
            NoListeningHistoryError: No plays at all, or none on that date.
        """
        target = parse_date(date_text)
        now = self.clock()
        today = parse_date(self.today(now))

        if target > today:
            raise InvalidDateError(date_text, "Cannot analyze future dates")
        if not history:
            raise NoListeningHistoryError("No recent listening history found")

        window = filter_to_date(history, date_text, self.config.tzinfo)
        if not window:
            raise NoListeningHistoryError(f"No songs found for {date_text}")

        prior = self.store.get(user_id, date_text)
        outcome = self.analyze_day(user_id, date_text, window, prior,
                                   mark_complete=target < today, dry_run=dry_run)
        if outcome.status == OutcomeStatus.CACHED:
            outcome.message = f"Analysis already exists for {date_text}"
        return outcome

    def get_today(self, user_id: str) -> Optional[DailyAnalysis]:
        return self.store.get(user_id, self.today())

    def get_history(self, user_id: str, limit: Optional[int] = None) -> List[DailyAnalysis]:
        return self.store.list_for_user(user_id, limit or self.config.history_limit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_no_songs_today(self, user_id: str, history: List[PlayEvent],
                               prior: Optional[DailyAnalysis], today: str,
                               now: datetime) -> AnalysisOutcome:
        if prior is not None:
            return AnalysisOutcome(
                status=OutcomeStatus.CACHED,
                date=today,
                message=f"Analysis is up to date ({format_time_since(prior.updated_at, now)}, "
                        f"no new songs detected)",
                analysis=prior,
                track_count=prior.track_count,
            )

        tz = self.config.tzinfo
        recent_date = most_recent_listening_date(history, tz)
        recent_events = filter_to_date(history, recent_date, tz)
        recent = self.store.get(user_id, recent_date)

        needs_analysis = recent is None or (
            not recent.is_complete
            and build_update_decision(recent, recent_events, self.config, now).should_update
        )

        if needs_analysis:
            logger.info(f"Nothing played today; suggesting {recent_date} ({len(recent_events)} plays)")
            return AnalysisOutcome(
                status=OutcomeStatus.SUGGEST_RECENT_DAY,
                date=today,
                message=NO_SONGS_TODAY_MESSAGE,
                suggested_date=recent_date,
                suggested_count=len(recent_events),
            )

        return AnalysisOutcome(
            status=OutcomeStatus.NOTHING_TO_ANALYZE,
            date=today,
            message=NO_SONGS_TODAY_MESSAGE,
        )

    def _cached_outcome(self, prior: DailyAnalysis, decision: Optional[UpdateDecision],
                        now: datetime) -> AnalysisOutcome:
        new_count = decision.new_song_count if decision else 0
        logger.info(f"[CACHE] {prior.date}: serving stored analysis ({_plural(new_count, 'new song')})")
        return AnalysisOutcome(
            status=OutcomeStatus.CACHED,
            date=prior.date,
            message=f"Analysis is up to date ({format_time_since(prior.updated_at, now)}, "
                    f"only {_plural(new_count, 'new song')})",
            analysis=prior,
            new_song_count=new_count,
            track_count=prior.track_count,
        )

    def _generate(self, prompt: str) -> str:
        try:
            return self.generate(prompt)
        except TextGenerationError:
            raise
        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            raise TextGenerationError(f"AI analysis failed: {e}") from e

    def _save(self, record: DailyAnalysis) -> DailyAnalysis:
        try:
            return self.store.save(record)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to save analysis for {record.date}: {e}")
            raise StorageError(f"Failed to save analysis: {e}") from e
