"""
Mood Diary: daily mood summaries from listening history.

This module wires the analysis pipeline together:
1. Fetches recently played tracks from Spotify
2. Decides whether the day's stored analysis is still valid
3. Generates a new or updated mood analysis with Gemini when needed
4. Stores the result in MongoDB

Supports execution modes:
- Default: analyze today's listening
- --date: analyze (and, for past dates, freeze) a specific day
- --today / --history: read stored analyses without analyzing
- --dry-run: print the prompt, no generation and no write
"""

import os
import sys
import json
import argparse
import logging
from typing import Any, Callable, List, Optional

from dotenv import load_dotenv

from mood_diary.adapters.clients.gemini import GeminiTextGenerator
from mood_diary.adapters.clients.spotify import SpotifyHistoryClient
from mood_diary.adapters.repositories.mongo import get_store
from mood_diary.core.analyzer import MoodDiaryAnalyzer
from mood_diary.core.colors import create_mood_gradient
from mood_diary.core.config import MoodDiaryConfig
from mood_diary.core.errors import MoodDiaryError, TextGenerationError
from mood_diary.core.models import AnalysisOutcome, DailyAnalysis, OutcomeStatus, PlayEvent
from mood_diary.utils.logger import setup_logger

logger = logging.getLogger(__name__)

DEFAULT_USER = "default"

EXIT_OK = 0
EXIT_ERROR = 1


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses and validates command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Mood Diary: daily mood summaries from your listening history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m mood_diary.main                       # Analyze today
  python -m mood_diary.main --date 2024-01-15     # Analyze a past day (frozen afterwards)
  python -m mood_diary.main --today               # Show today's stored analysis
  python -m mood_diary.main --history 7           # Show the last 7 analyses
  python -m mood_diary.main --dry-run             # Print the prompt, no AI call, no write
        """
    )

    parser.add_argument(
        "--user",
        default=os.environ.get("MOOD_DIARY_USER", DEFAULT_USER),
        help="User id the diary belongs to (default: MOOD_DIARY_USER or 'default')"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--date",
        help="Analyze a specific day (YYYY-MM-DD, today or earlier)"
    )
    mode.add_argument(
        "--today",
        action="store_true",
        help="Show today's stored analysis without analyzing"
    )
    mode.add_argument(
        "--history",
        type=int,
        nargs="?",
        const=0,
        metavar="N",
        help="Show stored analyses, newest first (default limit: MOOD_HISTORY_LIMIT)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the prompt only: no Gemini call, nothing stored"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    if args.history is not None and args.history < 0:
        parser.error("--history expects a positive number")
    return args


# ============================================================================
# PIPELINE WIRING
# ============================================================================

def _generation_disabled(prompt: str) -> str:
    raise TextGenerationError("Text generation is disabled in dry-run mode")


def build_generator(dry_run: bool) -> Callable[[str], str]:
    """Gemini generator, or a stub that refuses to run in dry-run mode."""
    if dry_run:
        return _generation_disabled
    return GeminiTextGenerator()


def fetch_listening_history(config: MoodDiaryConfig) -> List[PlayEvent]:
    """
    Fetches recently played tracks.

    Raises:
        ListeningHistoryError: If Spotify is unreachable or rejects the token.
        ValueError: If no access token is configured.
    """
    client = SpotifyHistoryClient()
    history = client.get_recently_played(limit=config.spotify_tracks_limit)
    logger.info(f"Listening history: {len(history)} plays")
    return history


# ============================================================================
# OUTPUT
# ============================================================================

def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _format_analysis(analysis: DailyAnalysis) -> str:
    lines = [
        f"{analysis.date}  [{analysis.mood_summary}]"
        f"{'  (complete)' if analysis.is_complete else ''}",
        f"  {analysis.ai_analysis}",
    ]
    for track in analysis.sample_tracks:
        count_str = f" x{track.play_count}" if track.play_count > 1 else ""
        lines.append(f"  - {track.track_name} by {track.artist}{count_str}")
    css = analysis.mood_gradient.get("css") or create_mood_gradient(analysis.mood_summary).to_css()
    lines.append(f"  gradient: {css}")
    lines.append(f"  {analysis.track_count} tracks analyzed, last updated {analysis.updated_at.isoformat()}")
    return "\n".join(lines)


def render_outcome(outcome: AnalysisOutcome, as_json: bool) -> None:
    if as_json:
        _print_json(outcome.to_dict())
        return

    print(outcome.message)
    if outcome.analysis is not None:
        print(_format_analysis(outcome.analysis))
    if outcome.status == OutcomeStatus.SUGGEST_RECENT_DAY:
        print(f"Your most recent listening was on {outcome.suggested_date} "
              f"({outcome.suggested_count} plays). "
              f"Run with --date {outcome.suggested_date} to analyze it.")
    if outcome.status == OutcomeStatus.DRY_RUN:
        print("--- PROMPT ---")
        print(outcome.prompt)


def render_analyses(analyses: List[DailyAnalysis], as_json: bool) -> None:
    if as_json:
        _print_json([a.to_dict() for a in analyses])
        return

    if not analyses:
        print("No analyses stored yet.")
        return
    print("\n\n".join(_format_analysis(a) for a in analyses))


# ============================================================================
# MAIN EXECUTION
# ============================================================================

def run(args: argparse.Namespace, config: MoodDiaryConfig) -> int:
    """
    Executes the requested mode.

    Raises:
        MoodDiaryError: On any analysis, storage or upstream failure.
    """
    store = get_store()
    analyzer = MoodDiaryAnalyzer(store, build_generator(args.dry_run), config)

    # ========================================================================
    # Read-only modes
    # ========================================================================
    if args.today:
        analysis = analyzer.get_today(args.user)
        if analysis is None:
            if args.json:
                _print_json(None)
            else:
                print(f"No analysis for today ({analyzer.today()}) yet.")
            return EXIT_OK
        render_analyses([analysis], args.json)
        return EXIT_OK

    if args.history is not None:
        render_analyses(analyzer.get_history(args.user, args.history or None), args.json)
        return EXIT_OK

    # ========================================================================
    # STEP 1: Fetch listening history
    # ========================================================================
    logger.info(">>> STEP 1: Fetching listening history...")
    history = fetch_listening_history(config)

    # ========================================================================
    # STEP 2: Analyze
    # ========================================================================
    logger.info(">>> STEP 2: Analyzing mood...")
    if args.date:
        outcome = analyzer.analyze_date(args.user, args.date, history, dry_run=args.dry_run)
    else:
        outcome = analyzer.analyze_today(args.user, history, dry_run=args.dry_run)

    render_outcome(outcome, args.json)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    load_dotenv()
    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO)
    logger.info("--- Mood Diary ---")

    try:
        config = MoodDiaryConfig.from_env()
        status = run(args, config)
    except MoodDiaryError as e:
        logger.error(f"[{e.code}] {e.message}")
        if args.json:
            _print_json({"success": False, "error": e.to_dict()})
        else:
            print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_ERROR
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    logger.info("--- Execution Complete ---")
    return status


if __name__ == "__main__":
    sys.exit(main())
