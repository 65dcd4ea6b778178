"""
Prompt construction and response parsing for mood analysis.

Two request shapes:
- FIRST ANALYSIS: describe the day's vibe from all of today's tracks
- UPDATE: describe how the vibe EVOLVED, given the previous analysis and
  only the tracks observed since then

Both ask the generator for exactly:
    MOOD: word, word, word
    ANALYSIS: <fixed number of sentences, bounded word count>
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from mood_diary.core.config import MoodDiaryConfig
from mood_diary.core.listening import deduplicate_tracks
from mood_diary.core.models import PlayEvent, SongKey

logger = logging.getLogger(__name__)

DEFAULT_MOOD = "neutral"
MOOD_PREFIX = "mood:"
ANALYSIS_PREFIX = "analysis:"
MARKDOWN_NOISE = "*_#> `"


# ============================================================================
# TRACK FORMATTING
# ============================================================================

def format_track_list(events: List[PlayEvent], counts: Dict[SongKey, int]) -> str:
    """
    Numbered list of distinct tracks, annotated with repeat counts.

    Counts come from the whole window, so an update prompt still shows
    "[played 3x]" for a new play of a song heard earlier in the day.
    """
    lines = []
    for index, event in enumerate(deduplicate_tracks(events), start=1):
        count = counts.get(event.song_key, 1)
        count_str = f" [played {count}x]" if count > 1 else ""
        lines.append(f'{index}. "{event.track_name}" by {event.artist_name}{count_str}')
    return "\n".join(lines)


# ============================================================================
# PROMPT BUILDER
# ============================================================================

class PromptBuilder:
    """Builds first-analysis and update prompts with fixed output constraints."""

    def __init__(self, config: Optional[MoodDiaryConfig] = None):
        self.config = config or MoodDiaryConfig()

    def _sentence_rule(self) -> str:
        n = self.config.analysis_sentences
        return f"EXACTLY {n} sentence{'s' if n != 1 else ''}"

    def _format_section(self, analysis_hint: str) -> str:
        return f"""### FORMAT
MOOD: [emotion], [emotion], [emotion]
ANALYSIS: [{analysis_hint}, max {self.config.analysis_max_words} words total]"""

    def build_first_analysis_prompt(self, tracks: List[PlayEvent],
                                    counts: Dict[SongKey, int]) -> str:
        """Prompt for the first analysis of a day: an absolute description."""
        return f"""### ROLE
You are a music mood analyst. Analyze the user's listening patterns and emotional state today.

### TRACKS ({len(tracks)} plays)
{format_track_list(tracks, counts)}

### FOCUS
- Real emotions: confident, vulnerable, energetic, melancholic, restless, content, conflicted, nostalgic
- Energy patterns: high/low energy, steady vs shifting vibes
- Emotional themes: romantic, introspective, celebratory, bittersweet
- Contrasts: bouncing between opposite moods vs staying consistent

### RULES
- Write {self._sentence_rule()}, no more
- Casual, conversational language: a music-savvy friend, not a therapist
- Describe WHAT the music shows, never guess WHY they picked it
- Do NOT list artist names or genres in parentheses
- Do NOT mention song repetition, replaying songs is normal
- Be specific about musical characteristics when possible ("heavy on pop", "shifted from rap to R&B")
- Write directly TO the user
- For the MOOD line, use exactly 3 comma-separated words, at least one musical or vibe-based ("chill", "hyped", "dreamy", "late-night")

{self._format_section(self._sentence_rule().lower())}"""

    def build_update_prompt(self, new_tracks: List[PlayEvent], counts: Dict[SongKey, int],
                            previous_analysis: str, time_since: str) -> str:
        """Prompt for an incremental update: describe evolution since the last check."""
        return f"""### ROLE
You are a music mood analyst. The user previously had their mood analyzed {time_since}.

### PREVIOUS ANALYSIS
"{previous_analysis}"

### SONGS SINCE THEN ({len(new_tracks)} new plays)
{format_track_list(new_tracks, counts) or "(no new songs since the last check)"}

### FOCUS
- What CHANGED: did energy shift? Mood brighten or darken? Genre switch?
- What STAYED: any consistent thread or similar vibe?
- Musical shifts: tempo changes, genre switches, artist patterns

### RULES
- Write {self._sentence_rule()}
- Focus on PROGRESSION and CHANGE, do not just restate the current mood
- Reference the previous analysis to show evolution ("from earlier's X to now Y")
- If there is minimal change, acknowledge consistency instead of forcing drama
- Use intra-day references only ("since this morning", "from your last check"), never cross-day ones
- Casual, conversational language, written directly TO the user
- For the MOOD line, use exactly 3 comma-separated words, at least one musical or vibe-based

{self._format_section(self._sentence_rule().lower() + " describing evolution")}"""


# ============================================================================
# RESPONSE PARSING
# ============================================================================

@dataclass(frozen=True)
class ParsedMoodResponse:
    mood_summary: str
    ai_analysis: str


def _strip_line(line: str) -> str:
    return line.strip().lstrip(MARKDOWN_NOISE)


def _value_after_prefix(line: str, prefix: str) -> str:
    """Text after `prefix` (case-insensitive), without emphasis markers."""
    return line[len(prefix):].strip().strip(MARKDOWN_NOISE).strip()


def parse_mood_response(response_text: str) -> ParsedMoodResponse:
    """
    Extracts the MOOD and ANALYSIS lines from generator output.

    Fallbacks:
    - no MOOD: line     -> "neutral"
    - no ANALYSIS: line -> the whole raw response

    Args:
        response_text: Raw text returned by the generator.

    Returns:
        ParsedMoodResponse with a lowercased mood label.
    """
    raw = response_text or ""
    lines = raw.splitlines()

    mood: Optional[str] = None
    analysis: Optional[str] = None

    for index, line in enumerate(lines):
        cleaned = _strip_line(line)
        lowered = cleaned.lower()

        if mood is None and lowered.startswith(MOOD_PREFIX):
            value = _value_after_prefix(cleaned, MOOD_PREFIX)
            if value:
                mood = value.lower()
        elif analysis is None and lowered.startswith(ANALYSIS_PREFIX):
            # The analysis may wrap onto following lines, up to a MOOD line
            rest = [_value_after_prefix(cleaned, ANALYSIS_PREFIX)]
            for following in lines[index + 1:]:
                if _strip_line(following).lower().startswith(MOOD_PREFIX):
                    break
                rest.append(following.strip())
            analysis = "\n".join(rest).strip()

    if mood is None:
        logger.warning("[WARN] Generator response has no MOOD line, defaulting to neutral")
        mood = DEFAULT_MOOD
    if not analysis:
        logger.warning("[WARN] Generator response has no ANALYSIS line, using raw text")
        analysis = raw.strip()

    return ParsedMoodResponse(mood_summary=mood, ai_analysis=analysis)
