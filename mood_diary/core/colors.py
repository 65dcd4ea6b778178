"""
Mood words to a layered color gradient ("mood aura").

Each word of a mood label ("dreamy, restless, hopeful") resolves to a color:
1. Exact match in the curated MOOD_COLOR_MAP
2. Containment match against the curated keywords (longest keyword first,
   then alphabetical, so ambiguous words always resolve the same way)
3. Procedural HSL color from a sentiment band and a character-code hash

Three colors are then laid out as radial layers over a solid base fill.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Tuple


# ============================================================================
# CURATED COLORS
# ============================================================================

MOOD_COLOR_MAP: Dict[str, str] = {
    # Energetic / Positive
    "energetic": "#FFE066",
    "energized": "#FFE066",
    "excited": "#FFB347",
    "joyful": "#FFD93D",
    "confident": "#6BCF7F",
    "playful": "#FF6B9D",
    "happy": "#FFE66D",
    "celebratory": "#FFA07A",
    "hopeful": "#A8E6CF",
    "defiant": "#E89C31",
    "bold": "#FF8C42",
    "grounded": "#8B9D83",
    "centered": "#A8C5A5",
    "poised": "#9FB8AD",
    "euphoric": "#FF85E6",
    "ecstatic": "#FF7ED4",
    "elated": "#FFADFF",
    "charged": "#FFD700",
    "stimulated": "#FFB700",
    "elevated": "#FFC8DD",
    "transcendent": "#E0B0FF",
    "floating": "#D4A5FF",
    "weightless": "#E6E6FA",
    "hyped": "#FFFF33",

    # Calm / Peaceful
    "calm": "#A8D8EA",
    "peaceful": "#B4E7CE",
    "content": "#C7CEEA",
    "relaxed": "#B8E0D2",
    "serene": "#B3D9E8",

    # Romantic / Emotional
    "romantic": "#FFB6C1",
    "passionate": "#FF69B4",
    "loving": "#FFABAB",
    "intimate": "#E8B4B8",
    "tender": "#FADADD",
    "flirty": "#FFB6D9",

    # Melancholic / Sad
    "bittersweet": "#DDA0DD",
    "melancholic": "#9DB4C0",
    "sad": "#A7BEAE",
    "lonely": "#B8C5D6",
    "nostalgic": "#D4A5A5",
    "wistful": "#C4B7CB",

    # Anxious / Tense
    "anxious": "#D4A373",
    "stressed": "#C8A882",
    "tense": "#BDB5A7",
    "restless": "#E5C185",
    "worried": "#C9B79C",
    "overwhelmed": "#D4C4B0",

    # Conflicted / Mixed
    "conflicted": "#C2A9A0",
    "confused": "#B8AFA8",
    "uncertain": "#D1C4B5",
    "scattered": "#C9BDB1",

    # Angry / Intense
    "angry": "#E57373",
    "frustrated": "#D98880",
    "intense": "#CD5C5C",
    "aggressive": "#C97064",

    # Vulnerable / Introspective
    "vulnerable": "#D7BDE2",
    "introspective": "#B39EB5",
    "reflective": "#C8B8D0",
    "thoughtful": "#A8A4C8",
    "contemplative": "#B8AED4",
}

# Containment lookup order: longest keyword first, then alphabetical
FUZZY_KEYWORD_ORDER: List[str] = sorted(MOOD_COLOR_MAP, key=lambda k: (-len(k), k))

POSITIVE_STEMS: Tuple[str, ...] = (
    "happy", "joy", "excite", "love", "peace", "calm", "content", "confident",
    "energet", "hope", "play", "celebrat", "bold", "euphoric", "elat", "hype",
    "pump", "thrill",
)
NEGATIVE_STEMS: Tuple[str, ...] = (
    "sad", "angry", "anxious", "lonely", "worry", "tense", "frustrat", "depress",
    "melanchol", "bitter", "stress", "overwhelm", "vulnerab", "despond", "gloom",
    "despair",
)

SENTIMENT_POSITIVE = 0.7
SENTIMENT_NEGATIVE = -0.7
SENTIMENT_NEUTRAL = 0.0

NEUTRAL_GRAY = "#E8E8E8"
BASE_FILL = "#FAFAFA"
DEFAULT_OPACITY = 0.4
GRADIENT_COLOR_COUNT = 3

# Off-center anchors: top-left, top-right, bottom-center
LAYER_ANCHORS: Tuple[str, str, str] = (
    "ellipse at 15% 25%",
    "ellipse at 85% 30%",
    "ellipse at 50% 85%",
)


# ============================================================================
# WORD -> COLOR
# ============================================================================

def get_sentiment_score(word: str) -> float:
    """Classifies a word as positive (0.7), negative (-0.7) or neutral (0)."""
    lower_word = word.lower()
    if any(stem in lower_word for stem in POSITIVE_STEMS):
        return SENTIMENT_POSITIVE
    if any(stem in lower_word for stem in NEGATIVE_STEMS):
        return SENTIMENT_NEGATIVE
    return SENTIMENT_NEUTRAL


def word_hash(word: str) -> int:
    """Sum of character codes: stable across runs, processes and languages."""
    return sum(ord(char) for char in word.lower())


def generate_color_from_word(word: str, sentiment: float) -> str:
    """
    Generates an HSL color inside a sentiment-specific band.

    Positive words get warm, bright hues; negative words cool, richer ones;
    neutral words may land anywhere on the wheel at medium lightness.
    """
    h = word_hash(word)

    if sentiment > 0.3:
        hue = 40 + (h % 100)
        saturation = 75 + (h % 20)
        lightness = 60 + (h % 15)
    elif sentiment < -0.3:
        hue = 200 + (h % 80)
        saturation = 50 + (h % 30)
        lightness = 50 + (h % 15)
    else:
        hue = h % 360
        saturation = 40 + (h % 35)
        lightness = 60 + (h % 15)

    return f"hsl({hue}, {saturation}%, {lightness}%)"


def get_mood_color(mood_word: str) -> str:
    """Resolves a single mood word to a hex or HSL color string."""
    normalized = mood_word.strip().lower()
    if not normalized:
        return NEUTRAL_GRAY

    if normalized in MOOD_COLOR_MAP:
        return MOOD_COLOR_MAP[normalized]

    for keyword in FUZZY_KEYWORD_ORDER:
        if keyword in normalized or normalized in keyword:
            return MOOD_COLOR_MAP[keyword]

    return generate_color_from_word(normalized, get_sentiment_score(normalized))


def get_mood_colors(mood_summary: str) -> List[str]:
    """
    Maps a comma-separated mood label to exactly three colors.

    Missing colors repeat the first resolved one, or neutral gray when
    nothing resolved; extra words are ignored.
    """
    words = [w.strip() for w in (mood_summary or "").lower().split(",")]
    colors = [get_mood_color(w) for w in words if w]

    while len(colors) < GRADIENT_COLOR_COUNT:
        colors.append(colors[0] if colors else NEUTRAL_GRAY)

    return colors[:GRADIENT_COLOR_COUNT]


def to_rgba(color: str, opacity: float) -> str:
    """Adds an alpha channel to a #RRGGBB or hsl() color."""
    if color.startswith("hsl"):
        return color.replace("hsl", "hsla", 1).replace(")", f", {opacity})")

    r = int(color[1:3], 16)
    g = int(color[3:5], 16)
    b = int(color[5:7], 16)
    return f"rgba({r}, {g}, {b}, {opacity})"


# ============================================================================
# GRADIENT
# ============================================================================

class GradientLayer(NamedTuple):
    anchor: str
    color: str
    opacity: float


@dataclass(frozen=True)
class MoodGradient:
    """Three radial layers plus a solid base fill (listed last)."""

    layers: Tuple[GradientLayer, ...]
    base_color: str = BASE_FILL

    def to_css(self) -> str:
        parts = [
            f"radial-gradient({layer.anchor}, {layer.color} 0%, transparent 60%)"
            for layer in self.layers
        ]
        parts.append(self.base_color)
        return ", ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layers": [
                {"anchor": layer.anchor, "color": layer.color, "opacity": layer.opacity}
                for layer in self.layers
            ],
            "base_color": self.base_color,
            "css": self.to_css(),
        }


def _layer_opacities(colors: List[str], opacity: float) -> List[float]:
    distinct = len(set(colors))
    if distinct == 1:
        return [opacity, round(opacity * 0.75, 4), round(opacity * 0.85, 4)]
    if distinct == 2:
        return [opacity, round(opacity * 0.85, 4), opacity]
    return [opacity, opacity, opacity]


def create_mood_gradient(mood_summary: str, opacity: float = DEFAULT_OPACITY) -> MoodGradient:
    """
    Builds the layered gradient for a mood label.

    Args:
        mood_summary: Comma-separated mood words (any count, any words).
        opacity: Base layer opacity.

    Returns:
        MoodGradient; identical labels always produce identical gradients.
    """
    colors = get_mood_colors(mood_summary)
    opacities = _layer_opacities(colors, opacity)

    layers = tuple(
        GradientLayer(anchor, to_rgba(color, layer_opacity), layer_opacity)
        for anchor, color, layer_opacity in zip(LAYER_ANCHORS, colors, opacities)
    )
    return MoodGradient(layers=layers)
