import pytest

from mood_diary.core.colors import (
    MOOD_COLOR_MAP, NEUTRAL_GRAY, BASE_FILL, LAYER_ANCHORS,
    get_mood_color, get_mood_colors, get_sentiment_score,
    generate_color_from_word, word_hash, to_rgba, create_mood_gradient
)


class TestMoodColor:
    """Test suite for resolving single mood words."""

    # ========================================================================
    # 1. LOOKUP ORDER
    # ========================================================================

    def test_exact_match_is_case_insensitive(self):
        assert get_mood_color("Calm") == MOOD_COLOR_MAP["calm"]
        assert get_mood_color("  MELANCHOLIC ") == MOOD_COLOR_MAP["melancholic"]

    def test_fuzzy_match_prefers_longest_keyword(self):
        # contains both "intense" and "tense"
        assert get_mood_color("intensely") == MOOD_COLOR_MAP["intense"]
        # contains both "sad" and "tense"
        assert get_mood_color("sad-and-tense") == MOOD_COLOR_MAP["tense"]

    def test_fuzzy_match_breaks_length_ties_alphabetically(self):
        # "bold" and "calm" are both 4 letters
        assert get_mood_color("boldcalm") == MOOD_COLOR_MAP["bold"]

    def test_unknown_word_gets_procedural_color(self):
        # sum of char codes: 122 + 122 + 113 + 120 = 477, neutral band
        assert get_mood_color("zzqx") == "hsl(117, 62%, 72%)"

    def test_empty_word_is_neutral_gray(self):
        assert get_mood_color("   ") == NEUTRAL_GRAY

    # ========================================================================
    # 2. PROCEDURAL COLORS
    # ========================================================================

    def test_sentiment_classification(self):
        assert get_sentiment_score("joyride") == pytest.approx(0.7)
        assert get_sentiment_score("gloomy") == pytest.approx(-0.7)
        assert get_sentiment_score("zzqx") == 0

    def test_word_hash_is_sum_of_char_codes(self):
        assert word_hash("Ab") == ord("a") + ord("b")

    def test_positive_band(self):
        # hash("joyride") = 758
        assert generate_color_from_word("joyride", 0.7) == "hsl(98, 93%, 68%)"
        assert get_mood_color("joyride") == "hsl(98, 93%, 68%)"

    def test_negative_band(self):
        # hash("gloomy") = 663
        assert get_mood_color("gloomy") == "hsl(223, 53%, 53%)"

    def test_procedural_colors_are_deterministic(self):
        assert get_mood_color("wobbly") == get_mood_color("wobbly")


class TestMoodColors:
    """Test suite for mapping a whole label to three colors."""

    def test_three_words(self):
        assert get_mood_colors("calm, sad, bold") == [
            MOOD_COLOR_MAP["calm"], MOOD_COLOR_MAP["sad"], MOOD_COLOR_MAP["bold"]
        ]

    def test_single_word_is_repeated(self):
        assert get_mood_colors("calm") == [MOOD_COLOR_MAP["calm"]] * 3

    def test_two_words_padded_with_first(self):
        assert get_mood_colors("calm, sad") == [
            MOOD_COLOR_MAP["calm"], MOOD_COLOR_MAP["sad"], MOOD_COLOR_MAP["calm"]
        ]

    def test_extra_words_ignored(self):
        assert get_mood_colors("calm, sad, bold, happy") == get_mood_colors("calm, sad, bold")

    def test_empty_label_is_neutral(self):
        assert get_mood_colors("") == [NEUTRAL_GRAY] * 3
        assert get_mood_colors(" , ") == [NEUTRAL_GRAY] * 3


class TestMoodGradient:
    """Test suite for the layered gradient."""

    def test_layer_layout(self):
        gradient = create_mood_gradient("calm, sad, bold")

        assert [layer.anchor for layer in gradient.layers] == list(LAYER_ANCHORS)
        assert gradient.base_color == BASE_FILL
        assert [layer.opacity for layer in gradient.layers] == [0.4, 0.4, 0.4]

    def test_single_color_opacities(self):
        gradient = create_mood_gradient("calm")
        assert [layer.opacity for layer in gradient.layers] == [0.4, 0.3, 0.34]

    def test_two_color_opacities(self):
        gradient = create_mood_gradient("calm, sad")
        assert [layer.opacity for layer in gradient.layers] == [0.4, 0.34, 0.4]

    def test_two_distinct_among_three_words(self):
        gradient = create_mood_gradient("calm, calm, sad")
        assert [layer.opacity for layer in gradient.layers] == [0.4, 0.34, 0.4]

    def test_hex_colors_rendered_as_rgba(self):
        gradient = create_mood_gradient("calm")
        # calm = #A8D8EA
        assert gradient.layers[0].color == "rgba(168, 216, 234, 0.4)"

    def test_hsl_colors_rendered_as_hsla(self):
        assert to_rgba("hsl(117, 62%, 72%)", 0.4) == "hsla(117, 62%, 72%, 0.4)"

    def test_css_base_fill_last(self):
        css = create_mood_gradient("dreamy, restless, hopeful").to_css()

        assert css.startswith("radial-gradient(ellipse at 15% 25%, ")
        assert css.count("radial-gradient(") == 3
        assert css.endswith(", #FAFAFA")

    def test_identical_labels_identical_output(self):
        first = create_mood_gradient("dreamy, restless, hopeful")
        second = create_mood_gradient("dreamy, restless, hopeful")

        assert first == second
        assert first.to_css() == second.to_css()
        assert first.to_dict() == second.to_dict()

    def test_to_dict_contains_css(self):
        gradient = create_mood_gradient("calm")
        payload = gradient.to_dict()

        assert payload["css"] == gradient.to_css()
        assert payload["base_color"] == BASE_FILL
        assert len(payload["layers"]) == 3

    def test_empty_label_gradient(self):
        gradient = create_mood_gradient("")
        # #E8E8E8 = (232, 232, 232)
        assert gradient.layers[0].color == "rgba(232, 232, 232, 0.4)"
