"""Tests for emo_assistant.directives.trailer — end-marker parsing."""

from emo_assistant.directives import FALLBACK_BODY, parse_trailer
from emo_assistant.models import Toggle


class TestBody:
    def test_plain_reply(self) -> None:
        t = parse_trailer("Hello there!")
        assert t.body == "Hello there!"
        assert t.feel is None
        assert t.shape is None
        assert t.meditation_start is False
        assert t.toggles == []

    def test_lines_joined_with_single_spaces(self) -> None:
        t = parse_trailer("  First line.  \n\n   Second line.\n")
        assert t.body == "First line. Second line."

    def test_directive_lines_excluded(self) -> None:
        t = parse_trailer("Transforming!\nFEEL: excited, spin\nMORPH: star")
        assert t.body == "Transforming!"

    def test_stage_directions_dropped(self) -> None:
        t = parse_trailer("*morphs into a star*\nHere I am.\n*glows*")
        assert t.body == "Here I am."

    def test_only_directives_yields_fallback(self) -> None:
        t = parse_trailer("FEEL: joy, bounce\nMORPH: star")
        assert t.body == FALLBACK_BODY
        assert t.body == "Here you go!"

    def test_empty_response_yields_fallback(self) -> None:
        assert parse_trailer("").body == FALLBACK_BODY
        assert parse_trailer("   \n  \n").body == FALLBACK_BODY

    def test_prefix_is_case_sensitive(self) -> None:
        t = parse_trailer("feel: joy\nMorph: star")
        assert t.body == "feel: joy Morph: star"
        assert t.feel is None
        assert t.shape is None

    def test_indented_directive_still_consumed(self) -> None:
        t = parse_trailer("Hi.\n    FEEL:   joy,   bounce  ")
        assert t.body == "Hi."
        assert t.feel == "joy, bounce"


class TestFeel:
    def test_emotion_and_gestures(self) -> None:
        assert parse_trailer("x\nFEEL: joy, bounce").feel == "joy, bounce"

    def test_emotion_only(self) -> None:
        assert parse_trailer("x\nFEEL: calm").feel == "calm"

    def test_correctable_emotion_rewritten(self) -> None:
        assert parse_trailer("x\nFEEL: happy, bounce").feel == "joy, bounce"

    def test_emotion_case_normalised(self) -> None:
        assert parse_trailer("x\nFEEL: Anger, vibrate").feel == "anger, vibrate"

    def test_unknown_emotion_keeps_expression(self) -> None:
        t = parse_trailer("x\nFEEL: zorp, wiggle")
        assert t.feel == "zorp, wiggle"

    def test_empty_feel_ignored(self) -> None:
        assert parse_trailer("x\nFEEL:   ").feel is None

    def test_morph_to_in_feel_supplies_shape(self) -> None:
        t = parse_trailer("Here!\nFEEL: excited, morph to star")
        assert t.shape == "star"

    def test_morph_to_corrected(self) -> None:
        assert parse_trailer("x\nFEEL: calm, morph to sphere").shape == "crystal"

    def test_morph_line_wins_over_feel(self) -> None:
        t = parse_trailer("x\nFEEL: joy, morph to heart\nMORPH: moon")
        assert t.shape == "moon"


class TestValidatedCategories:
    def test_all_categories(self) -> None:
        t = parse_trailer(
            "Done.\n"
            "MORPH: star\n"
            "PRESET: ruby\n"
            "UNDERTONE: nervous\n"
            "CHAIN: burst\n"
            "CAMERA: top\n"
        )
        assert (t.shape, t.preset, t.undertone, t.chain, t.camera) == (
            "star", "ruby", "nervous", "burst", "top",
        )

    def test_corrections_applied(self) -> None:
        t = parse_trailer("x\nMORPH: Sphere\nUNDERTONE: worried\nCHAIN: sparkle")
        assert t.shape == "crystal"
        assert t.undertone == "nervous"
        assert t.chain == "twinkle"

    def test_invalid_values_dropped(self) -> None:
        t = parse_trailer("x\nMORPH: blob\nPRESET: onyx\nCAMERA: sky")
        assert t.shape is None
        assert t.preset is None
        assert t.camera is None
        assert t.body == "x"

    def test_later_line_overrides(self) -> None:
        assert parse_trailer("x\nMORPH: star\nMORPH: moon").shape == "moon"

    def test_invalid_later_line_keeps_earlier(self) -> None:
        assert parse_trailer("x\nMORPH: star\nMORPH: blob").shape == "star"


class TestMeditation:
    def test_start(self) -> None:
        assert parse_trailer("Breathe.\nMEDITATION: start").meditation_start is True

    def test_case_insensitive_value(self) -> None:
        assert parse_trailer("x\nMEDITATION: Start").meditation_start is True

    def test_other_value_ignored(self) -> None:
        t = parse_trailer("x\nMEDITATION: later")
        assert t.meditation_start is False
        assert t.body == "x"


class TestToggle:
    def test_on_and_off(self) -> None:
        t = parse_trailer("x\nTOGGLE: wobble off\nTOGGLE: particles on")
        assert t.toggles == [
            Toggle(feature="wobble", enabled=False),
            Toggle(feature="particles", enabled=True),
        ]

    def test_feature_corrected(self) -> None:
        t = parse_trailer("x\nTOGGLE: auto-rotate on")
        assert t.toggles == [Toggle(feature="autorotate", enabled=True)]

    def test_malformed_dropped(self) -> None:
        t = parse_trailer("x\nTOGGLE: wobble")
        assert t.toggles == []
        assert t.body == "x"

    def test_unknown_feature_dropped(self) -> None:
        assert parse_trailer("x\nTOGGLE: lasers on").toggles == []

    def test_anything_but_on_disables(self) -> None:
        assert parse_trailer("x\nTOGGLE: wobble maybe").toggles == [
            Toggle(feature="wobble", enabled=False),
        ]
