"""Tests for emo_assistant.directives.corrector."""

import logging

import pytest

from emo_assistant.directives import correct, validate
from emo_assistant.models import Correction
from emo_assistant.vocabulary import EMOTIONS, MOON_ECLIPSES, SHAPES, TOGGLE_FEATURES


class TestCorrect:
    def test_synonym_is_corrected(self) -> None:
        assert correct("Happy", EMOTIONS) == Correction(value="joy", was_corrected=True)

    def test_canonical_unchanged(self) -> None:
        assert correct("joy", EMOTIONS) == Correction(value="joy", was_corrected=False)

    def test_unknown_returned_lowercased(self) -> None:
        result = correct("Zorp", EMOTIONS)
        assert result == Correction(value="zorp", was_corrected=False)
        assert result.value not in EMOTIONS

    def test_canonical_case_insensitive(self) -> None:
        assert correct("STAR", SHAPES) == Correction(value="star", was_corrected=False)

    def test_surrounding_whitespace_ignored(self) -> None:
        assert correct("  sphere ", SHAPES).value == "crystal"

    @pytest.mark.parametrize("raw, expected", [
        ("blood-moon", "total"),
        ("none", "off"),
        ("eclipse", "total"),
    ])
    def test_moon_eclipse_corrections(self, raw: str, expected: str) -> None:
        assert correct(raw, MOON_ECLIPSES).value == expected


class TestValidate:
    def test_valid(self) -> None:
        assert validate("star", SHAPES) == "star"

    def test_corrected(self) -> None:
        assert validate("rotation", TOGGLE_FEATURES) == "autorotate"

    def test_invalid_returns_none(self) -> None:
        assert validate("zorp", EMOTIONS) is None

    def test_invalid_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            validate("blob", SHAPES)
        assert "blob" in caplog.text
        assert "crystal" in caplog.text

    def test_correction_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            validate("happy", EMOTIONS)
        assert "Auto-corrected" in caplog.text
