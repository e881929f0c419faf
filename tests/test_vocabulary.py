"""Tests for emo_assistant.vocabulary."""

import pytest

from emo_assistant import vocabulary
from emo_assistant.vocabulary import CATEGORY_VOCABULARIES, vocabulary_for


class TestTables:
    def test_every_correction_targets_a_canonical_value(self) -> None:
        for category, vocab in CATEGORY_VOCABULARIES.items():
            for wrong, right in vocab.corrections.items():
                assert right in vocab.values, f"{category}: {wrong} -> {right}"

    def test_correction_keys_are_lowercase(self) -> None:
        for vocab in CATEGORY_VOCABULARIES.values():
            assert all(key == key.lower() for key in vocab.corrections)

    def test_emotions(self) -> None:
        assert "joy" in vocabulary.EMOTIONS
        assert "happy" not in vocabulary.EMOTIONS
        assert vocabulary.EMOTIONS.corrections["happy"] == "joy"

    def test_sorted_values(self) -> None:
        assert vocabulary.CAMERAS.sorted_values() == ["angle", "back", "bottom", "front", "side", "top"]

    def test_frozen(self) -> None:
        with pytest.raises(Exception):
            vocabulary.SHAPES.name = "other"

    def test_corrections_read_only(self) -> None:
        with pytest.raises(TypeError):
            vocabulary.EMOTIONS.corrections["glad"] = "joy"
        assert "glad" not in vocabulary.EMOTIONS.corrections


class TestVocabularyFor:
    @pytest.mark.parametrize("category, vocab", [
        ("FEEL", vocabulary.EMOTIONS),
        ("MORPH", vocabulary.SHAPES),
        ("TOGGLE", vocabulary.TOGGLE_FEATURES),
        ("PRESET", vocabulary.PRESETS),
        ("UNDERTONE", vocabulary.UNDERTONES),
        ("CHAIN", vocabulary.CHAINS),
        ("CAMERA", vocabulary.CAMERAS),
        ("PHASE", vocabulary.MOON_PHASES),
        ("SUNECLIPSE", vocabulary.SUN_ECLIPSES),
        ("MOONECLIPSE", vocabulary.MOON_ECLIPSES),
        ("MEDITATION", vocabulary.MEDITATION),
    ])
    def test_known(self, category: str, vocab) -> None:
        assert vocabulary_for(category) is vocab

    def test_case_insensitive(self) -> None:
        assert vocabulary_for("feel") is vocabulary.EMOTIONS

    def test_unknown(self) -> None:
        assert vocabulary_for("DANCE") is None
