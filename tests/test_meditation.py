"""Tests for emo_assistant.meditation — the guided breathing loop."""

from unittest.mock import MagicMock

import pytest

from emo_assistant.directives import DirectiveDispatcher
from emo_assistant.meditation import CLOSING_LINE, PATTERNS, MeditationController, build_phases
from emo_assistant.narration import NarrationError


@pytest.fixture
def dispatcher(capabilities) -> DirectiveDispatcher:
    return DirectiveDispatcher(capabilities)


@pytest.fixture
def make_controller(dispatcher, narrator, instant_sleep):
    def make(**kwargs) -> MeditationController:
        kwargs.setdefault("sleep", instant_sleep)
        return MeditationController(dispatcher, narrator, **kwargs)
    return make


class TestPhases:
    def test_default_pattern(self) -> None:
        phases = build_phases("default")
        assert [p.duration for p in phases] == [4, 4, 6, 2]
        assert [p.cue for p in phases] == ["Breathe in", "Hold", "Release", None]

    def test_box_pattern(self) -> None:
        phases = build_phases("box")
        assert [p.duration for p in phases] == [4, 4, 4, 4]
        assert phases[-1].cue == "Hold"

    def test_unknown_pattern_keeps_current(self, make_controller) -> None:
        controller = make_controller(pattern="box")
        controller.set_pattern("triangle")
        assert controller.pattern_name == "box"
        assert set(PATTERNS) == {"default", "box"}


class TestLoop:
    @pytest.mark.asyncio
    async def test_full_run(self, make_controller, narrator, avatar) -> None:
        on_end = MagicMock()
        controller = make_controller(max_cycles=2, on_end=on_end)
        await controller.start()

        assert narrator.spoken == ["Breathe in", "Hold", "Release"] * 2 + [CLOSING_LINE]
        assert avatar.feels()[0] == "calm, settle, breathe"
        assert avatar.feels()[-1] == "calm, gentle breathing"
        assert "serene, breathe" in avatar.feels()
        on_end.assert_called_once_with()
        assert controller.is_active is False
        assert controller.cycle_count == 2

    @pytest.mark.asyncio
    async def test_affirmation_every_second_cycle_but_not_last(self, make_controller, narrator) -> None:
        controller = make_controller(max_cycles=3)
        await controller.start()
        # cues per cycle (3) x 3 cycles + 1 affirmation + closing line
        assert len(narrator.spoken) == 11
        assert narrator.spoken[6] not in ("Breathe in", "Hold", "Release")

    @pytest.mark.asyncio
    async def test_phase_updates(self, make_controller) -> None:
        updates = []
        controller = make_controller(max_cycles=1, on_phase=updates.append)
        await controller.start()

        assert updates[0].phase == "Breathe with me..."
        countdown = [u.timer for u in updates if u.phase == "Breathe In" and u.timer]
        assert countdown == [4, 3, 2, 1]
        assert updates[-1].phase == "Complete"
        assert updates[-1].cycle == 1
        assert all(u.max_cycles == 1 for u in updates)

    @pytest.mark.asyncio
    async def test_stop_mid_loop(self, make_controller, narrator, avatar) -> None:
        on_end = MagicMock()
        controller = make_controller(max_cycles=5, on_end=on_end)

        def on_phase(update):
            if update.phase == "Breathe Out":
                controller.stop()

        controller.on_phase = on_phase
        await controller.start()

        on_end.assert_called_once_with()
        assert CLOSING_LINE not in narrator.spoken
        assert avatar.feels()[-1] == "calm, settle"
        assert controller.cycle_count == 1
        assert controller.current_phase is None

    @pytest.mark.asyncio
    async def test_stop_when_inactive_is_noop(self, make_controller, avatar) -> None:
        on_end = MagicMock()
        controller = make_controller(on_end=on_end)
        controller.stop()
        on_end.assert_not_called()
        assert avatar.calls == []

    @pytest.mark.asyncio
    async def test_cue_failure_is_ignored(self, make_controller, narrator) -> None:
        controller = make_controller(max_cycles=1)
        narrator.error = NarrationError("no voice")
        with pytest.raises(NarrationError):
            # closing line is not a cue and propagates
            await controller.start()
        assert narrator.spoken[:3] == ["Breathe in", "Hold", "Release"]
