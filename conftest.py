import asyncio

import pytest

from emo_assistant.conversation import ConversationStateMachine
from emo_assistant.directives import AvatarCapabilities
from emo_assistant.models import Timings


class RecordingAvatar:
    """Avatar that records every capability call as (name, *args)."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def feel(self, expression):
        self.calls.append(("feel", expression))

    def morph_to(self, shape):
        self.calls.append(("morph_to", shape))

    def set_preset(self, preset):
        self.calls.append(("set_preset", preset))

    def set_undertone(self, undertone):
        self.calls.append(("set_undertone", undertone))

    def play_chain(self, chain):
        self.calls.append(("play_chain", chain))

    def set_camera(self, preset):
        self.calls.append(("set_camera", preset))

    def set_moon_phase(self, phase):
        self.calls.append(("set_moon_phase", phase))

    def set_sun_eclipse(self, kind):
        self.calls.append(("set_sun_eclipse", kind))

    def set_moon_eclipse(self, kind):
        self.calls.append(("set_moon_eclipse", kind))

    def toggle(self, feature, enabled):
        self.calls.append(("toggle", feature, enabled))

    def named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def feels(self) -> list[str]:
        return [call[1] for call in self.named("feel")]


class FakeNarrator:
    """Narration engine under test control.

    With hold=False, speak() reports the end of the text and returns at once.
    With hold=True, speak() blocks until finish() or stop(); the test drives
    progress with report().
    """

    def __init__(self, hold: bool = False) -> None:
        self.hold = hold
        self.error: Exception | None = None
        self.spoken: list[str] = []
        self.stops = 0
        self.on_progress = None
        self.on_char_position = None
        self.started = asyncio.Event()
        self._done: asyncio.Event | None = None

    async def speak(self, text: str) -> None:
        self.spoken.append(text)
        if self.error is not None:
            raise self.error
        if not self.hold:
            self.report(len(text), 1.0)
            return
        done = asyncio.Event()
        self._done = done
        self.started.set()
        await done.wait()
        if self._done is done:
            self._done = None

    async def wait_speaking(self) -> None:
        await self.started.wait()
        self.started.clear()

    def report(self, position: int, fraction: float | None = None) -> None:
        if self.on_char_position:
            self.on_char_position(position)
        if self.on_progress and fraction is not None:
            self.on_progress(fraction)

    def finish(self) -> None:
        if self._done is not None:
            self._done.set()

    def stop(self) -> None:
        self.stops += 1
        if self._done is not None:
            self._done.set()
            self._done = None


class StubLLM:
    """Returns a canned reply, or raises `error`. Set `gate` to hold the reply."""

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.gate: asyncio.Event | None = None
        self.messages: list[str] = []

    async def __call__(self, message: str) -> str:
        self.messages.append(message)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


class FakeVoice:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        if self.error is not None:
            raise self.error
        self.starts += 1

    def stop(self) -> None:
        self.stops += 1


async def _instant_sleep(_delay: float) -> None:
    await asyncio.sleep(0)


FAST_TIMINGS = Timings(idle_revert=0.05, screen_revert=0.03, processing_timeout=0.02)


@pytest.fixture
def avatar() -> RecordingAvatar:
    return RecordingAvatar()


@pytest.fixture
def capabilities(avatar: RecordingAvatar) -> AvatarCapabilities:
    return AvatarCapabilities.from_avatar(avatar)


@pytest.fixture
def narrator() -> FakeNarrator:
    return FakeNarrator()


@pytest.fixture
def llm() -> StubLLM:
    return StubLLM("Hello there!\nFEEL: joy, bounce")


@pytest.fixture
def voice() -> FakeVoice:
    return FakeVoice()


@pytest.fixture
def instant_sleep():
    return _instant_sleep


@pytest.fixture
def machine(capabilities, llm, narrator, voice) -> ConversationStateMachine:
    return ConversationStateMachine(
        capabilities,
        llm,
        narrator,
        voice=voice,
        timings=FAST_TIMINGS,
        meditation_cycles=2,
        meditation_sleep=_instant_sleep,
    )
