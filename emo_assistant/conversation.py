"""Conversation state machine.

Flow for one voice interaction:

    idle ──press──▶ listening ──release──▶ processing ──transcript──▶ thinking
      ▲                                        │ timeout                 │ reply
      │                                        ▼                         ▼
      └──────────────── idle ◀──────── narration done ◀──────────── speaking
                                                                 (or meditation)

Modal states (carousel, panel, tutorial) take every input event while they
are active. A user cancellation aborts the in-flight request, stops the
narration, discards unfired directives and returns to idle from anywhere.

Single-threaded and cooperative: every mutation happens on an event-loop
turn (input event, timer, narration progress, request completion). The only
suspension points are the LLM request and the narration, and both are
cancellable. Directive replay only runs while speaking, or while the
introduction to a meditation is being narrated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from emo_assistant.directives import (
    AvatarCapabilities,
    DirectiveDispatcher,
    DirectiveExtractor,
    PlaybackSynchronizer,
    parse_trailer,
)
from emo_assistant.llm import LLM, LLMError
from emo_assistant.meditation import MeditationController, PhaseUpdate
from emo_assistant.models import (
    MODAL_STATES,
    ConversationState,
    Directive,
    InputEvent,
    Session,
    Timings,
    Trailer,
)
from emo_assistant.narration import NarrationError, Narrator, subscribe
from emo_assistant.timers import IDLE_REVERT, PROCESSING_TIMEOUT, SCREEN_REVERT, Timers

logger = logging.getLogger(__name__)

State = ConversationState

DEFAULT_SCREEN_TEXT = "Hold to speak"
APOLOGY_TEXT = "Sorry, something went wrong"
BASELINE_GEOMETRY = "crystal"

MEDITATION_KEYWORDS = (
    "meditation", "meditate", "meditating",
    "breathing exercise", "breathe with me", "breathwork", "deep breaths",
    "take a breath", "breathing",
    "calm me", "calm down", "help me calm", "calming",
    "relax", "relaxation", "relaxing",
    "stressed", "anxious", "anxiety", "stress", "overwhelmed", "panic", "panicking",
    "guided breathing", "guide me", "mindfulness", "mindful",
    "center myself", "find peace", "need peace", "help me feel better",
    "ground me", "grounding",
)

ModalHandler = Callable[[InputEvent], Any]


class VoiceInput(Protocol):
    """Speech capture engine. Transcripts come back via handle_transcript()."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


def is_meditation_request(transcript: str) -> bool:
    lower = transcript.lower()
    return any(keyword in lower for keyword in MEDITATION_KEYWORDS)


class ConversationStateMachine:
    """Owns the interaction state, the session and the per-reply directives.

    Args:
        avatar:             Capability set the directives act on.
        llm:                Reply model.
        narrator:           Narration engine; its progress drives directive replay.
        voice:              Optional speech capture engine.
        timings:            Timer delays.
        session:            Session aggregate (a fresh one by default).
        meditation_pattern: Breathing pattern, "default" or "box".
        meditation_cycles:  Breathing cycles per meditation.
        meditation_sleep:   Awaitable delay used by the breathing loop.
        on_state_change:    Optional observer called with (old, new).
        on_screen:          Optional observer called with (text, mode).
    """

    def __init__(
        self,
        avatar: AvatarCapabilities,
        llm: LLM,
        narrator: Narrator,
        *,
        voice: VoiceInput | None = None,
        timings: Timings | None = None,
        session: Session | None = None,
        meditation_pattern: str = "default",
        meditation_cycles: int = 5,
        meditation_sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        default_screen_text: str = DEFAULT_SCREEN_TEXT,
        on_state_change: Callable[[State, State], Any] | None = None,
        on_screen: Callable[[str, str], Any] | None = None,
    ) -> None:
        self._dispatcher = DirectiveDispatcher(avatar, on_meditation=self._request_meditation)
        self._llm = llm
        self._narrator = narrator
        self._voice = voice
        self.timings = timings or Timings()
        self.session = session or Session(screen_text=default_screen_text)
        self.default_screen_text = default_screen_text
        self.on_state_change = on_state_change
        self.on_screen = on_screen

        self.meditation = MeditationController(
            self._dispatcher,
            narrator,
            pattern=meditation_pattern,
            max_cycles=meditation_cycles,
            on_phase=self._on_meditation_phase,
            on_end=self._on_meditation_end,
            sleep=meditation_sleep,
        )

        self._state = State.IDLE
        self._timers = Timers()
        self._extractor = DirectiveExtractor()
        self._sync: PlaybackSynchronizer | None = None
        self._request: asyncio.Task | None = None
        self._reply_id = 0
        self._pending_meditation = False
        self._modal_handler: ModalHandler | None = None
        self.active_panel: str | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> State:
        return self._state

    @property
    def timers(self) -> Timers:
        return self._timers

    @property
    def dispatcher(self) -> DirectiveDispatcher:
        return self._dispatcher

    def directive_progress(self) -> float:
        """Fraction of the current reply's inline directives already fired."""
        return self._sync.get_progress() if self._sync else 1.0

    def _set_state(self, new_state: State) -> None:
        old_state = self._state
        self._state = new_state
        if new_state is not State.IDLE:
            self._timers.cancel(IDLE_REVERT)
            self._timers.cancel(SCREEN_REVERT)
        else:
            self.session.status = ""
        logger.info("State: %s -> %s", old_state.value, new_state.value)
        if self.on_state_change:
            self.on_state_change(old_state, new_state)

    def _set_screen(self, text: str, mode: str = "") -> None:
        self.session.screen_text = text
        self.session.screen_mode = mode
        if self.on_screen:
            self.on_screen(text, mode)

    def _reset_screen(self) -> None:
        self._set_screen(self.default_screen_text)

    def _set_progress(self, fraction: float) -> None:
        self.session.progress = max(0.0, min(1.0, fraction))

    def _express_baseline(self, expression: str) -> None:
        """Set a baseline expression unless the user asked for a persistent emotion."""
        if not self.session.user_requested_emotion:
            self._dispatcher.express(expression)

    # ------------------------------------------------------------------
    # Input arbitration
    # ------------------------------------------------------------------

    def handle_input(self, event: InputEvent) -> bool:
        """Route a touch/pointer/keyboard event. Returns True if it was used."""
        state = self._state

        if event.kind == "key_down" and event.key == "Escape":
            if state in MODAL_STATES:
                return self._close_modal()
            if state is State.MEDITATION:
                return self.stop_meditation()
            self.cancel()
            return True

        if state in MODAL_STATES:
            if self._modal_handler is None:
                return False
            self._modal_handler(event)
            return True

        if event.kind == "cancel":
            self.cancel()
            return True

        if state is State.MEDITATION:
            if event.kind == "tap" and event.target == "meditation_overlay":
                return self.stop_meditation()
            return False

        if event.kind == "press" or (
            event.kind == "key_down" and event.key == "Space" and not event.repeat
        ):
            return self.start_listening()
        if event.kind == "release" or (event.kind == "key_up" and event.key == "Space"):
            return self.stop_listening()
        if event.kind == "tap" and event.target == "avatar":
            return self.open_carousel()
        return False

    # ------------------------------------------------------------------
    # Voice capture
    # ------------------------------------------------------------------

    def start_listening(self) -> bool:
        if self._state is not State.IDLE:
            logger.debug("Not idle (%s), ignoring start_listening", self._state.value)
            return False

        # Voice interactions auto-revert again; the emotion flag is kept
        self.session.user_manual_selection = False
        self._set_state(State.LISTENING)
        self._set_screen("Listening...", "listening")
        self._express_baseline("attentive, alert")

        if self._voice is not None:
            try:
                self._voice.start()
            except Exception as e:
                logger.error("Voice input failed to start: %s", e)
                self._set_screen(f"Voice failed: {e}")
                self._set_state(State.IDLE)
                self.schedule_screen_revert()
                return False
        return True

    def stop_listening(self) -> bool:
        if self._state is not State.LISTENING:
            logger.debug("Not listening (%s), ignoring stop_listening", self._state.value)
            return False

        self._set_state(State.PROCESSING)
        if self._voice is not None:
            self._voice.stop()
        self._set_screen("Processing...")
        self._timers.start(
            PROCESSING_TIMEOUT, self.timings.processing_timeout, self._on_processing_timeout,
        )
        return True

    def _on_processing_timeout(self) -> None:
        if self._state is State.PROCESSING:
            logger.info("Processing timeout, no transcript, returning to idle")
            self._settle_idle()

    def handle_voice_error(self, error: str) -> None:
        logger.error("Voice input error: %s", error)
        self._timers.cancel(PROCESSING_TIMEOUT)
        if error in ("not-allowed", "permission-denied"):
            self._set_screen("Microphone access denied")
        elif error == "not-supported":
            self._set_screen("Voice not supported")
        else:
            self._set_screen(f"Voice error: {error}")
        self._set_state(State.IDLE)
        self.schedule_screen_revert()

    def _settle_idle(self) -> None:
        """Quiet return to idle: no reply was produced."""
        self._set_state(State.IDLE)
        self._reset_screen()
        self._express_baseline("neutral, settle")

    # ------------------------------------------------------------------
    # Reply flow
    # ------------------------------------------------------------------

    async def handle_transcript(self, transcript: str) -> None:
        """Run one full reply for a finished transcript."""
        self._timers.cancel(PROCESSING_TIMEOUT)
        if self._state not in (State.LISTENING, State.PROCESSING):
            logger.info("Ignoring transcript in state %s", self._state.value)
            return
        if not transcript.strip():
            self._settle_idle()
            return

        logger.info("User said: %r", transcript)
        self._reply_id += 1
        reply_id = self._reply_id

        self._set_state(State.THINKING)
        self._set_screen("Thinking...")
        self._express_baseline("focused, orbit")

        request = asyncio.create_task(self._llm(transcript))
        self._request = request
        try:
            try:
                response = await request
            except asyncio.CancelledError:
                if reply_id != self._reply_id:
                    logger.info("Request cancelled")
                    return
                raise
            finally:
                if self._request is request:
                    self._request = None

            if reply_id != self._reply_id:
                return
            logger.debug("Reply: %r", response)
            trailer = parse_trailer(response)

            if trailer.meditation_start or is_meditation_request(transcript):
                await self._narrate_meditation_intro(trailer, reply_id)
            else:
                await self._narrate_reply(trailer, reply_id)
        except (LLMError, NarrationError) as e:
            if reply_id == self._reply_id:
                self._fail(e)
        except Exception as e:
            logger.exception("Unexpected error while replying")
            if reply_id == self._reply_id:
                self._fail(e)

    async def _narrate_reply(self, trailer: Trailer, reply_id: int) -> None:
        clean_text = self._load_directives(trailer.body)
        self._pending_meditation = False

        self._set_state(State.SPEAKING)
        self._set_screen("", "speaking")
        self._apply_trailer(trailer)
        self._set_progress(0.0)

        await self._speak(clean_text)
        if reply_id != self._reply_id:
            return

        # Narration finished before reaching every offset
        self._finish_directives()
        self._set_progress(0.0)
        self._set_screen(clean_text)

        if self._pending_meditation:
            self._pending_meditation = False
            self._set_state(State.MEDITATION)
            await self.meditation.start()
            return

        self._set_state(State.IDLE)
        self.schedule_screen_revert()
        self.schedule_idle_revert()

    async def _narrate_meditation_intro(self, trailer: Trailer, reply_id: int) -> None:
        clean_text = self._load_directives(trailer.body)
        self._set_state(State.MEDITATION)
        self._set_screen(clean_text, "speaking")

        await self._speak(clean_text)
        if reply_id != self._reply_id or self._state is not State.MEDITATION:
            return

        self._finish_directives()
        if trailer.feel:
            self._dispatcher.express(trailer.feel)
        await self.meditation.start()

    async def _speak(self, text: str) -> None:
        with subscribe(
            self._narrator,
            on_progress=self._on_progress,
            on_char_position=self._on_char_position,
        ):
            await self._narrator.speak(text)

    def _load_directives(self, body: str) -> str:
        clean_text = self._extractor.parse(body)
        self._sync = PlaybackSynchronizer(self._fire, self._extractor.directives)
        return clean_text

    def _finish_directives(self) -> None:
        if self._sync is not None:
            self._sync.trigger_remaining()
        self._sync = None
        self._extractor.reset()

    def _discard_directives(self) -> None:
        if self._sync is not None and self._sync.pending:
            logger.info("Discarding %d unfired directive(s)", self._sync.pending)
        self._sync = None
        self._extractor.reset()

    def _replaying(self) -> bool:
        if self._state is State.SPEAKING:
            return True
        return self._state is State.MEDITATION and not self.meditation.is_active

    def _on_char_position(self, position: int) -> None:
        if self._sync is not None and self._replaying():
            self._sync.update_progress(position)

    def _on_progress(self, fraction: float) -> None:
        if self._replaying():
            self._set_progress(fraction)

    def _fire(self, directive: Directive) -> None:
        applied = self._dispatcher.dispatch(directive)
        if applied and directive.category.upper() == "MORPH":
            self.session.current_geometry = applied

    def _request_meditation(self) -> None:
        self._pending_meditation = True

    def _apply_trailer(self, trailer: Trailer) -> None:
        if trailer.shape:
            applied = self._dispatcher.dispatch(Directive(category="MORPH", raw_value=trailer.shape))
            if applied:
                self.session.current_geometry = applied

        if trailer.feel:
            self._dispatcher.express(trailer.feel)
            self.session.user_requested_emotion = True
        else:
            # No FEEL this time, so future interactions may auto-revert
            self.session.user_requested_emotion = False

        if trailer.undertone:
            self._dispatcher.dispatch(Directive(category="UNDERTONE", raw_value=trailer.undertone))
        for toggle in trailer.toggles:
            self._dispatcher.dispatch(Directive(
                category="TOGGLE",
                raw_value=toggle.feature,
                modifier="on" if toggle.enabled else "off",
            ))
        if trailer.preset:
            self._dispatcher.dispatch(Directive(category="PRESET", raw_value=trailer.preset))
        if trailer.chain:
            self._dispatcher.dispatch(Directive(category="CHAIN", raw_value=trailer.chain))
        if trailer.camera:
            self._dispatcher.dispatch(Directive(category="CAMERA", raw_value=trailer.camera))

    def _fail(self, error: Exception) -> None:
        logger.warning("Reply failed: %s", error)
        if self.meditation.is_active:
            self.meditation.stop()
        self._discard_directives()
        self._set_progress(0.0)
        self._set_state(State.IDLE)
        self._set_screen(APOLOGY_TEXT)
        self._dispatcher.express("neutral, settle")
        self.schedule_screen_revert()
        self.schedule_idle_revert()

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """User cancellation: abort everything in flight and go idle.

        Unfired inline directives of the current reply are discarded.
        """
        logger.info("Cancelling current operation, state: %s", self._state.value)
        if self._state is State.MEDITATION:
            self.stop_meditation()
            return
        if self._state in MODAL_STATES:
            self._close_modal()
            return

        self._reply_id += 1
        if self._request is not None:
            self._request.cancel()
            self._request = None
        self._narrator.stop()
        self._discard_directives()
        self._set_progress(0.0)
        self._timers.cancel(PROCESSING_TIMEOUT)
        if self._state is State.LISTENING and self._voice is not None:
            self._voice.stop()

        self._set_state(State.IDLE)
        self._set_screen("Cancelled")
        self._express_baseline("neutral, settle")
        self.schedule_screen_revert()

    # ------------------------------------------------------------------
    # Meditation
    # ------------------------------------------------------------------

    def stop_meditation(self) -> bool:
        if self._state is not State.MEDITATION:
            return False
        self._narrator.stop()
        if self.meditation.is_active:
            # on_end takes the machine back to idle
            self.meditation.stop()
        else:
            # Still narrating the introduction
            self._reply_id += 1
            self._discard_directives()
            self._set_progress(0.0)
            self._set_state(State.IDLE)
            self._reset_screen()
        return True

    def _on_meditation_end(self) -> None:
        if self._state is State.MEDITATION:
            self._set_progress(0.0)
            self._set_state(State.IDLE)
            self._reset_screen()

    def _on_meditation_phase(self, update: PhaseUpdate) -> None:
        text = update.phase if update.timer is None else f"{update.phase} {update.timer}"
        self._set_screen(text, "meditation")

    # ------------------------------------------------------------------
    # Modal UIs
    # ------------------------------------------------------------------

    def open_carousel(self, handler: ModalHandler | None = None) -> bool:
        return self._open_modal(State.CAROUSEL, handler)

    def close_carousel(self) -> bool:
        if self._state is not State.CAROUSEL:
            return False
        return self._close_modal()

    def select_geometry(self, geometry: str) -> str | None:
        """Carousel pick: morph now and keep it until the next interaction."""
        applied = self.apply_selection(Directive(category="MORPH", raw_value=geometry))
        self.close_carousel()
        return applied

    def open_panel(self, name: str, handler: ModalHandler | None = None) -> bool:
        if not self._open_modal(State.PANEL, handler):
            return False
        self.active_panel = name
        return True

    def close_panel(self) -> bool:
        if self._state is not State.PANEL:
            return False
        return self._close_modal()

    def start_tutorial(self, handler: ModalHandler | None = None) -> bool:
        return self._open_modal(State.TUTORIAL, handler)

    def end_tutorial(self) -> bool:
        if self._state is not State.TUTORIAL:
            return False
        return self._close_modal()

    def apply_selection(self, directive: Directive) -> str | None:
        """Apply a directive the user picked by hand (carousel, panels)."""
        applied = self._dispatcher.dispatch(directive)
        if applied is None:
            return None
        if directive.category.upper() == "MORPH":
            self.session.current_geometry = applied
        self.session.user_manual_selection = True
        return applied

    def _open_modal(self, state: State, handler: ModalHandler | None) -> bool:
        if self._state is not State.IDLE:
            logger.debug("Not idle (%s), ignoring %s", self._state.value, state.value)
            return False
        self._modal_handler = handler
        self._set_state(state)
        return True

    def _close_modal(self) -> bool:
        self._modal_handler = None
        self.active_panel = None
        self._set_state(State.IDLE)
        self._reset_screen()
        # No idle revert: a manual pick stays until the next interaction
        return True

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def schedule_idle_revert(self) -> None:
        if self.session.user_manual_selection:
            logger.info("Skipping idle revert - user made a manual selection")
            return
        self._timers.start(IDLE_REVERT, self.timings.idle_revert, self._idle_revert)

    def schedule_screen_revert(self) -> None:
        self._timers.start(SCREEN_REVERT, self.timings.screen_revert, self._reset_screen)

    def _idle_revert(self) -> None:
        if self._state is not State.IDLE:
            return
        logger.info("Reverting to calm idle state")
        if self.session.current_geometry != BASELINE_GEOMETRY:
            self._dispatcher.dispatch(Directive(category="MORPH", raw_value=BASELINE_GEOMETRY))
            self.session.current_geometry = BASELINE_GEOMETRY
        if self.session.user_requested_emotion:
            logger.info("Skipping emotion revert - user requested this emotion")
        else:
            self._dispatcher.express("calm, gentle breathing")

    def shutdown(self) -> None:
        """Cancel every timer and anything in flight (end of session)."""
        self._reply_id += 1
        if self._request is not None:
            self._request.cancel()
            self._request = None
        self._narrator.stop()
        if self.meditation.is_active:
            self.meditation.stop()
        self._timers.cancel_all()
