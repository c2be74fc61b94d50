"""Public conversation orchestrator: session state machine over recognition, classification and speech."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Iterable

from .classifier import UtteranceClassifier
from .errors import ErrorBridge, ErrorReport, SessionStateError, StartFailure, StopFailure
from .handlers import ConversationHandlers
from .language_lock import LanguageLock
from .languages import LanguageCode
from .models import SessionState, Speaker, Utterance
from .recognition import CycleCallbacks, RecognitionCycleManager
from .router import TranslationRouter
from .speech.interfaces import SpeechEngine, SynthesisEngine
from .speech.output import SynthesisConfig, SynthesisOutcome, SynthesisStatus, TTSCoordinator


class SessionController:
    """Drives a two-party translated conversation.

    Two turn models share this controller. In the continuous model nobody is named
    on :meth:`start` and the classifier infers who spoke. In the push-to-talk model
    each party opens the mic with :meth:`start` (or :meth:`toggle`) naming
    themselves, usually with both languages pre-selected through
    ``preset_locked_language``.

    Every start and stop bumps a generation token. Callbacks bound to an older
    generation are ignored, so nothing from a stopped session can touch the lock or
    the session state.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        synthesizer: SynthesisEngine,
        *,
        open_language: str | LanguageCode,
        handlers: ConversationHandlers | None = None,
        open_speaker: Speaker = Speaker.SPEAKER2,
        preset_locked_language: str | LanguageCode | None = None,
        source_candidates: Iterable[str | LanguageCode] = (),
        audio_input: Any = None,
        synthesis_config: SynthesisConfig | None = None,
        rearm_delay_seconds: float = 0.0,
        retry_delay_seconds: float = 0.5,
        max_engine_retries: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._handlers = handlers or ConversationHandlers()
        self._logger = logger or logging.getLogger("talkbridge.controller")
        self._lock_state = LanguageLock(
            open_language,
            open_speaker=open_speaker,
            preset_locked_language=preset_locked_language,
        )
        self._bridge = ErrorBridge(self._handlers)
        self._classifier = UtteranceClassifier()
        self._cycle = RecognitionCycleManager(
            engine,
            self._lock_state,
            self._bridge,
            source_candidates=source_candidates,
            audio_input=audio_input,
            rearm_delay_seconds=rearm_delay_seconds,
            retry_delay_seconds=retry_delay_seconds,
            max_retries=max_engine_retries,
        )
        self._tts = TTSCoordinator(
            synthesizer,
            synthesis_config,
            on_started=self._cycle.suspend,
            on_finished=self._on_synthesis_finished,
        )
        self._router = TranslationRouter(self._handlers, self._tts)

        self._state = SessionState.IDLE
        self._current_speaker: Speaker | None = None
        self._generation = 0
        self._transition_lock = asyncio.Lock()
        self._abort_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_speaker(self) -> Speaker | None:
        return self._current_speaker

    @property
    def language_lock(self) -> LanguageLock:
        return self._lock_state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_speaking(self) -> bool:
        return self._tts.is_speaking

    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    async def start(self, speaker: Speaker | None = None, *, new_conversation: bool = True) -> None:
        """Open the mic, optionally for one named party.

        An active session is stopped first, so two streams never run together. With
        ``new_conversation=False`` the locked language survives the hand-over.
        """
        async with self._transition_lock:
            if self._state is SessionState.ACTIVE:
                await self._shutdown(reset_lock=new_conversation)
            elif new_conversation:
                self._lock_state.reset()
            # Playback left over from a forced stop must not reach the new stream.
            await self._tts.cancel()

            self._generation += 1
            generation = self._generation
            self._state = SessionState.STARTING
            self._current_speaker = speaker
            callbacks = CycleCallbacks(
                on_interim=partial(self._on_interim, generation),
                on_final=partial(self._on_final, generation),
                on_fatal=partial(self._on_fatal, generation),
            )
            try:
                await self._cycle.start(callbacks, current_speaker=speaker)
            except Exception as exc:
                self._state = SessionState.IDLE
                self._current_speaker = None
                self._logger.exception("session_start_failed", extra={"generation": generation})
                raise StartFailure(f"Could not start recognition: {type(exc).__name__}: {exc}") from exc

            self._state = SessionState.ACTIVE
            self._logger.info(
                "session_started",
                extra={
                    "generation": generation,
                    "speaker": speaker.value if speaker else None,
                    "open_language": self._lock_state.open_language.tag,
                    "locked_language": self._tag(self._lock_state.locked_language),
                },
            )

    async def stop(self) -> None:
        """End the session. Calling it on an idle session does nothing."""
        async with self._transition_lock:
            if self._state is SessionState.IDLE:
                return
            await self._shutdown(reset_lock=True)

    async def toggle(self, speaker: Speaker | None = None) -> None:
        """Mic-button entry point: stop when starting or active, start when idle."""
        if self._state in (SessionState.STARTING, SessionState.ACTIVE):
            await self.stop()
        else:
            await self.start(speaker)

    async def drain(self) -> None:
        """Wait until queued engine events and in-flight synthesis have settled."""
        while True:
            await self._cycle.drain()
            if self._abort_task is not None:
                await self._abort_task
            await self._tts.wait_idle()
            await asyncio.sleep(0)
            if not self._tts.is_speaking and self._cycle.pending_events == 0:
                return

    def set_open_language(self, language: str | LanguageCode) -> None:
        self._require_idle("change the open language")
        self._lock_state.set_open_language(language)

    def swap_languages(self) -> None:
        """Make the previously detected language the open one, and vice versa."""
        self._require_idle("swap languages")
        previous = self._lock_state.preset_locked_language or self._lock_state.last_locked_language
        if previous is None:
            raise SessionStateError("No detected language to swap with yet")
        current_open = self._lock_state.open_language
        self._lock_state.set_open_language(previous)
        self._lock_state.set_preset(current_open)
        self._lock_state.reset()
        self._logger.info(
            "languages_swapped",
            extra={"open_language": previous.tag, "preset_locked_language": current_open.tag},
        )

    async def _shutdown(self, *, reset_lock: bool) -> None:
        self._state = SessionState.STOPPING
        self._generation += 1
        error: Exception | None = None
        try:
            await self._cycle.stop()
        except Exception as exc:  # noqa: BLE001 - the session still ends idle.
            error = exc
            self._logger.exception("session_stop_failed", extra={"generation": self._generation})
        await self._tts.cancel()
        self._cycle.resume()
        self._current_speaker = None
        if reset_lock:
            self._lock_state.reset()
        self._state = SessionState.IDLE
        self._logger.info("session_stopped", extra={"generation": self._generation})
        if error is not None:
            raise StopFailure(f"Could not stop recognition: {type(error).__name__}: {error}") from error

    def _on_interim(self, generation: int, text: str) -> None:
        if generation != self._generation:
            return
        self._handlers.live_transcript(text)

    async def _on_final(self, generation: int, utterance: Utterance) -> None:
        if generation != self._generation:
            return

        result = self._classifier.classify(utterance, self._lock_state, self._current_speaker)
        if result.locked_language is not None and self._lock_state.lock(result.locked_language):
            self._handlers.language_locked(result.locked_language)

        if result.accepted:
            self._router.dispatch(result)
            return

        report = self._bridge.from_classification(result)
        if report is not None:
            self._bridge.report(report)

    def _on_fatal(self, generation: int, report: ErrorReport) -> None:
        if generation != self._generation:
            return
        self._generation += 1
        self._state = SessionState.IDLE
        self._current_speaker = None
        self._lock_state.reset()
        self._logger.error("session_force_stopped", extra={"kind": report.kind.value})
        self._abort_task = asyncio.create_task(self._tts.cancel(), name="tts-abort")

    def _on_synthesis_finished(self, outcome: SynthesisOutcome) -> None:
        self._cycle.resume()
        if outcome.status is SynthesisStatus.FAILED:
            self._bridge.report(self._bridge.synthesis_failure(outcome.error or "unknown error"))

    def _require_idle(self, action: str) -> None:
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot {action} while the session is {self._state.value}")

    @staticmethod
    def _tag(language: LanguageCode | None) -> str | None:
        return language.tag if language else None
