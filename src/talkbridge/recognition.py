"""Continuous recognition cycle: one stream per utterance, re-armed after every final result."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Iterable

from .errors import ErrorBridge, ErrorKind, ErrorReport
from .language_lock import LanguageLock
from .languages import AUTO_DETECT, LanguageCode, ordered_unique
from .models import RecognitionConfig, Speaker, Utterance
from .speech.interfaces import CanceledEvent, EngineEvent, FinalEvent, InterimEvent, SpeechEngine


class CycleState(str, Enum):
    """``ARMED`` covers the gap between closing a stream and opening its replacement."""

    ARMED = "armed"
    RUNNING = "running"
    DISARMED = "disarmed"


@dataclass(slots=True)
class CycleCallbacks:
    on_interim: Callable[[str], None]
    on_final: Callable[[Utterance], Awaitable[None]]
    on_fatal: Callable[[ErrorReport], None]


def build_recognition_config(
    lock: LanguageLock,
    source_candidates: Iterable[LanguageCode] = (),
    current_speaker: Speaker | None = None,
) -> RecognitionConfig:
    """Derive the stream config from the lock; registered languages always lead the lists."""
    registered = [lock.open_language]
    if lock.locked_language is not None:
        registered.append(lock.locked_language)

    recognition_language = AUTO_DETECT
    if current_speaker is not None:
        recognition_language = lock.language_for(current_speaker) or AUTO_DETECT

    return RecognitionConfig(
        source_candidates=ordered_unique([*registered, *source_candidates]),
        target_languages=ordered_unique(registered),
        recognition_language=recognition_language,
    )


class RecognitionCycleManager:
    """Owns the recognition stream and re-arms it after each utterance.

    Engine events are tagged with the generation of the stream that produced them
    and processed one at a time by a worker task; events from a closed stream are
    dropped. Only one stream exists at any instant: a re-arm awaits the engine's
    stop acknowledgment before opening the next stream.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        lock: LanguageLock,
        bridge: ErrorBridge,
        *,
        source_candidates: Iterable[str | LanguageCode] = (),
        audio_input: Any = None,
        rearm_delay_seconds: float = 0.0,
        retry_delay_seconds: float = 0.5,
        max_retries: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._lock = lock
        self._bridge = bridge
        self._source_candidates = tuple(LanguageCode.parse(code) for code in source_candidates)
        self._audio_input = audio_input
        self._rearm_delay_seconds = rearm_delay_seconds
        self._retry_delay_seconds = retry_delay_seconds
        self._max_retries = max_retries
        self._logger = logger or logging.getLogger("talkbridge.recognition")

        self._state = CycleState.DISARMED
        self._generation = 0
        self._handle: Any = None
        self._config: RecognitionConfig | None = None
        self._callbacks: CycleCallbacks | None = None
        self._current_speaker: Speaker | None = None
        self._suspended = False
        self._failures = 0
        self._processing = False
        self._events: asyncio.Queue[tuple[int, EngineEvent]] = asyncio.Queue()
        self._worker_task: asyncio.Task[None] | None = None
        self._opening: asyncio.Future[Any] | None = None
        self._closing: asyncio.Future[None] | None = None

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def config(self) -> RecognitionConfig | None:
        """Config of the most recently opened stream."""
        return self._config

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    @property
    def pending_events(self) -> int:
        """Events queued or being handled right now."""
        return self._events.qsize() + (1 if self._processing else 0)

    async def start(self, callbacks: CycleCallbacks, *, current_speaker: Speaker | None = None) -> None:
        """Open the first stream; returns once the engine acknowledged it."""
        if self._state is not CycleState.DISARMED:
            raise RuntimeError(f"Recognition cycle already {self._state.value}")

        self._callbacks = callbacks
        self._current_speaker = current_speaker
        self._suspended = False
        self._failures = 0
        self._state = CycleState.ARMED
        self._ensure_worker()
        try:
            await self._open_stream()
        except BaseException:
            self._state = CycleState.DISARMED
            await self._stop_worker()
            await self._settle_engine_calls()
            raise

    async def stop(self) -> None:
        """Disarm, close the stream and drop anything still queued.

        An open or close the engine is still working on is awaited, and a stream
        acknowledged after the cycle was disarmed is closed right away.
        """
        self._state = CycleState.DISARMED
        self._generation += 1
        await self._stop_worker()
        self._discard_pending()
        await self._settle_engine_calls()
        await self._close_stream()
        self._logger.info("recognition_cycle_stopped", extra={"generation": self._generation})

    def suspend(self) -> None:
        """Stop treating final results as conversation input (our own synthesis is playing)."""
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False

    async def drain(self) -> None:
        """Wait until every queued engine event has been handled."""
        await self._events.join()

    def _ensure_worker(self) -> None:
        if self._worker_task and not self._worker_task.done():
            return
        self._worker_task = asyncio.create_task(self._worker_loop(), name="recognition-cycle-worker")

    async def _stop_worker(self) -> None:
        task = self._worker_task
        if task is None or task is asyncio.current_task():
            return
        self._worker_task = None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _settle_engine_calls(self) -> None:
        closing, self._closing = self._closing, None
        opening, self._opening = self._opening, None
        if closing is not None:
            await closing
        if opening is None:
            return

        try:
            handle = await opening
        except Exception:  # noqa: BLE001 - nothing was opened.
            self._logger.warning("abandoned_stream_open_failed", exc_info=True)
            return
        await self._engine.stop(handle)
        self._logger.info("abandoned_stream_closed", extra={"generation": self._generation})

    def _require_callbacks(self) -> CycleCallbacks:
        if self._callbacks is None:
            raise RuntimeError("Recognition cycle has no callbacks; call start() first")
        return self._callbacks

    def _discard_pending(self) -> None:
        while not self._events.empty():
            self._events.get_nowait()
            self._events.task_done()

    def _on_engine_event(self, generation: int, event: EngineEvent) -> None:
        if generation != self._generation:
            self._logger.debug(
                "stale_engine_event",
                extra={"event": type(event).__name__, "event_generation": generation, "generation": self._generation},
            )
            return
        self._events.put_nowait((generation, event))

    async def _worker_loop(self) -> None:
        while True:
            generation, event = await self._events.get()
            self._processing = True
            try:
                if generation == self._generation and self._state is CycleState.RUNNING:
                    await self._handle_event(event)
            except Exception:  # noqa: BLE001 - the cycle must survive a failing event.
                self._logger.exception("recognition_event_failed", extra={"event": type(event).__name__})
            finally:
                self._processing = False
                self._events.task_done()

            if self._state is CycleState.DISARMED:
                self._discard_pending()
                if self._worker_task is asyncio.current_task():
                    self._worker_task = None
                return

    async def _handle_event(self, event: EngineEvent) -> None:
        callbacks = self._require_callbacks()
        if isinstance(event, InterimEvent):
            if event.text:
                callbacks.on_interim(event.text)
        elif isinstance(event, FinalEvent):
            await self._handle_final(event.utterance)
        elif isinstance(event, CanceledEvent):
            await self._handle_canceled(event)

    async def _handle_final(self, utterance: Utterance) -> None:
        callbacks = self._require_callbacks()
        self._failures = 0
        if self._suspended:
            self._logger.info(
                "final_suppressed_during_synthesis",
                extra={"detected_language": utterance.detected_language},
            )
        else:
            try:
                await callbacks.on_final(utterance)
            except Exception:  # noqa: BLE001
                self._logger.exception("final_handler_failed")
        await self._rearm()

    async def _handle_canceled(self, event: CanceledEvent) -> None:
        report = self._bridge.from_cancellation(event)
        self._logger.warning(
            "recognition_canceled",
            extra={"kind": report.kind.value, "reason": event.reason, "error_code": event.error_code},
        )
        if report.kind is ErrorKind.QUOTA_EXCEEDED:
            await self._force_stop(report)
        elif report.kind is ErrorKind.NO_SPEECH_DETECTED:
            self._bridge.report(report)
            await self._rearm()
        else:
            await self._recover(report.details)

    async def _rearm(self) -> None:
        if self._state is not CycleState.RUNNING:
            return

        self._state = CycleState.ARMED
        try:
            await self._close_stream()
            if self._rearm_delay_seconds > 0:
                await asyncio.sleep(self._rearm_delay_seconds)
            if self._state is not CycleState.ARMED:
                return
            await self._open_stream()
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("recognition_rearm_failed")
            await self._recover(f"{type(exc).__name__}: {exc}")

    async def _recover(self, details: str) -> None:
        """Restart the stream up to ``max_retries`` times, then force-stop."""
        while self._failures < self._max_retries:
            self._failures += 1
            self._logger.warning("recognition_retry", extra={"attempt": self._failures, "details": details})
            self._state = CycleState.ARMED
            try:
                await self._close_stream()
                await asyncio.sleep(self._retry_delay_seconds)
                if self._state is not CycleState.ARMED:
                    return
                await self._open_stream()
                return
            except Exception as exc:  # noqa: BLE001
                details = f"{type(exc).__name__}: {exc}"
                self._logger.exception("recognition_retry_failed", extra={"attempt": self._failures})

        await self._force_stop(self._bridge.engine_failure(details))

    async def _force_stop(self, report: ErrorReport) -> None:
        callbacks = self._require_callbacks()
        self._state = CycleState.DISARMED
        try:
            await self._close_stream()
        except Exception:  # noqa: BLE001
            self._logger.exception("recognition_stream_close_failed")
        self._discard_pending()
        self._logger.error("recognition_cycle_force_stopped", extra={"kind": report.kind.value})
        callbacks.on_fatal(report)
        self._bridge.report(report)

    async def _open_stream(self) -> None:
        config = build_recognition_config(self._lock, self._source_candidates, self._current_speaker)
        self._engine.configure(config)
        self._generation += 1
        generation = self._generation

        # Shielded: a cancelled caller leaves the call to stop(), which closes the late stream.
        listener = partial(self._on_engine_event, generation)
        opening = asyncio.ensure_future(self._engine.start(self._audio_input, listener))
        self._opening = opening
        try:
            handle = await asyncio.shield(opening)
        except Exception:
            if self._opening is opening:
                self._opening = None
            raise

        owned = self._opening is opening
        if owned:
            self._opening = None
        if generation != self._generation or self._state is CycleState.DISARMED:
            # Stopped while the engine was opening the stream.
            if owned:
                await self._engine.stop(handle)
            return

        self._handle = handle
        self._config = config
        self._state = CycleState.RUNNING
        self._logger.info(
            "recognition_stream_opened",
            extra={
                "generation": generation,
                "source_candidates": [code.tag for code in config.source_candidates],
                "target_languages": [code.tag for code in config.target_languages],
                "recognition_language": config.recognition_language.tag,
            },
        )

    async def _close_stream(self) -> None:
        handle = self._handle
        if handle is None:
            return

        self._handle = None
        self._generation += 1
        closing = asyncio.ensure_future(self._engine.stop(handle))
        self._closing = closing
        try:
            await asyncio.shield(closing)
        except Exception:
            if self._closing is closing:
                self._closing = None
            raise
        if self._closing is closing:
            self._closing = None
        self._logger.info("recognition_stream_closed", extra={"generation": self._generation})
