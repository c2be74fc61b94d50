"""Text-to-speech coordination for translated utterances."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .interfaces import SynthesisEngine


@dataclass(slots=True)
class SynthesisConfig:
    """Configurable controls for translation speech."""

    enabled: bool = True
    max_chars: int = 500


class SynthesisStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class SynthesisOutcome:
    text: str
    language: str
    status: SynthesisStatus
    error: str | None = None


@dataclass(slots=True)
class _Request:
    text: str
    language: str
    task: asyncio.Task[None] | None = None
    outcome: SynthesisOutcome | None = None

    @property
    def finished(self) -> bool:
        return self.outcome is not None


class TTSCoordinator:
    """Runs at most one synthesis at a time; requests made while busy are dropped.

    ``on_started`` fires when playback begins and ``on_finished`` exactly once per
    request that was not dropped, whether it succeeded, failed or was cancelled.
    """

    def __init__(
        self,
        synthesizer: SynthesisEngine,
        config: SynthesisConfig | None = None,
        *,
        on_started: Callable[[], None] | None = None,
        on_finished: Callable[[SynthesisOutcome], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._synthesizer = synthesizer
        self._config = config or SynthesisConfig()
        self._on_started = on_started
        self._on_finished = on_finished
        self._logger = logger or logging.getLogger("talkbridge.synthesis")
        self._current: _Request | None = None

    @property
    def config(self) -> SynthesisConfig:
        return self._config

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    def request(self, text: str, language: str) -> bool:
        """Schedule synthesis. Returns False when disabled, empty or already speaking."""
        if not self._config.enabled:
            return False

        normalized = " ".join(text.split())
        if not normalized:
            return False

        if self._current is not None:
            self._logger.info("synthesis_dropped", extra={"language": language, "busy_with": self._current.language})
            return False

        request = _Request(text=normalized[: self._config.max_chars], language=language)
        self._current = request
        request.task = asyncio.create_task(self._run(request), name="tts-synthesis")
        return True

    async def speak(self, text: str, language: str) -> SynthesisOutcome | None:
        """Synthesize and wait for completion; ``None`` when the request was dropped."""
        if not self.request(text, language):
            return None
        request = self._current
        await asyncio.wait({request.task})
        return request.outcome

    async def wait_idle(self) -> None:
        request = self._current
        if request is not None and request.task is not None:
            await asyncio.wait({request.task})

    async def cancel(self) -> None:
        """Abort in-flight synthesis, if any."""
        request = self._current
        if request is None or request.task is None:
            return

        request.task.cancel()
        await asyncio.wait({request.task})
        if not request.finished:
            # Cancelled before the task body got to run.
            self._finish(request, SynthesisStatus.CANCELLED)

    async def _run(self, request: _Request) -> None:
        if self._on_started:
            self._on_started()
        self._logger.info("synthesis_started", extra={"language": request.language, "chars": len(request.text)})
        try:
            await self._synthesizer.speak(request.text, request.language)
        except asyncio.CancelledError:
            self._finish(request, SynthesisStatus.CANCELLED)
            raise
        except Exception as exc:  # noqa: BLE001 - a failed playback only drops this utterance's audio.
            self._logger.exception("synthesis_failed", extra={"language": request.language})
            self._finish(request, SynthesisStatus.FAILED, error=f"{type(exc).__name__}: {exc}")
        else:
            self._finish(request, SynthesisStatus.SUCCEEDED)

    def _finish(self, request: _Request, status: SynthesisStatus, error: str | None = None) -> None:
        if request.finished:
            return
        outcome = SynthesisOutcome(text=request.text, language=request.language, status=status, error=error)
        request.outcome = outcome
        if self._current is request:
            self._current = None

        self._logger.info("synthesis_finished", extra={"language": request.language, "status": status.value})
        if self._on_finished:
            self._on_finished(outcome)
