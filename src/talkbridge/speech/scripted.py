"""Deterministic in-process engines used by the demo command and tests."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from talkbridge.errors import SynthesisError
from talkbridge.models import RecognitionConfig, Utterance

from .interfaces import CanceledEvent, EngineEvent, EngineListener, FinalEvent, InterimEvent


@dataclass(slots=True)
class ScriptedStream:
    id: int
    listener: EngineListener
    config: RecognitionConfig | None
    open: bool = True


class ScriptedSpeechEngine:
    """Replays one batch of events on every stream it opens.

    Events are delivered on the next loop iteration after :meth:`start` returns,
    which is what a real engine acknowledging the stream first looks like.
    """

    def __init__(self, script: Iterable[Iterable[EngineEvent]] = (), *, fail_starts: int = 0) -> None:
        self._script: deque[list[EngineEvent]] = deque(list(batch) for batch in script)
        self._pending_config: RecognitionConfig | None = None
        self.configs: list[RecognitionConfig] = []
        self.streams: list[ScriptedStream] = []
        self.stop_calls = 0
        self.fail_starts = fail_starts
        self.exhausted = asyncio.Event()

    @property
    def active_stream(self) -> ScriptedStream | None:
        if self.streams and self.streams[-1].open:
            return self.streams[-1]
        return None

    @property
    def open_streams(self) -> int:
        return sum(1 for stream in self.streams if stream.open)

    def configure(self, config: RecognitionConfig) -> None:
        self._pending_config = config
        self.configs.append(config)

    async def start(self, audio_input: Any, listener: EngineListener) -> ScriptedStream:
        if self.fail_starts > 0:
            self.fail_starts -= 1
            raise ConnectionError("Scripted engine refused to open a stream")

        stream = ScriptedStream(id=len(self.streams) + 1, listener=listener, config=self._pending_config)
        self.streams.append(stream)

        loop = asyncio.get_running_loop()
        if self._script:
            for event in self._script.popleft():
                loop.call_soon(self._deliver, stream, event)
        if not self._script:
            loop.call_soon(self.exhausted.set)
        return stream

    async def stop(self, handle: ScriptedStream) -> None:
        handle.open = False
        self.stop_calls += 1

    def emit(self, event: EngineEvent, stream: ScriptedStream | None = None) -> None:
        """Push an event to ``stream`` (default: the open one), even if it was closed."""
        target = stream or self.active_stream
        if target is None:
            raise RuntimeError("No open stream to emit on")
        target.listener(event)

    @staticmethod
    def _deliver(stream: ScriptedStream, event: EngineEvent) -> None:
        if stream.open:
            stream.listener(event)


class EchoSynthesisEngine:
    """Synthesis stand-in that records (and optionally prints) what it would say."""

    def __init__(
        self,
        *,
        delay_seconds: float = 0.0,
        fail: bool = False,
        printer: Callable[[str, str], None] | None = None,
    ) -> None:
        self.delay_seconds = delay_seconds
        self.fail = fail
        self.spoken: list[tuple[str, str]] = []
        self._printer = printer

    async def speak(self, text: str, language: str) -> None:
        if self.fail:
            raise SynthesisError(f"Echo synthesis refused {language}")
        self.spoken.append((text, language))
        if self._printer:
            self._printer(text, language)
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)


def event_from_payload(payload: dict[str, Any]) -> EngineEvent:
    kind = payload.get("type", "final")
    if kind == "interim":
        return InterimEvent(text=payload.get("text", ""))
    if kind == "final":
        return FinalEvent(
            Utterance(
                detected_language=payload.get("detected", ""),
                text=payload.get("text", ""),
                translations=dict(payload.get("translations", {})),
            )
        )
    if kind == "canceled":
        return CanceledEvent(
            reason=payload.get("reason", "Error"),
            details=payload.get("details", ""),
            error_code=payload.get("error_code"),
        )
    raise ValueError(f"Unknown scripted event type: {kind!r}")


def load_script(path: str | Path) -> list[list[EngineEvent]]:
    """Read a JSON list of streams, each a list of event objects."""
    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return [[event_from_payload(item) for item in stream] for stream in payload]


DEMO_SCRIPT: list[list[dict[str, Any]]] = [
    [
        {"type": "interim", "text": "مرحبا"},
        {"type": "final", "detected": "ar-SA", "text": "مرحبا، كيف حالك؟", "translations": {"en": "Hello, how are you?"}},
    ],
    [
        {"type": "final", "detected": "en-US", "text": "I'm fine, thanks!", "translations": {"en": "I'm fine, thanks!", "ar": "أنا بخير، شكرا!"}},
    ],
    [
        {"type": "final", "detected": "fr-FR", "text": "bonjour", "translations": {"en": "hello", "ar": "مرحبا"}},
    ],
    [
        {"type": "canceled", "reason": "EndOfStream", "details": "InitialSilenceTimeout"},
    ],
    [
        {"type": "final", "detected": "ar-EG", "text": "شكرا جزيلا", "translations": {"en": "Thank you very much"}},
    ],
]
