"""Contracts for the speech translation and synthesis engines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Union

from talkbridge.models import RecognitionConfig, Utterance


@dataclass(slots=True)
class InterimEvent:
    """Partial recognition text, shown as a live transcript only."""

    text: str


@dataclass(slots=True)
class FinalEvent:
    """A finalized utterance with its translations."""

    utterance: Utterance


@dataclass(slots=True)
class CanceledEvent:
    """The engine gave up on the stream."""

    reason: str
    details: str = ""
    error_code: str | None = None


EngineEvent = Union[InterimEvent, FinalEvent, CanceledEvent]
EngineListener = Callable[[EngineEvent], None]


class SpeechEngine(Protocol):
    """Continuous recognition + translation over a microphone stream.

    Listeners must be invoked on the event loop that called :meth:`start`.
    """

    def configure(self, config: RecognitionConfig) -> None:
        """Apply candidates, targets and recognition language for the next stream."""

    async def start(self, audio_input: Any, listener: EngineListener) -> Any:
        """Open a stream and return its handle once the engine acknowledged it."""

    async def stop(self, handle: Any) -> None:
        """Close the stream behind ``handle`` and wait for acknowledgment."""


class SynthesisEngine(Protocol):
    """Speaks text in a language; raises on failure."""

    async def speak(self, text: str, language: str) -> None:
        """Return once playback of ``text`` completed."""
