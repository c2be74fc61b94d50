"""Error taxonomy and the bridge that reports failures without crashing the session."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .models import Classification, ClassificationOutcome

if TYPE_CHECKING:
    from .handlers import ConversationHandlers
    from .speech.interfaces import CanceledEvent


class ErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    ENGINE_CANCELED = "engine_canceled"
    NO_SPEECH_DETECTED = "no_speech_detected"
    LANGUAGE_MISMATCH = "language_mismatch"
    AMBIGUOUS_SPEAKER_UTTERANCE = "ambiguous_speaker_utterance"
    SYNTHESIS_FAILURE = "synthesis_failure"


@dataclass(slots=True)
class ErrorReport:
    kind: ErrorKind
    message: str
    fatal: bool = False
    details: str = ""


class OrchestratorError(RuntimeError):
    """Base class for failures raised by the public session operations."""


class StartFailure(OrchestratorError):
    """The engine could not open a recognition stream."""


class StopFailure(OrchestratorError):
    """The engine failed while closing a recognition stream."""


class SessionStateError(OrchestratorError):
    """An operation is not allowed in the current session state."""


class SynthesisError(RuntimeError):
    """Raised by synthesis backends when playback did not complete."""


_QUOTA_CODES = {"toomanyrequests", "forbidden"}
_QUOTA_RE = re.compile(r"quota|too many requests|\b429\b|\b403\b", re.IGNORECASE)
_NO_SPEECH_REASONS = {"nomatch", "endofstream"}
_NO_SPEECH_RE = re.compile(r"no speech|silence|initialsilencetimeout|nomatch", re.IGNORECASE)

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.QUOTA_EXCEEDED: (
        "Quota exceeded. Please check your speech service subscription or try again later."
    ),
    ErrorKind.ENGINE_CANCELED: "The speech service stopped unexpectedly. Please start the conversation again.",
    ErrorKind.NO_SPEECH_DETECTED: "No speech detected. Please speak again.",
    ErrorKind.LANGUAGE_MISMATCH: "Language not recognized for this conversation. Please repeat in your language.",
    ErrorKind.AMBIGUOUS_SPEAKER_UTTERANCE: (
        "Could not tell who is speaking. The other party should speak first in their language."
    ),
    ErrorKind.SYNTHESIS_FAILURE: "Could not play the translation audio.",
}

_REJECTION_KINDS: dict[ClassificationOutcome, ErrorKind] = {
    ClassificationOutcome.REJECTED_EMPTY: ErrorKind.NO_SPEECH_DETECTED,
    ClassificationOutcome.REJECTED_MISMATCH: ErrorKind.LANGUAGE_MISMATCH,
    ClassificationOutcome.REJECTED_AMBIGUOUS: ErrorKind.AMBIGUOUS_SPEAKER_UTTERANCE,
}


def _normalize(value: str | None) -> str:
    return (value or "").replace("_", "").replace(" ", "").lower()


class ErrorBridge:
    """Maps engine cancellations, classifier rejections and synthesis failures to reports."""

    def __init__(self, handlers: ConversationHandlers, logger: logging.Logger | None = None) -> None:
        self._handlers = handlers
        self._logger = logger or logging.getLogger("talkbridge.errors")

    def from_cancellation(self, event: CanceledEvent) -> ErrorReport:
        code = _normalize(event.error_code)
        reason = _normalize(event.reason)
        signature = f"{event.reason} {event.error_code or ''} {event.details}"

        if code in _QUOTA_CODES or _QUOTA_RE.search(signature):
            return self._build(ErrorKind.QUOTA_EXCEEDED, fatal=True, details=event.details)
        if reason in _NO_SPEECH_REASONS or _NO_SPEECH_RE.search(signature):
            return self._build(ErrorKind.NO_SPEECH_DETECTED, details=event.details)
        return self._build(ErrorKind.ENGINE_CANCELED, details=event.details or event.reason)

    def from_classification(self, result: Classification) -> ErrorReport | None:
        kind = _REJECTION_KINDS.get(result.outcome)
        if kind is None:
            return None
        return self._build(kind, details=result.reason)

    def synthesis_failure(self, details: str) -> ErrorReport:
        return self._build(ErrorKind.SYNTHESIS_FAILURE, details=details)

    def engine_failure(self, details: str) -> ErrorReport:
        return self._build(ErrorKind.ENGINE_CANCELED, fatal=True, details=details)

    def report(self, report: ErrorReport) -> None:
        log = self._logger.error if report.fatal else self._logger.warning
        log(
            "conversation_error",
            extra={"kind": report.kind.value, "fatal": report.fatal, "details": report.details},
        )
        self._handlers.error(report.kind, report.message)

    @staticmethod
    def _build(kind: ErrorKind, *, fatal: bool = False, details: str = "") -> ErrorReport:
        return ErrorReport(kind=kind, message=USER_MESSAGES[kind], fatal=fatal, details=details)
