from __future__ import annotations

import pytest

from talkbridge.errors import USER_MESSAGES, ErrorBridge, ErrorKind
from talkbridge.handlers import ConversationHandlers
from talkbridge.models import Classification, ClassificationOutcome
from talkbridge.speech.interfaces import CanceledEvent


def _bridge(errors: list | None = None) -> ErrorBridge:
    sink = errors if errors is not None else []
    return ErrorBridge(ConversationHandlers(on_error=lambda kind, message: sink.append((kind, message))))


@pytest.mark.parametrize(
    "event",
    [
        CanceledEvent(reason="Error", details="", error_code="TooManyRequests"),
        CanceledEvent(reason="Error", details="Quota exceeded for this resource", error_code="ServiceError"),
        CanceledEvent(reason="Error", details="WebSocket upgrade failed: 403", error_code=None),
        CanceledEvent(reason="Error", details="", error_code="Forbidden"),
    ],
)
def test_quota_signatures_are_fatal(event: CanceledEvent) -> None:
    report = _bridge().from_cancellation(event)

    assert report.kind is ErrorKind.QUOTA_EXCEEDED
    assert report.fatal
    assert report.message == USER_MESSAGES[ErrorKind.QUOTA_EXCEEDED]


@pytest.mark.parametrize(
    "event",
    [
        CanceledEvent(reason="NoMatch"),
        CanceledEvent(reason="EndOfStream", details="InitialSilenceTimeout"),
        CanceledEvent(reason="Error", details="No speech could be recognized"),
    ],
)
def test_no_speech_is_transient(event: CanceledEvent) -> None:
    report = _bridge().from_cancellation(event)

    assert report.kind is ErrorKind.NO_SPEECH_DETECTED
    assert not report.fatal


def test_other_cancellations_are_engine_errors() -> None:
    report = _bridge().from_cancellation(
        CanceledEvent(reason="Error", details="Connection was closed by the remote host", error_code="ConnectionFailure")
    )

    assert report.kind is ErrorKind.ENGINE_CANCELED
    assert not report.fatal
    assert "Connection was closed" in report.details


def test_classification_rejections_map_to_error_kinds() -> None:
    bridge = _bridge()

    assert bridge.from_classification(Classification(ClassificationOutcome.REJECTED_MISMATCH)).kind is (
        ErrorKind.LANGUAGE_MISMATCH
    )
    assert bridge.from_classification(Classification(ClassificationOutcome.REJECTED_AMBIGUOUS)).kind is (
        ErrorKind.AMBIGUOUS_SPEAKER_UTTERANCE
    )
    assert bridge.from_classification(Classification(ClassificationOutcome.REJECTED_EMPTY)).kind is (
        ErrorKind.NO_SPEECH_DETECTED
    )
    assert bridge.from_classification(Classification(ClassificationOutcome.ACCEPTED)) is None


def test_mismatch_message_asks_to_repeat() -> None:
    report = _bridge().from_classification(Classification(ClassificationOutcome.REJECTED_MISMATCH))

    assert "Please repeat in your language." in report.message


def test_report_notifies_error_handler() -> None:
    errors: list = []
    bridge = _bridge(errors)

    bridge.report(bridge.synthesis_failure("RuntimeError: device busy"))
    bridge.report(bridge.engine_failure("ConnectionError: refused"))

    assert [kind for kind, _ in errors] == [ErrorKind.SYNTHESIS_FAILURE, ErrorKind.ENGINE_CANCELED]


def test_failing_error_handler_is_swallowed() -> None:
    def _explode(kind, message) -> None:
        raise ValueError("ui crashed")

    bridge = ErrorBridge(ConversationHandlers(on_error=_explode))

    bridge.report(bridge.synthesis_failure("boom"))
