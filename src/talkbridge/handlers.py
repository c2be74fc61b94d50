"""Named callbacks through which the orchestrator notifies its caller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .errors import ErrorKind
from .languages import LanguageCode
from .models import Speaker

_logger = logging.getLogger("talkbridge.handlers")


@dataclass(slots=True)
class ConversationHandlers:
    """Fire-and-forget notifications for the UI layer.

    Handlers never mutate orchestrator state; an exception raised by one is logged
    and swallowed so it cannot break the conversation.
    """

    on_live_transcript: Callable[[str], None] | None = None
    on_translation: Callable[[Speaker, str], None] | None = None
    on_language_locked: Callable[[LanguageCode], None] | None = None
    on_error: Callable[[ErrorKind, str], None] | None = None

    def live_transcript(self, text: str) -> None:
        self._fire("on_live_transcript", text)

    def translation(self, speaker: Speaker, text: str) -> None:
        self._fire("on_translation", speaker, text)

    def language_locked(self, language: LanguageCode) -> None:
        self._fire("on_language_locked", language)

    def error(self, kind: ErrorKind, message: str) -> None:
        self._fire("on_error", kind, message)

    def _fire(self, name: str, *args: Any) -> None:
        callback = getattr(self, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:  # noqa: BLE001 - UI callbacks must not break the session.
            _logger.exception("handler_failed", extra={"handler": name})
