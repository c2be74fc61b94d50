"""Delivery of accepted translations to the listening party."""

from __future__ import annotations

import logging

from .handlers import ConversationHandlers
from .models import Classification
from .speech.output import TTSCoordinator


class TranslationRouter:
    """Sends an accepted translation to its listener and asks for it to be spoken."""

    def __init__(
        self,
        handlers: ConversationHandlers,
        tts: TTSCoordinator,
        logger: logging.Logger | None = None,
    ) -> None:
        self._handlers = handlers
        self._tts = tts
        self._logger = logger or logging.getLogger("talkbridge.router")

    def dispatch(self, result: Classification) -> bool:
        """Deliver ``result``. Rejected results are ignored and return False."""
        if not result.accepted or result.to_speaker is None or result.target_language is None:
            return False

        text = result.translated_text or ""
        self._handlers.translation(result.to_speaker, text)

        language = result.target_language.canonical().tag
        queued = self._tts.request(text, language)
        self._logger.info(
            "translation_dispatched",
            extra={
                "from_speaker": result.from_speaker.value if result.from_speaker else None,
                "to_speaker": result.to_speaker.value,
                "synthesis_language": language,
                "synthesis_queued": queued,
            },
        )
        return True
