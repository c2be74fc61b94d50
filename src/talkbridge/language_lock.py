"""Two-party language identity: a pre-selected open party and an auto-detected locked party."""

from __future__ import annotations

import logging

from .languages import LanguageCode
from .models import Speaker


class LanguageLock:
    """Tracks the open party's language and locks the other party's language once per session.

    ``locked_language`` moves from unlocked to locked at most once between two
    resets and never changes while locked. A preset (push-to-talk screens where both
    languages are pre-selected) counts as locked from the start and is restored by
    :meth:`reset`.
    """

    def __init__(
        self,
        open_language: str | LanguageCode,
        *,
        open_speaker: Speaker = Speaker.SPEAKER2,
        preset_locked_language: str | LanguageCode | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._open_language = LanguageCode.parse(open_language)
        self._open_speaker = open_speaker
        self._preset = LanguageCode.parse(preset_locked_language) if preset_locked_language else None
        self._locked_language: LanguageCode | None = self._preset
        self._last_locked: LanguageCode | None = None
        self._logger = logger or logging.getLogger("talkbridge.language_lock")

    @property
    def open_language(self) -> LanguageCode:
        return self._open_language

    @property
    def locked_language(self) -> LanguageCode | None:
        return self._locked_language

    @property
    def is_locked(self) -> bool:
        return self._locked_language is not None

    @property
    def preset_locked_language(self) -> LanguageCode | None:
        return self._preset

    @property
    def last_locked_language(self) -> LanguageCode | None:
        """Language locked in the most recent session that has since been reset."""
        return self._last_locked

    @property
    def open_speaker(self) -> Speaker:
        return self._open_speaker

    @property
    def locked_speaker(self) -> Speaker:
        return self._open_speaker.other

    def language_for(self, speaker: Speaker) -> LanguageCode | None:
        if speaker is self._open_speaker:
            return self._open_language
        return self._locked_language

    def set_open_language(self, language: str | LanguageCode) -> None:
        self._open_language = LanguageCode.parse(language)

    def set_preset(self, language: str | LanguageCode | None) -> None:
        self._preset = LanguageCode.parse(language) if language else None

    def lock(self, language: str | LanguageCode) -> bool:
        """Lock the detected language. Returns False when a language is already locked."""
        if self._locked_language is not None:
            return False
        self._locked_language = LanguageCode.parse(language)
        self._logger.info(
            "language_locked",
            extra={"locked_language": self._locked_language.tag, "open_language": self._open_language.tag},
        )
        return True

    def reset(self) -> None:
        if self._locked_language is not None and self._locked_language != self._preset:
            self._last_locked = self._locked_language
        self._locked_language = self._preset
