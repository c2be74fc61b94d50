"""Speaker attribution for finalized utterances."""

from __future__ import annotations

import logging

from .language_lock import LanguageLock
from .languages import LanguageCode, lookup_translation
from .models import Classification, ClassificationOutcome, Speaker, Utterance


class UtteranceClassifier:
    """Decides who produced an utterance and who should hear its translation.

    Language comparison is on the primary subtag only. The classifier never mutates
    the lock: a result carrying ``locked_language`` tells the caller to lock it.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("talkbridge.classifier")

    def classify(
        self,
        utterance: Utterance,
        lock: LanguageLock,
        current_speaker: Speaker | None = None,
    ) -> Classification:
        if not utterance.text.strip():
            return self._reject(ClassificationOutcome.REJECTED_EMPTY, "No speech was recognized.")

        try:
            detected = LanguageCode.parse(utterance.detected_language)
        except ValueError:
            return self._reject(
                ClassificationOutcome.REJECTED_AMBIGUOUS,
                f"Engine reported no usable language ({utterance.detected_language!r}).",
            )

        open_language = lock.open_language
        locked_language = lock.locked_language

        if locked_language is None:
            if detected.matches(open_language):
                return self._reject(
                    ClassificationOutcome.REJECTED_AMBIGUOUS,
                    f"Heard {detected.tag} before the other party's language was identified.",
                )
            if current_speaker is lock.open_speaker:
                return self._reject(
                    ClassificationOutcome.REJECTED_MISMATCH,
                    f"{current_speaker.value} holds the mic but spoke {detected.tag}.",
                )
            return self._resolve(
                utterance,
                from_speaker=lock.locked_speaker,
                to_speaker=lock.open_speaker,
                target=open_language,
                newly_locked=detected,
            )

        if detected.matches(locked_language) and not locked_language.matches(open_language):
            from_speaker, to_speaker, target = lock.locked_speaker, lock.open_speaker, open_language
        elif detected.matches(open_language) and not open_language.matches(locked_language):
            from_speaker, to_speaker, target = lock.open_speaker, lock.locked_speaker, locked_language
        elif detected.matches(open_language):
            return self._reject(
                ClassificationOutcome.REJECTED_AMBIGUOUS,
                f"Both parties are registered as {open_language.primary}; cannot tell them apart.",
            )
        else:
            return self._reject(
                ClassificationOutcome.REJECTED_MISMATCH,
                f"Heard {detected.tag}, expected {open_language.tag} or {locked_language.tag}.",
            )

        if current_speaker is not None and current_speaker is not from_speaker:
            return self._reject(
                ClassificationOutcome.REJECTED_MISMATCH,
                f"{current_speaker.value} holds the mic but spoke {detected.tag}.",
            )
        return self._resolve(utterance, from_speaker=from_speaker, to_speaker=to_speaker, target=target)

    def _resolve(
        self,
        utterance: Utterance,
        *,
        from_speaker: Speaker,
        to_speaker: Speaker,
        target: LanguageCode,
        newly_locked: LanguageCode | None = None,
    ) -> Classification:
        translated = lookup_translation(utterance.translations, target)
        if not translated:
            self._logger.warning(
                "translation_missing",
                extra={"target_language": target.tag, "available": sorted(utterance.translations)},
            )
            return Classification(
                outcome=ClassificationOutcome.REJECTED_EMPTY,
                from_speaker=from_speaker,
                to_speaker=to_speaker,
                target_language=target,
                locked_language=newly_locked,
                reason=f"No {target.primary} translation was produced.",
            )

        result = Classification(
            outcome=ClassificationOutcome.ACCEPTED,
            from_speaker=from_speaker,
            to_speaker=to_speaker,
            translated_text=translated,
            target_language=target,
            locked_language=newly_locked,
        )
        self._logger.debug(
            "utterance_classified",
            extra={
                "outcome": result.outcome.value,
                "from_speaker": from_speaker.value,
                "to_speaker": to_speaker.value,
                "locked": newly_locked.tag if newly_locked else None,
            },
        )
        return result

    def _reject(self, outcome: ClassificationOutcome, reason: str) -> Classification:
        self._logger.info("utterance_rejected", extra={"outcome": outcome.value, "reason": reason})
        return Classification(outcome=outcome, reason=reason)
