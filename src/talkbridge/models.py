from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .languages import AUTO_DETECT, LanguageCode


class Speaker(str, Enum):
    SPEAKER1 = "speaker1"
    SPEAKER2 = "speaker2"

    @property
    def other(self) -> Speaker:
        return Speaker.SPEAKER2 if self is Speaker.SPEAKER1 else Speaker.SPEAKER1


class SessionState(str, Enum):
    """Lifecycle of the one conversation session owned by a controller."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


@dataclass(frozen=True, slots=True)
class RecognitionConfig:
    """What one recognition stream listens for and translates into."""

    source_candidates: tuple[LanguageCode, ...]
    target_languages: tuple[LanguageCode, ...]
    recognition_language: LanguageCode = AUTO_DETECT

    @property
    def auto_detect(self) -> bool:
        return self.recognition_language.is_auto


@dataclass(slots=True)
class Utterance:
    """One finalized unit of recognized speech with its translations."""

    detected_language: str
    text: str
    translations: dict[str, str] = field(default_factory=dict)


class ClassificationOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED_MISMATCH = "rejected_mismatch"
    REJECTED_EMPTY = "rejected_empty"
    REJECTED_AMBIGUOUS = "rejected_ambiguous"


@dataclass(slots=True)
class Classification:
    """Verdict on a final utterance: who spoke, who listens, what to deliver."""

    outcome: ClassificationOutcome
    from_speaker: Speaker | None = None
    to_speaker: Speaker | None = None
    translated_text: str | None = None
    target_language: LanguageCode | None = None
    locked_language: LanguageCode | None = None
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.outcome == ClassificationOutcome.ACCEPTED
