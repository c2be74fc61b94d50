"""Language codes, canonical synthesis locales and neural voices."""

from __future__ import annotations

import re
from dataclasses import dataclass

_TAG_RE = re.compile(
    r"^(?P<primary>[A-Za-z]{2,3})"
    r"(?:[-_](?P<script>[A-Za-z]{4}))?"
    r"(?:[-_](?P<region>[A-Za-z]{2}|\d{3}))?$"
)

# Primary subtag -> locale handed to synthesis when no better match exists.
CANONICAL_LOCALES: dict[str, str] = {
    "ar": "ar-SA",
    "de": "de-DE",
    "en": "en-US",
    "es": "es-ES",
    "fr": "fr-FR",
    "it": "it-IT",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "pt": "pt-PT",
    "ru": "ru-RU",
    "zh": "zh-CN",
}

LANGUAGE_NAMES: dict[str, str] = {
    "ar": "Arabic",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
}


@dataclass(frozen=True, slots=True)
class LanguageCode:
    """A BCP-47 style language tag decomposed into primary subtag, script and region."""

    primary: str
    script: str | None = None
    region: str | None = None

    @classmethod
    def parse(cls, value: str | LanguageCode) -> LanguageCode:
        if isinstance(value, LanguageCode):
            return value
        match = _TAG_RE.match(value.strip())
        if not match:
            raise ValueError(f"Not a language code: {value!r}")
        script = match.group("script")
        region = match.group("region")
        return cls(
            primary=match.group("primary").lower(),
            script=script.title() if script else None,
            region=region.upper() if region else None,
        )

    @property
    def is_auto(self) -> bool:
        return self.primary == "und"

    @property
    def tag(self) -> str:
        return "-".join(part for part in (self.primary, self.script, self.region) if part)

    def matches(self, other: str | LanguageCode | None) -> bool:
        """Compare on the primary subtag only, so ``en`` matches ``en-US``."""
        if other is None:
            return False
        return self.primary == LanguageCode.parse(other).primary

    def canonical(self) -> LanguageCode:
        """Full locale for synthesis: keep a region that has a voice, else use the table."""
        if self.region and self.tag in VOICE_MAP:
            return self
        fallback = CANONICAL_LOCALES.get(self.primary)
        if fallback:
            return LanguageCode.parse(fallback)
        return self

    @property
    def display_name(self) -> str:
        return LANGUAGE_NAMES.get(self.primary, self.tag)

    def __str__(self) -> str:
        return self.tag


# "und" is the BCP-47 tag for an undetermined language.
AUTO_DETECT = LanguageCode(primary="und")


@dataclass(frozen=True, slots=True)
class VoiceConfig:
    name: str
    gender: str
    is_neural: bool = True


VOICE_MAP: dict[str, VoiceConfig] = {
    "en-US": VoiceConfig("en-US-JennyMultilingualV2Neural", "Female"),
    "es-ES": VoiceConfig("es-ES-AlvaroNeural", "Male"),
    "fr-FR": VoiceConfig("fr-FR-HenriNeural", "Male"),
    "de-DE": VoiceConfig("de-DE-ConradNeural", "Male"),
    "it-IT": VoiceConfig("it-IT-DiegoNeural", "Male"),
    "pt-PT": VoiceConfig("pt-PT-DuarteNeural", "Male"),
    "ru-RU": VoiceConfig("ru-RU-DmitryNeural", "Male"),
    "ar-SA": VoiceConfig("ar-SA-HamedNeural", "Male"),
    "zh-CN": VoiceConfig("zh-CN-XiaoxiaoNeural", "Female"),
    "ja-JP": VoiceConfig("ja-JP-NanamiNeural", "Female"),
    "ko-KR": VoiceConfig("ko-KR-InJoonNeural", "Male"),
}


def voice_for(language: str | LanguageCode) -> VoiceConfig:
    """Return the neural voice for a language, falling back to the en-US voice."""
    code = LanguageCode.parse(language).canonical()
    return VOICE_MAP.get(code.tag, VOICE_MAP["en-US"])


def lookup_translation(translations: dict[str, str], language: LanguageCode) -> str | None:
    """Find the translation keyed by any tag sharing ``language``'s primary subtag."""
    exact = translations.get(language.tag) or translations.get(language.primary)
    if exact:
        return exact
    for key, text in translations.items():
        try:
            if language.matches(key) and text:
                return text
        except ValueError:
            continue
    return None


def ordered_unique(codes: list[LanguageCode]) -> tuple[LanguageCode, ...]:
    """Deduplicate by primary subtag, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[LanguageCode] = []
    for code in codes:
        if code.primary in seen:
            continue
        seen.add(code.primary)
        unique.append(code)
    return tuple(unique)
