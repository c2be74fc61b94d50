"""SSML documents for neural voice synthesis."""

from __future__ import annotations

from dataclasses import dataclass
from xml.sax.saxutils import escape

from talkbridge.languages import LanguageCode, voice_for

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Locales whose voices mispronounce text wrapped in prosody/emphasis markup.
PLAIN_VOICE_LOCALES = frozenset({"ar-SA", "zh-CN", "ja-JP"})

# Speaking styles each voice supports through ``mstts:express-as``.
VOICE_STYLES: dict[str, frozenset[str]] = {
    "en-US": frozenset({"chat", "cheerful", "conversational", "customerservice", "friendly"}),
    "es-ES": frozenset({"cheerful", "chat"}),
    "fr-FR": frozenset({"cheerful"}),
    "zh-CN": frozenset({"assistant", "chat", "cheerful", "customerservice"}),
}

_EMPHASIS_LEVELS = ("reduced", "moderate", "strong")


@dataclass(slots=True)
class SsmlBuilder:
    rate: float = 1.0
    pitch_hz: int = 0
    style: str = "conversational"
    emphasis: str = "moderate"

    def __post_init__(self) -> None:
        if self.emphasis not in _EMPHASIS_LEVELS:
            raise ValueError(f"emphasis must be one of {', '.join(_EMPHASIS_LEVELS)}")

    def build(self, text: str, language: str | LanguageCode) -> str:
        locale = LanguageCode.parse(language).canonical().tag
        voice = voice_for(locale)
        body = escape(text.strip(), _XML_ENTITIES)

        if locale in PLAIN_VOICE_LOCALES:
            return (
                f'<speak version="1.0" xmlns="http://www.w3.org/2001/10/synthesis" xml:lang="{locale}">'
                f'<voice name="{voice.name}">{body}</voice>'
                "</speak>"
            )

        inner = f'<prosody rate="{self.rate:g}" pitch="{self.pitch_hz:+d}Hz"><emphasis level="{self.emphasis}">{body}</emphasis></prosody>'
        if self.style in VOICE_STYLES.get(locale, ()):
            inner = f'<mstts:express-as style="{self.style}" styledegree="2">{inner}</mstts:express-as>'
        return (
            '<speak version="1.0" xmlns="http://www.w3.org/2001/10/synthesis" '
            f'xmlns:mstts="http://www.w3.org/2001/mstts" xml:lang="{locale}">'
            f'<voice name="{voice.name}">{inner}</voice>'
            "</speak>"
        )
