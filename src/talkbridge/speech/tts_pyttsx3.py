"""Offline text-to-speech backend powered by ``pyttsx3``."""

from __future__ import annotations

import asyncio
import threading

from talkbridge.languages import LanguageCode


class Pyttsx3SynthesisEngine:
    """Local playback through the platform speech engine."""

    def __init__(self, *, rate: int | None = None, volume: float | None = None) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Voice TTS backend unavailable. Install extras with: pip install 'talkbridge[voice]'"
            ) from exc

        self._engine = pyttsx3.init()
        self._engine_lock = threading.Lock()
        if rate is not None:
            self._engine.setProperty("rate", rate)
        if volume is not None:
            clamped = max(0.0, min(1.0, volume))
            self._engine.setProperty("volume", clamped)

    def voice_id_for(self, language: str) -> str | None:
        """Installed voice whose language shares the primary subtag, if any."""
        wanted = LanguageCode.parse(language)
        for voice in self._engine.getProperty("voices"):
            for tag in _voice_languages(voice):
                try:
                    if wanted.matches(tag):
                        return voice.id
                except ValueError:
                    continue
        return None

    async def speak(self, text: str, language: str) -> None:
        if not text.strip():
            return
        await asyncio.to_thread(self._say, text, language)

    def _say(self, text: str, language: str) -> None:
        with self._engine_lock:
            voice_id = self.voice_id_for(language)
            if voice_id:
                self._engine.setProperty("voice", voice_id)
            self._engine.say(text)
            self._engine.runAndWait()


def _voice_languages(voice: object) -> list[str]:
    languages = []
    for raw in getattr(voice, "languages", None) or []:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="ignore").lstrip("\x05")
        languages.append(str(raw).strip())
    return [tag for tag in languages if tag]
