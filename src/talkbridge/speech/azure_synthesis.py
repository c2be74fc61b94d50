"""Neural text-to-speech backend powered by the Azure Speech SDK."""

from __future__ import annotations

import asyncio
from typing import Any

from talkbridge.errors import SynthesisError

from .azure_translation import _require_credentials, _require_sdk
from .ssml import SsmlBuilder


class AzureSynthesisEngine:
    """Speaks SSML through the default speaker, one voice per language."""

    def __init__(self, key: str, region: str, *, ssml: SsmlBuilder | None = None) -> None:
        self._sdk = _require_sdk()
        _require_credentials(key, region)
        self._speech_config = self._sdk.SpeechConfig(subscription=key, region=region)
        self._ssml = ssml or SsmlBuilder()

    async def speak(self, text: str, language: str) -> None:
        sdk = self._sdk
        synthesizer = sdk.SpeechSynthesizer(
            speech_config=self._speech_config,
            audio_config=sdk.audio.AudioOutputConfig(use_default_speaker=True),
        )
        document = self._ssml.build(text, language)
        try:
            result: Any = await asyncio.to_thread(lambda: synthesizer.speak_ssml_async(document).get())
        except asyncio.CancelledError:
            synthesizer.stop_speaking_async()
            raise

        if result.reason != sdk.ResultReason.SynthesizingAudioCompleted:
            details = getattr(result, "cancellation_details", None)
            message = getattr(details, "error_details", None) or str(result.reason)
            raise SynthesisError(f"Synthesis failed for {language}: {message}")
