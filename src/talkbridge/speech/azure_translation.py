"""Speech translation engine powered by the Azure Speech SDK."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from talkbridge.models import RecognitionConfig, Utterance

from .interfaces import CanceledEvent, EngineEvent, EngineListener, FinalEvent, InterimEvent

# Continuous language identification accepts at most this many candidates.
MAX_AUTO_DETECT_CANDIDATES = 10


def _require_sdk() -> Any:
    try:
        import azure.cognitiveservices.speech as speechsdk
    except ImportError as exc:  # pragma: no cover - import guard
        raise RuntimeError(
            "Azure speech backend unavailable. Install extras with: pip install 'talkbridge[azure]'"
        ) from exc
    return speechsdk


def _require_credentials(key: str, region: str) -> None:
    if not key or not region:
        raise RuntimeError(
            "Azure speech credentials missing. Set TALKBRIDGE_AZURE_SPEECH_KEY and TALKBRIDGE_AZURE_SPEECH_REGION."
        )


@dataclass(slots=True)
class AzureStream:
    recognizer: Any
    listener: EngineListener
    acknowledged: bool = False
    closed: bool = False
    backlog: list[EngineEvent] = field(default_factory=list)


class AzureTranslationEngine:
    """One ``TranslationRecognizer`` per stream, fed by the default microphone.

    SDK callbacks arrive on SDK threads and are re-posted onto the event loop that
    opened the stream. Events produced before the start acknowledgment are held
    back and delivered right after :meth:`start` returns.
    """

    def __init__(self, key: str, region: str, *, logger: logging.Logger | None = None) -> None:
        self._sdk = _require_sdk()
        _require_credentials(key, region)
        self._key = key
        self._region = region
        self._config: RecognitionConfig | None = None
        self._logger = logger or logging.getLogger("talkbridge.speech.azure")

    def configure(self, config: RecognitionConfig) -> None:
        self._config = config

    async def start(self, audio_input: Any, listener: EngineListener) -> AzureStream:
        if self._config is None:
            raise RuntimeError("configure() must be called before start()")

        loop = asyncio.get_running_loop()
        recognizer = self._build_recognizer(self._config, audio_input)
        stream = AzureStream(recognizer=recognizer, listener=listener)

        def post(event: EngineEvent) -> None:
            loop.call_soon_threadsafe(self._dispatch, stream, event)

        recognizer.recognizing.connect(lambda evt: post(InterimEvent(text=evt.result.text or "")))
        recognizer.recognized.connect(lambda evt: self._on_recognized(evt, post))
        recognizer.canceled.connect(lambda evt: post(self._canceled_event(evt)))

        await asyncio.to_thread(lambda: recognizer.start_continuous_recognition_async().get())
        stream.acknowledged = True
        for event in stream.backlog:
            loop.call_soon(self._dispatch, stream, event)
        stream.backlog.clear()
        return stream

    async def stop(self, handle: AzureStream) -> None:
        handle.closed = True
        recognizer = handle.recognizer
        await asyncio.to_thread(lambda: recognizer.stop_continuous_recognition_async().get())
        recognizer.recognizing.disconnect_all()
        recognizer.recognized.disconnect_all()
        recognizer.canceled.disconnect_all()

    def _build_recognizer(self, config: RecognitionConfig, audio_input: Any) -> Any:
        sdk = self._sdk
        translation_config = sdk.translation.SpeechTranslationConfig(subscription=self._key, region=self._region)
        for target in config.target_languages:
            translation_config.add_target_language(target.primary)

        audio_config = audio_input or sdk.audio.AudioConfig(use_default_microphone=True)
        if not config.auto_detect:
            translation_config.speech_recognition_language = config.recognition_language.canonical().tag
            return sdk.translation.TranslationRecognizer(
                translation_config=translation_config,
                audio_config=audio_config,
            )

        translation_config.set_property(sdk.PropertyId.SpeechServiceConnection_LanguageIdMode, "Continuous")
        candidates = [code.canonical().tag for code in config.source_candidates][:MAX_AUTO_DETECT_CANDIDATES]
        auto_detect = sdk.languageconfig.AutoDetectSourceLanguageConfig(languages=candidates)
        return sdk.translation.TranslationRecognizer(
            translation_config=translation_config,
            audio_config=audio_config,
            auto_detect_source_language_config=auto_detect,
        )

    def _on_recognized(self, evt: Any, post: Any) -> None:
        result = evt.result
        reason = result.reason
        if reason == self._sdk.ResultReason.TranslatedSpeech:
            detected = result.properties.get(
                self._sdk.PropertyId.SpeechServiceConnection_AutoDetectSourceLanguageResult, ""
            )
            post(
                FinalEvent(
                    Utterance(
                        detected_language=detected or (self._config.recognition_language.tag if self._config else ""),
                        text=result.text or "",
                        translations=dict(result.translations),
                    )
                )
            )
        elif reason == self._sdk.ResultReason.NoMatch:
            post(CanceledEvent(reason="NoMatch", details=str(getattr(result, "no_match_details", ""))))

    @staticmethod
    def _canceled_event(evt: Any) -> CanceledEvent:
        details = evt.cancellation_details
        code = getattr(details, "code", None)
        return CanceledEvent(
            reason=getattr(details.reason, "name", str(details.reason)),
            details=details.error_details or "",
            error_code=getattr(code, "name", None),
        )

    def _dispatch(self, stream: AzureStream, event: EngineEvent) -> None:
        if stream.closed:
            return
        if not stream.acknowledged:
            stream.backlog.append(event)
            return
        stream.listener(event)
