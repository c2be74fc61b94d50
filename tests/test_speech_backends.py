from __future__ import annotations

import asyncio
import sys
import types
from types import SimpleNamespace

import pytest

from talkbridge.errors import SynthesisError
from talkbridge.languages import LanguageCode
from talkbridge.models import RecognitionConfig
from talkbridge.speech.interfaces import CanceledEvent, FinalEvent, InterimEvent


class _Signal:
    def __init__(self) -> None:
        self.handlers: list = []

    def connect(self, callback) -> None:
        self.handlers.append(callback)

    def disconnect_all(self) -> None:
        self.handlers.clear()

    def fire(self, event) -> None:
        for callback in list(self.handlers):
            callback(event)


class _Future:
    def __init__(self, action=None) -> None:
        self._action = action

    def get(self):
        return self._action() if self._action else None


class FakeTranslationConfig:
    def __init__(self, subscription: str, region: str) -> None:
        self.subscription = subscription
        self.region = region
        self.targets: list[str] = []
        self.properties: dict = {}
        self.speech_recognition_language = None

    def add_target_language(self, language: str) -> None:
        self.targets.append(language)

    def set_property(self, key, value) -> None:
        self.properties[key] = value


@pytest.fixture
def fake_sdk(monkeypatch):
    recognizers: list = []
    synthesized: list = []

    class FakeRecognizer:
        def __init__(self, translation_config, audio_config, auto_detect_source_language_config=None) -> None:
            self.translation_config = translation_config
            self.auto_detect = auto_detect_source_language_config
            self.recognizing = _Signal()
            self.recognized = _Signal()
            self.canceled = _Signal()
            self.stopped = False
            recognizers.append(self)

        def start_continuous_recognition_async(self):
            def _start() -> None:
                self.recognizing.fire(SimpleNamespace(result=SimpleNamespace(text="early")))

            return _Future(_start)

        def stop_continuous_recognition_async(self):
            return _Future(lambda: setattr(self, "stopped", True))

    class FakeSynthesizer:
        outcome = "done"

        def __init__(self, speech_config, audio_config) -> None:
            self.speech_config = speech_config

        def speak_ssml_async(self, document: str):
            synthesized.append(document)
            details = SimpleNamespace(error_details="voice unavailable")
            return _Future(lambda: SimpleNamespace(reason=FakeSynthesizer.outcome, cancellation_details=details))

        def stop_speaking_async(self):
            return _Future()

    speech = types.ModuleType("azure.cognitiveservices.speech")
    speech.translation = SimpleNamespace(
        SpeechTranslationConfig=FakeTranslationConfig,
        TranslationRecognizer=FakeRecognizer,
    )
    speech.audio = SimpleNamespace(
        AudioConfig=lambda **kwargs: SimpleNamespace(**kwargs),
        AudioOutputConfig=lambda **kwargs: SimpleNamespace(**kwargs),
    )
    speech.languageconfig = SimpleNamespace(
        AutoDetectSourceLanguageConfig=lambda languages: SimpleNamespace(languages=languages)
    )
    speech.PropertyId = SimpleNamespace(
        SpeechServiceConnection_LanguageIdMode="lid_mode",
        SpeechServiceConnection_AutoDetectSourceLanguageResult="lid_result",
    )
    speech.ResultReason = SimpleNamespace(
        TranslatedSpeech="translated",
        NoMatch="nomatch",
        SynthesizingAudioCompleted="done",
    )
    speech.SpeechConfig = lambda subscription, region: SimpleNamespace(subscription=subscription, region=region)
    speech.SpeechSynthesizer = FakeSynthesizer

    cognitiveservices = types.ModuleType("azure.cognitiveservices")
    cognitiveservices.speech = speech
    azure = types.ModuleType("azure")
    azure.cognitiveservices = cognitiveservices

    monkeypatch.setitem(sys.modules, "azure", azure)
    monkeypatch.setitem(sys.modules, "azure.cognitiveservices", cognitiveservices)
    monkeypatch.setitem(sys.modules, "azure.cognitiveservices.speech", speech)
    return SimpleNamespace(recognizers=recognizers, synthesized=synthesized, synthesizer=FakeSynthesizer)


def _config(recognition_language: str = "und") -> RecognitionConfig:
    return RecognitionConfig(
        source_candidates=tuple(LanguageCode.parse(tag) for tag in ("en-US", "ar", "fr-FR")),
        target_languages=(LanguageCode.parse("en-US"), LanguageCode.parse("ar-SA")),
        recognition_language=LanguageCode.parse(recognition_language),
    )


def test_azure_engine_requires_credentials(fake_sdk) -> None:
    from talkbridge.speech.azure_translation import AzureTranslationEngine

    with pytest.raises(RuntimeError, match="TALKBRIDGE_AZURE_SPEECH_KEY"):
        AzureTranslationEngine("", "westeurope")


def test_azure_engine_configures_continuous_language_identification(fake_sdk) -> None:
    from talkbridge.speech.azure_translation import AzureTranslationEngine

    async def _run():
        engine = AzureTranslationEngine("key", "westeurope")
        engine.configure(_config())
        events: list = []
        handle = await engine.start(None, events.append)
        before_yield = list(events)
        await asyncio.sleep(0)
        after_yield = list(events)
        await engine.stop(handle)
        return before_yield, after_yield

    before_yield, after_yield = asyncio.run(_run())
    recognizer = fake_sdk.recognizers[0]
    assert recognizer.translation_config.targets == ["en", "ar"]
    assert recognizer.translation_config.properties == {"lid_mode": "Continuous"}
    assert recognizer.auto_detect.languages == ["en-US", "ar-SA", "fr-FR"]
    assert before_yield == []
    assert after_yield == [InterimEvent(text="early")]
    assert recognizer.stopped
    assert recognizer.recognized.handlers == []


def test_azure_engine_uses_fixed_language_for_known_speaker(fake_sdk) -> None:
    from talkbridge.speech.azure_translation import AzureTranslationEngine

    async def _run():
        engine = AzureTranslationEngine("key", "westeurope")
        engine.configure(_config("ar-SA"))
        handle = await engine.start(None, lambda event: None)
        await engine.stop(handle)

    asyncio.run(_run())
    recognizer = fake_sdk.recognizers[0]
    assert recognizer.auto_detect is None
    assert recognizer.translation_config.speech_recognition_language == "ar-SA"


def test_azure_engine_maps_results_and_cancellations(fake_sdk) -> None:
    from talkbridge.speech.azure_translation import AzureTranslationEngine

    async def _run():
        engine = AzureTranslationEngine("key", "westeurope")
        engine.configure(_config())
        events: list = []
        handle = await engine.start(None, events.append)
        recognizer = fake_sdk.recognizers[0]
        recognizer.recognized.fire(
            SimpleNamespace(
                result=SimpleNamespace(
                    reason="translated",
                    text="مرحبا",
                    translations={"en": "Hello"},
                    properties={"lid_result": "ar-SA"},
                )
            )
        )
        recognizer.canceled.fire(
            SimpleNamespace(
                cancellation_details=SimpleNamespace(
                    reason=SimpleNamespace(name="Error"),
                    error_details="Quota exceeded",
                    code=SimpleNamespace(name="TooManyRequests"),
                )
            )
        )
        await asyncio.sleep(0)
        await engine.stop(handle)
        recognizer.recognizing.fire(SimpleNamespace(result=SimpleNamespace(text="after stop")))
        await asyncio.sleep(0)
        return events

    events = asyncio.run(_run())
    assert events[0] == InterimEvent(text="early")
    final = events[1]
    assert isinstance(final, FinalEvent)
    assert final.utterance.detected_language == "ar-SA"
    assert final.utterance.translations == {"en": "Hello"}
    assert events[2] == CanceledEvent(reason="Error", details="Quota exceeded", error_code="TooManyRequests")
    assert len(events) == 3


def test_azure_synthesis_speaks_ssml_and_raises_on_failure(fake_sdk) -> None:
    from talkbridge.speech.azure_synthesis import AzureSynthesisEngine

    async def _run():
        engine = AzureSynthesisEngine("key", "westeurope")
        await engine.speak("Hello", "en-US")
        fake_sdk.synthesizer.outcome = "canceled"
        with pytest.raises(SynthesisError, match="voice unavailable"):
            await engine.speak("مرحبا", "ar-SA")

    asyncio.run(_run())
    assert len(fake_sdk.synthesized) == 2
    assert "en-US-JennyMultilingualV2Neural" in fake_sdk.synthesized[0]
    assert "ar-SA-HamedNeural" in fake_sdk.synthesized[1]


def test_pyttsx3_backend_picks_voice_by_language(monkeypatch) -> None:
    spoken: list = []

    class _Engine:
        def __init__(self) -> None:
            self.properties: dict = {}

        def getProperty(self, name):
            return [
                SimpleNamespace(id="voice-en", languages=[b"\x05en-us"]),
                SimpleNamespace(id="voice-ar", languages=["ar_SA"]),
            ]

        def setProperty(self, name, value) -> None:
            self.properties[name] = value

        def say(self, text) -> None:
            spoken.append((self.properties.get("voice"), text))

        def runAndWait(self) -> None:
            pass

    fake_pyttsx3 = types.ModuleType("pyttsx3")
    fake_pyttsx3.init = _Engine
    monkeypatch.setitem(sys.modules, "pyttsx3", fake_pyttsx3)

    from talkbridge.speech.tts_pyttsx3 import Pyttsx3SynthesisEngine

    engine = Pyttsx3SynthesisEngine(volume=3.0)
    asyncio.run(engine.speak("مرحبا", "ar-EG"))
    asyncio.run(engine.speak("Hello", "en-GB"))

    assert spoken == [("voice-ar", "مرحبا"), ("voice-en", "Hello")]
    assert engine.voice_id_for("ja-JP") is None


def test_pyttsx3_backend_missing_reports_install_hint(monkeypatch) -> None:
    monkeypatch.setitem(sys.modules, "pyttsx3", None)

    from talkbridge.speech.tts_pyttsx3 import Pyttsx3SynthesisEngine

    with pytest.raises(RuntimeError, match="talkbridge\\[voice\\]"):
        Pyttsx3SynthesisEngine()
