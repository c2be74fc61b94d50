"""Speech engine contracts, synthesis coordination and in-process engines."""

from .interfaces import CanceledEvent, EngineEvent, FinalEvent, InterimEvent, SpeechEngine, SynthesisEngine
from .output import SynthesisConfig, SynthesisOutcome, SynthesisStatus, TTSCoordinator
from .scripted import EchoSynthesisEngine, ScriptedSpeechEngine
from .ssml import SsmlBuilder

__all__ = [
    "CanceledEvent",
    "EchoSynthesisEngine",
    "EngineEvent",
    "FinalEvent",
    "InterimEvent",
    "ScriptedSpeechEngine",
    "SpeechEngine",
    "SsmlBuilder",
    "SynthesisConfig",
    "SynthesisEngine",
    "SynthesisOutcome",
    "SynthesisStatus",
    "TTSCoordinator",
]
