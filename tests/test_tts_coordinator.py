from __future__ import annotations

import asyncio

from talkbridge.speech.output import SynthesisConfig, SynthesisStatus, TTSCoordinator
from talkbridge.speech.scripted import EchoSynthesisEngine


class BlockingSynthesizer:
    def __init__(self) -> None:
        self.started = 0
        self.release = asyncio.Event()

    async def speak(self, text: str, language: str) -> None:
        self.started += 1
        await self.release.wait()


def test_speak_returns_success_and_fires_callbacks() -> None:
    events: list[str] = []

    async def _run():
        synth = EchoSynthesisEngine()
        tts = TTSCoordinator(
            synth,
            on_started=lambda: events.append("started"),
            on_finished=lambda outcome: events.append(outcome.status.value),
        )
        outcome = await tts.speak("  Hello \n world ", "en-US")
        return outcome, synth.spoken, tts.is_speaking

    outcome, spoken, speaking = asyncio.run(_run())
    assert outcome.status is SynthesisStatus.SUCCEEDED
    assert spoken == [("Hello world", "en-US")]
    assert not speaking
    assert events == ["started", "succeeded"]


def test_requests_while_speaking_are_dropped() -> None:
    async def _run():
        synth = EchoSynthesisEngine(delay_seconds=0.05)
        tts = TTSCoordinator(synth)
        first = tts.request("first", "en-US")
        second = tts.request("second", "ar-SA")
        speaking = tts.is_speaking
        await tts.wait_idle()
        third = tts.request("third", "ar-SA")
        await tts.wait_idle()
        return first, second, third, speaking, synth.spoken

    first, second, third, speaking, spoken = asyncio.run(_run())
    assert (first, second, third) == (True, False, True)
    assert speaking
    assert spoken == [("first", "en-US"), ("third", "ar-SA")]


def test_disabled_empty_and_overlong_text() -> None:
    async def _run():
        synth = EchoSynthesisEngine()
        disabled = TTSCoordinator(synth, SynthesisConfig(enabled=False))
        short = TTSCoordinator(synth, SynthesisConfig(max_chars=5))
        results = (disabled.request("hello", "en-US"), short.request("   ", "en-US"))
        await short.speak("hello world", "en-US")
        return results, synth.spoken

    results, spoken = asyncio.run(_run())
    assert results == (False, False)
    assert spoken == [("hello", "en-US")]


def test_failure_is_reported_through_outcome() -> None:
    finished = []

    async def _run():
        tts = TTSCoordinator(EchoSynthesisEngine(fail=True), on_finished=finished.append)
        return await tts.speak("Hello", "en-US"), tts.is_speaking

    outcome, speaking = asyncio.run(_run())
    assert outcome.status is SynthesisStatus.FAILED
    assert "SynthesisError" in (outcome.error or "")
    assert not speaking
    assert [item.status for item in finished] == [SynthesisStatus.FAILED]


def test_cancel_stops_in_flight_synthesis() -> None:
    finished = []

    async def _run():
        synth = BlockingSynthesizer()
        tts = TTSCoordinator(synth, on_finished=finished.append)
        tts.request("Hello", "en-US")
        await asyncio.sleep(0)
        started = synth.started
        await tts.cancel()
        return started, tts.is_speaking

    started, speaking = asyncio.run(_run())
    assert started == 1
    assert not speaking
    assert [item.status for item in finished] == [SynthesisStatus.CANCELLED]


def test_cancel_before_task_runs_still_finishes_once() -> None:
    finished = []

    async def _run():
        synth = BlockingSynthesizer()
        tts = TTSCoordinator(synth, on_finished=finished.append)
        tts.request("Hello", "en-US")
        await tts.cancel()
        await tts.cancel()
        return synth.started

    started = asyncio.run(_run())
    assert started == 0
    assert [item.status for item in finished] == [SynthesisStatus.CANCELLED]
