"""CLI startup entrypoint for talkbridge."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich import print

from talkbridge.cli import ConsoleReporter
from talkbridge.config import settings
from talkbridge.controller import SessionController
from talkbridge.errors import OrchestratorError
from talkbridge.languages import LanguageCode, voice_for
from talkbridge.models import Speaker
from talkbridge.speech import EchoSynthesisEngine, ScriptedSpeechEngine, SynthesisConfig
from talkbridge.speech.scripted import DEMO_SCRIPT, event_from_payload, load_script
from talkbridge.telemetry.logging import configure_logging

app = typer.Typer(help="talkbridge conversation translator")


def _build_controller(engine, synthesizer, reporter: ConsoleReporter, **overrides) -> SessionController:
    options = {
        "open_language": settings.open_language,
        "source_candidates": settings.source_candidates,
        "synthesis_config": SynthesisConfig(
            enabled=settings.synthesis_enabled,
            max_chars=settings.synthesis_max_chars,
        ),
        "rearm_delay_seconds": settings.rearm_delay_seconds,
        "retry_delay_seconds": settings.retry_delay_seconds,
        "max_engine_retries": settings.max_engine_retries,
    }
    options.update({key: value for key, value in overrides.items() if value is not None})
    return SessionController(engine, synthesizer, handlers=reporter.handlers(), **options)


def _build_synthesizer(backend: str, reporter: ConsoleReporter):
    backend = backend.lower()
    if backend == "echo":
        return EchoSynthesisEngine(printer=reporter.spoken)
    if backend == "pyttsx3":
        from talkbridge.speech.tts_pyttsx3 import Pyttsx3SynthesisEngine

        return Pyttsx3SynthesisEngine()
    if backend == "azure":
        from talkbridge.speech.azure_synthesis import AzureSynthesisEngine

        return AzureSynthesisEngine(settings.azure_speech_key, settings.azure_speech_region)
    raise RuntimeError(f"Unknown synthesis backend {backend!r}; choose azure, pyttsx3 or echo.")


@app.command("show-config")
def show_config() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "log_level": settings.log_level,
            "azure_speech_region": settings.azure_speech_region,
            "azure_speech_key": "set" if settings.azure_speech_key else "missing",
            "open_language": settings.open_language,
            "source_candidates": settings.source_candidates,
            "synthesis_backend": settings.synthesis_backend,
            "synthesis_enabled": settings.synthesis_enabled,
        }
    )


@app.command()
def languages() -> None:
    """List auto-detect candidates with their synthesis locale and voice."""
    rows = []
    for tag in settings.source_candidates:
        code = LanguageCode.parse(tag)
        rows.append(
            {
                "language": code.display_name,
                "code": code.tag,
                "synthesis_locale": code.canonical().tag,
                "voice": voice_for(code).name,
            }
        )
    print(rows)


@app.command()
def demo(
    script: str = typer.Option(None, help="JSON file: a list of streams, each a list of engine events"),
    open_language: str = typer.Option(None, help="Language of the open party (defaults to settings)"),
    speaker: int = typer.Option(0, help="Name the talking party (1 or 2) to run push-to-talk style"),
    timeout: float = typer.Option(10.0, help="Give up waiting for the script after this many seconds"),
) -> None:
    """Run a scripted conversation through the real orchestrator."""
    configure_logging(settings.log_level)
    if script:
        path = Path(script)
        if not path.exists():
            raise typer.BadParameter(f"Script not found: {path}")
        events = load_script(path)
    else:
        events = [[event_from_payload(item) for item in stream] for stream in DEMO_SCRIPT]
    if speaker not in (0, 1, 2):
        raise typer.BadParameter("--speaker must be 1 or 2")

    reporter = ConsoleReporter()

    async def _run() -> dict:
        engine = ScriptedSpeechEngine(events)
        controller = _build_controller(
            engine,
            EchoSynthesisEngine(printer=reporter.spoken),
            reporter,
            open_language=open_language,
        )
        await controller.start(Speaker.SPEAKER1 if speaker == 1 else Speaker.SPEAKER2 if speaker == 2 else None)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while controller.is_active() and not engine.exhausted.is_set() and loop.time() < deadline:
            await asyncio.sleep(0.01)
        await controller.drain()

        locked = controller.language_lock.locked_language
        await controller.stop()
        return {
            "demo": "finished",
            "streams_opened": len(engine.streams),
            "locked_language": locked.tag if locked else None,
        }

    print(asyncio.run(_run()))


@app.command()
def converse(
    open_language: str = typer.Option(None, help="Language of the open party (defaults to settings)"),
    other_language: str = typer.Option(None, help="Pre-select the other party's language instead of detecting it"),
    backend: str = typer.Option(None, help="Synthesis backend: azure, pyttsx3 or echo"),
) -> None:
    """Live conversation through the Azure speech translation engine."""
    configure_logging(settings.log_level)
    reporter = ConsoleReporter()
    try:
        from talkbridge.speech.azure_translation import AzureTranslationEngine

        engine = AzureTranslationEngine(settings.azure_speech_key, settings.azure_speech_region)
        synthesizer = _build_synthesizer(backend or settings.synthesis_backend, reporter)
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    controller = _build_controller(
        engine,
        synthesizer,
        reporter,
        open_language=open_language,
        preset_locked_language=other_language,
    )
    print(
        {
            "converse": "ready",
            "hint": "Enter toggles the shared mic, 1/2 toggle a party's mic, s swaps languages, q quits.",
        }
    )
    asyncio.run(_converse_loop(controller))
    print({"converse": "stopped"})


async def _converse_loop(controller: SessionController) -> None:
    while True:
        label = "listening" if controller.is_active() else "idle"
        command = (await asyncio.to_thread(input, f"[{label}] > ")).strip().lower()
        try:
            if command == "q":
                await controller.stop()
                return
            if command in ("1", "2"):
                await _toggle_party(controller, Speaker.SPEAKER1 if command == "1" else Speaker.SPEAKER2)
            elif command == "s":
                controller.swap_languages()
                lock = controller.language_lock
                print({"open_language": lock.open_language.tag, "other_language": _tag(lock.preset_locked_language)})
            else:
                await controller.toggle()
        except OrchestratorError as exc:
            print({"error": str(exc)})


async def _toggle_party(controller: SessionController, speaker: Speaker) -> None:
    if controller.is_active() and controller.current_speaker is speaker:
        await controller.stop()
    elif controller.is_active():
        await controller.start(speaker, new_conversation=False)
    else:
        await controller.start(speaker)


def _tag(language: LanguageCode | None) -> str | None:
    return language.tag if language else None


if __name__ == "__main__":
    app()
