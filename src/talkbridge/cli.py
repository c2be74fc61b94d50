"""Console-side conversation handlers for the CLI commands."""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from talkbridge.errors import ErrorKind
from talkbridge.handlers import ConversationHandlers
from talkbridge.languages import LanguageCode
from talkbridge.models import Speaker

_SPEAKER_LABELS = {Speaker.SPEAKER1: "Speaker 1", Speaker.SPEAKER2: "Speaker 2"}


@dataclass(slots=True)
class ConsoleReporter:
    """Prints orchestrator notifications and keeps a transcript of them."""

    console: Console = field(default_factory=Console)
    show_interim: bool = True
    transcript: list[dict] = field(default_factory=list)

    def handlers(self) -> ConversationHandlers:
        return ConversationHandlers(
            on_live_transcript=self.live_transcript,
            on_translation=self.translation,
            on_language_locked=self.language_locked,
            on_error=self.error,
        )

    def live_transcript(self, text: str) -> None:
        self.transcript.append({"interim": text})
        if self.show_interim:
            self.console.print(f"[dim]… {escape(text)}[/dim]", highlight=False)

    def translation(self, speaker: Speaker, text: str) -> None:
        self.transcript.append({"to": speaker.value, "translation": text})
        self.console.print(f"[bold cyan]→ {_SPEAKER_LABELS[speaker]}:[/bold cyan] {escape(text)}", highlight=False)

    def language_locked(self, language: LanguageCode) -> None:
        self.transcript.append({"locked_language": language.tag})
        self.console.print(f"[green]Detected {language.display_name} ({language.tag})[/green]")

    def error(self, kind: ErrorKind, message: str) -> None:
        self.transcript.append({"error": kind.value, "message": message})
        self.console.print(f"[yellow]{kind.value}:[/yellow] {escape(message)}", highlight=False)

    def spoken(self, text: str, language: str) -> None:
        self.transcript.append({"spoken": text, "language": language})
        self.console.print(f"[magenta]🔊 ({language})[/magenta] {escape(text)}", highlight=False)
