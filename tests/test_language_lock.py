from __future__ import annotations

from talkbridge.language_lock import LanguageLock
from talkbridge.models import Speaker


def test_lock_happens_once_until_reset() -> None:
    lock = LanguageLock("en-US")

    assert not lock.is_locked
    assert lock.lock("ar-SA") is True
    assert lock.lock("fr-FR") is False
    assert lock.locked_language.tag == "ar-SA"

    lock.reset()

    assert lock.locked_language is None
    assert lock.last_locked_language.tag == "ar-SA"
    assert lock.lock("fr-FR") is True


def test_speaker_roles_follow_open_speaker() -> None:
    lock = LanguageLock("en-US", preset_locked_language="ja-JP")

    assert lock.open_speaker is Speaker.SPEAKER2
    assert lock.locked_speaker is Speaker.SPEAKER1
    assert lock.language_for(Speaker.SPEAKER2).tag == "en-US"
    assert lock.language_for(Speaker.SPEAKER1).tag == "ja-JP"

    flipped = LanguageLock("en-US", open_speaker=Speaker.SPEAKER1)
    assert flipped.locked_speaker is Speaker.SPEAKER2
    assert flipped.language_for(Speaker.SPEAKER2) is None


def test_preset_counts_as_locked_and_survives_reset() -> None:
    lock = LanguageLock("en-US", preset_locked_language="es-ES")

    assert lock.is_locked
    assert lock.lock("ar-SA") is False

    lock.reset()

    assert lock.locked_language.tag == "es-ES"
    assert lock.last_locked_language is None


def test_open_language_and_preset_are_replaceable() -> None:
    lock = LanguageLock("en-US")
    lock.set_open_language("de-DE")
    lock.set_preset("it-IT")

    assert lock.open_language.tag == "de-DE"
    assert lock.locked_language is None

    lock.reset()

    assert lock.locked_language.tag == "it-IT"
