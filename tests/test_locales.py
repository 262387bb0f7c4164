from __future__ import annotations

import pytest

from locales import DEFAULT_LOCALE, LOCALES, UnknownLocaleError, resolve, toggled
from models import AssistantTurn, UserTurn
from transcript import Transcript


def test_resolve_known_locales() -> None:
    assert resolve("en").recognition_tag == "en-US"
    assert resolve("hi").synthesis_tag == "hi-IN"
    assert resolve(DEFAULT_LOCALE) is LOCALES["en"]


def test_toggle_label_names_the_other_locale() -> None:
    for code, config in LOCALES.items():
        assert config.toggle_label == resolve(toggled(code)).language_name


def test_toggled_round_trips() -> None:
    assert toggled("en") == "hi"
    assert toggled(toggled("en")) == "en"


def test_unknown_locale() -> None:
    with pytest.raises(UnknownLocaleError):
        resolve("fr")
    with pytest.raises(KeyError):
        toggled("fr")


def test_transcript_is_append_only() -> None:
    transcript = Transcript()
    first = transcript.turns()
    transcript.append(UserTurn(text="hello"))
    transcript.append(AssistantTurn(shloka="S", meaning="M", guidance="G"))

    assert first == ()
    assert transcript.turns() == (UserTurn(text="hello"), AssistantTurn("S", "M", "G"))
    assert len(transcript) == 2
    assert transcript.last() == AssistantTurn("S", "M", "G")
    assert list(transcript) == list(transcript.turns())
    assert not hasattr(transcript, "remove")


def test_transcript_rejects_non_turns() -> None:
    with pytest.raises(TypeError):
        Transcript().append("hello")  # type: ignore[arg-type]


def test_spoken_text_joins_fields() -> None:
    assert AssistantTurn("S", "M", "G").spoken_text() == "S. M. G"
