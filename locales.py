"""Locale registry: the two languages Vanya can listen and speak in."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LocaleConfig:
    code: str
    recognition_tag: str
    synthesis_tag: str
    asr_language: str
    language_name: str
    toggle_label: str  # label of the locale a toggle switches TO
    welcome: str


class UnknownLocaleError(KeyError):
    pass


DEFAULT_LOCALE = "en"

LOCALES = {
    "en": LocaleConfig(
        code="en",
        recognition_tag="en-US",
        synthesis_tag="en-US",
        asr_language="en",
        language_name="English",
        toggle_label="Hindi",
        welcome='"Speak your heart, and the ancient wisdom shall guide you."',
    ),
    "hi": LocaleConfig(
        code="hi",
        recognition_tag="hi-IN",
        synthesis_tag="hi-IN",
        asr_language="hi",
        language_name="Hindi",
        toggle_label="English",
        welcome='"अपने दिल की बात कहें, प्राचीन ज्ञान आपका मार्गदर्शन करेगा।"',
    ),
}


def resolve(code: str) -> LocaleConfig:
    try:
        return LOCALES[code]
    except KeyError:
        raise UnknownLocaleError(code) from None


def toggled(code: str) -> str:
    """Return the code of the other locale."""
    resolve(code)
    return "hi" if code == "en" else "en"
