"""Speech playback adapter based on pyttsx3."""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Callable, Iterable, Optional

from interfaces import PlaybackCallback
from locales import LocaleConfig
from models import PlaybackEvent, PlaybackEventKind, Voice

try:
    import pyttsx3
except Exception:  # pragma: no cover
    pyttsx3 = None  # type: ignore

logger = logging.getLogger(__name__)

PREFERRED_VOICE_HINTS = ("natural", "neural", "female", "google", "swara")
DEFAULT_RATE_MULTIPLIER = 0.9

_TAG_PREFIX = re.compile(r"^[^a-z]+")


def normalize_tag(value: Any) -> str:
    """Normalise a voice language entry: espeak reports e.g. ``b'\\x05en-us'``."""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip().lower().replace("_", "-")
    return _TAG_PREFIX.sub("", text)


def voice_matches(voice: Voice, locale_tag: str) -> bool:
    tag = normalize_tag(locale_tag)
    primary = tag.split("-")[0]
    if not primary:
        return False
    for language in voice.languages:
        if normalize_tag(language).split("-")[0] == primary:
            return True
    voice_id = normalize_tag(voice.id)
    return tag in voice_id


def select_voice(voices: Iterable[Voice], locale_tag: str) -> Optional[Voice]:
    """Pick the best voice for ``locale_tag``; ``None`` means engine default.

    A matching voice whose name hints at a natural or female voice wins over
    any other matching voice.
    """
    matching = [voice for voice in voices if voice_matches(voice, locale_tag)]
    for voice in matching:
        name = voice.name.lower()
        if any(hint in name for hint in PREFERRED_VOICE_HINTS):
            return voice
    return matching[0] if matching else None


def _to_voice(raw: Any) -> Voice:
    languages = getattr(raw, "languages", None) or ()
    if isinstance(languages, (str, bytes)):
        languages = (languages,)
    return Voice(
        id=str(getattr(raw, "id", "")),
        name=str(getattr(raw, "name", "") or ""),
        languages=tuple(normalize_tag(lang) for lang in languages),
    )


class Pyttsx3SpeechPlayback:
    def __init__(
        self,
        rate_multiplier: float = DEFAULT_RATE_MULTIPLIER,
        engine_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        if engine_factory is None and pyttsx3 is not None:
            engine_factory = pyttsx3.init
        self._engine_factory = engine_factory
        self._rate_multiplier = rate_multiplier
        self._lock = threading.Lock()
        self._utterance_id = 0
        self._active = False
        self._engine: Any = None
        self._base_rate: Optional[int] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def supported(self) -> bool:
        return self._engine_factory is not None

    @property
    def active(self) -> bool:
        return self._active

    def speak(self, text: str, locale: LocaleConfig, on_event: PlaybackCallback) -> None:
        self.cancel()
        if self._engine_factory is None:
            on_event(PlaybackEvent(kind=PlaybackEventKind.FAILED.value, message="pyttsx3 is not installed"))
            return
        with self._lock:
            self._utterance_id += 1
            utterance_id = self._utterance_id
            self._active = True
        self._thread = threading.Thread(
            target=self._run,
            args=(utterance_id, text, locale, on_event),
            daemon=True,
        )
        self._thread.start()

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            self._utterance_id += 1
            engine = self._engine
            self._engine = None
        if engine is None:
            return
        try:
            engine.stop()
        except Exception as exc:
            logger.debug("Stopping speech engine failed: %s", exc)

    def wait(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)

    def _run(self, utterance_id: int, text: str, locale: LocaleConfig, on_event: PlaybackCallback) -> None:
        try:
            engine = self._engine_factory()
            with self._lock:
                if utterance_id != self._utterance_id:
                    return
                self._engine = engine
            self._configure(engine, locale)
            with self._lock:
                # cancel() may have run while voices were enumerated.
                if utterance_id != self._utterance_id:
                    return
                engine.say(text)
            engine.runAndWait()
        except Exception as exc:
            logger.warning("Speech playback failed: %s", exc)
            self._finish(utterance_id, PlaybackEvent(kind=PlaybackEventKind.FAILED.value, message=str(exc)), on_event)
            return
        self._finish(utterance_id, PlaybackEvent(kind=PlaybackEventKind.ENDED.value), on_event)

    def _configure(self, engine: Any, locale: LocaleConfig) -> None:
        voices = [_to_voice(raw) for raw in (engine.getProperty("voices") or [])]
        voice = select_voice(voices, locale.synthesis_tag)
        if voice is not None:
            engine.setProperty("voice", voice.id)
            logger.debug("Using voice %s for %s", voice.name or voice.id, locale.synthesis_tag)
        if self._base_rate is None:
            self._base_rate = int(engine.getProperty("rate") or 200)
        engine.setProperty("rate", int(self._base_rate * self._rate_multiplier))

    def _finish(self, utterance_id: int, event: PlaybackEvent, on_event: PlaybackCallback) -> None:
        with self._lock:
            if utterance_id != self._utterance_id or not self._active:
                return
            self._active = False
            self._engine = None
        on_event(event)
