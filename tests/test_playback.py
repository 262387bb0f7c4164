"""Tests for voice selection and Pyttsx3SpeechPlayback."""

from __future__ import annotations

import threading
from types import SimpleNamespace

from locales import resolve
from models import PlaybackEvent, PlaybackEventKind, Voice
from playback import Pyttsx3SpeechPlayback, normalize_tag, select_voice

EN = resolve("en")
HI = resolve("hi")


# ---------------------------------------------------------------
# select_voice
# ---------------------------------------------------------------

VOICES = [
    Voice(id="david", name="Microsoft David", languages=("en-us",)),
    Voice(id="zira", name="Microsoft Zira Female", languages=("en-us",)),
    Voice(id="hemant", name="Hemant", languages=("hi-in",)),
    Voice(id="com.apple.voice.compact.hi-IN.Lekha", name="Lekha"),
]


def test_prefers_hinted_voice_for_locale() -> None:
    assert select_voice(VOICES, "en-US").id == "zira"


def test_falls_back_to_any_matching_voice() -> None:
    assert select_voice(VOICES, "hi-IN").id == "hemant"


def test_matches_tag_embedded_in_voice_id() -> None:
    voices = [Voice(id="com.apple.voice.compact.hi-IN.Lekha", name="Lekha")]
    assert select_voice(voices, "hi-IN") == voices[0]


def test_no_matching_voice_means_engine_default() -> None:
    assert select_voice([Voice(id="x", name="Female French", languages=("fr-fr",))], "hi-IN") is None
    assert select_voice([], "en-US") is None


def test_hint_only_counts_for_matching_locale() -> None:
    voices = [
        Voice(id="swara", name="Swara Neural", languages=("hi-in",)),
        Voice(id="guy", name="Guy", languages=("en-gb",)),
    ]
    assert select_voice(voices, "en-US").id == "guy"


def test_normalize_tag_handles_espeak_bytes() -> None:
    assert normalize_tag(b"\x05en-us") == "en-us"
    assert normalize_tag("hi_IN") == "hi-in"


# ---------------------------------------------------------------
# Pyttsx3SpeechPlayback with a fake engine
# ---------------------------------------------------------------

class FakeEngine:
    def __init__(self, fail: bool = False, block: bool = False) -> None:
        self.properties = {
            "rate": 200,
            "voices": [
                SimpleNamespace(id="en-voice", name="English", languages=[b"\x05en-us"]),
                SimpleNamespace(id="hi-voice", name="Hindi Female", languages=["hi"]),
            ],
        }
        self.said: list[str] = []
        self.fail = fail
        self.block = block
        self.released = threading.Event()
        self.running = threading.Event()
        self.stopped = 0

    def getProperty(self, name: str):  # noqa: ANN201, N802
        return self.properties.get(name)

    def setProperty(self, name: str, value) -> None:  # noqa: ANN001, N802
        self.properties[name] = value

    def say(self, text: str) -> None:
        self.said.append(text)

    def runAndWait(self) -> None:  # noqa: N802
        if self.fail:
            raise RuntimeError("audio device lost")
        self.running.set()
        if self.block:
            self.released.wait(timeout=2.0)

    def stop(self) -> None:
        self.stopped += 1
        self.released.set()


def test_speak_configures_engine_and_ends() -> None:
    engine = FakeEngine()
    playback = Pyttsx3SpeechPlayback(engine_factory=lambda: engine)
    events: list[PlaybackEvent] = []

    playback.speak("S. M. G", HI, events.append)
    playback.wait(timeout=2.0)

    assert engine.said == ["S. M. G"]
    assert engine.properties["voice"] == "hi-voice"
    assert engine.properties["rate"] == 180
    assert [e.kind for e in events] == [PlaybackEventKind.ENDED.value]
    assert playback.active is False


def test_rate_is_not_compounded_across_utterances() -> None:
    engine = FakeEngine()
    playback = Pyttsx3SpeechPlayback(engine_factory=lambda: engine)

    playback.speak("one", EN, lambda e: None)
    playback.wait(timeout=2.0)
    playback.speak("two", EN, lambda e: None)
    playback.wait(timeout=2.0)

    assert engine.properties["rate"] == 180
    assert engine.properties["voice"] == "en-voice"


def test_engine_error_reports_failure() -> None:
    playback = Pyttsx3SpeechPlayback(engine_factory=lambda: FakeEngine(fail=True))
    events: list[PlaybackEvent] = []

    playback.speak("text", EN, events.append)
    playback.wait(timeout=2.0)

    assert [e.kind for e in events] == [PlaybackEventKind.FAILED.value]
    assert "audio device lost" in events[0].message


def test_cancel_stops_engine_and_suppresses_events() -> None:
    engine = FakeEngine(block=True)
    playback = Pyttsx3SpeechPlayback(engine_factory=lambda: engine)
    events: list[PlaybackEvent] = []

    playback.speak("long text", EN, events.append)
    assert engine.running.wait(timeout=2.0)
    assert playback.active is True

    playback.cancel()
    playback.wait(timeout=2.0)

    assert engine.stopped == 1
    assert events == []
    assert playback.active is False


class SlowVoicesEngine(FakeEngine):
    """Blocks while enumerating voices, like a cold platform driver."""

    def __init__(self) -> None:
        super().__init__()
        self.listing = threading.Event()
        self.release_voices = threading.Event()
        self.ran = False

    def getProperty(self, name: str):  # noqa: ANN201, N802
        if name == "voices":
            self.listing.set()
            self.release_voices.wait(timeout=2.0)
        return super().getProperty(name)

    def runAndWait(self) -> None:  # noqa: N802
        self.ran = True


def test_cancel_during_voice_setup_skips_utterance() -> None:
    engine = SlowVoicesEngine()
    playback = Pyttsx3SpeechPlayback(engine_factory=lambda: engine)
    events: list[PlaybackEvent] = []

    playback.speak("S. M. G", EN, events.append)
    assert engine.listing.wait(timeout=2.0)

    playback.cancel()
    engine.release_voices.set()
    playback.wait(timeout=2.0)

    assert engine.said == []
    assert engine.ran is False
    assert events == []
    assert playback.active is False


def test_cancel_when_idle_is_safe() -> None:
    playback = Pyttsx3SpeechPlayback(engine_factory=FakeEngine)
    playback.cancel()
    playback.cancel()
    assert playback.active is False


def test_missing_engine_fails_immediately() -> None:
    playback = Pyttsx3SpeechPlayback(engine_factory=None)
    playback._engine_factory = None  # simulate pyttsx3 not installed
    events: list[PlaybackEvent] = []

    playback.speak("text", EN, events.append)

    assert playback.supported is False
    assert [e.kind for e in events] == [PlaybackEventKind.FAILED.value]
