"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from queue import Queue
from typing import Callable, Optional, Protocol

from locales import LocaleConfig
from models import AudioFrame, CaptureEvent, PipelineResult, PlaybackEvent, RecognitionEvent

CaptureCallback = Callable[[CaptureEvent], None]
PlaybackCallback = Callable[[PlaybackEvent], None]


class Recorder(Protocol):
    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_endpoint: Optional[Callable[[], None]] = None,
    ) -> None: ...

    def stop(self) -> None: ...


class RecognizerAdapter(Protocol):
    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: Callable[[RecognitionEvent], None],
        language: Optional[str] = None,
    ) -> None: ...

    def stop(self) -> None: ...


class SpeechCapture(Protocol):
    @property
    def supported(self) -> bool: ...

    @property
    def active(self) -> bool: ...

    def set_locale(self, locale: LocaleConfig) -> None: ...

    def start(self, on_event: CaptureCallback) -> None: ...

    def stop(self) -> None: ...


class SpeechPlayback(Protocol):
    @property
    def active(self) -> bool: ...

    def speak(self, text: str, locale: LocaleConfig, on_event: PlaybackCallback) -> None: ...

    def cancel(self) -> None: ...


class ResponsePipeline(Protocol):
    def respond(self, text: str, locale: LocaleConfig) -> PipelineResult: ...


class ConfigStore(Protocol):
    def get_gemini_api_key(self) -> str: ...

    def set_gemini_api_key(self, key: str) -> None: ...

    def get_dashscope_api_key(self) -> str: ...

    def set_dashscope_api_key(self, key: str) -> None: ...

    def get_locale(self) -> str: ...

    def set_locale(self, locale: str) -> None: ...
