"""Single-utterance speech capture built from a recorder and a recognizer.

One ``start()`` opens the microphone, the recorder's endpointing (or an
explicit ``stop()``) closes it, and the recognizer turns the utterance into
one final transcript.  Lifecycle events are delivered through the callback
given to ``start()``:

    started -> [result] -> ended      normal cycle
    started -> failed                 recognizer error
    failed                            microphone could not be opened
"""

from __future__ import annotations

import logging
import threading
from queue import Queue
from typing import Optional

from errors import CAPTURE_FAILED, PERMISSION_DENIED
from interfaces import CaptureCallback, RecognizerAdapter, Recorder
from locales import DEFAULT_LOCALE, LocaleConfig, resolve
from models import AudioFrame, CaptureEvent, CaptureEventKind, RecognitionEvent, RecognitionKind

logger = logging.getLogger(__name__)

_PERMISSION_HINTS = ("permission", "not allowed", "not-allowed", "denied", "unauthorized")


def classify_open_error(exc: BaseException) -> str:
    low = str(exc).lower()
    if any(hint in low for hint in _PERMISSION_HINTS):
        return PERMISSION_DENIED
    return CAPTURE_FAILED


class RecorderSpeechCapture:
    def __init__(
        self,
        recorder: Recorder,
        recognizer: RecognizerAdapter,
        locale: Optional[LocaleConfig] = None,
        queue_maxsize: int = 600,
    ) -> None:
        self._recorder = recorder
        self._recognizer = recognizer
        self._locale = locale or resolve(DEFAULT_LOCALE)
        self._queue_maxsize = queue_maxsize
        self._lock = threading.RLock()
        self._active = False
        self._stopping = False
        self._session_id = 0
        self._on_event: Optional[CaptureCallback] = None

    @property
    def supported(self) -> bool:
        return bool(getattr(self._recorder, "available", True)) and bool(
            getattr(self._recognizer, "available", True)
        )

    @property
    def active(self) -> bool:
        return self._active

    @property
    def locale(self) -> LocaleConfig:
        return self._locale

    def set_locale(self, locale: LocaleConfig) -> None:
        """Takes effect on the next start(); a running capture keeps its language."""
        self._locale = locale

    def start(self, on_event: CaptureCallback) -> None:
        with self._lock:
            if self._active:
                return
            self._session_id += 1
            session_id = self._session_id
            self._active = True
            self._stopping = False
            self._on_event = on_event
            language = self._locale.asr_language
            audio_queue: Queue[AudioFrame | None] = Queue(maxsize=self._queue_maxsize)

            try:
                self._recognizer.start(
                    audio_queue,
                    lambda event: self._handle_recognition_event(session_id, event),
                    language=language,
                )
            except Exception as exc:
                logger.warning("Recognizer could not be started: %s", exc)
                self._active = False
                failed = CaptureEvent(kind=CaptureEventKind.FAILED.value, code=CAPTURE_FAILED, message=str(exc))
            else:
                failed = self._open_microphone(audio_queue)

        if failed is not None:
            on_event(failed)
            return
        logger.debug("Capture %d started (%s)", session_id, language)
        on_event(CaptureEvent(kind=CaptureEventKind.STARTED.value))

    def _open_microphone(self, audio_queue: Queue[AudioFrame | None]) -> Optional[CaptureEvent]:
        try:
            self._recorder.start(audio_queue, on_endpoint=self._stop_in_background)
        except Exception as exc:
            code = classify_open_error(exc)
            logger.warning("Microphone could not be opened (%s): %s", code, exc)
            self._active = False
            self._recognizer.stop()
            return CaptureEvent(kind=CaptureEventKind.FAILED.value, code=code, message=str(exc))
        return None

    def stop(self) -> None:
        with self._lock:
            if not self._active or self._stopping:
                return
            self._stopping = True
        self._recorder.stop()

    def _stop_in_background(self) -> None:
        # Fired from the audio callback, which must not close its own stream.
        threading.Thread(target=self.stop, daemon=True).start()

    def _handle_recognition_event(self, session_id: int, event: RecognitionEvent) -> None:
        with self._lock:
            if session_id != self._session_id or not self._active:
                return
            self._active = False
            on_event = self._on_event

        if on_event is None:
            return
        if event.kind == RecognitionKind.ERROR.value:
            self._recorder.stop()
            on_event(
                CaptureEvent(
                    kind=CaptureEventKind.FAILED.value,
                    code=CAPTURE_FAILED,
                    message=f"{event.code}: {event.message}",
                )
            )
            return

        text = event.text.strip()
        if text:
            on_event(CaptureEvent(kind=CaptureEventKind.RESULT.value, text=text))
        on_event(CaptureEvent(kind=CaptureEventKind.ENDED.value))
