"""State-machine based interaction orchestration.

Exactly one mode is active at a time and at most one of {capture session,
backend request, playback} runs.  Every capture, pipeline and playback
invocation is tagged with a generation number; adapter events that carry an
older generation than the current one are dropped, so a cancelled playback
or a superseded capture can never drive a second transition.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from errors import (
    CAPTURE_FAILED,
    PERMISSION_DENIED,
    PLAYBACK_FAILED,
    TRANSPORT_ERROR,
    UNSUPPORTED_ENVIRONMENT,
    message_for,
)
from interfaces import ResponsePipeline, SpeechCapture, SpeechPlayback
from locales import DEFAULT_LOCALE, LocaleConfig, resolve, toggled
from models import (
    CaptureEvent,
    CaptureEventKind,
    ControllerSnapshot,
    Mode,
    PipelineResult,
    PlaybackEvent,
    PlaybackEventKind,
    TransientError,
    Turn,
    UserTurn,
)
from transcript import Transcript

StateCallback = Callable[[Mode, Mode], None]
TurnCallback = Callable[[Turn], None]
ErrorCallback = Callable[[str, str], None]
LocaleCallback = Callable[[str], None]
NoticeCallback = Callable[[str], None]
Runner = Callable[[Callable[[], None]], None]

DEFAULT_ERROR_TTL_S = 4.0

logger = logging.getLogger(__name__)


def run_in_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class SessionController:
    def __init__(
        self,
        capture: SpeechCapture,
        playback: SpeechPlayback,
        pipeline: ResponsePipeline,
        locale: str = DEFAULT_LOCALE,
        transcript: Optional[Transcript] = None,
        runner: Optional[Runner] = None,
        error_ttl_s: float = DEFAULT_ERROR_TTL_S,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateCallback] = None,
        on_turn: Optional[TurnCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_locale_change: Optional[LocaleCallback] = None,
        on_unsupported: Optional[NoticeCallback] = None,
    ) -> None:
        self._capture = capture
        self._playback = playback
        self._pipeline = pipeline
        self._transcript = transcript if transcript is not None else Transcript()
        self._runner = runner or run_in_thread
        self._error_ttl_s = error_ttl_s
        self._clock = clock
        self._on_state_change = on_state_change
        self._on_turn = on_turn
        self._on_error = on_error
        self._on_locale_change = on_locale_change
        self._on_unsupported = on_unsupported

        self._lock = threading.RLock()
        self._state = Mode.IDLE
        self._generation = 0
        self._locale = resolve(locale).code
        self._pipeline_in_flight = False
        self._error: Optional[TransientError] = None

        self._capture_supported = bool(capture.supported)
        if self._capture_supported:
            self._capture.set_locale(resolve(self._locale))
        else:
            logger.warning("Speech capture is not available; the microphone is disabled")

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> Mode:
        return self._state

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def locale_config(self) -> LocaleConfig:
        return resolve(self._locale)

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def capture_supported(self) -> bool:
        return self._capture_supported

    @property
    def pipeline_in_flight(self) -> bool:
        return self._pipeline_in_flight

    @property
    def unsupported_notice(self) -> Optional[str]:
        if self._capture_supported:
            return None
        return message_for(UNSUPPORTED_ENVIRONMENT, self._locale)

    @property
    def error(self) -> Optional[str]:
        """The transient error message, or None once it has expired."""
        with self._lock:
            if self._error is None:
                return None
            if self._clock() >= self._error.expires_at:
                self._error = None
                return None
            return self._error.message

    def snapshot(self) -> ControllerSnapshot:
        with self._lock:
            return ControllerSnapshot(
                mode=self._state,
                locale=self._locale,
                transcript=self._transcript.turns(),
                error=self.error,
                capture_supported=self._capture_supported,
            )

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def toggle_mic(self) -> None:
        with self._lock:
            if not self._capture_supported:
                self._notify_unsupported()
                return
            if self._state == Mode.SPEAKING:
                # Stops speech only; listening needs another press.
                self._cancel_playback()
                self._transition(Mode.IDLE)
                return
            if self._state == Mode.LISTENING:
                self._safe_stop_capture()
                return
            if self._state == Mode.PROCESSING:
                return

            generation = self._next_generation()
            self._transition(Mode.LISTENING)
            try:
                self._capture.start(lambda event: self._handle_capture_event(generation, event))
            except Exception as exc:
                logger.warning("Capture start failed: %s", exc)
                self._fail_capture(CAPTURE_FAILED)

    def toggle_locale(self) -> str:
        with self._lock:
            if self._state == Mode.SPEAKING:
                self._cancel_playback()
                self._transition(Mode.IDLE)
            self._locale = toggled(self._locale)
            if self._capture_supported:
                self._capture.set_locale(resolve(self._locale))
            logger.debug("Locale switched to %s", self._locale)
            if self._on_locale_change:
                self._on_locale_change(self._locale)
            return self._locale

    def close(self) -> None:
        with self._lock:
            self._next_generation()
            self._pipeline_in_flight = False
            self._safe_stop_capture()
            self._safe_cancel_playback()
            self._transition(Mode.IDLE)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def _handle_capture_event(self, generation: int, event: CaptureEvent) -> None:
        with self._lock:
            if generation != self._generation or self._state != Mode.LISTENING:
                logger.debug("Dropping stale capture event %s", event.kind)
                return
            kind = event.kind
            if kind == CaptureEventKind.STARTED.value:
                return
            if kind == CaptureEventKind.RESULT.value:
                text = event.text.strip()
                if text:
                    self._submit(text)
                return
            if kind == CaptureEventKind.ENDED.value:
                self._transition(Mode.IDLE)
                return
            if kind == CaptureEventKind.FAILED.value:
                logger.warning("Capture failed (%s): %s", event.code, event.message)
                code = PERMISSION_DENIED if event.code == PERMISSION_DENIED else CAPTURE_FAILED
                self._fail_capture(code)

    def _fail_capture(self, code: str) -> None:
        self._next_generation()
        self._safe_stop_capture()
        self._show_error(code, self._locale)
        self._transition(Mode.IDLE)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _submit(self, text: str) -> None:
        self._append(UserTurn(text=text))
        locale = resolve(self._locale)
        generation = self._next_generation()
        self._pipeline_in_flight = True
        self._transition(Mode.PROCESSING)
        try:
            self._runner(lambda: self._run_pipeline(generation, text, locale))
        except Exception as exc:
            logger.warning("Could not dispatch backend request: %s", exc)
            self._handle_pipeline_result(
                generation,
                locale,
                PipelineResult(error_code=TRANSPORT_ERROR, message=message_for(TRANSPORT_ERROR, locale.code)),
            )

    def _run_pipeline(self, generation: int, text: str, locale: LocaleConfig) -> None:
        try:
            result = self._pipeline.respond(text, locale)
        except Exception as exc:
            logger.exception("Response pipeline raised: %s", exc)
            result = PipelineResult(error_code=TRANSPORT_ERROR, message=message_for(TRANSPORT_ERROR, locale.code))
        self._handle_pipeline_result(generation, locale, result)

    def _handle_pipeline_result(self, generation: int, locale: LocaleConfig, result: PipelineResult) -> None:
        with self._lock:
            if generation != self._generation or self._state != Mode.PROCESSING:
                logger.debug("Dropping stale backend result")
                return
            self._pipeline_in_flight = False
            if result.reply is None:
                self._show_error(result.error_code or TRANSPORT_ERROR, locale.code, result.message)
                self._transition(Mode.IDLE)
                return

            self._append(result.reply)
            generation = self._next_generation()
            self._transition(Mode.SPEAKING)
            try:
                self._playback.speak(
                    result.reply.spoken_text(),
                    locale,
                    lambda event: self._handle_playback_event(generation, locale, event),
                )
            except Exception as exc:
                self._handle_playback_event(
                    generation,
                    locale,
                    PlaybackEvent(kind=PlaybackEventKind.FAILED.value, message=str(exc)),
                )

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _handle_playback_event(self, generation: int, locale: LocaleConfig, event: PlaybackEvent) -> None:
        with self._lock:
            if generation != self._generation or self._state != Mode.SPEAKING:
                logger.debug("Dropping stale playback event %s", event.kind)
                return
            if event.kind == PlaybackEventKind.FAILED.value:
                logger.warning("Playback failed: %s", event.message)
                self._show_error(PLAYBACK_FAILED, locale.code)
            self._transition(Mode.IDLE)

    def _cancel_playback(self) -> None:
        self._next_generation()
        self._safe_cancel_playback()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _append(self, turn: Turn) -> None:
        self._transcript.append(turn)
        if self._on_turn:
            self._on_turn(turn)

    def _show_error(self, code: str, locale: str, message: str = "") -> None:
        message = message or message_for(code, locale)
        self._error = TransientError(code=code, message=message, expires_at=self._clock() + self._error_ttl_s)
        if self._on_error:
            self._on_error(code, message)

    def _notify_unsupported(self) -> None:
        notice = message_for(UNSUPPORTED_ENVIRONMENT, self._locale)
        if self._on_unsupported:
            self._on_unsupported(notice)

    def _safe_stop_capture(self) -> None:
        try:
            self._capture.stop()
        except Exception as exc:
            logger.debug("Capture stop failed: %s", exc)

    def _safe_cancel_playback(self) -> None:
        try:
            self._playback.cancel()
        except Exception as exc:
            logger.debug("Playback cancel failed: %s", exc)

    def _transition(self, to_state: Mode) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("%s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
