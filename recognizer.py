"""ASR recognizer adapter using DashScope qwen3-asr-flash.

Frames are collected from the audio queue until the recorder's sentinel,
packed into a base64 WAV and sent in one streaming request.  Only the last
streamed text is reported: the caller wants exactly one final transcript per
utterance, never interim results.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import threading
import wave
from queue import Empty, Queue
from typing import Callable, Optional

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR
from models import AudioFrame, RecognitionEvent, RecognitionKind

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV data URI payload."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


class DashscopeRecognizerAdapter:
    def __init__(
        self,
        api_key: str = "",
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._audio_queue: Optional[Queue[AudioFrame | None]] = None
        self._on_event: Optional[Callable[[RecognitionEvent], None]] = None
        self._language: Optional[str] = None

    @property
    def available(self) -> bool:
        return dashscope is not None

    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: Callable[[RecognitionEvent], None],
        language: Optional[str] = None,
    ) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._audio_queue = audio_queue
        self._on_event = on_event
        self._language = language
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(self) -> None:
        """Consume audio frames until Sentinel, then recognise."""
        if self._audio_queue is None or self._on_event is None:
            return

        pcm = bytearray()
        sample_rate = 16000
        channels = 1

        while not self._stop_event.is_set():
            try:
                frame = self._audio_queue.get(timeout=0.2)
            except Empty:
                continue
            if frame is None:  # Sentinel
                break
            pcm.extend(frame.pcm16_bytes)
            sample_rate = frame.sample_rate
            channels = frame.channels

        if self._stop_event.is_set():
            return

        if not pcm:
            self._on_event(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=""))
            return

        self._recognize(_pcm_to_wav_base64(bytes(pcm), sample_rate, channels))

    def _recognize(self, wav_base64: str) -> None:
        if self._on_event is None:
            return
        if dashscope is None:
            self._on_event(
                RecognitionEvent(
                    kind=RecognitionKind.ERROR.value,
                    code=ASR_PROTOCOL_ERROR,
                    message="dashscope is not installed",
                )
            )
            return

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            self._on_event(
                RecognitionEvent(
                    kind=RecognitionKind.ERROR.value,
                    code=AUTH_FAILED,
                    message="No API key configured",
                )
            )
            return

        asr_options: dict = {"enable_itn": False}
        if self._language:
            asr_options["language"] = self._language

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": f"data:audio/wav;base64,{wav_base64}"}]},
                ],
                result_format="message",
                asr_options=asr_options,
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            self._on_event(self._to_error_event(exc))
            return

        latest_text = ""
        try:
            for chunk in response:
                if self._stop_event.is_set():
                    return
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
        except Exception as exc:
            self._on_event(self._to_error_event(exc))
            return

        logger.debug("Recognised %d characters", len(latest_text))
        self._on_event(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text))

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output") or {}
            choices = output.get("choices") or []
            if not choices:
                return ""
            message = choices[0].get("message") or {}
            content = message.get("content") or []
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        """Map an SDK/network exception to a standard error event."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "auth" in low or "api key" in low:
            code = AUTH_FAILED
        elif "timeout" in low or "network" in low or "connection" in low:
            code = NETWORK_ERROR
        else:
            code = ASR_PROTOCOL_ERROR
        logger.warning("Recognition failed (%s): %s", code, message)
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            code=code,
            message=message,
        )
