"""Microphone recorder adapter with single-utterance endpointing."""

from __future__ import annotations

import logging
import threading
from queue import Full, Queue
from typing import Any, Callable, Optional

from models import AudioFrame

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        speech_level: float = 500.0,
        silence_ms: int = 1200,
        no_speech_timeout_s: float = 8.0,
        max_utterance_s: float = 30.0,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.speech_level = speech_level
        self.silence_ms = silence_ms
        self.no_speech_timeout_s = no_speech_timeout_s
        self.max_utterance_s = max_utterance_s
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None
        self._on_endpoint: Optional[Callable[[], None]] = None
        self._endpoint_fired = False
        self._heard_speech = False
        self._quiet_ms = 0
        self._recorded_ms = 0

    @property
    def available(self) -> bool:
        return sd is not None and np is not None

    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_endpoint: Optional[Callable[[], None]] = None,
    ) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._audio_queue = audio_queue
            self._on_endpoint = on_endpoint
            self._endpoint_fired = False
            self._heard_speech = False
            self._quiet_ms = 0
            self._recorded_ms = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._on_audio,
            )
            self._stream.start()
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                self._emit_sentinel_if_needed()
                return
            self._running = False
            if self._stream is not None:
                self._stream.stop()
                self._stream.close()
                self._stream = None
            self._emit_sentinel_if_needed()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None:
            return
        if np is None:
            return
        samples = np.asarray(indata, dtype=np.int16)
        frame = AudioFrame(
            pcm16_bytes=samples.tobytes(),
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
        try:
            self._audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1
        self._track_endpoint(samples, frames)

    def _track_endpoint(self, samples: Any, frames: int) -> None:
        if self._on_endpoint is None or self._endpoint_fired:
            return
        block_ms = int(frames * 1000 / self.sample_rate)
        self._recorded_ms += block_ms
        level = float(np.sqrt(np.mean(np.square(samples.astype(np.float32))))) if samples.size else 0.0
        if level >= self.speech_level:
            self._heard_speech = True
            self._quiet_ms = 0
        else:
            self._quiet_ms += block_ms

        if self._heard_speech and self._quiet_ms >= self.silence_ms:
            reason = "trailing silence"
        elif not self._heard_speech and self._recorded_ms >= self.no_speech_timeout_s * 1000:
            reason = "no speech"
        elif self._recorded_ms >= self.max_utterance_s * 1000:
            reason = "max utterance length"
        else:
            return
        self._endpoint_fired = True
        logger.debug("Endpoint reached after %d ms: %s", self._recorded_ms, reason)
        self._on_endpoint()

    def _emit_sentinel_if_needed(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass
