"""Tests for SoundDeviceRecorder."""

from __future__ import annotations

from queue import Queue
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from models import AudioFrame
from recorder import SoundDeviceRecorder


def _block(level: int, n_samples: int = 1600) -> np.ndarray:
    """A 100 ms int16 block at a constant amplitude."""
    return np.full((n_samples, 1), level, dtype=np.int16)


def _feed(recorder: SoundDeviceRecorder, level: int, blocks: int) -> None:
    for _ in range(blocks):
        recorder._on_audio(_block(level), frames=1600, time_info=None, status=None)


# ---------------------------------------------------------------
# Basic start / stop
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_start_creates_stream_and_runs(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)

    mock_sd.InputStream.assert_called_once()
    assert mock_sd.InputStream.call_args.kwargs["dtype"] == "int16"
    mock_stream.start.assert_called_once()

    recorder.stop()
    mock_stream.stop.assert_called_once()
    mock_stream.close.assert_called_once()
    assert q.get_nowait() is None


@patch("recorder.sd")
def test_start_is_idempotent(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.start(q)

    assert mock_sd.InputStream.call_count == 1
    recorder.stop()


def test_start_raises_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    import recorder as rec_mod

    monkeypatch.setattr(rec_mod, "sd", None)

    recorder = SoundDeviceRecorder()
    assert recorder.available is False
    with pytest.raises(RuntimeError, match="sounddevice is not installed"):
        recorder.start(Queue())


@patch("recorder.sd")
def test_open_error_propagates(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.side_effect = OSError("Error opening InputStream: permission denied")

    recorder = SoundDeviceRecorder()
    with pytest.raises(OSError, match="permission denied"):
        recorder.start(Queue())


# ---------------------------------------------------------------
# Audio callback
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_callback_pushes_audio_frames(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder(sample_rate=16000, channels=1, chunk_ms=100)
    q: Queue[AudioFrame | None] = Queue(maxsize=50)
    recorder.start(q)
    _feed(recorder, 0, 1)

    frame = q.get_nowait()
    assert isinstance(frame, AudioFrame)
    assert frame.sample_rate == 16000
    assert len(frame.pcm16_bytes) == 1600 * 2

    recorder.stop()


@patch("recorder.sd")
def test_queue_full_increments_dropped_chunks(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue(maxsize=1)
    recorder.start(q)

    _feed(recorder, 0, 1)
    assert recorder.dropped_chunks == 0
    _feed(recorder, 0, 1)
    assert recorder.dropped_chunks == 1

    recorder.stop()


@patch("recorder.sd")
def test_callback_after_stop_is_noop(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.stop()
    q.get_nowait()

    _feed(recorder, 3000, 1)
    assert q.empty()


# ---------------------------------------------------------------
# Endpointing
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_trailing_silence_fires_endpoint_once(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    endpoints: list[int] = []

    recorder = SoundDeviceRecorder(silence_ms=300)
    recorder.start(Queue(), on_endpoint=lambda: endpoints.append(1))

    _feed(recorder, 3000, 5)
    _feed(recorder, 10, 2)
    assert endpoints == []
    _feed(recorder, 10, 1)
    assert endpoints == [1]
    _feed(recorder, 10, 5)
    assert endpoints == [1]

    recorder.stop()


@patch("recorder.sd")
def test_no_speech_timeout_fires_endpoint(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    endpoints: list[int] = []

    recorder = SoundDeviceRecorder(no_speech_timeout_s=1.0)
    recorder.start(Queue(), on_endpoint=lambda: endpoints.append(1))

    _feed(recorder, 0, 9)
    assert endpoints == []
    _feed(recorder, 0, 1)
    assert endpoints == [1]

    recorder.stop()


@patch("recorder.sd")
def test_max_utterance_fires_endpoint(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    endpoints: list[int] = []

    recorder = SoundDeviceRecorder(max_utterance_s=0.5)
    recorder.start(Queue(), on_endpoint=lambda: endpoints.append(1))

    _feed(recorder, 3000, 5)
    assert endpoints == [1]

    recorder.stop()
