"""Microphone recorder adapter."""

from __future__ import annotations

import logging
import threading
import time
from queue import Full, Queue
from typing import Any, Callable, Optional

import numpy as np

from errors import CaptureDeviceError
from models import CHANNELS, SAMPLE_RATE, AudioChunk

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceRecorder:
    """Opens the default input device and queues float32 mono chunks.

    The stream callback only copies and enqueues; it never blocks. A full
    queue or an input overflow is reported through ``on_error`` rather than
    silently losing audio.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        chunk_ms: int = 100,
        device: Optional[int | str] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.device = device
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioChunk | None] | None = None
        self._on_error: Optional[Callable[[str], None]] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(
        self,
        audio_queue: Queue[AudioChunk | None],
        on_error: Callable[[str], None],
    ) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise CaptureDeviceError("sounddevice is not installed")
            self._audio_queue = audio_queue
            self._on_error = on_error
            self.dropped_chunks = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                sd.check_input_settings(
                    device=self.device,
                    channels=self.channels,
                    dtype="float32",
                    samplerate=self.sample_rate,
                )
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="float32",
                    blocksize=blocksize,
                    device=self.device,
                    callback=self._on_audio,
                    finished_callback=self._on_finished,
                )
                self._stream.start()
            except Exception as exc:
                self._stream = None
                raise CaptureDeviceError(f"cannot open input device: {exc}") from exc
            self._running = True
            logger.info(
                "Capture started (%d Hz, %d ch, %d ms blocks)",
                self.sample_rate,
                self.channels,
                self.chunk_ms,
            )

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                self._emit_sentinel_if_needed()
                return
            self._running = False
            if self._stream is not None:
                try:
                    self._stream.stop()
                    self._stream.close()
                except Exception:
                    logger.exception("Error while closing input stream")
                self._stream = None
            self._emit_sentinel_if_needed()
            if self.dropped_chunks:
                logger.warning("Capture stopped with %d dropped chunks", self.dropped_chunks)
            else:
                logger.info("Capture stopped")

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None:
            return
        if status and getattr(status, "input_overflow", False):
            self._report("input overflow, samples were lost")
        data = np.asarray(indata, dtype=np.float32)
        if data.ndim > 1:
            samples = data.mean(axis=1) if data.shape[1] > 1 else data[:, 0].copy()
        else:
            samples = data.copy()
        chunk = AudioChunk(
            samples=samples,
            sample_rate=self.sample_rate,
            timestamp_ms=int(time.time() * 1000),
        )
        try:
            self._audio_queue.put_nowait(chunk)
        except Full:
            self.dropped_chunks += 1
            self._report("audio backlog overflow")

    def _on_finished(self) -> None:
        if self._running:
            self._report("input stream ended unexpectedly")

    def _report(self, reason: str) -> None:
        if self._on_error is not None:
            self._on_error(reason)

    def _emit_sentinel_if_needed(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            logger.warning("Capture queue full, end-of-stream marker not queued")
