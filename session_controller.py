"""Session orchestration across the UI, capture and inference threads.

``SessionController`` is the single entry point for UI commands. Every
change to the ``RecordingSession`` happens under one lock, and the effects
returned by the session are carried out here: opening and closing the
microphone, handing frozen audio to the inference worker and publishing
status updates through the ``Notifier``.

Three kinds of threads meet here:

* the caller's thread (UI commands),
* a capture pump per recording, draining the recorder's queue into the
  session buffer,
* one inference worker that runs model loading and transcriptions one at a
  time.

Results coming back from the worker carry the generation of the session
that produced them; anything from an older generation is discarded.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable, Optional, Union

import numpy as np

from audio_processing import SILENCE_THRESHOLD
from errors import (
    CAPTURE_DEVICE_ERROR,
    TRANSCRIPTION_ERROR,
    CaptureDeviceError,
    ConfigError,
    ModelLoadError,
    NotRecording,
    PipelineError,
)
from interfaces import InferenceEngine, Recorder
from models import AudioChunk, FailureReason, SessionState, TranscriptResult
from notifier import Notifier, StatusCallback
from session import (
    Acknowledge,
    Append,
    Cancel,
    CloseCapture,
    Effect,
    Failure,
    Notify,
    OpenCapture,
    RecordingSession,
    Start,
    Stop,
    Transcribe,
    TranscriptionDone,
)

logger = logging.getLogger(__name__)

LoadCallback = Callable[[Optional[ModelLoadError]], None]


class CapturePump:
    """Moves chunks from one recording's queue into the session.

    ``finish()`` lets it drain what is already queued and exit; ``cancel()``
    makes it exit without delivering anything else. Errors reported by the
    recorder's callback thread are handed over here so that the session is
    only touched from this thread and never from the audio callback.
    """

    def __init__(
        self,
        generation: int,
        audio_queue: Queue[AudioChunk | None],
        on_chunk: Callable[[int, AudioChunk], None],
        on_error: Callable[[int, str], None],
    ) -> None:
        self.generation = generation
        self._queue = audio_queue
        self._on_chunk = on_chunk
        self._on_error = on_error
        self._finishing = threading.Event()
        self._cancelled = threading.Event()
        self._error: Optional[str] = None
        self._thread = threading.Thread(
            target=self._run, name=f"capture-pump-{generation}", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def report_error(self, reason: str) -> None:
        if self._error is None:
            self._error = reason

    def finish(self) -> None:
        self._finishing.set()

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: float) -> bool:
        if self._thread is threading.current_thread():
            return False
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        while not self._cancelled.is_set():
            if self._error is not None:
                self._on_error(self.generation, self._error)
                return
            try:
                chunk = self._queue.get(timeout=0.05)
            except Empty:
                if self._finishing.is_set():
                    return
                continue
            if chunk is None:
                return
            self._on_chunk(self.generation, chunk)


@dataclass(frozen=True)
class _LoadJob:
    on_done: LoadCallback


@dataclass(frozen=True)
class _TranscribeJob:
    generation: int
    samples: np.ndarray


_Job = Union[_LoadJob, _TranscribeJob]


class InferenceWorker:
    """Dedicated thread running engine calls strictly one after another."""

    def __init__(
        self,
        engine: InferenceEngine,
        on_result: Callable[[TranscriptResult], None],
        is_current: Callable[[int], bool] = lambda generation: True,
    ) -> None:
        self._engine = engine
        self._on_result = on_result
        self._is_current = is_current
        self._jobs: Queue[_Job | None] = Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.started_at: Optional[float] = None

    @property
    def busy(self) -> bool:
        return self.started_at is not None

    def submit_load(self, on_done: LoadCallback) -> None:
        self._ensure_thread()
        self._jobs.put(_LoadJob(on_done))

    def submit(self, generation: int, samples: np.ndarray) -> None:
        self._ensure_thread()
        self._jobs.put(_TranscribeJob(generation, samples))

    def stop(self, timeout: float = 0.5) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._jobs.put(None)
        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning("Inference worker still busy at shutdown")

    def _ensure_thread(self) -> None:
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run, name="inference", daemon=True
                )
                self._thread.start()

    def _run(self) -> None:
        while True:
            job = self._jobs.get()
            if job is None:
                return
            if isinstance(job, _LoadJob):
                self._run_load(job)
            else:
                self._run_transcription(job)

    def _run_load(self, job: _LoadJob) -> None:
        error: Optional[ModelLoadError] = None
        try:
            self._engine.load()
        except ModelLoadError as exc:
            logger.error("Model load failed: %s", exc)
            error = exc
        except Exception as exc:
            logger.exception("Unexpected error while loading the model")
            error = ModelLoadError(str(exc))
        try:
            job.on_done(error)
        except Exception:
            logger.exception("Model load callback failed")

    def _run_transcription(self, job: _TranscribeJob) -> None:
        if not self._is_current(job.generation):
            logger.debug("Skipping queued transcription of cancelled session %d", job.generation)
            return
        self.started_at = time.monotonic()
        logger.info(
            "Inference started for session %d (%.1fs of audio)",
            job.generation,
            job.samples.shape[0] / self._engine.sample_rate,
        )
        try:
            text = self._engine.transcribe(job.samples)
        except PipelineError as exc:
            logger.error("Inference failed for session %d: %s", job.generation, exc)
            result = TranscriptResult(job.generation, failure=FailureReason(exc.code, exc.message))
        except Exception as exc:
            logger.exception("Unexpected inference failure for session %d", job.generation)
            result = TranscriptResult(
                job.generation, failure=FailureReason(TRANSCRIPTION_ERROR, str(exc))
            )
        else:
            result = TranscriptResult(job.generation, text=text)
        finally:
            elapsed = time.monotonic() - self.started_at
            self.started_at = None
        logger.info("Inference for session %d finished in %.2fs", job.generation, elapsed)
        try:
            self._on_result(result)
        except Exception:
            logger.exception("Failed to apply result of session %d", job.generation)


class SessionController:
    def __init__(
        self,
        recorder: Recorder,
        engine: InferenceEngine,
        on_status: Optional[StatusCallback] = None,
        queue_maxsize: int = 600,
        trim_silence: bool = True,
        silence_threshold: float = SILENCE_THRESHOLD,
        drain_timeout_s: float = 2.0,
    ) -> None:
        if recorder.sample_rate != engine.sample_rate:
            raise ConfigError(
                f"recorder delivers {recorder.sample_rate} Hz but the engine "
                f"expects {engine.sample_rate} Hz"
            )
        self._recorder = recorder
        self._engine = engine
        self._queue_maxsize = queue_maxsize
        self._drain_timeout_s = drain_timeout_s

        self._lock = threading.RLock()
        self._session = RecordingSession(trim=trim_silence, silence_threshold=silence_threshold)
        self._notifier = Notifier(on_status)
        self._worker = InferenceWorker(engine, self._handle_result, self._is_transcribing)
        self._pump: Optional[CapturePump] = None
        self._load_requested = False
        self._load_finished = False
        # Effects of a start that is waiting for the model load to finish.
        self._held: Optional[tuple[int, list[Effect]]] = None

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def generation(self) -> int:
        return self._session.generation

    @property
    def failure(self) -> Optional[FailureReason]:
        return self._session.failure

    @property
    def inference_busy(self) -> bool:
        return self._worker.busy

    @property
    def inference_started_at(self) -> Optional[float]:
        return self._worker.started_at

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def load_model_async(self, on_done: Optional[LoadCallback] = None) -> None:
        """Queue the one-time model load on the inference worker."""
        with self._lock:
            if self._load_requested:
                return
            self._load_requested = True

        def _done(error: Optional[ModelLoadError]) -> None:
            self._model_load_finished(error)
            if on_done is not None:
                on_done(error)

        self._worker.submit_load(_done)

    def request_start(self) -> None:
        """Start a recording.

        While the model is still loading the session is already
        ``RECORDING`` but the microphone stays closed; capture opens once the
        load succeeds, and a failed load ends the session without ever
        opening it.
        """
        self.load_model_async()
        with self._lock:
            error = self._engine.load_error
            blocked = FailureReason(error.code, error.message) if error is not None else None
            self._apply(self._session.handle(Start(blocked_by=blocked)))

    def request_stop(self) -> None:
        """Stop the recording and wait for queued audio to be drained."""
        generation, pump = self._begin_stop()
        self._finish_stop(generation, pump)

    def request_stop_async(self) -> threading.Thread:
        """Like ``request_stop`` but drains the capture queue on another thread.

        Guard violations still raise here, in the caller's thread.
        """
        generation, pump = self._begin_stop()
        thread = threading.Thread(
            target=self._finish_stop,
            args=(generation, pump),
            name=f"stop-{generation}",
            daemon=True,
        )
        thread.start()
        return thread

    def _begin_stop(self) -> tuple[int, Optional[CapturePump]]:
        with self._lock:
            if self._session.state != SessionState.RECORDING:
                raise NotRecording(f"cannot stop while {self._session.state.value}")
            self._safe_stop_recorder()
            return self._session.generation, self._pump

    def _finish_stop(self, generation: int, pump: Optional[CapturePump]) -> None:
        # Let the pump deliver what the callback queued before the stream closed.
        if pump is not None:
            pump.finish()
            if not pump.join(self._drain_timeout_s):
                logger.warning("Capture pump of session %d did not drain in time", generation)

        with self._lock:
            if (
                self._session.generation != generation
                or self._session.state != SessionState.RECORDING
            ):
                logger.info("Stop of session %d superseded by cancel or failure", generation)
                return
            buffer = self._session.buffer
            if buffer is not None:
                logger.info(
                    "Recording %d stopped: %d samples (%.1fs)",
                    generation,
                    len(buffer),
                    buffer.duration_s,
                )
            self._apply(self._session.handle(Stop()))

    def request_cancel(self) -> None:
        with self._lock:
            if self._session.state == SessionState.TRANSCRIBING:
                logger.info(
                    "Cancelling session %d, its transcript will be discarded",
                    self._session.generation,
                )
            self._apply(self._session.handle(Cancel()))

    def acknowledge(self) -> None:
        with self._lock:
            self._apply(self._session.handle(Acknowledge()))

    def flush_notifications(self) -> None:
        self._notifier.join()

    def shutdown(self) -> None:
        with self._lock:
            self._apply(self._session.handle(Cancel()))
            self._safe_stop_recorder()
        self._worker.stop()
        self._notifier.close()

    # ------------------------------------------------------------------
    # Callbacks from worker threads
    # ------------------------------------------------------------------

    def _deliver_chunk(self, generation: int, chunk: AudioChunk) -> None:
        with self._lock:
            if generation != self._session.generation:
                return
            self._apply(self._session.handle(Append(chunk.samples)))

    def _fail_capture(self, generation: int, reason: str) -> None:
        logger.error("Capture failed for session %d: %s", generation, reason)
        with self._lock:
            failure = FailureReason(CAPTURE_DEVICE_ERROR, reason)
            self._apply(self._session.handle(Failure(generation, failure, from_capture=True)))

    def _model_load_finished(self, error: Optional[ModelLoadError]) -> None:
        with self._lock:
            self._load_finished = True
            held, self._held = self._held, None
            if held is None:
                return
            generation, effects = held
            if (
                generation != self._session.generation
                or self._session.state != SessionState.RECORDING
            ):
                logger.debug("Dropping held start of session %d", generation)
                return
            if error is not None:
                failure = FailureReason(error.code, error.message)
                self._apply(self._session.handle(Failure(generation, failure)))
            else:
                self._apply(effects)

    def _is_transcribing(self, generation: int) -> bool:
        with self._lock:
            return (
                generation == self._session.generation
                and self._session.state == SessionState.TRANSCRIBING
            )

    def _model_pending(self) -> bool:
        return (
            self._load_requested
            and not self._load_finished
            and not self._engine.loaded
        )

    def _handle_result(self, result: TranscriptResult) -> None:
        with self._lock:
            if result.ok:
                event = TranscriptionDone(result.generation, result.text)
            else:
                event = Failure(result.generation, result.failure)
            self._apply(self._session.handle(event))

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _apply(self, effects: list[Effect]) -> None:
        for index, effect in enumerate(effects):
            if isinstance(effect, OpenCapture):
                if self._model_pending():
                    logger.info(
                        "Session %d waits for the model before opening capture",
                        effect.generation,
                    )
                    self._held = (effect.generation, effects[index:])
                    return
                try:
                    self._open_capture(effect.generation)
                except CaptureDeviceError as exc:
                    logger.error("Cannot open capture for session %d: %s", effect.generation, exc)
                    failure = FailureReason(exc.code, exc.message)
                    self._apply(
                        self._session.handle(Failure(effect.generation, failure, from_capture=True))
                    )
                    return
            elif isinstance(effect, CloseCapture):
                self._close_capture(effect.generation)
            elif isinstance(effect, Transcribe):
                self._worker.submit(effect.generation, effect.samples)
            elif isinstance(effect, Notify):
                self._notifier.publish(effect.update)

    def _open_capture(self, generation: int) -> None:
        audio_queue: Queue[AudioChunk | None] = Queue(maxsize=self._queue_maxsize)
        pump = CapturePump(generation, audio_queue, self._deliver_chunk, self._fail_capture)
        self._pump = pump
        pump.start()
        self._recorder.start(audio_queue, pump.report_error)

    def _close_capture(self, generation: int) -> None:
        self._safe_stop_recorder()
        pump = self._pump
        if pump is not None and pump.generation == generation:
            pump.cancel()
            self._pump = None

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception:
            logger.exception("Error while stopping the recorder")

