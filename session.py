"""Recording session state machine.

``RecordingSession.handle`` is the only way to change the session. It checks
the guard for the incoming event, moves to the next state and returns the
effects the caller has to carry out (open/close capture, run a
transcription, notify the UI). The session itself never touches devices,
threads or the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from audio_processing import SILENCE_THRESHOLD, trim_silence
from errors import (
    EMPTY_RECORDING,
    ERROR_MESSAGES,
    TRANSCRIPTION_ERROR,
    AlreadyRecording,
    NotRecording,
)
from models import FailureReason, SessionState, StatusKind, StatusUpdate
from sample_buffer import SampleBuffer

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Start:
    blocked_by: Optional[FailureReason] = None


@dataclass(frozen=True)
class Append:
    samples: np.ndarray


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class TranscriptionDone:
    generation: int
    text: str


@dataclass(frozen=True)
class Failure:
    generation: int
    reason: FailureReason
    from_capture: bool = False


@dataclass(frozen=True)
class Acknowledge:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


Event = Union[Start, Append, Stop, TranscriptionDone, Failure, Acknowledge, Cancel]


# ----------------------------------------------------------------------
# Effects
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class OpenCapture:
    generation: int


@dataclass(frozen=True)
class CloseCapture:
    generation: int


@dataclass(frozen=True)
class Transcribe:
    generation: int
    samples: np.ndarray


@dataclass(frozen=True)
class Notify:
    update: StatusUpdate


Effect = Union[OpenCapture, CloseCapture, Transcribe, Notify]


class RecordingSession:
    def __init__(
        self,
        trim: bool = True,
        silence_threshold: float = SILENCE_THRESHOLD,
        initial_capacity: Optional[int] = None,
    ) -> None:
        self._trim = trim
        self._silence_threshold = silence_threshold
        self._initial_capacity = initial_capacity
        self._state = SessionState.IDLE
        self._generation = 0
        self._buffer: Optional[SampleBuffer] = None
        self._failure: Optional[FailureReason] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def buffer(self) -> Optional[SampleBuffer]:
        return self._buffer

    @property
    def failure(self) -> Optional[FailureReason]:
        return self._failure

    def handle(self, event: Event) -> list[Effect]:
        if isinstance(event, Start):
            return self._on_start(event)
        if isinstance(event, Append):
            return self._on_append(event)
        if isinstance(event, Stop):
            return self._on_stop()
        if isinstance(event, TranscriptionDone):
            return self._on_done(event)
        if isinstance(event, Failure):
            return self._on_failure(event)
        if isinstance(event, Acknowledge):
            return self._on_acknowledge()
        if isinstance(event, Cancel):
            return self._on_cancel()
        raise TypeError(f"unknown session event: {event!r}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _on_start(self, event: Start) -> list[Effect]:
        if self._state != SessionState.IDLE:
            raise AlreadyRecording(f"cannot start while {self._state.value}")
        self._generation += 1
        if event.blocked_by is not None:
            return self._fail(event.blocked_by)
        if self._initial_capacity is None:
            self._buffer = SampleBuffer()
        else:
            self._buffer = SampleBuffer(initial_capacity=self._initial_capacity)
        self._transition(SessionState.RECORDING)
        return [
            OpenCapture(self._generation),
            Notify(StatusUpdate(StatusKind.RECORDING, self._generation)),
        ]

    def _on_append(self, event: Append) -> list[Effect]:
        if self._state != SessionState.RECORDING or self._buffer is None:
            logger.debug("Ignoring %d samples outside RECORDING", len(event.samples))
            return []
        self._buffer.append(event.samples)
        return []

    def _on_stop(self) -> list[Effect]:
        if self._state != SessionState.RECORDING or self._buffer is None:
            raise NotRecording(f"cannot stop while {self._state.value}")
        generation = self._generation
        samples = self._buffer.freeze()
        if self._trim:
            samples = trim_silence(samples, self._silence_threshold)
        if samples.shape[0] == 0:
            effects: list[Effect] = [CloseCapture(generation)]
            effects.extend(
                self._fail(FailureReason(EMPTY_RECORDING, ERROR_MESSAGES[EMPTY_RECORDING]))
            )
            return effects
        self._transition(SessionState.TRANSCRIBING)
        return [
            CloseCapture(generation),
            Notify(StatusUpdate(StatusKind.TRANSCRIBING, generation)),
            Transcribe(generation, samples),
        ]

    def _on_done(self, event: TranscriptionDone) -> list[Effect]:
        if not self._is_current(event.generation, SessionState.TRANSCRIBING):
            logger.info("Discarding stale transcript for session %d", event.generation)
            return []
        text = event.text.strip()
        if not text:
            return self._fail(FailureReason(TRANSCRIPTION_ERROR, "no speech recognised"))
        self._release()
        self._transition(SessionState.IDLE)
        return [
            Notify(StatusUpdate(StatusKind.TRANSCRIPT_READY, event.generation, text=text)),
        ]

    def _on_failure(self, event: Failure) -> list[Effect]:
        if self._is_current(event.generation, SessionState.RECORDING):
            effects: list[Effect] = [CloseCapture(event.generation)]
            effects.extend(self._fail(event.reason))
            return effects
        # A capture error can only end a recording, never a transcription.
        if not event.from_capture and self._is_current(
            event.generation, SessionState.TRANSCRIBING
        ):
            return self._fail(event.reason)
        logger.info(
            "Discarding stale failure %s for session %d", event.reason.code, event.generation
        )
        return []

    def _on_acknowledge(self) -> list[Effect]:
        if self._state != SessionState.FAILED:
            return []
        self._failure = None
        self._transition(SessionState.IDLE)
        return [Notify(StatusUpdate(StatusKind.IDLE, self._generation))]

    def _on_cancel(self) -> list[Effect]:
        if self._state == SessionState.IDLE:
            return []
        effects: list[Effect] = []
        if self._state == SessionState.RECORDING:
            effects.append(CloseCapture(self._generation))
        self._release()
        self._failure = None
        self._transition(SessionState.IDLE)
        effects.append(Notify(StatusUpdate(StatusKind.IDLE, self._generation)))
        return effects

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fail(self, reason: FailureReason) -> list[Effect]:
        self._release()
        self._failure = reason
        self._transition(SessionState.FAILED)
        return [
            Notify(
                StatusUpdate(
                    StatusKind.ERROR,
                    self._generation,
                    code=reason.code,
                    message=reason.message,
                )
            )
        ]

    def _is_current(self, generation: int, state: SessionState) -> bool:
        return generation == self._generation and self._state == state

    def _release(self) -> None:
        self._buffer = None

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug(
            "Session %d: %s -> %s", self._generation, from_state.value, to_state.value
        )
