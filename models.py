"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_DTYPE = np.float32


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    TRANSCRIBING = "TRANSCRIBING"
    FAILED = "FAILED"


class StatusKind(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    ERROR = "error"
    TRANSCRIPT_READY = "transcript_ready"


@dataclass
class AudioChunk:
    samples: np.ndarray
    sample_rate: int = SAMPLE_RATE
    timestamp_ms: int = 0

    def __len__(self) -> int:
        return int(self.samples.shape[0])


@dataclass(frozen=True)
class FailureReason:
    code: str
    message: str = ""


@dataclass(frozen=True)
class StatusUpdate:
    kind: StatusKind
    generation: int = 0
    text: str = ""
    code: str = ""
    message: str = ""

    @property
    def terminal(self) -> bool:
        return self.kind in (StatusKind.ERROR, StatusKind.TRANSCRIPT_READY)


@dataclass(frozen=True)
class TranscriptResult:
    """Outcome of one transcription: text on success, a failure otherwise."""

    generation: int
    text: str = ""
    failure: FailureReason | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.failure is None
