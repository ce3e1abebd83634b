"""Shared error codes, user-facing messages and the pipeline exception types."""

from __future__ import annotations

ALREADY_RECORDING = "ALREADY_RECORDING"
NOT_RECORDING = "NOT_RECORDING"
EMPTY_RECORDING = "EMPTY_RECORDING"
EMPTY_INPUT = "EMPTY_INPUT"
MODEL_LOAD_ERROR = "MODEL_LOAD_ERROR"
TRANSCRIPTION_ERROR = "TRANSCRIPTION_ERROR"
CAPTURE_DEVICE_ERROR = "CAPTURE_DEVICE_ERROR"
BUFFER_FROZEN = "BUFFER_FROZEN"
CONFIG_ERROR = "CONFIG_ERROR"

ERROR_MESSAGES = {
    ALREADY_RECORDING: "A recording is already in progress.",
    NOT_RECORDING: "Nothing is being recorded.",
    EMPTY_RECORDING: "No audio recorded (silence).",
    EMPTY_INPUT: "Cannot transcribe empty audio.",
    MODEL_LOAD_ERROR: "The speech model could not be loaded.",
    TRANSCRIPTION_ERROR: "Transcription failed.",
    CAPTURE_DEVICE_ERROR: "The microphone is unavailable or was disconnected.",
    BUFFER_FROZEN: "Audio buffer no longer accepts samples.",
    CONFIG_ERROR: "Invalid configuration.",
}


class PipelineError(Exception):
    code = TRANSCRIPTION_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES.get(self.code, self.code))

    @property
    def message(self) -> str:
        return str(self)


class SessionError(PipelineError):
    """Raised synchronously when a command violates the state machine guards."""


class AlreadyRecording(SessionError):
    code = ALREADY_RECORDING


class NotRecording(SessionError):
    code = NOT_RECORDING


class EmptyRecording(PipelineError):
    code = EMPTY_RECORDING


class EmptyInput(PipelineError):
    code = EMPTY_INPUT


class ModelLoadError(PipelineError):
    code = MODEL_LOAD_ERROR


class TranscriptionError(PipelineError):
    code = TRANSCRIPTION_ERROR


class CaptureDeviceError(PipelineError):
    code = CAPTURE_DEVICE_ERROR


class BufferFrozenError(PipelineError):
    code = BUFFER_FROZEN


class ConfigError(PipelineError):
    code = CONFIG_ERROR
