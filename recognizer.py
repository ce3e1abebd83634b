"""Offline speech recognizer backed by faster-whisper.

The model is provisioned ahead of time as a CTranslate2 model directory
(see ``LocalModelSource``). It is loaded once with ``local_files_only`` so
nothing is downloaded, and the loaded ``WhisperModel`` is reused by every
transcription. Compute device selection is left to CTranslate2
(``device="auto"`` picks CUDA when available).
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Optional

import numpy as np

from errors import EmptyInput, ModelLoadError, TranscriptionError
from interfaces import ModelSource
from models import SAMPLE_DTYPE, SAMPLE_RATE

try:
    from faster_whisper import WhisperModel
except Exception:  # pragma: no cover
    WhisperModel = None  # type: ignore

logger = logging.getLogger(__name__)


class LocalModelSource:
    """Locates an already-downloaded model on the local file system."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    def locate(self) -> Path:
        if not self._path.exists():
            raise ModelLoadError(f"model not found at {self._path}")
        if self._path.is_dir() and not (self._path / "model.bin").exists():
            raise ModelLoadError(f"{self._path} is not a CTranslate2 model directory")
        return self._path


class WhisperEngine:
    sample_rate = SAMPLE_RATE

    def __init__(
        self,
        model_source: ModelSource,
        language: str = "fr",
        device: str = "auto",
        compute_type: str = "default",
        beam_size: int = 5,
        cpu_threads: int = 0,
    ) -> None:
        self._model_source = model_source
        self._language = language
        self._device = device
        self._compute_type = compute_type
        self._beam_size = beam_size
        self._cpu_threads = cpu_threads
        self._load_lock = threading.Lock()
        self._model: Any = None
        self._load_error: Optional[ModelLoadError] = None

    @property
    def loaded(self) -> bool:
        return self._model is not None

    @property
    def load_error(self) -> Optional[ModelLoadError]:
        return self._load_error

    def load(self) -> Any:
        """Load the model once and return the shared handle.

        A failed load is remembered and raised again on every later call;
        the engine never retries on its own.
        """
        with self._load_lock:
            if self._model is not None:
                return self._model
            if self._load_error is not None:
                raise self._load_error
            try:
                self._model = self._load_model()
            except ModelLoadError as exc:
                self._load_error = exc
                raise
            except Exception as exc:
                self._load_error = ModelLoadError(f"failed to load model: {exc}")
                raise self._load_error from exc
            return self._model

    def transcribe(self, samples: np.ndarray) -> str:
        if samples.shape[0] == 0:
            raise EmptyInput()
        model = self.load()
        audio = np.asarray(samples, dtype=SAMPLE_DTYPE)
        started = time.monotonic()
        try:
            segments_iter, _info = model.transcribe(
                audio,
                language=self._language,
                beam_size=self._beam_size,
                vad_filter=False,
            )
            # Consume the generator on this thread; decoding happens lazily.
            segments = list(segments_iter)
        except Exception as exc:
            raise TranscriptionError(f"transcription failed: {exc}") from exc
        text = " ".join(seg.text.strip() for seg in segments if seg.text.strip())
        logger.info(
            "Transcribed %.1fs of audio in %.2fs (%d segments)",
            audio.shape[0] / self.sample_rate,
            time.monotonic() - started,
            len(segments),
        )
        return text.strip()

    def _load_model(self) -> Any:
        if WhisperModel is None:
            raise ModelLoadError("faster-whisper is not installed")
        path = self._model_source.locate()
        logger.info(
            "Loading Whisper model from %s (device=%s, compute=%s)",
            path,
            self._device,
            self._compute_type,
        )
        started = time.monotonic()
        model = WhisperModel(
            str(path),
            device=self._device,
            compute_type=self._compute_type,
            cpu_threads=self._cpu_threads,
            local_files_only=True,
        )
        logger.info("Whisper model loaded in %.1fs", time.monotonic() - started)
        return model
