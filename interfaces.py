"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from pathlib import Path
from queue import Queue
from typing import Any, Callable, Optional, Protocol

import numpy as np

from errors import ModelLoadError
from models import AudioChunk


class Recorder(Protocol):
    sample_rate: int

    def start(
        self,
        audio_queue: Queue[AudioChunk | None],
        on_error: Callable[[str], None],
    ) -> None: ...

    def stop(self) -> None: ...


class ModelSource(Protocol):
    def locate(self) -> Path: ...


class InferenceEngine(Protocol):
    sample_rate: int

    @property
    def load_error(self) -> Optional[ModelLoadError]: ...

    @property
    def loaded(self) -> bool: ...

    def load(self) -> Any: ...

    def transcribe(self, samples: np.ndarray) -> str: ...

