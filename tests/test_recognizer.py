"""Tests for WhisperEngine and LocalModelSource."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from errors import EmptyInput, ModelLoadError, TranscriptionError
from recognizer import LocalModelSource, WhisperEngine


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

@pytest.fixture
def model_dir(tmp_path: Path) -> Path:
    path = tmp_path / "whisper-base"
    path.mkdir()
    (path / "model.bin").write_bytes(b"\x00")
    return path


def _segments(*texts: str):
    return iter([SimpleNamespace(text=t) for t in texts]), SimpleNamespace(language="fr")


def _speech(n_samples: int = 16000) -> np.ndarray:
    return np.full(n_samples, 0.1, dtype=np.float32)


# ---------------------------------------------------------------
# LocalModelSource
# ---------------------------------------------------------------

def test_model_source_missing_path(tmp_path: Path) -> None:
    source = LocalModelSource(tmp_path / "nope")
    with pytest.raises(ModelLoadError, match="model not found"):
        source.locate()


def test_model_source_directory_without_weights(tmp_path: Path) -> None:
    with pytest.raises(ModelLoadError, match="not a CTranslate2 model"):
        LocalModelSource(tmp_path).locate()


def test_model_source_valid_directory(model_dir: Path) -> None:
    assert LocalModelSource(model_dir).locate() == model_dir


# ---------------------------------------------------------------
# Loading
# ---------------------------------------------------------------

@patch("recognizer.WhisperModel")
def test_load_happens_once_and_stays_offline(mock_model_cls: MagicMock, model_dir: Path) -> None:
    engine = WhisperEngine(LocalModelSource(model_dir), device="cpu", compute_type="int8")

    first = engine.load()
    second = engine.load()

    assert first is second
    assert engine.loaded is True
    mock_model_cls.assert_called_once()
    args, kwargs = mock_model_cls.call_args
    assert args == (str(model_dir),)
    assert kwargs["local_files_only"] is True
    assert kwargs["device"] == "cpu"
    assert kwargs["compute_type"] == "int8"


@patch("recognizer.WhisperModel")
def test_load_failure_is_cached(mock_model_cls: MagicMock, model_dir: Path) -> None:
    mock_model_cls.side_effect = RuntimeError("unsupported compute type")
    engine = WhisperEngine(LocalModelSource(model_dir))

    with pytest.raises(ModelLoadError, match="unsupported compute type"):
        engine.load()
    with pytest.raises(ModelLoadError):
        engine.load()

    assert mock_model_cls.call_count == 1
    assert engine.load_error is not None
    assert engine.loaded is False


@patch("recognizer.WhisperModel")
def test_missing_model_file_is_load_error(mock_model_cls: MagicMock, tmp_path: Path) -> None:
    engine = WhisperEngine(LocalModelSource(tmp_path / "missing"))

    with pytest.raises(ModelLoadError):
        engine.load()
    mock_model_cls.assert_not_called()


@patch("recognizer.WhisperModel", None)
def test_faster_whisper_not_installed(model_dir: Path) -> None:
    engine = WhisperEngine(LocalModelSource(model_dir))
    with pytest.raises(ModelLoadError, match="not installed"):
        engine.load()


# ---------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------

@patch("recognizer.WhisperModel")
def test_transcribe_joins_segments(mock_model_cls: MagicMock, model_dir: Path) -> None:
    model = mock_model_cls.return_value
    model.transcribe.return_value = _segments(" Bonjour", " tout le monde. ", "  ")
    engine = WhisperEngine(LocalModelSource(model_dir), language="fr")

    text = engine.transcribe(_speech())

    assert text == "Bonjour tout le monde."
    audio = model.transcribe.call_args.args[0]
    assert audio.dtype == np.float32
    assert model.transcribe.call_args.kwargs["language"] == "fr"


@patch("recognizer.WhisperModel")
def test_transcribe_empty_input(mock_model_cls: MagicMock, model_dir: Path) -> None:
    engine = WhisperEngine(LocalModelSource(model_dir))

    with pytest.raises(EmptyInput):
        engine.transcribe(np.empty(0, dtype=np.float32))
    mock_model_cls.assert_not_called()


@patch("recognizer.WhisperModel")
def test_decode_failure_is_transcription_error(mock_model_cls: MagicMock, model_dir: Path) -> None:
    mock_model_cls.return_value.transcribe.side_effect = RuntimeError("decoder exploded")
    engine = WhisperEngine(LocalModelSource(model_dir))

    with pytest.raises(TranscriptionError, match="decoder exploded"):
        engine.transcribe(_speech())


@patch("recognizer.WhisperModel")
def test_lazy_segment_failure_is_transcription_error(
    mock_model_cls: MagicMock, model_dir: Path
) -> None:
    def failing_segments():
        yield SimpleNamespace(text="partial")
        raise RuntimeError("beam search failed")

    mock_model_cls.return_value.transcribe.return_value = (failing_segments(), None)
    engine = WhisperEngine(LocalModelSource(model_dir))

    with pytest.raises(TranscriptionError, match="beam search failed"):
        engine.transcribe(_speech())


@patch("recognizer.WhisperModel")
def test_transcribe_after_failed_load(mock_model_cls: MagicMock, tmp_path: Path) -> None:
    engine = WhisperEngine(LocalModelSource(tmp_path / "missing"))

    with pytest.raises(ModelLoadError):
        engine.transcribe(_speech())
