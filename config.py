"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path

DEFAULT_MODEL_PATH = "~/.local/share/nstt/models/whisper-base"
MODEL_PATH_ENV = "NSTT_MODEL_PATH"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "nstt" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_model_path(self) -> str:
        override = os.getenv(MODEL_PATH_ENV, "")
        if override:
            return override
        data = self._read_all()
        return str(data.get("model_path", DEFAULT_MODEL_PATH))

    def set_model_path(self, path: str) -> None:
        data = self._read_all()
        data["model_path"] = path
        self._write_all(data)

    def get_language(self) -> str:
        return str(self._read_all().get("language", "fr"))

    def get_device(self) -> str:
        return str(self._read_all().get("device", "auto"))

    def get_compute_type(self) -> str:
        return str(self._read_all().get("compute_type", "default"))

    def get_trim_silence(self) -> bool:
        value = self._read_all().get("trim_silence", True)
        if isinstance(value, str):
            return value.strip().lower() not in ("0", "false", "no", "off")
        return bool(value)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", "Key.f9"))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
