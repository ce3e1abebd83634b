"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from clipboard import ClipboardCopyService
from config import JsonConfigStore
from errors import ModelLoadError, SessionError
from hotkey import GlobalHotkeyAdapter
from models import SessionState, StatusKind, StatusUpdate
from recognizer import LocalModelSource, WhisperEngine
from recorder import SoundDeviceRecorder
from session_controller import SessionController
from window import TranscriptWindow

try:
    from PySide6.QtCore import QObject, Signal
    from PySide6.QtWidgets import QApplication
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


class UIBridge(QObject):
    status_signal = Signal(object)  # StatusUpdate
    model_signal = Signal(str)  # empty on success, error message otherwise
    toggle_signal = Signal()


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        self.clipboard = ClipboardCopyService()
        self.window = TranscriptWindow()
        self.ui = UIBridge()
        self.ui.status_signal.connect(self._on_status_ui)
        self.ui.model_signal.connect(self._on_model_loaded_ui)
        self.ui.toggle_signal.connect(self._on_record_clicked)

        engine = WhisperEngine(
            LocalModelSource(self.config_store.get_model_path()),
            language=self.config_store.get_language(),
            device=self.config_store.get_device(),
            compute_type=self.config_store.get_compute_type(),
        )
        self.controller = SessionController(
            recorder=SoundDeviceRecorder(),
            engine=engine,
            on_status=self._on_status,
            trim_silence=self.config_store.get_trim_silence(),
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.window.record_button.clicked.connect(self._on_record_clicked)
        self.window.cancel_button.clicked.connect(self._on_cancel_clicked)
        self.app.aboutToQuit.connect(self._shutdown)

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_status(self, update: StatusUpdate) -> None:
        self.ui.status_signal.emit(update)

    def _on_model_loaded(self, error: Optional[ModelLoadError]) -> None:
        self.ui.model_signal.emit("" if error is None else error.message)

    def _on_hotkey_toggle(self) -> None:
        self.ui.toggle_signal.emit()

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_model_loaded_ui(self, error: str) -> None:
        if error:
            self.window.set_init_failed(f"Model Load Failed: {error}")
        else:
            self.window.set_ready()

    def _on_status_ui(self, update: StatusUpdate) -> None:
        if update.kind == StatusKind.RECORDING:
            self.window.set_recording()
        elif update.kind == StatusKind.TRANSCRIBING:
            self.window.set_transcribing()
        elif update.kind == StatusKind.TRANSCRIPT_READY:
            self.window.set_ready()
            self.window.set_text(update.text)
            self.clipboard.copy_text(update.text)
        elif update.kind == StatusKind.ERROR:
            self.window.set_failed(update.message or update.code)
        elif update.kind == StatusKind.IDLE:
            self.window.set_ready()

    def _on_record_clicked(self) -> None:
        state = self.controller.state
        try:
            if state == SessionState.IDLE:
                self.controller.request_start()
            elif state == SessionState.RECORDING:
                self.controller.request_stop_async()
            elif state == SessionState.FAILED:
                self.controller.acknowledge()
                self.controller.request_start()
        except SessionError as exc:
            logger.warning("Command rejected: %s", exc)

    def _on_cancel_clicked(self) -> None:
        self.controller.request_cancel()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.window.show()
        self.controller.load_model_async(self._on_model_loaded)
        try:
            self.hotkey.start(on_toggle=self._on_hotkey_toggle)
        except Exception as exc:
            logger.warning("Hotkey disabled: %s", exc)
        return self.app.exec()

    def _shutdown(self) -> None:
        self.hotkey.stop()
        self.controller.shutdown()


def main() -> int:
    logging.basicConfig(
        level=os.getenv("NSTT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
