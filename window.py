"""Main window: transcript area plus record and cancel buttons."""

from __future__ import annotations

try:
    from PySide6.QtWidgets import QHBoxLayout, QPushButton, QTextEdit, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    QHBoxLayout = None  # type: ignore
    QPushButton = None  # type: ignore
    QTextEdit = None  # type: ignore
    QVBoxLayout = None  # type: ignore
    QWidget = object  # type: ignore


class TranscriptWindow(QWidget):
    def __init__(self) -> None:
        if QPushButton is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowTitle("nSpeech")
        self.resize(600, 400)

        self._text = QTextEdit()
        self._text.setReadOnly(True)
        self._text.setMinimumHeight(300)

        self.record_button = QPushButton("Initializing...")
        self.record_button.setEnabled(False)
        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.setEnabled(False)

        buttons = QHBoxLayout()
        buttons.addWidget(self.record_button, 1)
        buttons.addWidget(self.cancel_button)

        layout = QVBoxLayout()
        layout.setContentsMargins(10, 10, 10, 10)
        layout.setSpacing(10)
        layout.addWidget(self._text)
        layout.addLayout(buttons)
        self.setLayout(layout)

    def set_text(self, text: str) -> None:
        self._text.setPlainText(text)

    def set_ready(self) -> None:
        self.record_button.setText("Start Recording")
        self.record_button.setEnabled(True)
        self.cancel_button.setEnabled(False)

    def set_init_failed(self, message: str) -> None:
        self.record_button.setText("Init Failed")
        self.record_button.setEnabled(False)
        self.set_text(message)

    def set_recording(self) -> None:
        self.record_button.setText("Stop Recording")
        self.record_button.setEnabled(True)
        self.cancel_button.setEnabled(True)
        self.set_text("Recording...")

    def set_transcribing(self) -> None:
        self.record_button.setText("Processing...")
        self.record_button.setEnabled(False)
        self.cancel_button.setEnabled(True)

    def set_failed(self, message: str) -> None:
        self.record_button.setText("Try Again")
        self.record_button.setEnabled(True)
        self.cancel_button.setEnabled(False)
        self.set_text(f"Error: {message}")
