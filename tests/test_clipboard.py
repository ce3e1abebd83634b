from __future__ import annotations

from unittest.mock import MagicMock

import clipboard
from clipboard import ClipboardCopyService


def test_copy_returns_false_when_dependency_missing(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", None)

    assert ClipboardCopyService().copy_text("hello") is False


def test_copy_returns_false_on_empty_text() -> None:
    assert ClipboardCopyService().copy_text("   ") is False


def test_copy_strips_text(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    assert ClipboardCopyService().copy_text("  bonjour  ") is True
    fake.copy.assert_called_once_with("bonjour")
