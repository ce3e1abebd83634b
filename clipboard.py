"""Clipboard service for finished transcripts."""

from __future__ import annotations

import logging

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardCopyService:
    def copy_text(self, text: str) -> bool:
        text = text.strip()
        if not text:
            return False
        if pyperclip is None:
            logger.warning("pyperclip is not installed, transcript not copied")
            return False
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            logger.warning("Clipboard unavailable: %s", exc)
            return False
        return True
