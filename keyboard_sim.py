"""Synthetic keystroke injection via pynput."""

from __future__ import annotations

import logging
import time
from typing import Any

from errors import KeyInjectionError

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class PynputKeyInjector:
    def __init__(self) -> None:
        if Controller is None or Key is None:
            raise KeyInjectionError("Failed to create keyboard simulator: pynput is not installed")
        try:
            self._keyboard: Any = Controller()
        except Exception as exc:
            raise KeyInjectionError(f"Failed to create keyboard simulator: {exc}") from exc

    def type_text(self, text: str) -> None:
        keyboard = self._require_keyboard()
        try:
            # newlines and tabs are sent as Enter / Tab key presses
            keyboard.type(text)
        except Exception as exc:
            raise KeyInjectionError(f"Failed to type {text!r}: {exc}") from exc

    def backspace(self) -> None:
        keyboard = self._require_keyboard()
        try:
            keyboard.press(Key.backspace)
            keyboard.release(Key.backspace)
        except Exception as exc:
            raise KeyInjectionError(f"Failed to press backspace: {exc}") from exc

    def backspace_n(self, count: int, delay_ms: float) -> None:
        """Press backspace ``count`` times, ``delay_ms`` milliseconds apart."""
        for i in range(count):
            if i and delay_ms > 0:
                time.sleep(delay_ms / 1000.0)
            self.backspace()

    def close(self) -> None:
        keyboard = self._keyboard
        self._keyboard = None
        if keyboard is None:
            return
        try:
            keyboard.release(Key.backspace)
        except Exception:
            logger.debug("releasing backspace on close failed", exc_info=True)

    def _require_keyboard(self) -> Any:
        if self._keyboard is None:
            raise KeyInjectionError("Keyboard simulator is closed")
        return self._keyboard
