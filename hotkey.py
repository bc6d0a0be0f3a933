"""Global hotkey adapter based on pynput."""

from __future__ import annotations

import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore


class GlobalHotkeyAdapter:
    def __init__(self, hotkey: str = "<ctrl>+<alt>+s") -> None:
        self._hotkey = hotkey
        self._listener: Optional[object] = None
        self._lock = threading.Lock()
        self._active = False

    @property
    def hotkey(self) -> str:
        return self._hotkey

    def start(self, on_activate: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")

        def _on_activate() -> None:
            # ignore activations while a toggle is still running
            with self._lock:
                if self._active:
                    return
                self._active = True
            try:
                on_activate()
            finally:
                with self._lock:
                    self._active = False

        self.stop()
        self._listener = keyboard.GlobalHotKeys({self._hotkey: _on_activate})
        self._listener.start()

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
