"""Protocol interfaces used by TypingEngine."""

from __future__ import annotations

from typing import Any, Callable, Protocol, Sequence

from models import TypingConfig


class KeyInjector(Protocol):
    def type_text(self, text: str) -> None: ...

    def backspace(self) -> None: ...

    def backspace_n(self, count: int, delay_ms: float) -> None: ...

    def close(self) -> None: ...


KeyInjectorFactory = Callable[[], KeyInjector]


class RandomSource(Protocol):
    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def gauss(self, mu: float, sigma: float) -> float: ...

    def randrange(self, start: int, stop: int) -> int: ...

    def choice(self, seq: Sequence[Any]) -> Any: ...


class ConfigStore(Protocol):
    def get_config(self) -> TypingConfig: ...

    def set_config(self, config: TypingConfig) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...
