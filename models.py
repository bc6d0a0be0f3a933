"""Core data models for the typer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional


class TypingStatus(str, Enum):
    IDLE = "idle"
    READY = "ready"
    COUNTDOWN = "countdown"
    TYPING = "typing"
    PAUSED = "paused"
    DONE = "done"
    ERROR = "error"


ACTIVE_STATUSES = frozenset(
    {TypingStatus.COUNTDOWN, TypingStatus.TYPING, TypingStatus.PAUSED}
)

_PROBABILITY_FIELDS = (
    "wpm_variance",
    "mistake_rate",
    "correction_rate",
    "thinking_pause_chance",
)
_NON_NEGATIVE_FIELDS = (
    "punctuation_pause",
    "paragraph_pause",
    "thinking_pause_duration",
    "countdown_seconds",
)


@dataclass(frozen=True)
class TypingConfig:
    """Behavioural settings for one run. Pauses and durations are in ms."""

    base_wpm: int = 60
    wpm_variance: float = 0.3
    mistake_rate: float = 0.03
    correction_rate: float = 0.7
    punctuation_pause: int = 300
    paragraph_pause: int = 800
    thinking_pause_chance: float = 0.02
    thinking_pause_duration: int = 1500
    burst_typing: bool = True
    countdown_seconds: int = 3

    def __post_init__(self) -> None:
        if self.base_wpm <= 0:
            raise ValueError(f"base_wpm must be positive, got {self.base_wpm}")
        for name in _PROBABILITY_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        for name in _NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")

    def replace(self, **changes: Any) -> "TypingConfig":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TypingConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class TypingProgress:
    current: int
    total: int
    percent: float

    @classmethod
    def of(cls, current: int, total: int) -> "TypingProgress":
        percent = (current / total) * 100.0 if total > 0 else 0.0
        return cls(current=current, total=total, percent=percent)


@dataclass(frozen=True)
class EngineSnapshot:
    status: TypingStatus
    progress: TypingProgress
    file_name: Optional[str] = None


@dataclass
class LoadedContent:
    text: str
    label: str

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass
class ContentResult:
    success: bool
    reason: str
    content: Optional[LoadedContent] = field(default=None)
