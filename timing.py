"""Per-keystroke delay model.

Delays are computed in milliseconds from the text around the cursor. Rhythm
effects (word momentum, digraphs, hand alternation, warmup, fatigue) scale the
running delay; discrete events (punctuation, paragraphs, thinking pauses) are
added on top of it.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from interfaces import RandomSource
from models import TypingConfig

MIN_BASE_DELAY_MS = 20
MIN_DELAY_MS = 8
MIN_VARIED_DELAY_MS = 10

WARMUP_CHARS = 30
FATIGUE_START = 0.85
BURST_CHANCE = 0.08
THINKING_VARIANCE = 0.4

SENTENCE_TERMINATORS = frozenset(".!?")
CLAUSE_SEPARATORS = frozenset(",;:")
_BOUNDARY_PUNCTUATION = frozenset(".,;:!?\"'()[]{}-/\\")

LEFT_HAND = "left"
RIGHT_HAND = "right"
EITHER_HAND = "neither"

_LEFT_KEYS = frozenset("qwertasdfgzxcvb12345`~")
_RIGHT_KEYS = frozenset("yuiophjklnm67890-=[]\\;',./")

COMMON_DIGRAPHS = frozenset(
    {
        # English
        "th", "he", "in", "er", "an", "re", "on", "at", "en", "nd",
        "ti", "es", "or", "te", "of", "ed", "is", "it", "al", "ar",
        "st", "to", "nt", "ng", "ha", "as", "ou", "io", "le",
        "ve", "co", "me", "de", "hi", "ri", "ro", "ic", "ne", "ea",
        "ra", "ce", "li", "ch", "ll", "be", "ma", "si", "om", "ur",
        # source code
        "if", "el", "fo", "wh", "tu", "rn", "fu", "nc",
        "ct", "va", "et", "ue", "tr", "fa",
        "ls", "nu", "un", "fi", "cl", "ss",
    }
)


def _rng(rng: Optional[RandomSource]) -> RandomSource:
    return rng if rng is not None else random  # type: ignore[return-value]


def base_delay_ms(wpm: float) -> int:
    # 5 chars per word: 60000 / (wpm * 5) ms per char
    return max(int(12000 / wpm), MIN_BASE_DELAY_MS)


def add_variance(
    delay_ms: float, variance: float, rng: Optional[RandomSource] = None
) -> int:
    """Sample around ``delay_ms`` with std ``delay_ms * variance``.

    The sample is clamped to [50%, 200%] of the input and never drops below
    10ms. Non-positive variance returns the delay unchanged.
    """
    if variance <= 0.0:
        return int(delay_ms)
    std_dev = delay_ms * variance
    if std_dev <= 0.0:
        return int(delay_ms)

    varied = _rng(rng).gauss(delay_ms, std_dev)
    low = max(delay_ms * 0.5, MIN_VARIED_DELAY_MS)
    high = delay_ms * 2.0
    return int(max(low, min(high, varied)))


def is_word_boundary(ch: str) -> bool:
    return ch.isspace() or ch in _BOUNDARY_PUNCTUATION


def hand_for(ch: str) -> str:
    lower = ch.lower()
    if lower in _LEFT_KEYS:
        return LEFT_HAND
    if lower in _RIGHT_KEYS:
        return RIGHT_HAND
    return EITHER_HAND


def is_common_digraph(prev: str, curr: str) -> bool:
    return (prev + curr).lower() in COMMON_DIGRAPHS


@dataclass(frozen=True)
class WordContext:
    chars_in_word: int
    is_word_start: bool
    is_word_end: bool
    word_length_estimate: int

    @classmethod
    def analyze(cls, chars: Sequence[str], index: int) -> "WordContext":
        current = chars[index] if index < len(chars) else " "
        prev = chars[index - 1] if index > 0 else None
        nxt = chars[index + 1] if index + 1 < len(chars) else None

        chars_in_word = 0
        i = index
        while i > 0:
            i -= 1
            if is_word_boundary(chars[i]):
                break
            chars_in_word += 1

        word_length = chars_in_word
        j = index
        while j < len(chars) and not is_word_boundary(chars[j]):
            word_length += 1
            j += 1

        inside = not is_word_boundary(current)
        return cls(
            chars_in_word=chars_in_word,
            is_word_start=inside and (prev is None or is_word_boundary(prev)),
            is_word_end=inside and (nxt is None or is_word_boundary(nxt)),
            word_length_estimate=word_length,
        )


def word_momentum(word_progress: float) -> float:
    """Speed multiplier inside a word: fastest (0.85) at 40% progress."""
    if word_progress < 0.4:
        return 0.85 + 0.15 * (1.0 - word_progress / 0.4)
    return 0.85 + 0.1 * ((word_progress - 0.4) / 0.6)


def warmup_factor(index: int) -> float:
    if index >= WARMUP_CHARS:
        return 1.0
    return 1.0 + 0.35 * (1.0 - index / WARMUP_CHARS) ** 2


def fatigue_factor(progress: float) -> float:
    if progress <= FATIGUE_START:
        return 1.0
    return 1.0 + 0.15 * ((progress - FATIGUE_START) / (1.0 - FATIGUE_START))


def thinking_chance(config: TypingConfig, ctx: WordContext, ch: str) -> float:
    if ctx.is_word_start:
        return config.thinking_pause_chance * 1.5
    if is_word_boundary(ch):
        return config.thinking_pause_chance * 2.0
    return config.thinking_pause_chance * 0.3


def calculate_delay(
    config: TypingConfig,
    chars: Sequence[str],
    index: int,
    total: int,
    rng: Optional[RandomSource] = None,
) -> int:
    """Milliseconds to wait around the keystroke for ``chars[index]``."""
    r = _rng(rng)
    current = chars[index]
    prev = chars[index - 1] if index > 0 else None
    ctx = WordContext.analyze(chars, index)

    delay = float(base_delay_ms(config.base_wpm))

    # word rhythm
    if ctx.is_word_start:
        delay *= r.uniform(1.15, 1.30)
    if 0 < ctx.chars_in_word < ctx.word_length_estimate:
        delay *= word_momentum(ctx.chars_in_word / max(ctx.word_length_estimate, 1))

    if prev is not None:
        if is_common_digraph(prev, current):
            delay *= r.uniform(0.75, 0.85)

        prev_hand, curr_hand = hand_for(prev), hand_for(current)
        if EITHER_HAND not in (prev_hand, curr_hand):
            if prev_hand != curr_hand:
                delay *= r.uniform(0.88, 0.96)
            else:
                delay *= r.uniform(1.05, 1.15)

    if current == " ":
        delay *= r.uniform(1.2, 1.5)

    if prev in SENTENCE_TERMINATORS:
        delay += config.punctuation_pause * r.uniform(0.8, 1.2)
    elif prev in CLAUSE_SEPARATORS:
        delay += config.punctuation_pause * 0.5 * r.uniform(0.7, 1.3)

    if current == "\n":
        delay += config.paragraph_pause * r.uniform(0.6, 1.4)

    if config.burst_typing and r.random() < BURST_CHANCE:
        delay *= r.uniform(0.6, 0.75)

    if r.random() < thinking_chance(config, ctx, current):
        delay += add_variance(config.thinking_pause_duration, THINKING_VARIANCE, r)

    delay *= warmup_factor(index)
    delay *= fatigue_factor(index / max(total, 1))

    delay *= r.uniform(0.9, 1.1)
    varied = add_variance(int(delay), config.wpm_variance * 0.5, r)
    return max(varied, MIN_DELAY_MS)


def backspace_delay(config: TypingConfig, rng: Optional[RandomSource] = None) -> int:
    faster = int(base_delay_ms(config.base_wpm) * 0.7)
    return max(add_variance(faster, config.wpm_variance * 0.5, rng), MIN_VARIED_DELAY_MS)


def notice_mistake_delay(rng: Optional[RandomSource] = None) -> int:
    return _rng(rng).randrange(50, 500)
