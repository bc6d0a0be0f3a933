"""Typing mistake model.

A decision says what to actually type for the character under the cursor and
how many source characters that accounts for. The engine advances its cursor
by ``chars_consumed``, never by the number of keystrokes emitted.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from interfaces import RandomSource

# QWERTY physical neighbours, lowercase keys only
NEIGHBORS = {
    # top row
    "q": "wa",
    "w": "qeas",
    "e": "wrsd",
    "r": "etdf",
    "t": "ryfg",
    "y": "tugh",
    "u": "yihj",
    "i": "uojk",
    "o": "ipkl",
    "p": "ol[",
    # home row
    "a": "qwsz",
    "s": "awedzx",
    "d": "serfxc",
    "f": "drtgcv",
    "g": "ftyhvb",
    "h": "gyujbn",
    "j": "huiknm",
    "k": "jiolm,",
    "l": "kop;,.",
    # bottom row
    "z": "asx",
    "x": "zsdc",
    "c": "xdfv",
    "v": "cfgb",
    "b": "vghn",
    "n": "bhjm",
    "m": "njk,",
    # numbers
    "1": "2q",
    "2": "13qw",
    "3": "24we",
    "4": "35er",
    "5": "46rt",
    "6": "57ty",
    "7": "68yu",
    "8": "79ui",
    "9": "80io",
    "0": "9-op",
}


class MistakeType(str, Enum):
    ADJACENT_KEY = "adjacent_key"
    TRANSPOSITION = "transposition"
    OMISSION = "omission"
    DOUBLE_TAP = "double_tap"
    CAPITALIZATION = "capitalization"


# cumulative roulette: adjacent 40%, transposition 20%, omission 15%,
# double-tap 15%, capitalization 10%
_MISTAKE_WEIGHTS = (
    (0.40, MistakeType.ADJACENT_KEY),
    (0.60, MistakeType.TRANSPOSITION),
    (0.75, MistakeType.OMISSION),
    (0.90, MistakeType.DOUBLE_TAP),
)


@dataclass(frozen=True)
class MistakeDecision:
    chars_to_type: str
    mistake_made: bool
    chars_consumed: int
    mistake_type: Optional[MistakeType] = None

    @classmethod
    def correct(cls, ch: str) -> "MistakeDecision":
        return cls(chars_to_type=ch, mistake_made=False, chars_consumed=1)


def _rng(rng: Optional[RandomSource]) -> RandomSource:
    return rng if rng is not None else random  # type: ignore[return-value]


def choose_mistake_type(rng: Optional[RandomSource] = None) -> MistakeType:
    roll = _rng(rng).random()
    for threshold, kind in _MISTAKE_WEIGHTS:
        if roll < threshold:
            return kind
    return MistakeType.CAPITALIZATION


def adjacent_key(ch: str, rng: Optional[RandomSource] = None) -> Optional[str]:
    neighbors = NEIGHBORS.get(ch.lower())
    if not neighbors:
        return None
    wrong = _rng(rng).choice(neighbors)
    return wrong.upper() if ch.isupper() else wrong


def flip_case(ch: str) -> str:
    if ch.isupper():
        return ch.lower()[:1] or ch
    if ch.islower():
        return ch.upper()[:1] or ch
    return ch


def apply_mistake(
    kind: MistakeType,
    current: str,
    next_char: Optional[str],
    rng: Optional[RandomSource] = None,
) -> MistakeDecision:
    """Build the decision for ``kind``, falling back to a correct keystroke
    when the mistake cannot apply to ``current``."""
    if kind is MistakeType.ADJACENT_KEY:
        wrong = adjacent_key(current, rng)
        if wrong is None:
            return MistakeDecision.correct(current)
        return MistakeDecision(wrong, True, 1, kind)

    if kind is MistakeType.TRANSPOSITION:
        if next_char is None:
            return MistakeDecision.correct(current)
        return MistakeDecision(next_char + current, True, 2, kind)

    if kind is MistakeType.OMISSION:
        return MistakeDecision("", True, 1, kind)

    if kind is MistakeType.DOUBLE_TAP:
        return MistakeDecision(current * 2, True, 1, kind)

    flipped = flip_case(current)
    if flipped == current:
        return MistakeDecision.correct(current)
    return MistakeDecision(flipped, True, 1, kind)


def decide(
    current: str,
    next_char: Optional[str],
    mistake_rate: float,
    rng: Optional[RandomSource] = None,
) -> MistakeDecision:
    r = _rng(rng)
    if r.random() >= mistake_rate:
        return MistakeDecision.correct(current)
    return apply_mistake(choose_mistake_type(r), current, next_char, r)
