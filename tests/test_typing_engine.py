from __future__ import annotations

import random
import threading
import time
from typing import Callable, Optional

import pytest

from errors import (
    CAPABILITY_FAILURE,
    TASK_FAILURE,
    AlreadyRunningError,
    EmptyContentError,
    InvalidStateError,
    KeyInjectionError,
)
from models import TypingConfig, TypingProgress, TypingStatus
from typing_engine import TypingEngine


class FakeKeyInjector:
    """Records keystrokes into a buffer the way a text field would."""

    def __init__(
        self,
        fail_on_call: Optional[int] = None,
        on_type: Optional[Callable[[int], None]] = None,
        crash: bool = False,
    ) -> None:
        self.fail_on_call = fail_on_call
        self.on_type = on_type
        self.crash = crash
        self.calls = 0
        self.typed: list[str] = []
        self.buffer: list[str] = []
        self.backspaces = 0
        self.backspace_delays: list[float] = []
        self.closed = False

    def type_text(self, text: str) -> None:
        self.calls += 1
        if self.crash:
            raise RuntimeError("boom")
        if self.fail_on_call == self.calls:
            raise KeyInjectionError("host rejected synthetic input")
        self.typed.append(text)
        self.buffer.append(text)
        if self.on_type:
            self.on_type(len(self.typed))

    def backspace(self) -> None:
        self.backspaces += 1
        if self.buffer:
            self.buffer.pop()

    def backspace_n(self, count: int, delay_ms: float) -> None:
        self.backspace_delays.append(delay_ms)
        for _ in range(count):
            self.backspace()

    def close(self) -> None:
        self.closed = True


class EventLog:
    def __init__(self) -> None:
        self.transitions: list[tuple[TypingStatus, TypingStatus]] = []
        self.ticks: list[int] = []
        self.progress: list[TypingProgress] = []
        self.errors: list[tuple[str, str]] = []
        self.paused = threading.Event()

    def on_state_change(self, from_status: TypingStatus, to_status: TypingStatus) -> None:
        self.transitions.append((from_status, to_status))
        if to_status == TypingStatus.PAUSED:
            self.paused.set()


def make_engine(
    keyboard: FakeKeyInjector,
    events: Optional[EventLog] = None,
    config: Optional[TypingConfig] = None,
    tick_interval_s: float = 0.001,
    **kwargs,
) -> TypingEngine:
    events = events or EventLog()
    return TypingEngine(
        keyboard_factory=lambda: keyboard,
        config=config or TypingConfig(countdown_seconds=0, mistake_rate=0.0),
        rng=random.Random(7),
        tick_interval_s=tick_interval_s,
        time_scale=0.0,
        on_state_change=events.on_state_change,
        on_countdown=events.ticks.append,
        on_progress=events.progress.append,
        on_error=lambda c, m: events.errors.append((c, m)),
        **kwargs,
    )


def test_short_text_without_mistakes_completes() -> None:
    keyboard = FakeKeyInjector()
    events = EventLog()
    engine = make_engine(keyboard, events)

    engine.load_content("Hi.", "greeting.txt")
    engine.start()

    assert engine.join(timeout=2.0)
    assert keyboard.typed == ["H", "i", "."]
    assert [p.current for p in events.progress] == [1, 2, 3]
    assert engine.get_progress() == TypingProgress(current=3, total=3, percent=100.0)
    assert engine.status == TypingStatus.DONE
    assert keyboard.closed is True
    assert events.transitions == [
        (TypingStatus.IDLE, TypingStatus.READY),
        (TypingStatus.READY, TypingStatus.COUNTDOWN),
        (TypingStatus.COUNTDOWN, TypingStatus.TYPING),
        (TypingStatus.TYPING, TypingStatus.DONE),
    ]


def test_countdown_ticks_down_to_one() -> None:
    keyboard = FakeKeyInjector()
    events = EventLog()
    engine = make_engine(
        keyboard, events, config=TypingConfig(countdown_seconds=3, mistake_rate=0.0)
    )

    engine.load_content("ok", "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert events.ticks == [3, 2, 1]
    assert engine.status == TypingStatus.DONE


def test_stop_during_countdown_returns_to_ready() -> None:
    created: list[FakeKeyInjector] = []

    def factory() -> FakeKeyInjector:
        keyboard = FakeKeyInjector()
        created.append(keyboard)
        return keyboard

    engine = TypingEngine(
        keyboard_factory=factory,
        config=TypingConfig(countdown_seconds=3),
        rng=random.Random(1),
        tick_interval_s=0.2,
        time_scale=0.0,
    )
    engine.load_content("abc", "x")
    engine.start()
    engine.stop()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.READY
    assert created == []
    assert engine.get_progress() == TypingProgress(current=0, total=3, percent=0.0)


def test_pause_and_resume_types_every_character_once() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 3:
            engine_ref[0].pause()

    keyboard = FakeKeyInjector(on_type=on_type)
    # a long poll interval proves resume wakes the worker by notification
    engine = make_engine(keyboard, events, pause_poll_s=30.0)
    engine_ref.append(engine)

    engine.load_content("Hello world", "x")
    engine.start()

    assert events.paused.wait(timeout=2.0)
    time.sleep(0.05)
    assert engine.status == TypingStatus.PAUSED
    snapshot = list(keyboard.typed)
    time.sleep(0.05)
    assert keyboard.typed == snapshot
    assert len(snapshot) == 3

    engine.resume()

    assert engine.join(timeout=2.0)
    assert "".join(keyboard.typed) == "Hello world"
    assert engine.status == TypingStatus.DONE
    currents = [p.current for p in events.progress]
    assert currents == sorted(set(currents))


def test_stop_while_paused_wakes_worker() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 3:
            engine_ref[0].pause()

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard, events, pause_poll_s=30.0)
    engine_ref.append(engine)

    engine.load_content("Hello world", "x")
    engine.start()
    assert events.paused.wait(timeout=2.0)

    engine.stop()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.READY
    assert len(keyboard.typed) == 3
    assert keyboard.closed is True
    assert events.errors == []


def test_stop_after_keystroke_keeps_progress_in_step_with_keys_sent() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 3:
            engine_ref[0].stop()

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard, events)
    engine_ref.append(engine)

    engine.load_content("Hello world", "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.READY
    assert keyboard.typed == ["H", "e", "l"]
    assert engine.get_progress().current == len(keyboard.typed)
    assert events.errors == []


def test_pause_on_last_character_holds_completion_until_resume() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 3:
            engine_ref[0].pause()

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard, events, pause_poll_s=30.0)
    engine_ref.append(engine)

    engine.load_content("abc", "x")
    engine.start()
    assert events.paused.wait(timeout=2.0)
    time.sleep(0.05)

    assert engine.status == TypingStatus.PAUSED
    assert engine.get_progress().current == 3
    assert keyboard.closed is True

    engine.resume()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.DONE
    assert (TypingStatus.PAUSED, TypingStatus.DONE) not in events.transitions
    assert events.transitions[-2:] == [
        (TypingStatus.PAUSED, TypingStatus.TYPING),
        (TypingStatus.TYPING, TypingStatus.DONE),
    ]


def test_stop_while_paused_on_last_character_returns_to_ready() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 2:
            engine_ref[0].pause()

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard, events, pause_poll_s=30.0)
    engine_ref.append(engine)

    engine.load_content("ab", "x")
    engine.start()
    assert events.paused.wait(timeout=2.0)

    engine.stop()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.READY
    assert TypingStatus.DONE not in [to for _, to in events.transitions]


def test_backspace_burst_receives_scaled_milliseconds() -> None:
    keyboard = FakeKeyInjector()
    config = TypingConfig(
        base_wpm=60,
        wpm_variance=0.0,
        mistake_rate=1.0,
        correction_rate=1.0,
        countdown_seconds=0,
    )
    engine = TypingEngine(
        keyboard_factory=lambda: keyboard,
        config=config,
        rng=random.Random(3),
        time_scale=0.001,
    )

    engine.load_content("ab", "x")
    engine.start()

    assert engine.join(timeout=5.0)
    assert "".join(keyboard.buffer) == "ab"
    # 12000 / 60 wpm = 200ms base, backspaces run at 70% of it
    assert keyboard.backspace_delays
    assert keyboard.backspace_delays == [pytest.approx(0.14)] * len(keyboard.backspace_delays)


def test_start_while_paused_resumes() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 2:
            engine_ref[0].pause()

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard, events, pause_poll_s=30.0)
    engine_ref.append(engine)

    engine.load_content("abcdef", "x")
    engine.start()
    assert events.paused.wait(timeout=2.0)

    engine.start()

    assert engine.join(timeout=2.0)
    assert "".join(keyboard.typed) == "abcdef"
    assert (TypingStatus.PAUSED, TypingStatus.TYPING) in events.transitions


def test_key_injection_failure_sets_error_without_advancing() -> None:
    keyboard = FakeKeyInjector(fail_on_call=5)
    events = EventLog()
    engine = make_engine(keyboard, events)

    engine.load_content("Hello world", "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.ERROR
    assert engine.get_progress().current == 4
    assert events.errors == [(CAPABILITY_FAILURE, "host rejected synthetic input")]
    assert keyboard.closed is True


def test_key_injector_creation_failure_sets_error() -> None:
    events = EventLog()

    def factory() -> FakeKeyInjector:
        raise KeyInjectionError("no display")

    engine = TypingEngine(
        keyboard_factory=factory,
        config=TypingConfig(countdown_seconds=0),
        time_scale=0.0,
        on_state_change=events.on_state_change,
        on_error=lambda c, m: events.errors.append((c, m)),
    )
    engine.load_content("abc", "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.ERROR
    assert events.errors == [(CAPABILITY_FAILURE, "no display")]


def test_unexpected_worker_exception_is_task_failure() -> None:
    keyboard = FakeKeyInjector(crash=True)
    events = EventLog()
    engine = make_engine(keyboard, events)

    engine.load_content("abc", "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.ERROR
    assert len(events.errors) == 1
    assert events.errors[0][0] == TASK_FAILURE


def test_start_rejections_leave_state_unchanged() -> None:
    keyboard = FakeKeyInjector()
    events = EventLog()
    engine = make_engine(
        keyboard, events, config=TypingConfig(countdown_seconds=3), tick_interval_s=0.5
    )

    with pytest.raises(EmptyContentError):
        engine.start()
    assert engine.status == TypingStatus.IDLE

    engine.load_content("abc", "x")
    engine.start()
    with pytest.raises(AlreadyRunningError):
        engine.start()
    assert engine.status == TypingStatus.COUNTDOWN

    engine.stop()
    assert engine.join(timeout=2.0)


def test_start_in_error_state_is_invalid_until_acknowledged() -> None:
    keyboard = FakeKeyInjector(fail_on_call=1)
    engine = make_engine(keyboard)

    engine.load_content("abc", "x")
    engine.start()
    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.ERROR

    with pytest.raises(InvalidStateError):
        engine.start()

    engine.stop()
    assert engine.status == TypingStatus.READY

    keyboard.fail_on_call = None
    engine.start()
    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.DONE


def test_load_content_rejected_while_running() -> None:
    keyboard = FakeKeyInjector()
    engine = make_engine(keyboard, config=TypingConfig(countdown_seconds=3), tick_interval_s=0.5)

    engine.load_content("abc", "first")
    engine.start()
    with pytest.raises(AlreadyRunningError):
        engine.load_content("xyz", "second")
    assert engine.get_file_name() == "first"

    engine.stop()
    assert engine.join(timeout=2.0)
    engine.load_content("xyz", "second")
    assert engine.get_file_name() == "second"
    assert engine.get_progress() == TypingProgress(current=0, total=3, percent=0.0)


def test_config_change_does_not_affect_running_snapshot() -> None:
    engine_ref: list[TypingEngine] = []
    sloppy = TypingConfig(countdown_seconds=0, mistake_rate=1.0, correction_rate=0.0)

    def on_type(count: int) -> None:
        if count == 1:
            engine_ref[0].set_config(sloppy)

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard)
    engine_ref.append(engine)

    engine.load_content("the quick brown fox", "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert "".join(keyboard.typed) == "the quick brown fox"
    assert engine.get_config() == sloppy


def test_corrected_mistakes_leave_the_intended_text() -> None:
    keyboard = FakeKeyInjector()
    events = EventLog()
    config = TypingConfig(countdown_seconds=0, mistake_rate=1.0, correction_rate=1.0)
    engine = make_engine(keyboard, events, config=config)
    text = "Typing like a human, mistakes and all."

    engine.load_content(text, "x")
    engine.start()

    assert engine.join(timeout=2.0)
    assert "".join(keyboard.buffer) == text
    assert keyboard.backspaces > 0
    currents = [p.current for p in events.progress]
    assert all(a < b for a, b in zip(currents, currents[1:]))
    assert currents[-1] == len(text)


def test_progress_counts_characters_not_bytes() -> None:
    keyboard = FakeKeyInjector()
    events = EventLog()
    engine = make_engine(keyboard, events)
    text = "héllo wörld 🙂"

    engine.load_content(text, "unicode.txt")
    assert engine.get_progress().total == 13

    engine.start()
    assert engine.join(timeout=2.0)
    assert "".join(keyboard.typed) == text
    assert events.progress[-1] == TypingProgress(current=13, total=13, percent=100.0)


def test_get_progress_is_idempotent() -> None:
    engine = make_engine(FakeKeyInjector())
    engine.load_content("abcd", "x")

    assert engine.get_progress() == engine.get_progress()
    state = engine.get_state()
    assert state.status == TypingStatus.READY
    assert state.file_name == "x"
    assert state.progress == TypingProgress(current=0, total=4, percent=0.0)


def test_toggles_follow_tray_semantics() -> None:
    events = EventLog()
    engine_ref: list[TypingEngine] = []

    def on_type(count: int) -> None:
        if count == 1:
            engine_ref[0].toggle_pause_resume()

    keyboard = FakeKeyInjector(on_type=on_type)
    engine = make_engine(keyboard, events, pause_poll_s=30.0)
    engine_ref.append(engine)

    engine.toggle_pause_resume()  # idle: no-op
    assert engine.status == TypingStatus.IDLE

    engine.load_content("abc", "x")
    engine.toggle_start_stop()
    assert events.paused.wait(timeout=2.0)

    engine.toggle_pause_resume()
    assert engine.join(timeout=2.0)
    assert engine.status == TypingStatus.DONE

    engine.toggle_start_stop()
    assert engine.join(timeout=2.0)
    assert "".join(keyboard.typed) == "abcabc"


def test_restart_after_stop_does_not_revive_old_run() -> None:
    keyboard = FakeKeyInjector()
    engine = make_engine(keyboard, config=TypingConfig(countdown_seconds=3), tick_interval_s=0.5)

    engine.load_content("abc", "x")
    engine.start()
    engine.stop()
    engine.set_config(TypingConfig(countdown_seconds=0, mistake_rate=0.0))
    engine.start()

    assert engine.join(timeout=2.0)
    assert keyboard.typed == ["a", "b", "c"]
    assert engine.status == TypingStatus.DONE
