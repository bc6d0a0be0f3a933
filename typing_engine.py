"""State-machine based typing session orchestration.

One engine owns one session: the loaded text, the cursor into it, and the
status machine::

    idle/ready/done --start--> countdown --ticks--> typing <--> paused
    countdown/typing/paused --stop--> ready
    typing --end of text--> done
    paused at end of text --resume--> typing --> done
    countdown/typing --key injection failure--> error

Runs execute on a worker thread. The engine lock guards status, cursor and
content and is never held while the worker sleeps or injects keys; each run
carries its own stop/pause signals so a stopped worker can never be revived
by the next ``start``.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Callable, Optional

import timing
from errors import (
    TASK_FAILURE,
    AlreadyRunningError,
    EmptyContentError,
    InvalidStateError,
    KeyInjectionError,
    TaskFailureError,
)
from interfaces import KeyInjector, KeyInjectorFactory, RandomSource
from mistakes import decide
from models import ACTIVE_STATUSES, EngineSnapshot, TypingConfig, TypingProgress, TypingStatus

StateCallback = Callable[[TypingStatus, TypingStatus], None]
CountdownCallback = Callable[[int], None]
ProgressCallback = Callable[[TypingProgress], None]
ErrorCallback = Callable[[str, str], None]

logger = logging.getLogger(__name__)


class _RunStopped(Exception):
    """Unwinds the worker once its run has been stopped."""


class _RunSignals:
    def __init__(self) -> None:
        self._cond = threading.Condition()
        self.stopped = False
        self.paused = False

    def stop(self) -> None:
        with self._cond:
            self.stopped = True
            self.paused = False
            self._cond.notify_all()

    def pause(self) -> None:
        with self._cond:
            if not self.stopped:
                self.paused = True

    def resume(self) -> None:
        with self._cond:
            self.paused = False
            self._cond.notify_all()

    def check(self) -> None:
        if self.stopped:
            raise _RunStopped()

    def sleep(self, seconds: float) -> None:
        with self._cond:
            if seconds > 0:
                self._cond.wait_for(lambda: self.stopped, timeout=seconds)
            self.check()

    def wait_while_paused(self, poll_s: float) -> None:
        with self._cond:
            # notify wakes us on resume/stop; the timeout only bounds latency
            while self.paused and not self.stopped:
                self._cond.wait(timeout=poll_s)
            self.check()


class TypingEngine:
    def __init__(
        self,
        keyboard_factory: KeyInjectorFactory,
        config: Optional[TypingConfig] = None,
        rng: Optional[RandomSource] = None,
        tick_interval_s: float = 1.0,
        time_scale: float = 1.0,
        pause_poll_s: float = 0.1,
        shutdown_timeout_s: float = 2.0,
        on_state_change: Optional[StateCallback] = None,
        on_countdown: Optional[CountdownCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._keyboard_factory = keyboard_factory
        self._rng: RandomSource = rng if rng is not None else random.Random()
        self._tick_interval_s = tick_interval_s
        self._time_scale = time_scale
        self._pause_poll_s = pause_poll_s
        self._shutdown_timeout_s = shutdown_timeout_s
        self._on_state_change = on_state_change
        self._on_countdown = on_countdown
        self._on_progress = on_progress
        self._on_error = on_error

        self._lock = threading.RLock()
        self._status = TypingStatus.IDLE
        self._config = config or TypingConfig()
        self._content = ""
        self._file_name: Optional[str] = None
        self._cursor = 0
        self._run: Optional[_RunSignals] = None
        self._worker: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def status(self) -> TypingStatus:
        return self.get_status()

    def get_status(self) -> TypingStatus:
        with self._lock:
            return self._status

    def get_progress(self) -> TypingProgress:
        with self._lock:
            return self._progress_locked()

    def get_file_name(self) -> Optional[str]:
        with self._lock:
            return self._file_name

    def get_config(self) -> TypingConfig:
        with self._lock:
            return self._config

    def get_state(self) -> EngineSnapshot:
        with self._lock:
            return EngineSnapshot(
                status=self._status,
                progress=self._progress_locked(),
                file_name=self._file_name,
            )

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def set_config(self, config: TypingConfig) -> None:
        """Replace the configuration. A run in flight keeps its own copy."""
        with self._lock:
            self._config = config

    def load_content(self, text: str, label: Optional[str] = None) -> None:
        with self._lock:
            if self._status in ACTIVE_STATUSES:
                raise AlreadyRunningError("Cannot load content while typing")
            self._content = text
            self._file_name = label
            self._cursor = 0
            self._run = None
            self._transition(TypingStatus.READY if text else TypingStatus.IDLE)

    def start(self) -> None:
        with self._lock:
            if self._check_startable_locked():
                return
            previous = self._worker

        # a stopped worker may still be finishing its last keystroke
        if previous is not None and previous is not threading.current_thread():
            previous.join(timeout=self._shutdown_timeout_s)
            if previous.is_alive():
                raise AlreadyRunningError("Previous run is still stopping")

        with self._lock:
            if self._check_startable_locked():
                return
            if self._worker is not previous:
                raise AlreadyRunningError()
            self._launch_locked()
            label = self._file_name
            total = len(self._content)
        logger.info("started run: %d chars from %r", total, label)

    def stop(self) -> None:
        with self._lock:
            if self._status == TypingStatus.ERROR:
                self._transition(TypingStatus.READY)
                return
            if self._status not in ACTIVE_STATUSES:
                return
            if self._run is not None:
                self._run.stop()
            self._transition(TypingStatus.READY)
        logger.debug("stop requested")

    def pause(self) -> None:
        with self._lock:
            if self._status != TypingStatus.TYPING or self._run is None:
                return
            self._run.pause()
            self._transition(TypingStatus.PAUSED)
        logger.debug("paused")

    def resume(self) -> None:
        with self._lock:
            if not self._resume_locked():
                return
        logger.debug("resumed")

    def toggle_start_stop(self) -> None:
        status = self.get_status()
        if status in ACTIVE_STATUSES:
            self.stop()
        elif status in (TypingStatus.IDLE, TypingStatus.READY, TypingStatus.DONE):
            self.start()

    def toggle_pause_resume(self) -> None:
        status = self.get_status()
        if status == TypingStatus.TYPING:
            self.pause()
        elif status == TypingStatus.PAUSED:
            self.resume()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current worker to exit. True when none is running."""
        worker = self._worker
        if worker is None:
            return True
        if worker is threading.current_thread():
            return False
        worker.join(timeout=timeout)
        return not worker.is_alive()

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _check_startable_locked(self) -> bool:
        """Raise if a run cannot start. True when a paused run was resumed."""
        if self._status in (TypingStatus.COUNTDOWN, TypingStatus.TYPING):
            raise AlreadyRunningError()
        if self._status == TypingStatus.PAUSED:
            return self._resume_locked()
        if self._status == TypingStatus.ERROR:
            raise InvalidStateError()
        if not self._content:
            raise EmptyContentError()
        return False

    def _resume_locked(self) -> bool:
        if self._status != TypingStatus.PAUSED or self._run is None:
            return False
        self._run.resume()
        self._transition(TypingStatus.TYPING)
        return True

    def _launch_locked(self) -> None:
        text = self._content
        config = self._config
        run = _RunSignals()
        worker = threading.Thread(
            target=self._run_worker,
            args=(run, text, config),
            name="typing-engine",
            daemon=True,
        )
        self._run = run
        self._worker = worker
        self._cursor = 0
        self._transition(TypingStatus.COUNTDOWN)
        try:
            worker.start()
        except RuntimeError as exc:
            self._run = None
            self._worker = None
            self._fail(TASK_FAILURE, f"Typing task failed: {exc}")
            raise TaskFailureError(f"Typing task failed: {exc}") from exc

    def _run_worker(self, run: _RunSignals, text: str, config: TypingConfig) -> None:
        try:
            self._countdown(run, config)
            self._type_all(run, text, config)
            self._finish_completed(run)
        except _RunStopped:
            self._finish_stopped(run)
        except KeyInjectionError as exc:
            logger.warning("key injection failed: %s", exc)
            self._finish_failed(run, exc.code, str(exc))
        except Exception as exc:
            logger.exception("typing worker crashed")
            self._finish_failed(run, TASK_FAILURE, f"Typing task failed: {exc}")

    def _countdown(self, run: _RunSignals, config: TypingConfig) -> None:
        for remaining in range(config.countdown_seconds, 0, -1):
            run.check()
            if self._on_countdown:
                self._on_countdown(remaining)
            run.sleep(self._tick_interval_s)
        with self._lock:
            run.check()
            self._transition(TypingStatus.TYPING)

    def _type_all(self, run: _RunSignals, text: str, config: TypingConfig) -> None:
        keyboard = self._keyboard_factory()
        try:
            cursor = 0
            while cursor < len(text):
                run.check()
                run.wait_while_paused(self._pause_poll_s)
                cursor = self._type_step(run, keyboard, text, cursor, config)
        finally:
            self._close_keyboard(keyboard)

    def _type_step(
        self,
        run: _RunSignals,
        keyboard: KeyInjector,
        text: str,
        cursor: int,
        config: TypingConfig,
    ) -> int:
        """Type one decision's worth of keystrokes; returns the new cursor.

        Stop is honoured before every keystroke. Once the last keystroke of
        the decision is out the cursor is committed, so progress never lags
        behind what the host has received.
        """
        total = len(text)
        delay_ms = timing.calculate_delay(config, text, cursor, total, self._rng)
        next_char = text[cursor + 1] if cursor + 1 < total else None
        decision = decide(text[cursor], next_char, config.mistake_rate, self._rng)

        trailing_ms = 0.0
        for i, ch in enumerate(decision.chars_to_type):
            if i:
                run.sleep(self._seconds(delay_ms / 2))
            run.check()
            keyboard.type_text(ch)
            trailing_ms = delay_ms / 2

        if decision.mistake_made and self._rng.random() < config.correction_rate:
            notice_ms = timing.notice_mistake_delay(self._rng)
            run.sleep(self._seconds(trailing_ms + notice_ms))
            backspace_ms = timing.backspace_delay(config, self._rng) * self._time_scale
            keyboard.backspace_n(len(decision.chars_to_type), backspace_ms)
            trailing_ms = 0.0
            for i, ch in enumerate(text[cursor : cursor + decision.chars_consumed]):
                if i:
                    run.sleep(self._seconds(delay_ms))
                run.check()
                keyboard.type_text(ch)
                trailing_ms = delay_ms

        cursor += decision.chars_consumed
        self._commit_progress(run, cursor)
        run.sleep(self._seconds(trailing_ms + delay_ms))
        return cursor

    def _commit_progress(self, run: _RunSignals, cursor: int) -> None:
        with self._lock:
            if self._run is not run:
                return
            self._cursor = cursor
            if self._on_progress:
                self._on_progress(self._progress_locked())

    def _finish_completed(self, run: _RunSignals) -> None:
        # a pause landing on the last character holds the run until resumed
        while True:
            run.wait_while_paused(self._pause_poll_s)
            with self._lock:
                run.check()
                if self._run is not run:
                    return
                if not run.paused:
                    self._transition(TypingStatus.DONE)
                    break
        logger.info("run finished")

    def _finish_stopped(self, run: _RunSignals) -> None:
        with self._lock:
            if self._run is run and self._status in ACTIVE_STATUSES:
                self._transition(TypingStatus.READY)
        logger.info("run stopped at %d", self.get_progress().current)

    def _finish_failed(self, run: _RunSignals, code: str, message: str) -> None:
        with self._lock:
            if not run.stopped and self._run is run:
                self._fail(code, message)
                return
        logger.warning("ignoring failure of a stopped run: %s", message)

    def _fail(self, code: str, message: str) -> None:
        self._transition(TypingStatus.ERROR)
        self._emit_error(code, message)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _close_keyboard(self, keyboard: KeyInjector) -> None:
        try:
            keyboard.close()
        except Exception:
            logger.warning("closing key injector failed", exc_info=True)

    def _progress_locked(self) -> TypingProgress:
        return TypingProgress.of(self._cursor, len(self._content))

    def _seconds(self, delay_ms: float) -> float:
        return delay_ms * self._time_scale / 1000.0

    def _transition(self, to_status: TypingStatus) -> None:
        from_status = self._status
        if from_status == to_status:
            return
        self._status = to_status
        if self._on_state_change:
            self._on_state_change(from_status, to_status)
