"""Shared error codes, user-facing messages and engine exceptions."""

from __future__ import annotations

from typing import Optional

ALREADY_RUNNING = "ALREADY_RUNNING"
INVALID_STATE = "INVALID_STATE"
EMPTY_CONTENT = "EMPTY_CONTENT"
CAPABILITY_FAILURE = "CAPABILITY_FAILURE"
TASK_FAILURE = "TASK_FAILURE"

ERROR_MESSAGES = {
    ALREADY_RUNNING: "Already typing.",
    INVALID_STATE: "Cannot start while in error state.",
    EMPTY_CONTENT: "Content is empty.",
    CAPABILITY_FAILURE: "Keyboard input was rejected by the system.",
    TASK_FAILURE: "Typing task failed.",
}


class EngineError(Exception):
    code = TASK_FAILURE

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or ERROR_MESSAGES[self.code])

    @property
    def message(self) -> str:
        return str(self)


class AlreadyRunningError(EngineError):
    code = ALREADY_RUNNING


class InvalidStateError(EngineError):
    code = INVALID_STATE


class EmptyContentError(EngineError):
    code = EMPTY_CONTENT


class KeyInjectionError(EngineError):
    code = CAPABILITY_FAILURE


class TaskFailureError(EngineError):
    code = TASK_FAILURE
