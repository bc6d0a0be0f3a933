"""Providers of (text, label) pairs for the engine."""

from __future__ import annotations

from pathlib import Path

from models import ContentResult, LoadedContent

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

CLIPBOARD_LABEL = "Clipboard"


def read_text_file(path: str | Path) -> ContentResult:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return ContentResult(success=False, reason=f"Failed to read file: {exc}")
    return ContentResult(
        success=True,
        reason="ok",
        content=LoadedContent(text=text, label=path.name or "unknown"),
    )


def read_clipboard() -> ContentResult:
    if pyperclip is None:
        return ContentResult(success=False, reason="clipboard dependency missing")
    try:
        text = pyperclip.paste()
    except Exception as exc:
        return ContentResult(success=False, reason=f"Failed to read clipboard: {exc}")
    if not text:
        return ContentResult(success=False, reason="clipboard is empty")
    return ContentResult(
        success=True,
        reason="ok",
        content=LoadedContent(text=text, label=CLIPBOARD_LABEL),
    )
