"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from models import TypingConfig

DEFAULT_HOTKEY = "<ctrl>+<alt>+s"

logger = logging.getLogger(__name__)


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "humantyper" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_config(self) -> TypingConfig:
        data = self._read_all().get("typing", {})
        if not isinstance(data, dict):
            return TypingConfig()
        try:
            return TypingConfig.from_dict(data)
        except (TypeError, ValueError) as exc:
            logger.warning("stored typing config rejected, using defaults: %s", exc)
            return TypingConfig()

    def set_config(self, config: TypingConfig) -> None:
        data = self._read_all()
        data["typing"] = config.to_dict()
        self._write_all(data)

    def reset_config(self) -> TypingConfig:
        config = TypingConfig()
        self.set_config(config)
        return config

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
