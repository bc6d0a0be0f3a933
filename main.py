"""Application entrypoint."""

from __future__ import annotations

import logging
import sys

from config import JsonConfigStore
from content_source import read_clipboard, read_text_file
from errors import ERROR_MESSAGES, EngineError
from hotkey import GlobalHotkeyAdapter
from keyboard_sim import PynputKeyInjector
from models import ContentResult, TypingConfig, TypingProgress, TypingStatus
from overlay import OverlayWindow
from settings_dialog import SettingsDialog
from typing_engine import TypingEngine

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import (
        QApplication,
        QFileDialog,
        QInputDialog,
        QMenu,
        QMessageBox,
        QSystemTrayIcon,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))  # transparent background
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"  # grey
ICON_TYPING = "#8B5CF6"  # purple
ICON_PAUSED = "#F5C542"  # yellow
ICON_ERROR = "#FF8800"  # orange

STATUS_ICONS = {
    TypingStatus.COUNTDOWN: ICON_TYPING,
    TypingStatus.TYPING: ICON_TYPING,
    TypingStatus.PAUSED: ICON_PAUSED,
    TypingStatus.ERROR: ICON_ERROR,
}


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_status, to_status
    countdown_signal = Signal(int)
    progress_signal = Signal(int, int, float)
    error_signal = Signal(str)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.countdown_signal.connect(self._on_countdown_ui)
        self.ui.progress_signal.connect(self._on_progress_ui)
        self.ui.error_signal.connect(self._on_error_ui)

        self.engine = TypingEngine(
            keyboard_factory=PynputKeyInjector,
            config=self.config_store.get_config(),
            on_state_change=self._on_state_change,
            on_countdown=self._on_countdown,
            on_progress=self._on_progress,
            on_error=self._on_error,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("HumanTyper - No content")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        self._add_action(menu, "Load File…", self._load_file)
        self._add_action(menu, "Load From Clipboard", self._load_clipboard)
        menu.addSeparator()
        self._add_action(menu, "Start/Stop", self._toggle_start_stop)
        self._add_action(menu, "Pause/Resume", self.engine.toggle_pause_resume)
        menu.addSeparator()
        self._add_action(menu, "Settings…", self._edit_settings)
        self._add_action(menu, "Set Speed (WPM)", self._set_wpm)
        self._add_action(menu, "Reset Settings", self._reset_settings)
        menu.addSeparator()
        self._add_action(menu, "Quit", self.quit)

        self._menu = menu
        self.tray.setContextMenu(menu)

    def _add_action(self, menu: QMenu, title: str, slot) -> None:  # noqa: ANN001
        action = QAction(title, menu)
        action.triggered.connect(slot)
        menu.addAction(action)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _load_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            None, "Open Text File", "", "Text files (*.txt *.md *.py *.js *.ts *.rs);;All files (*)"
        )
        if path:
            self._apply_content(read_text_file(path))

    def _load_clipboard(self) -> None:
        self._apply_content(read_clipboard())

    def _apply_content(self, result: ContentResult) -> None:
        if not result.success or result.content is None:
            self.overlay.show_error(result.reason)
            return
        content = result.content
        try:
            self.engine.load_content(content.text, content.label)
        except EngineError as exc:
            self.overlay.show_error(exc.message)
            return
        self.tray.setToolTip(f"HumanTyper - {content.label} ({content.char_count} chars)")

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _set_wpm(self) -> None:
        current = self.engine.get_config()
        value, ok = QInputDialog.getInt(None, "Typing Speed", "Words per minute", current.base_wpm, 20, 200)
        if ok:
            self._apply_config(current.replace(base_wpm=value))

    def _edit_settings(self) -> None:
        dialog = SettingsDialog(self.engine.get_config())
        if not dialog.exec():
            return
        try:
            config = dialog.selected_config()
        except ValueError as exc:
            self.overlay.show_error(f"Invalid settings: {exc}")
            return
        self._apply_config(config)

    def _reset_settings(self) -> None:
        self.engine.set_config(self.config_store.reset_config())
        QMessageBox.information(None, "Settings", "Settings reset to defaults.")

    def _apply_config(self, config: TypingConfig) -> None:
        self.config_store.set_config(config)
        # a run in flight keeps the settings it started with
        self.engine.set_config(config)

    # ------------------------------------------------------------------
    # Engine callbacks (called from the worker thread → emit signals)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_status: TypingStatus, to_status: TypingStatus) -> None:
        self.ui.state_signal.emit(from_status.value, to_status.value)

    def _on_countdown(self, remaining: int) -> None:
        self.ui.countdown_signal.emit(remaining)

    def _on_progress(self, progress: TypingProgress) -> None:
        self.ui.progress_signal.emit(progress.current, progress.total, progress.percent)

    def _on_error(self, code: str, message: str) -> None:
        self.ui.error_signal.emit(message or ERROR_MESSAGES.get(code, code))

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, from_status: str, to_status: str) -> None:
        status = TypingStatus(to_status)
        self.tray.setIcon(_create_icon(STATUS_ICONS.get(status, ICON_IDLE)))
        self.overlay.show_status(status, self.engine.get_progress())

    def _on_countdown_ui(self, remaining: int) -> None:
        self.overlay.show_countdown(remaining)

    def _on_progress_ui(self, current: int, total: int, percent: float) -> None:
        self.overlay.show_progress(TypingProgress(current=current, total=total, percent=percent))

    def _on_error_ui(self, message: str) -> None:
        self.overlay.show_error(message)

    # ------------------------------------------------------------------
    # Start / stop (tray menu and global hotkey)
    # ------------------------------------------------------------------

    def _toggle_start_stop(self) -> None:
        try:
            self.engine.toggle_start_stop()
        except EngineError as exc:
            self._on_error(exc.code, exc.message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_activate=self._toggle_start_stop)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.engine.stop()
        self.engine.join(timeout=1.0)
        self.app.quit()


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
