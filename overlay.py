"""Overlay window for countdown, progress and errors."""

from __future__ import annotations

from models import TypingProgress, TypingStatus

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QProgressBar, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QProgressBar = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

_LABEL_STYLE = (
    "color: {color}; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,{alpha}); border-radius: 12px;"
)

STATUS_TEXT = {
    TypingStatus.IDLE: "No content loaded",
    TypingStatus.READY: "Ready",
    TypingStatus.COUNTDOWN: "Get ready...",
    TypingStatus.TYPING: "Typing",
    TypingStatus.PAUSED: "Paused",
    TypingStatus.DONE: "Done",
    TypingStatus.ERROR: "Error",
}


def progress_text(status: TypingStatus, progress: TypingProgress) -> str:
    return (
        f"{STATUS_TEXT[status]}  {progress.current}/{progress.total}"
        f"  ({progress.percent:.0f}%)"
    )


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WA_ShowWithoutActivating, True)
        self.setFixedWidth(420)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._reset_style()

        self._bar = QProgressBar()
        self._bar.setRange(0, 100)
        self._bar.setTextVisible(False)
        self._bar.setFixedHeight(6)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        layout.addWidget(self._bar)
        self.setLayout(layout)

        self._status = TypingStatus.IDLE
        self._hide_timer: QTimer | None = None

    def _center_top(self) -> None:
        """Position the window at the top center of the primary screen."""
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def set_text(self, text: str) -> None:
        self._cancel_hide_timer()
        self._label.setText(text)
        self._center_top()
        self.show()

    def show_countdown(self, remaining: int) -> None:
        """Big countdown number; focus the target window meanwhile."""
        self._reset_style()
        self._bar.setValue(0)
        self.set_text(f"Starting in {remaining}... focus your target window")

    def show_status(self, status: TypingStatus, progress: TypingProgress) -> None:
        self._status = status
        if status == TypingStatus.ERROR:
            return
        self._reset_style()
        self._bar.setValue(int(progress.percent))
        self.set_text(progress_text(status, progress))
        if status in (TypingStatus.DONE, TypingStatus.READY):
            self.hide_with_delay(1500)

    def show_progress(self, progress: TypingProgress) -> None:
        self._bar.setValue(int(progress.percent))
        self._label.setText(progress_text(self._status, progress))

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self.hide)
            self._hide_timer.start(delay_ms)

    def show_error(self, text: str, hide_after_ms: int = 3000) -> None:
        self._label.setStyleSheet(_LABEL_STYLE.format(color="#FF6B6B", alpha=210))
        self.set_text(f"⚠️ {text}")
        self.hide_with_delay(hide_after_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None

    def _reset_style(self) -> None:
        self._label.setStyleSheet(_LABEL_STYLE.format(color="white", alpha=190))
