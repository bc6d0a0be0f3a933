"""Settings dialog covering every typing option."""

from __future__ import annotations

from typing import Any, NamedTuple, Optional

from models import TypingConfig

try:
    from PySide6.QtWidgets import (
        QCheckBox,
        QDialog,
        QDialogButtonBox,
        QDoubleSpinBox,
        QFormLayout,
        QSpinBox,
    )
except Exception:  # pragma: no cover
    QCheckBox = None  # type: ignore
    QDialog = object  # type: ignore
    QDialogButtonBox = None  # type: ignore
    QDoubleSpinBox = None  # type: ignore
    QFormLayout = None  # type: ignore
    QSpinBox = None  # type: ignore


class SettingField(NamedTuple):
    name: str
    label: str
    minimum: float
    maximum: float
    step: float
    decimals: int = 0
    suffix: str = ""


# ranges match the sliders of the desktop settings panel
SETTING_FIELDS = (
    SettingField("base_wpm", "Base typing speed", 20, 200, 5, suffix=" WPM"),
    SettingField("wpm_variance", "Speed variance", 0.0, 0.5, 0.05, decimals=2),
    SettingField("mistake_rate", "Mistake rate", 0.0, 0.15, 0.01, decimals=2),
    SettingField("correction_rate", "Correction rate", 0.0, 1.0, 0.05, decimals=2),
    SettingField("punctuation_pause", "Punctuation pause", 0, 1000, 50, suffix=" ms"),
    SettingField("paragraph_pause", "Paragraph pause", 0, 3000, 100, suffix=" ms"),
    SettingField(
        "thinking_pause_chance", "Thinking pause chance", 0.0, 0.1, 0.005, decimals=3
    ),
    SettingField(
        "thinking_pause_duration", "Thinking pause duration", 500, 5000, 100, suffix=" ms"
    ),
    SettingField("countdown_seconds", "Countdown", 1, 10, 1, suffix=" s"),
)
BURST_TYPING_LABEL = "Burst typing"


def config_from_values(base: TypingConfig, values: dict) -> TypingConfig:
    """Apply edited values on top of ``base``. Raises ValueError when invalid."""
    changes = {}
    for field in SETTING_FIELDS:
        if field.name in values:
            value = values[field.name]
            changes[field.name] = float(value) if field.decimals else int(value)
    if "burst_typing" in values:
        changes["burst_typing"] = bool(values["burst_typing"])
    return base.replace(**changes)


def _make_editor(field: SettingField, value: Any) -> Any:
    if field.decimals:
        editor = QDoubleSpinBox()
        editor.setDecimals(field.decimals)
    else:
        editor = QSpinBox()
    editor.setRange(field.minimum, field.maximum)
    editor.setSingleStep(field.step)
    if field.suffix:
        editor.setSuffix(field.suffix)
    editor.setValue(value)
    return editor


class SettingsDialog(QDialog):
    def __init__(self, config: TypingConfig, parent: Optional[Any] = None) -> None:
        if QFormLayout is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__(parent)
        self.setWindowTitle("HumanTyper Settings")
        self._config = config
        self._editors: dict[str, Any] = {}

        layout = QFormLayout(self)
        for field in SETTING_FIELDS:
            editor = _make_editor(field, getattr(config, field.name))
            layout.addRow(field.label, editor)
            self._editors[field.name] = editor

        self._burst = QCheckBox()
        self._burst.setChecked(config.burst_typing)
        layout.addRow(BURST_TYPING_LABEL, self._burst)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addRow(buttons)

    def values(self) -> dict:
        values = {name: editor.value() for name, editor in self._editors.items()}
        values["burst_typing"] = self._burst.isChecked()
        return values

    def selected_config(self) -> TypingConfig:
        return config_from_values(self._config, self.values())
