"""
Hotkey settings dialog for SnapInk.

Each action gets a modifier combo box and a one-letter key field. Edits go
into the dispatcher's draft; Apply commits them and stays open with a
warning if two actions share a chord.
"""

from typing import Dict, Optional, Tuple

from PySide6.QtCore import QRegularExpression
from PySide6.QtGui import QRegularExpressionValidator
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from snapink.core.hotkey_service import Action, HotkeyDispatcher, Modifier, parse_key
from snapink.errors import HotkeyConflictError
from snapink.services.logging_service import get_logger


class HotkeySettingsDialog(QDialog):
    """Edit and apply the global hotkey chords."""

    def __init__(self, dispatcher: HotkeyDispatcher, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._dispatcher = dispatcher
        self._rows: Dict[Action, Tuple[QComboBox, QLineEdit]] = {}

        self._dispatcher.begin_edit()
        self.setWindowTitle("Hotkeys")
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        form = QFormLayout()

        letter_validator = QRegularExpressionValidator(QRegularExpression("[A-Za-z]"), self)

        for action, chord in self._dispatcher.draft.items():
            modifier_box = QComboBox()
            for modifier in Modifier:
                modifier_box.addItem(modifier.value, modifier)
            modifier_box.setCurrentIndex(modifier_box.findData(chord.modifier))

            key_edit = QLineEdit(chord.key.value)
            key_edit.setMaxLength(1)
            key_edit.setFixedWidth(40)
            key_edit.setValidator(letter_validator)
            key_edit.textEdited.connect(
                lambda text, edit=key_edit: edit.setText(text.upper())
            )

            row = QHBoxLayout()
            row.addWidget(modifier_box)
            row.addWidget(QLabel(" + "))
            row.addWidget(key_edit)
            row.addStretch()
            form.addRow(f"{action.value}:", row)
            self._rows[action] = (modifier_box, key_edit)

        layout.addLayout(form)

        self._error_label = QLabel("Hotkeys already in use!")
        self._error_label.setStyleSheet("color: #ff4040;")
        self._error_label.hide()
        layout.addWidget(self._error_label)

        buttons = QHBoxLayout()
        buttons.addStretch()
        cancel_button = QPushButton("Cancel")
        cancel_button.clicked.connect(self.reject)
        apply_button = QPushButton("Apply")
        apply_button.setDefault(True)
        apply_button.clicked.connect(self._on_apply)
        buttons.addWidget(cancel_button)
        buttons.addWidget(apply_button)
        layout.addLayout(buttons)

    def _on_apply(self) -> None:
        for action, (modifier_box, key_edit) in self._rows.items():
            current = self._dispatcher.draft[action]
            try:
                key = parse_key(key_edit.text())
            except ValueError:
                # Empty field keeps the previous letter
                key = current.key
                key_edit.setText(key.value)
            self._dispatcher.stage_edit(action, modifier_box.currentData(), key)

        try:
            self._dispatcher.commit()
        except HotkeyConflictError as e:
            self._logger.info(f"Hotkey settings not applied: {e}")
            self._error_label.show()
            return

        self._error_label.hide()
        self.accept()

    def reject(self) -> None:
        self._dispatcher.cancel_edit()
        super().reject()
