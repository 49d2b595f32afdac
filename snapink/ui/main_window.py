"""
Main window for SnapInk application.

Top toolbar: Snapshot, delay, display, Save as, Copy, Hotkeys.
Right toolbar: None / Pen / Crop tools, Undo, Redo, pen size and color.
Center: the image view, or a waiting message before the first snapshot.

The window holds no editing logic. Buttons emit action_requested with the
same Action a global hotkey would produce, and AppCore performs it.
"""

from pathlib import Path
from typing import Optional, Sequence

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QAction, QActionGroup, QColor
from PySide6.QtWidgets import (
    QColorDialog,
    QComboBox,
    QFileDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QStackedWidget,
    QToolBar,
    QWidget,
)

from snapink.core.capture_service import DisplayInfo
from snapink.core.hotkey_service import Action
from snapink.editor.geometry import linear_to_srgb, srgb_to_linear
from snapink.editor.session import (
    MAX_PEN_RADIUS,
    MIN_PEN_RADIUS,
    AnnotationSession,
    Tool,
)
from snapink.services.export_service import dialog_filter
from snapink.services.logging_service import get_logger
from snapink.ui.image_view import ImageView

# Delays offered in the toolbar, before the settle margin is added
DELAY_CHOICES = (0.0, 0.25, 0.5, 0.65)

_TOOL_ACTIONS = {
    Tool.NONE: Action.NONE,
    Tool.PEN: Action.PEN,
    Tool.CROP: Action.CROP,
}


class ColorButton(QPushButton):
    """Button that shows a color and opens color picker on click."""

    color_changed = Signal(QColor)

    def __init__(self, color: QColor = QColor(255, 80, 80), parent=None):
        super().__init__(parent)
        self._color = color
        self.setFixedSize(32, 32)
        self.clicked.connect(self._on_click)
        self._update_style()

    @property
    def color(self) -> QColor:
        return self._color

    @color.setter
    def color(self, value: QColor) -> None:
        self._color = value
        self._update_style()

    def _update_style(self) -> None:
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color.name()};
                border: 2px solid #555;
                border-radius: 4px;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
        """)

    def _on_click(self) -> None:
        color = QColorDialog.getColor(self._color, self, "Select Color")
        if color.isValid():
            self.color = color
            self.color_changed.emit(color)


class MainWindow(QMainWindow):
    """
    Main application window for SnapInk.

    Signals:
        action_requested: An Action chosen from a toolbar button.
        settings_requested: The hotkey settings button was clicked.
        delay_changed: New selected capture delay, in seconds.
        display_changed: New selected display index.
        pen_color_changed: New pen color as linear RGB floats.
        pen_size_changed: New pen radius.
    """

    action_requested = Signal(object)
    settings_requested = Signal()
    delay_changed = Signal(float)
    display_changed = Signal(int)
    pen_color_changed = Signal(object)
    pen_size_changed = Signal(int)

    def __init__(
        self,
        session: AnnotationSession,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            session: The annotation session shown in the image view.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session
        self._tool_actions = {}

        self._setup_window()
        self._setup_central_widget()
        self._setup_top_toolbar()
        self._setup_tool_toolbar()
        self.update_state()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        self.setWindowTitle("SnapInk")
        self.setMinimumSize(750, 500)
        self.resize(1100, 750)

    def _setup_central_widget(self) -> None:
        self._stack = QStackedWidget(self)

        self._placeholder = QLabel("Take a snapshot to start annotating")
        self._placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._placeholder.setStyleSheet("color: #888; font-size: 16px;")
        self._stack.addWidget(self._placeholder)

        self._view = ImageView(self._session)
        self._view.image_edited.connect(self.update_state)
        self._stack.addWidget(self._view)

        self.setCentralWidget(self._stack)

    def _setup_top_toolbar(self) -> None:
        toolbar = QToolBar("Capture", self)
        toolbar.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.TopToolBarArea, toolbar)

        snapshot = toolbar.addAction("📷 Snapshot")
        snapshot.triggered.connect(lambda: self.action_requested.emit(Action.TAKE))

        self._delay_box = QComboBox()
        for delay in DELAY_CHOICES:
            self._delay_box.addItem(f"🕓 {delay:g} sec", delay)
        self._delay_box.currentIndexChanged.connect(
            lambda index: self.delay_changed.emit(float(self._delay_box.itemData(index)))
        )
        toolbar.addWidget(self._delay_box)

        self._display_box = QComboBox()
        self._display_box.currentIndexChanged.connect(self._on_display_selected)
        toolbar.addWidget(self._display_box)

        toolbar.addSeparator()

        self._save_action = toolbar.addAction("💾 Save as")
        self._save_action.triggered.connect(lambda: self.action_requested.emit(Action.SAVE))

        self._copy_action = toolbar.addAction("📄 Copy")
        self._copy_action.triggered.connect(lambda: self.action_requested.emit(Action.COPY))

        toolbar.addSeparator()

        settings = toolbar.addAction("🔨 Hotkeys")
        settings.triggered.connect(self.settings_requested.emit)

    def _setup_tool_toolbar(self) -> None:
        toolbar = QToolBar("Tools", self)
        toolbar.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.RightToolBarArea, toolbar)

        group = QActionGroup(self)
        group.setExclusive(True)
        for tool, text in ((Tool.NONE, "🚫"), (Tool.PEN, "✏"), (Tool.CROP, "✂")):
            action = QAction(text, self)
            action.setToolTip(tool.value)
            action.setCheckable(True)
            action.triggered.connect(
                lambda checked=False, t=tool: self.action_requested.emit(_TOOL_ACTIONS[t])
            )
            group.addAction(action)
            toolbar.addAction(action)
            self._tool_actions[tool] = action

        toolbar.addSeparator()

        self._undo_action = toolbar.addAction("↩")
        self._undo_action.setToolTip("Undo")
        self._undo_action.triggered.connect(lambda: self.action_requested.emit(Action.UNDO))

        self._redo_action = toolbar.addAction("↪")
        self._redo_action.setToolTip("Redo")
        self._redo_action.triggered.connect(lambda: self.action_requested.emit(Action.REDO))

        toolbar.addSeparator()

        self._size_box = QSpinBox()
        self._size_box.setRange(MIN_PEN_RADIUS, MAX_PEN_RADIUS)
        self._size_box.setValue(self._session.pen.radius)
        self._size_box.setToolTip("Pen size")
        self._size_box.valueChanged.connect(self.pen_size_changed.emit)
        toolbar.addWidget(self._size_box)

        red, green, blue = linear_to_srgb(self._session.pen.color)
        self._color_button = ColorButton(QColor(red, green, blue))
        self._color_button.setToolTip("Pen color")
        self._color_button.color_changed.connect(self._on_color_selected)
        toolbar.addWidget(self._color_button)

    # ─── Public Methods ───────────────────────────────────────────────────

    def set_displays(self, displays: Sequence[DisplayInfo], selected: int) -> Optional[int]:
        """
        Fill the display chooser.

        Returns:
            The display index now shown, which is the first display when
            selected is not offered, or None if there are no displays.
        """
        self._display_box.blockSignals(True)
        self._display_box.clear()
        for display in displays:
            self._display_box.addItem(f"🖵 {display.label}", display.index)
        if 0 <= selected < len(displays):
            self._display_box.setCurrentIndex(selected)
        self._display_box.blockSignals(False)

        shown = self._display_box.currentData()
        return None if shown is None else int(shown)

    def set_delay(self, delay: float) -> float:
        """Select a delay. Returns the delay shown, which may differ if delay is not offered."""
        index = self._delay_box.findData(delay)
        if index >= 0:
            self._delay_box.blockSignals(True)
            self._delay_box.setCurrentIndex(index)
            self._delay_box.blockSignals(False)
        return float(self._delay_box.currentData())

    def update_state(self) -> None:
        """Refresh widgets that depend on the session."""
        has_image = self._session.has_image
        self._stack.setCurrentWidget(self._view if has_image else self._placeholder)

        self._save_action.setEnabled(has_image)
        self._copy_action.setEnabled(has_image)
        self._undo_action.setEnabled(self._session.can_undo)
        self._redo_action.setEnabled(self._session.can_redo)
        for action in self._tool_actions.values():
            action.setEnabled(has_image)
        self._tool_actions[self._session.tool].setChecked(True)

        if has_image:
            bitmap = self._session.current
            self.setWindowTitle(f"SnapInk - {bitmap.width}×{bitmap.height}")
        self._view.refresh()

    def show_snapshot(self) -> None:
        """Show the window after a capture has been delivered."""
        self.update_state()
        self.show()
        self.raise_()
        self.activateWindow()

    def ask_save_path(self, suggested_name: str, folder: str) -> Optional[Path]:
        """Ask the user where to save. Returns None if cancelled."""
        start = str(Path(folder) / f"{suggested_name}.png")
        path, _ = QFileDialog.getSaveFileName(self, "Save snapshot", start, dialog_filter())
        return Path(path) if path else None

    def show_error(self, title: str, message: str) -> None:
        QMessageBox.warning(self, title, message)

    # ─── Handlers ─────────────────────────────────────────────────────────

    def _on_display_selected(self, index: int) -> None:
        data = self._display_box.itemData(index)
        if data is not None:
            self.display_changed.emit(int(data))

    def _on_color_selected(self, color: QColor) -> None:
        self.pen_color_changed.emit(srgb_to_linear((color.red(), color.green(), color.blue())))

    @property
    def image_view(self) -> ImageView:
        return self._view
