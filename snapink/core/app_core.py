"""
Application core for SnapInk.

This module contains the AppCore class which is responsible for:
- Initializing all services (config, capture, hotkeys, session)
- Creating the main window and applying the dark theme
- Polling the capture and hotkey channels once per UI tick
- Performing actions requested by toolbar buttons or global hotkeys

This is the central orchestration point for the application.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Slot
from PySide6.QtGui import QClipboard, QColor, QPalette
from PySide6.QtWidgets import QApplication, QDialog

from snapink.core.capture_service import (
    CaptureCoordinator,
    MssScreenSource,
    ScreenSource,
    next_capture_delay,
)
from snapink.core.hotkey_service import (
    Action,
    HotkeyBackend,
    HotkeyDispatcher,
    chords_from_config,
    chords_to_config,
)
from snapink.core.pynput_backend import PynputHotkeyBackend
from snapink.editor.session import AnnotationSession, PenStyle, Tool
from snapink.errors import CaptureError, ExportError, InvalidDisplayError
from snapink.services.config_service import ConfigService
from snapink.services.export_service import save_image, suggested_filename
from snapink.services.logging_service import get_logger
from snapink.ui.hotkey_dialog import HotkeySettingsDialog
from snapink.ui.image_view import payload_to_qimage
from snapink.ui.main_window import MainWindow

# How often the capture and hotkey channels are polled
TICK_INTERVAL_MS = 50

# A dropped capture never reports back; bring the window back after this
CAPTURE_TIMEOUT_MS = 3000

_TOOLS = {
    Action.NONE: Tool.NONE,
    Action.PEN: Tool.PEN,
    Action.CROP: Tool.CROP,
}


class AppCore(QObject):
    """
    Central application core that wires together all components.

    The capture flow:
    1. User triggers Take (toolbar or hotkey)
    2. The window hides and CaptureCoordinator starts a worker
    3. A later tick receives the bitmap and reseeds the session
    4. The window is shown again with the new snapshot
    """

    def __init__(
        self,
        app: QApplication,
        config_service: Optional[ConfigService] = None,
        screen_source: Optional[ScreenSource] = None,
        hotkey_backend: Optional[HotkeyBackend] = None,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            config_service: Config to use. Defaults to the user's config file.
            screen_source: Display source. Defaults to mss.
            hotkey_backend: Global hotkey backend. Defaults to pynput.
        """
        super().__init__()
        self._app = app
        self._logger = get_logger(__name__)
        self._logger.info("Initializing SnapInk application core...")

        self._config = config_service or ConfigService()
        self._display_index = self._config.capture_display
        self._delay = self._config.capture_delay

        self._session = AnnotationSession(
            PenStyle(self._config.pen_color, self._config.pen_size),
            history_limit=self._config.history_limit,
        )
        self._capture = CaptureCoordinator(screen_source or MssScreenSource())
        self._hotkeys = HotkeyDispatcher(
            hotkey_backend or PynputHotkeyBackend(),
            chords_from_config(self._config.hotkeys),
        )

        self._apply_dark_theme()
        self._init_ui()
        self._hotkeys.register_all()
        self._connect_signals()

        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_tick)
        self._timer.start(TICK_INTERVAL_MS)

        self._main_window.show()

    def _apply_dark_theme(self) -> None:
        """Apply a dark color palette to the application."""
        palette = QPalette()
        palette.setColor(QPalette.ColorRole.Window, QColor(45, 45, 45))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor(50, 50, 50))
        palette.setColor(QPalette.ColorRole.Text, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Button, QColor(55, 55, 55))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Highlight, QColor(80, 120, 180))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
        palette.setColor(
            QPalette.ColorGroup.Disabled,
            QPalette.ColorRole.ButtonText,
            QColor(127, 127, 127)
        )
        self._app.setPalette(palette)
        self._logger.debug("Dark theme applied")

    def _init_ui(self) -> None:
        self._main_window = MainWindow(self._session)
        stale = False

        # Saved values the toolbar cannot show are replaced by what it shows
        delay = self._main_window.set_delay(self._delay)
        if delay != self._delay:
            self._logger.warning(f"Saved delay {self._delay} is not offered, using {delay}")
            self._delay = delay
            stale = True

        try:
            displays = self._capture.displays()
        except CaptureError as e:
            self._logger.error(f"Could not list displays: {e}")
            displays = []
        display_index = self._main_window.set_displays(displays, self._display_index)
        if display_index is not None and display_index != self._display_index:
            self._logger.warning(
                f"Saved display {self._display_index} is not attached, using {display_index}"
            )
            self._display_index = display_index
            stale = True

        if stale:
            self._save_capture_settings()

    def _connect_signals(self) -> None:
        window = self._main_window
        window.action_requested.connect(self.perform)
        window.settings_requested.connect(self.open_hotkey_settings)
        window.delay_changed.connect(self._on_delay_changed)
        window.display_changed.connect(self._on_display_changed)
        window.pen_color_changed.connect(self._on_pen_color_changed)
        window.pen_size_changed.connect(self._on_pen_size_changed)
        self._app.aboutToQuit.connect(self.shutdown)

    # ─── Tick ─────────────────────────────────────────────────────────────

    @Slot()
    def _on_tick(self) -> None:
        """Poll the capture and hotkey channels. Never blocks."""
        bitmap = self._capture.poll()
        if bitmap is not None:
            self._session.reset_session(bitmap)
            self._main_window.show_snapshot()

        action = self._hotkeys.poll()
        if action is not None:
            self.perform(action)

    # ─── Actions ──────────────────────────────────────────────────────────

    @Slot(object)
    def perform(self, action: Action) -> None:
        """
        Carry out an action from a button or a hotkey.

        Everything except Take needs a snapshot and is ignored without one.
        """
        if action is Action.TAKE:
            self.take_snapshot()
            return
        if not self._session.has_image:
            return

        if action is Action.SAVE:
            self.save_snapshot()
        elif action is Action.COPY:
            self.copy_snapshot()
        elif action is Action.UNDO:
            self._session.undo()
        elif action is Action.REDO:
            self._session.redo()
        elif action in _TOOLS:
            self._session.set_tool(_TOOLS[action])

        self._main_window.update_state()

    def take_snapshot(self) -> None:
        delay = next_capture_delay(self._delay)
        self._main_window.hide()
        try:
            self._capture.capture(self._display_index, delay)
        except InvalidDisplayError as e:
            self._logger.error(f"Capture not started: {e}")
            self._main_window.show()
            self._main_window.show_error("Snapshot failed", str(e))
            return

        QTimer.singleShot(CAPTURE_TIMEOUT_MS, self._restore_window)

    def _restore_window(self) -> None:
        if not self._main_window.isVisible():
            self._logger.warning("No snapshot arrived, showing the window again")
            self._main_window.show()

    def save_snapshot(self) -> None:
        path = self._main_window.ask_save_path(
            suggested_filename(), self._config.default_save_folder
        )
        if path is None:
            self._logger.debug("Save cancelled")
            return

        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            save_image(self._session.export(), path)
        except (ExportError, OSError) as e:
            self._logger.error(f"Failed to save snapshot: {e}")
            self._main_window.show_error("Save failed", str(e))

    def copy_snapshot(self) -> None:
        """Copy the current snapshot to the system clipboard."""
        clipboard: QClipboard = QApplication.clipboard()
        clipboard.setImage(payload_to_qimage(self._session.to_clipboard_payload()))
        self._logger.info("Snapshot copied to clipboard")

    @Slot()
    def open_hotkey_settings(self) -> None:
        dialog = HotkeySettingsDialog(self._hotkeys, self._main_window)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            self._config.set_hotkeys(chords_to_config(self._hotkeys.committed))
            self._config.save()
            self._logger.info("Hotkeys updated")

    # ─── Settings Handlers ────────────────────────────────────────────────

    @Slot(float)
    def _on_delay_changed(self, delay: float) -> None:
        self._delay = delay
        self._save_capture_settings()

    @Slot(int)
    def _on_display_changed(self, index: int) -> None:
        self._display_index = index
        self._save_capture_settings()

    def _save_capture_settings(self) -> None:
        self._config.set("capture", {"display": self._display_index, "delay": self._delay})
        self._config.save()

    @Slot(object)
    def _on_pen_color_changed(self, color) -> None:
        self._session.set_pen_color(color)
        self._save_pen_settings()

    @Slot(int)
    def _on_pen_size_changed(self, size: int) -> None:
        self._session.set_pen_radius(size)
        self._save_pen_settings()

    def _save_pen_settings(self) -> None:
        pen = self._session.pen
        self._config.set("pen", {"color": list(pen.color), "size": pen.radius})
        self._config.save()

    # ─── Application Lifecycle ────────────────────────────────────────────

    @Slot()
    def shutdown(self) -> None:
        """Clean shutdown of all services."""
        self._logger.info("Shutting down SnapInk...")
        self._timer.stop()
        self._hotkeys.shutdown()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def session(self) -> AnnotationSession:
        return self._session

    @property
    def main_window(self) -> MainWindow:
        return self._main_window

    @property
    def display_index(self) -> int:
        return self._display_index

    @property
    def capture_delay(self) -> float:
        return self._delay
