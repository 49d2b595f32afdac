"""Exception types shared across SnapInk modules."""

from typing import List


class SnapInkError(Exception):
    """Base class for all SnapInk errors."""


class NoImageError(SnapInkError):
    """Raised when an operation needs a captured image and there is none."""


class InvalidDisplayError(SnapInkError):
    """Raised when a capture is requested for a display that does not exist."""


class CaptureError(SnapInkError):
    """Raised by a screen source when enumeration or grabbing fails."""


class ExportError(SnapInkError):
    """Raised when the current image cannot be written to disk."""


class HotkeyRegistrationError(SnapInkError):
    """Raised by a hotkey backend when a chord cannot be registered."""


class HotkeyConflictError(SnapInkError):
    """
    Raised when two hotkeys in a configuration share the same chord.

    Attributes:
        conflicts: The chords used by more than one action.
    """

    def __init__(self, conflicts: List[object]) -> None:
        self.conflicts = conflicts
        names = ", ".join(str(chord) for chord in conflicts)
        super().__init__(f"Hotkeys already in use: {names}")
