"""
pynput implementation of the global hotkey backend.

A keyboard listener runs on pynput's own thread and tracks which keys are
held. When the held set matches a registered chord exactly, the chord's
handle is queued; the UI thread collects it with poll().

Note: pynput needs an X11 session (or Windows/macOS). Under Wayland the
listener does not see global key events.
"""

import itertools
import queue
import threading
from typing import Dict, Hashable, Optional, Set

from snapink.core.hotkey_service import Chord, HotkeyBackend, Modifier
from snapink.errors import HotkeyRegistrationError
from snapink.services.logging_service import get_logger

try:
    from pynput import keyboard
    PYNPUT_AVAILABLE = True
except ImportError:
    PYNPUT_AVAILABLE = False


class PynputHotkeyBackend(HotkeyBackend):
    """
    Global hotkeys through a pynput keyboard listener.

    Handles are small integers. Matching happens on the listener thread;
    only handle ids cross over to the UI thread, through a queue.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._handle_ids = itertools.count(1)
        self._chords: Dict[int, Chord] = {}
        self._pressed: Set[str] = set()
        self._events: "queue.Queue[int]" = queue.Queue()
        self._lock = threading.Lock()
        self._listener = None

        if not PYNPUT_AVAILABLE:
            self._logger.warning(
                "pynput not available. Global hotkeys will not work. "
                "Install with: pip install pynput"
            )
            return

        self._start_listener()

    def _start_listener(self) -> None:
        """Start the global keyboard listener in a background thread."""
        self._listener = keyboard.Listener(
            on_press=self._on_key_press,
            on_release=self._on_key_release,
        )
        self._listener.daemon = True
        self._listener.start()
        self._logger.info("Global hotkey listener started")

    # ─── HotkeyBackend ────────────────────────────────────────────────────

    def register(self, chord: Chord) -> Hashable:
        if self._listener is None:
            raise HotkeyRegistrationError("Global hotkey listener is not running")

        with self._lock:
            if chord in self._chords.values():
                raise HotkeyRegistrationError(f"{chord} is already registered")
            handle = next(self._handle_ids)
            self._chords[handle] = chord
        return handle

    def unregister(self, handle: Hashable) -> None:
        with self._lock:
            if self._chords.pop(handle, None) is None:
                raise HotkeyRegistrationError(f"Unknown hotkey handle {handle!r}")

    def poll(self) -> Optional[Hashable]:
        try:
            return self._events.get_nowait()
        except queue.Empty:
            return None

    def stop(self) -> None:
        """Stop the hotkey listener."""
        if self._listener:
            self._listener.stop()
            self._listener = None
            self._logger.info("Global hotkey listener stopped")

    # ─── Listener Callbacks (pynput thread) ───────────────────────────────

    def _on_key_press(self, key) -> None:
        name = self._key_name(key)
        if name is None:
            return

        with self._lock:
            self._pressed.add(name)
            for handle, chord in self._chords.items():
                if self._pressed == {chord.modifier.value, chord.key.value}:
                    self._events.put(handle)
                    break

    def _on_key_release(self, key) -> None:
        name = self._key_name(key)
        if name is None:
            return
        with self._lock:
            self._pressed.discard(name)

    @staticmethod
    def _key_name(key) -> Optional[str]:
        """
        Reduce a pynput key to a modifier name or an uppercase letter.

        Left and right modifiers are treated alike. Letters typed with CTRL
        held may arrive as control characters and are mapped back.
        """
        modifiers = {
            keyboard.Key.ctrl: Modifier.CTRL.value,
            keyboard.Key.ctrl_l: Modifier.CTRL.value,
            keyboard.Key.ctrl_r: Modifier.CTRL.value,
            keyboard.Key.shift: Modifier.SHIFT.value,
            keyboard.Key.shift_l: Modifier.SHIFT.value,
            keyboard.Key.shift_r: Modifier.SHIFT.value,
            keyboard.Key.alt: Modifier.ALT.value,
            keyboard.Key.alt_l: Modifier.ALT.value,
            keyboard.Key.alt_r: Modifier.ALT.value,
            keyboard.Key.alt_gr: Modifier.ALT.value,
        }
        if key in modifiers:
            return modifiers[key]

        char = getattr(key, "char", None)
        if not char:
            return None
        if len(char) == 1 and 1 <= ord(char) <= 26:
            char = chr(ord(char) + 64)
        char = char.upper()
        if len(char) == 1 and "A" <= char <= "Z":
            return char
        return None
