"""
Global hotkey dispatch for SnapInk application.

The HotkeyDispatcher keeps two sets of chords:

- committed: the chords registered with the OS right now
- draft: what the settings panel is editing

Edits only touch the draft. commit() checks that no chord is used twice,
then re-registers everything with the backend. Fired events are mapped
back to an Action the caller performs; the dispatcher never touches the
annotation session itself.
"""

import string
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Hashable, List, Mapping, Optional

from snapink.errors import HotkeyConflictError, HotkeyRegistrationError
from snapink.services.logging_service import get_logger


class Modifier(Enum):
    """Modifier keys a chord may use."""
    ALT = "ALT"
    CTRL = "CTRL"
    SHIFT = "SHIFT"

    @classmethod
    def parse(cls, text: str) -> "Modifier":
        name = text.strip().upper()
        if name == "CONTROL":
            name = "CTRL"
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown modifier: {text!r}") from None


# Alphabetic keys only, A to Z
Key = Enum("Key", [(letter, letter) for letter in string.ascii_uppercase])


def parse_key(text: str) -> "Key":
    """Parse a single letter into a Key."""
    letter = text.strip().upper()
    if len(letter) != 1 or letter not in string.ascii_uppercase:
        raise ValueError(f"Hotkey key must be a single letter A-Z, got {text!r}")
    return Key(letter)


class Action(Enum):
    """Logical actions a hotkey can trigger."""
    COPY = "Copy"
    SAVE = "Save"
    TAKE = "Take"
    NONE = "None"
    PEN = "Pen"
    CROP = "Crop"
    UNDO = "Undo"
    REDO = "Redo"


@dataclass(frozen=True)
class Chord:
    """A modifier plus a letter key, e.g. CTRL+S."""
    modifier: Modifier
    key: Key

    @classmethod
    def parse(cls, text: str) -> "Chord":
        """Parse "ctrl+s" style text."""
        parts = text.split("+")
        if len(parts) != 2:
            raise ValueError(f"Hotkey must look like 'ctrl+s', got {text!r}")
        return cls(Modifier.parse(parts[0]), parse_key(parts[1]))

    def __str__(self) -> str:
        return f"{self.modifier.value}+{self.key.value}"


DEFAULT_HOTKEYS: Dict[Action, Chord] = {
    Action.COPY: Chord(Modifier.CTRL, Key.C),
    Action.SAVE: Chord(Modifier.CTRL, Key.S),
    Action.TAKE: Chord(Modifier.CTRL, Key.T),
    Action.NONE: Chord(Modifier.CTRL, Key.N),
    Action.PEN: Chord(Modifier.CTRL, Key.P),
    Action.CROP: Chord(Modifier.CTRL, Key.X),
    Action.UNDO: Chord(Modifier.CTRL, Key.Z),
    Action.REDO: Chord(Modifier.CTRL, Key.Y),
}


def find_conflicts(chords: Mapping[Action, Chord]) -> List[Chord]:
    """Return every chord used by more than one action."""
    counts = Counter(chords.values())
    return [chord for chord, count in counts.items() if count > 1]


def chords_from_config(hotkeys: Mapping[str, str]) -> Dict[Action, Chord]:
    """
    Build the chord table from config strings.

    Unknown labels and unparsable chords fall back to the defaults. A table
    that uses one chord twice is replaced by DEFAULT_HOTKEYS entirely.
    """
    logger = get_logger(__name__)
    chords = dict(DEFAULT_HOTKEYS)
    for label, text in hotkeys.items():
        try:
            action = Action(label)
            chords[action] = Chord.parse(text)
        except ValueError as e:
            logger.warning(f"Ignoring hotkey {label!r}={text!r}: {e}")

    conflicts = find_conflicts(chords)
    if conflicts:
        logger.warning(
            f"Configured hotkeys reuse {', '.join(map(str, conflicts))}; using defaults"
        )
        return dict(DEFAULT_HOTKEYS)
    return chords


def chords_to_config(chords: Mapping[Action, Chord]) -> Dict[str, str]:
    return {action.value: str(chord).lower() for action, chord in chords.items()}


class HotkeyBackend(ABC):
    """OS-level global hotkey registration."""

    @abstractmethod
    def register(self, chord: Chord) -> Hashable:
        """
        Register a chord and return an opaque handle for it.

        Raises:
            HotkeyRegistrationError: If the chord cannot be registered.
        """

    @abstractmethod
    def unregister(self, handle: Hashable) -> None:
        """Release a previously registered handle."""

    @abstractmethod
    def poll(self) -> Optional[Hashable]:
        """Return the handle of the next fired hotkey, or None. Never blocks."""

    def stop(self) -> None:
        """Release any resources held by the backend."""


class HotkeyDispatcher:
    """
    Maps fired OS hotkeys to logical actions.

    The committed chords are what the backend has registered. The draft
    is edited by the settings panel and only becomes active on commit().
    """

    def __init__(
        self,
        backend: HotkeyBackend,
        chords: Optional[Mapping[Action, Chord]] = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            backend: The OS hotkey backend.
            chords: Initial committed chords. Defaults to DEFAULT_HOTKEYS.
        """
        self._logger = get_logger(__name__)
        self._backend = backend
        self._committed: Dict[Action, Chord] = dict(chords or DEFAULT_HOTKEYS)
        self._draft: Dict[Action, Chord] = dict(self._committed)
        self._handles: Dict[Action, Hashable] = {}

    @property
    def committed(self) -> Dict[Action, Chord]:
        return dict(self._committed)

    @property
    def draft(self) -> Dict[Action, Chord]:
        return dict(self._draft)

    @property
    def handles(self) -> Dict[Action, Hashable]:
        return dict(self._handles)

    # ─── Registration ─────────────────────────────────────────────────────

    def register_all(self) -> None:
        """
        Register every committed chord with the backend.

        Failures are logged per binding; the others are still registered.
        """
        for action, chord in self._committed.items():
            try:
                self._handles[action] = self._backend.register(chord)
                self._logger.debug(f"Registered hotkey {chord} for {action.value}")
            except HotkeyRegistrationError as e:
                self._logger.error(f"Failed to register hotkey {chord} for {action.value}: {e}")

        self._logger.info(f"Registered {len(self._handles)}/{len(self._committed)} hotkeys")

    def unregister_all(self) -> None:
        for action, handle in self._handles.items():
            try:
                self._backend.unregister(handle)
            except HotkeyRegistrationError as e:
                self._logger.error(f"Failed to unregister hotkey for {action.value}: {e}")
        self._handles.clear()

    def shutdown(self) -> None:
        self.unregister_all()
        self._backend.stop()
        self._logger.info("Hotkeys unregistered")

    # ─── Editing ──────────────────────────────────────────────────────────

    def begin_edit(self) -> None:
        """Start editing from the committed chords."""
        self._draft = dict(self._committed)

    def cancel_edit(self) -> None:
        """Throw the draft away."""
        self._draft = dict(self._committed)

    def stage_edit(self, action: Action, modifier: Modifier, key: Key) -> None:
        """Change one chord in the draft. The active bindings are untouched."""
        self._draft[action] = Chord(modifier, key)

    def commit(self) -> None:
        """
        Make the draft the active configuration.

        Raises:
            HotkeyConflictError: If two actions share a chord. The draft is
                kept as is and the committed bindings stay registered.
        """
        conflicts = find_conflicts(self._draft)
        if conflicts:
            self._logger.warning(
                f"Hotkey commit rejected, duplicate chords: {', '.join(map(str, conflicts))}"
            )
            raise HotkeyConflictError(conflicts)

        self.unregister_all()
        self._committed = dict(self._draft)
        self.register_all()

    # ─── Dispatch ─────────────────────────────────────────────────────────

    def dispatch(self, handle: Hashable) -> Optional[Action]:
        """Return the action registered under a fired handle, if any."""
        for action, registered in self._handles.items():
            if registered == handle:
                self._logger.info(f"Hotkey action: {action.value}")
                return action
        self._logger.debug(f"No hotkey registered for handle {handle!r}")
        return None

    def poll(self) -> Optional[Action]:
        """Fetch one fired event from the backend and map it to an action."""
        handle = self._backend.poll()
        if handle is None:
            return None
        return self.dispatch(handle)
