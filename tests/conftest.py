"""
Test fixtures for SnapInk tests.

Provides bitmaps plus fake screen and hotkey backends so nothing here
needs a real display, keyboard listener or Qt application.
"""

import queue
from typing import Dict, Hashable, List, Optional, Set

import numpy as np
import pytest

from snapink.core.capture_service import DisplayInfo, ScreenSource
from snapink.core.hotkey_service import Chord, HotkeyBackend
from snapink.editor.bitmap import Bitmap
from snapink.editor.session import AnnotationSession
from snapink.errors import CaptureError, HotkeyRegistrationError


class FakeScreenSource(ScreenSource):
    """Displays are plain DisplayInfo objects; grabs return solid bitmaps."""

    def __init__(self, sizes=((200, 150),)) -> None:
        self.sizes: List[tuple] = list(sizes)
        self.fail_enumeration = False
        self.fail_grab = False
        # Raised from grab() as is, for errors a real backend did not anticipate
        self.grab_error: Optional[Exception] = None
        self.grabbed: List[int] = []

    def displays(self) -> List[DisplayInfo]:
        if self.fail_enumeration:
            raise CaptureError("enumeration failed")
        return [
            DisplayInfo(index=i, left=0, top=0, width=w, height=h)
            for i, (w, h) in enumerate(self.sizes)
        ]

    def grab(self, display: DisplayInfo) -> Bitmap:
        if self.grab_error is not None:
            raise self.grab_error
        if self.fail_grab:
            raise CaptureError("grab failed")
        self.grabbed.append(display.index)
        # Encode the display index in the pixels so results are distinguishable
        return Bitmap.blank(display.width, display.height, (display.index, 0, 0, 255))


class FakeHotkeyBackend(HotkeyBackend):
    """Records registrations; tests fire handles with fire()."""

    def __init__(self) -> None:
        self._next = 1
        self.registered: Dict[int, Chord] = {}
        self.fail_for: Set[Chord] = set()
        self.events: "queue.Queue[Hashable]" = queue.Queue()
        self.stopped = False

    def register(self, chord: Chord) -> Hashable:
        if chord in self.fail_for:
            raise HotkeyRegistrationError(f"{chord} taken by another program")
        handle = self._next
        self._next += 1
        self.registered[handle] = chord
        return handle

    def unregister(self, handle: Hashable) -> None:
        if self.registered.pop(handle, None) is None:
            raise HotkeyRegistrationError(f"unknown handle {handle}")

    def poll(self) -> Optional[Hashable]:
        try:
            return self.events.get_nowait()
        except queue.Empty:
            return None

    def stop(self) -> None:
        self.stopped = True

    def fire(self, handle: Hashable) -> None:
        self.events.put(handle)

    def handle_for(self, chord: Chord) -> Hashable:
        for handle, registered in self.registered.items():
            if registered == chord:
                return handle
        raise KeyError(str(chord))


@pytest.fixture
def make_bitmap():
    """Factory for solid-color bitmaps."""
    def _make(width=200, height=150, color=(255, 255, 255, 255)):
        return Bitmap.blank(width, height, color)
    return _make


@pytest.fixture
def gradient_bitmap():
    """A 200x150 bitmap where every pixel is distinct enough to check crops."""
    pixels = np.zeros((150, 200, 4), dtype=np.uint8)
    xs = np.arange(200, dtype=np.uint8)
    ys = np.arange(150, dtype=np.uint8)
    pixels[:, :, 0] = xs[np.newaxis, :]
    pixels[:, :, 1] = ys[:, np.newaxis]
    pixels[:, :, 3] = 255
    return Bitmap(pixels)


@pytest.fixture
def session(make_bitmap):
    """A session seeded with a white 200x150 image."""
    session = AnnotationSession()
    session.reset_session(make_bitmap())
    return session


@pytest.fixture
def screen_source():
    return FakeScreenSource()


@pytest.fixture
def hotkey_backend():
    return FakeHotkeyBackend()
