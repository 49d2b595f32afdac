"""
Capture service for SnapInk application.

This module runs delayed screen captures off the UI thread:

1. The caller hides its window and calls CaptureCoordinator.capture()
2. A worker thread sleeps for the requested delay
3. The worker looks the display up again (it may have moved or vanished)
4. The worker grabs the display and puts the bitmap on a queue
5. The UI thread calls poll() once per tick and reseeds the session

The worker never touches session state; the bitmap it allocates is handed
over through the queue and owned by the receiver from then on.
"""

import queue
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import cv2
import mss
import mss.exception
import numpy as np

from snapink.editor.bitmap import Bitmap
from snapink.errors import CaptureError, InvalidDisplayError
from snapink.services.logging_service import get_logger

# Longest delay a capture will wait, in seconds
MAX_CAPTURE_DELAY = 1.0

# Time for the hidden window to actually leave the screen
HIDE_SETTLE_DELAY = 0.35


def next_capture_delay(selected: float) -> float:
    """
    Effective delay for a capture request.

    Both the toolbar and the hotkey path use this rule: the settle margin
    is added to the user's selection and the total is capped.
    """
    return min(max(0.0, selected) + HIDE_SETTLE_DELAY, MAX_CAPTURE_DELAY)


@dataclass(frozen=True)
class DisplayInfo:
    """Geometry of one attached display, in virtual desktop pixels."""
    index: int
    left: int
    top: int
    width: int
    height: int
    scale_factor: float = 1.0

    @property
    def label(self) -> str:
        width = int(self.width * self.scale_factor)
        height = int(self.height * self.scale_factor)
        return f"Display {self.index}  {width}x{height}"


class ScreenSource(ABC):
    """Enumerates displays and grabs still images of them."""

    @abstractmethod
    def displays(self) -> List[DisplayInfo]:
        """
        Return the currently attached displays.

        Raises:
            CaptureError: If the displays cannot be enumerated.
        """

    @abstractmethod
    def grab(self, display: DisplayInfo) -> Bitmap:
        """
        Capture one display as an RGBA bitmap.

        Raises:
            CaptureError: If the grab fails.
        """


class MssScreenSource(ScreenSource):
    """
    Screen source backed by mss.

    mss handles are not shared between threads, so every call opens its
    own. Index 0 of mss.monitors is the combined virtual screen and is
    skipped.
    """

    def displays(self) -> List[DisplayInfo]:
        try:
            with mss.mss() as sct:
                monitors = sct.monitors[1:]
        except mss.exception.ScreenShotError as e:
            raise CaptureError(f"Could not enumerate displays: {e}") from e

        return [
            DisplayInfo(
                index=i,
                left=monitor["left"],
                top=monitor["top"],
                width=monitor["width"],
                height=monitor["height"],
            )
            for i, monitor in enumerate(monitors)
        ]

    def grab(self, display: DisplayInfo) -> Bitmap:
        region = {
            "left": display.left,
            "top": display.top,
            "width": display.width,
            "height": display.height,
        }
        try:
            with mss.mss() as sct:
                shot = sct.grab(region)
        except mss.exception.ScreenShotError as e:
            raise CaptureError(f"Could not grab display {display.index}: {e}") from e

        bgra = np.frombuffer(shot.bgra, np.uint8).reshape((shot.height, shot.width, 4))
        return Bitmap(cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGBA))


class CaptureCoordinator:
    """
    Runs captures on worker threads and delivers the results to the UI thread.

    Only one capture is expected in flight at a time, but nothing prevents
    more: each finished worker puts its bitmap on the queue and the last
    one received replaces the session.
    """

    def __init__(self, source: ScreenSource) -> None:
        """
        Initialize the coordinator.

        Args:
            source: Where displays are enumerated and grabbed.
        """
        self._logger = get_logger(__name__)
        self._source = source
        self._results: "queue.Queue[Bitmap]" = queue.Queue()

    @property
    def source(self) -> ScreenSource:
        return self._source

    def displays(self) -> List[DisplayInfo]:
        return self._source.displays()

    def capture(self, display_index: int, delay_seconds: float) -> threading.Thread:
        """
        Start a capture of one display.

        Args:
            display_index: Index into the current display list.
            delay_seconds: Time to wait before grabbing, clamped to [0, 1].

        Returns:
            The started worker thread.

        Raises:
            InvalidDisplayError: If display_index does not name a display.
        """
        try:
            displays = self._source.displays()
        except CaptureError as e:
            raise InvalidDisplayError(f"Cannot validate display {display_index}: {e}") from e

        if not 0 <= display_index < len(displays):
            raise InvalidDisplayError(
                f"Display {display_index} does not exist ({len(displays)} available)"
            )

        delay = min(MAX_CAPTURE_DELAY, max(0.0, delay_seconds))
        self._logger.info(f"Capture requested: display={display_index}, delay={delay:.2f}s")

        worker = threading.Thread(
            target=self._run_capture,
            args=(display_index, delay),
            name=f"capture-display-{display_index}",
            daemon=True,
        )
        worker.start()
        return worker

    def _run_capture(self, display_index: int, delay: float) -> None:
        """Worker body: wait, resolve the display again, grab, deliver."""
        time.sleep(delay)

        try:
            displays = self._source.displays()
            if display_index >= len(displays):
                raise CaptureError(f"Display {display_index} disappeared before capture")
            display = displays[display_index]
            bitmap = self._source.grab(display)
        except CaptureError as e:
            self._logger.error(f"Capture failed, request dropped: {e}")
            return
        except Exception:
            # Nothing waits on this thread, so the log is the only report
            self._logger.exception(f"Unexpected error capturing display {display_index}, request dropped")
            return

        self._logger.info(
            f"Captured display {display_index}: {bitmap.width}x{bitmap.height}"
        )
        self._results.put(bitmap)

    def poll(self) -> Optional[Bitmap]:
        """Return the next delivered bitmap, or None. Never blocks."""
        try:
            return self._results.get_nowait()
        except queue.Empty:
            return None
