"""
Annotation session for SnapInk.

The AnnotationSession owns the captured bitmap and everything done to it:

- the active tool (None, Pen or Crop)
- the pointer drag in progress
- the undo/redo history of full-bitmap checkpoints

The UI feeds it drag events in widget coordinates; the session maps them
to pixel coordinates, rasterizes pen strokes straight into the current
bitmap and derives cropped bitmaps. Every finished edit is pushed as a
checkpoint and clears the redo stack.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional, Sequence, Tuple

from snapink.editor.bitmap import Bitmap
from snapink.editor.geometry import (
    Point,
    Rect,
    Size,
    line_points,
    linear_to_srgb,
    map_to_image,
    normalize_rect,
)
from snapink.errors import NoImageError
from snapink.services.logging_service import get_logger

MIN_PEN_RADIUS = 1
MAX_PEN_RADIUS = 30
DEFAULT_PEN_COLOR = (0.9, 0.3, 0.24)


class Tool(Enum):
    """Tools that interpret pointer drags."""
    NONE = "None"
    PEN = "Pen"
    CROP = "Crop"


def clamp_pen_radius(radius: int) -> int:
    return max(MIN_PEN_RADIUS, min(MAX_PEN_RADIUS, int(radius)))


@dataclass
class PenStyle:
    """Pen color (linear RGB floats) and radius in pixels."""
    color: Tuple[float, float, float] = DEFAULT_PEN_COLOR
    radius: int = MIN_PEN_RADIUS

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        """The color as it is written into the bitmap."""
        red, green, blue = linear_to_srgb(self.color)
        return (red, green, blue, 255)


@dataclass
class DragState:
    """Pointer positions of the drag in progress, in widget space."""
    last: Point = Point(0.0, 0.0)
    current: Point = Point(0.0, 0.0)
    active: bool = False


@dataclass(frozen=True)
class ImagePayload:
    """Raw RGBA8 pixels handed to the file and clipboard sinks."""
    width: int
    height: int
    data: bytes


class History:
    """
    Undo and redo stacks of bitmap checkpoints.

    undo holds oldest...newest; the newest entry is what the session shows.
    redo holds reverted states, most recently reverted first.

    With a limit, pushing beyond it evicts the oldest undo entry. The limit
    must be at least 1 so the current state is never evicted.
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is not None and limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")
        self._limit = limit
        self.undo_stack: Deque[Bitmap] = deque()
        self.redo_stack: Deque[Bitmap] = deque()

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()

    def seed(self, bitmap: Bitmap) -> None:
        self.clear()
        self.undo_stack.append(bitmap)

    def push(self, bitmap: Bitmap) -> None:
        """Record a new edit. Any redo states are dropped."""
        self.undo_stack.append(bitmap)
        self.redo_stack.clear()
        if self._limit is not None:
            while len(self.undo_stack) > self._limit:
                self.undo_stack.popleft()

    def newest(self) -> Bitmap:
        return self.undo_stack[-1]

    def step_back(self) -> bool:
        if len(self.undo_stack) < 2:
            return False
        self.redo_stack.appendleft(self.undo_stack.pop())
        return True

    def step_forward(self) -> bool:
        if not self.redo_stack:
            return False
        self.undo_stack.append(self.redo_stack.popleft())
        return True


class AnnotationSession:
    """
    The editable state of one captured image.

    All methods run on the UI thread. Methods that need an image are
    silent no-ops until reset_session() has provided one, except the
    export accessors which raise NoImageError.
    """

    def __init__(
        self,
        pen: Optional[PenStyle] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._current: Optional[Bitmap] = None
        self._history = History(history_limit)
        self._tool = Tool.NONE
        self._pen = pen or PenStyle()
        self._pen.radius = clamp_pen_radius(self._pen.radius)
        self._drag = DragState()
        self._view_size: Optional[Size] = None

    # ─── State Accessors ──────────────────────────────────────────────────

    @property
    def current(self) -> Optional[Bitmap]:
        """The visible bitmap. Read it for rendering only."""
        return self._current

    @property
    def has_image(self) -> bool:
        return self._current is not None

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def pen(self) -> PenStyle:
        return self._pen

    @property
    def history(self) -> History:
        return self._history

    @property
    def history_depth(self) -> Tuple[int, int]:
        """Number of (undo, redo) entries."""
        return (len(self._history.undo_stack), len(self._history.redo_stack))

    @property
    def can_undo(self) -> bool:
        return len(self._history.undo_stack) > 1

    @property
    def can_redo(self) -> bool:
        return bool(self._history.redo_stack)

    @property
    def is_dragging(self) -> bool:
        return self._drag.active

    @property
    def view_size(self) -> Optional[Size]:
        return self._view_size

    @property
    def selection_rect(self) -> Optional[Rect]:
        """The crop outline to draw, in widget space, while a crop drag runs."""
        if self._tool is not Tool.CROP or not self._drag.active:
            return None
        return normalize_rect(self._drag.last, self._drag.current)

    # ─── Settings ─────────────────────────────────────────────────────────

    def set_tool(self, tool: Tool) -> None:
        """Switch tools. A drag in progress is finished first."""
        if self._drag.active:
            self.end_drag()
        if tool is not self._tool:
            self._logger.debug(f"Tool changed: {self._tool.value} -> {tool.value}")
        self._tool = tool

    def set_pen_color(self, color: Sequence[float]) -> None:
        red, green, blue = (min(1.0, max(0.0, float(c))) for c in color[:3])
        self._pen.color = (red, green, blue)

    def set_pen_radius(self, radius: int) -> None:
        self._pen.radius = clamp_pen_radius(radius)

    def set_view_size(self, width: float, height: float) -> None:
        """Set the on-screen size of the displayed image."""
        if width <= 0 or height <= 0:
            return
        self._view_size = Size(width, height)

    # ─── Session Lifecycle ────────────────────────────────────────────────

    def reset_session(self, bitmap: Bitmap) -> None:
        """
        Start over with a freshly captured bitmap.

        Both stacks are cleared, the tool goes back to None and the bitmap
        becomes the single origin checkpoint.
        """
        self._drag = DragState()
        self._tool = Tool.NONE
        self._current = bitmap
        self._history.seed(bitmap.copy())
        self._view_size = None
        self._logger.info(f"Session reset with {bitmap.width}x{bitmap.height} image")

    # ─── Pointer Drags ────────────────────────────────────────────────────

    def begin_drag(self, pointer: Point) -> None:
        if self._current is None or self._tool is Tool.NONE:
            return
        self._drag = DragState(last=pointer, current=pointer, active=True)

    def continue_drag(self, pointer: Point) -> None:
        if self._current is None or self._tool is Tool.NONE:
            return
        if not self._drag.active:
            self.begin_drag(pointer)
        self._drag.current = pointer

        if self._tool is Tool.PEN:
            self._stroke(self._drag.last, self._drag.current)
            self._drag.last = self._drag.current

    def end_drag(self) -> None:
        if not self._drag.active:
            return
        last, current = self._drag.last, self._drag.current
        self._drag = DragState()

        if self._current is None:
            return
        if self._tool is Tool.PEN:
            self._history.push(self._current.copy())
            self._logger.debug("Pen stroke committed")
        elif self._tool is Tool.CROP:
            self._crop(last, current)

    def cancel_drag(self) -> None:
        """Forget the drag in progress without committing anything."""
        self._drag = DragState()

    def _discard_drag(self) -> None:
        """Drop a drag in progress, including any uncommitted pen pixels."""
        if not self._drag.active:
            return
        self.cancel_drag()
        if self._tool is Tool.PEN:
            self._current = self._history.newest().copy()

    def _image_size(self) -> Size:
        return Size(self._current.width, self._current.height)

    def _to_pixels(self, pointer: Point) -> Point:
        view_size = self._view_size or self._image_size()
        return map_to_image(pointer, view_size, self._image_size())

    def _stroke(self, start: Point, end: Point) -> None:
        """Stamp the segment between two widget positions into the image."""
        pixel_start = self._to_pixels(start)
        pixel_end = self._to_pixels(end)
        points = line_points(
            int(pixel_start.x), int(pixel_start.y),
            int(pixel_end.x), int(pixel_end.y),
        )
        self._current.stamp_points(points, self._pen.radius, self._pen.rgba)

    def _crop(self, start: Point, end: Point) -> None:
        rect = normalize_rect(self._to_pixels(start), self._to_pixels(end))

        # Truncate like the pen does, then keep the region inside the image
        left = max(0, int(rect.x))
        top = max(0, int(rect.y))
        right = min(self._current.width, int(rect.x) + int(rect.width))
        bottom = min(self._current.height, int(rect.y) + int(rect.height))
        if right - left < 1 or bottom - top < 1:
            self._logger.debug(f"Ignoring empty crop selection {rect}")
            return

        cropped = self._current.crop(left, top, right - left, bottom - top)
        self._current = cropped
        self._history.push(cropped.copy())
        self._view_size = None
        self._logger.info(f"Cropped to {cropped.width}x{cropped.height}")

    # ─── History ──────────────────────────────────────────────────────────

    def undo(self) -> None:
        """Go back one checkpoint. The origin checkpoint is never undone."""
        if self._current is None:
            return
        self._discard_drag()
        if self._history.step_back():
            self._current = self._history.newest().copy()
            self._view_size = None

    def redo(self) -> None:
        if self._current is None:
            return
        self._discard_drag()
        if self._history.step_forward():
            self._current = self._history.newest().copy()
            self._view_size = None

    # ─── Export ───────────────────────────────────────────────────────────

    def export(self) -> ImagePayload:
        """Return the current pixels for the file sink."""
        if self._current is None:
            raise NoImageError("No image has been captured yet")
        return ImagePayload(self._current.width, self._current.height, self._current.to_bytes())

    def to_clipboard_payload(self) -> ImagePayload:
        """Return the current pixels for the clipboard sink."""
        return self.export()
