"""
Geometry helpers for the SnapInk editor.

- map_to_image: widget-space pointer position to bitmap pixel position
- line_points: integer points of a straight segment (Bresenham)
- normalize_rect: turn a drag (start, end) into a top-left based rectangle
- linear_to_srgb, srgb_to_linear: pen color conversions
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class Point:
    """A 2D position, in widget or pixel space depending on context."""
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    """A width/height pair."""
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with a top-left origin and non-negative size."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def map_to_image(pointer: Point, view_size: Size, image_size: Size) -> Point:
    """
    Map a pointer position on the displayed image to a bitmap pixel position.

    Each axis is scaled independently by true_size / displayed_size. The
    result is not clamped; callers must clamp before indexing a buffer.
    """
    return Point(
        pointer.x * image_size.width / view_size.width,
        pointer.y * image_size.height / view_size.height,
    )


def line_points(x0: int, y0: int, x1: int, y1: int) -> List[Tuple[int, int]]:
    """
    Return the grid points of the segment (x0, y0) -> (x1, y1).

    Both endpoints are included and points are ordered from start to end.
    """
    points = []

    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    x, y = x0, y0
    err = dx - dy

    while True:
        points.append((x, y))

        if x == x1 and y == y1:
            break

        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x += sx
        if e2 < dx:
            err += dx
            y += sy

    return points


def normalize_rect(start: Point, end: Point) -> Rect:
    """Build a rectangle from two drag corners, flipping negative extents."""
    return Rect(
        min(start.x, end.x),
        min(start.y, end.y),
        abs(end.x - start.x),
        abs(end.y - start.y),
    )


def linear_to_srgb(color: Sequence[float]) -> Tuple[int, int, int]:
    """Convert linear RGB floats (0.0 - 1.0) to 8-bit sRGB with gamma 2.2."""
    channels = []
    for value in color[:3]:
        if value <= 0.0:
            channels.append(0)
        elif value >= 1.0:
            channels.append(255)
        else:
            channels.append(int(value ** (1.0 / 2.2) * 255.0 + 0.5))
    return (channels[0], channels[1], channels[2])


def srgb_to_linear(color: Sequence[int]) -> Tuple[float, float, float]:
    """Convert 8-bit sRGB to linear floats; the inverse of linear_to_srgb."""
    red, green, blue = ((min(255, max(0, c)) / 255.0) ** 2.2 for c in color[:3])
    return (red, green, blue)
