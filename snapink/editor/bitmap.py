"""
RGBA bitmap used as the editable image in SnapInk.

The pixels live in a numpy uint8 array of shape (height, width, 4). Pen
stamps are drawn with OpenCV, which clips anything outside the image.
"""

from typing import Iterable, Tuple

import cv2
import numpy as np


class Bitmap:
    """
    A rectangular grid of RGBA pixels.

    A Bitmap is never shared between owners: call copy() to hand a
    separate instance to another slot (history entry, clipboard, ...).
    """

    def __init__(self, pixels: np.ndarray) -> None:
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an (h, w, 4) array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
        # cv2 drawing needs a contiguous buffer it can write into
        self._pixels = np.ascontiguousarray(pixels)

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Tuple[int, int, int, int] = (255, 255, 255, 255),
    ) -> "Bitmap":
        """Create a bitmap filled with a single color."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)

    @classmethod
    def from_bytes(cls, data: bytes, width: int, height: int) -> "Bitmap":
        """Create a bitmap from a row-major RGBA8 buffer."""
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(
                f"Buffer holds {len(data)} bytes, {width}x{height} RGBA needs {expected}"
            )
        pixels = np.frombuffer(data, np.uint8).reshape((height, width, 4)).copy()
        return cls(pixels)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixels(self) -> np.ndarray:
        """The backing array. Writes go straight into the image."""
        return self._pixels

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self._pixels[y, x]
        return (int(r), int(g), int(b), int(a))

    def to_bytes(self) -> bytes:
        """Return the pixels as a row-major RGBA8 buffer."""
        return self._pixels.tobytes()

    def copy(self) -> "Bitmap":
        return Bitmap(self._pixels.copy())

    def stamp_disk(
        self,
        center: Tuple[int, int],
        radius: int,
        color: Tuple[int, int, int, int],
    ) -> None:
        """Overwrite a filled disk of pixels with color, in place."""
        cv2.circle(self._pixels, center, radius, color, thickness=-1)

    def stamp_points(
        self,
        points: Iterable[Tuple[int, int]],
        radius: int,
        color: Tuple[int, int, int, int],
    ) -> None:
        for point in points:
            self.stamp_disk(point, radius, color)

    def crop(self, x: int, y: int, width: int, height: int) -> "Bitmap":
        """
        Return a new bitmap holding the given region.

        The region must lie inside the image and have a positive size.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Crop size must be positive, got {width}x{height}")
        if x < 0 or y < 0 or x + width > self.width or y + height > self.height:
            raise ValueError(
                f"Crop region ({x}, {y}, {width}, {height}) exceeds "
                f"{self.width}x{self.height} image"
            )
        return Bitmap(self._pixels[y:y + height, x:x + width].copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitmap):
            return NotImplemented
        return np.array_equal(self._pixels, other._pixels)

    # Mutable; equality is by value
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Bitmap({self.width}x{self.height})"
