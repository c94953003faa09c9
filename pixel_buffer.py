"""PixelBuffer: a fixed-size grid of RGBA pixels backed by a numpy array."""

import numpy as np

from errors import OutOfBounds

RGBA = tuple[int, int, int, int]

TRANSPARENT: RGBA = (0, 0, 0, 0)


class PixelBuffer:
    """Row-major RGBA storage. ``pixels[y, x]`` is one (r, g, b, a) quad."""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid buffer size: {width}x{height}")
        self._width = width
        self._height = height
        self.pixels = np.zeros((height, width, 4), dtype=np.uint8)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        if array.ndim != 3 or array.shape[2] != 4:
            raise ValueError(f"Expected an (h, w, 4) array, got {array.shape}")
        buf = cls(array.shape[1], array.shape[0])
        buf.pixels[:] = array
        return buf

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self._width and 0 <= y < self._height

    def _check(self, x: int, y: int):
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self._width, self._height)

    def get(self, x: int, y: int) -> RGBA:
        self._check(x, y)
        r, g, b, a = self.pixels[y, x]
        return (int(r), int(g), int(b), int(a))

    def set(self, x: int, y: int, color: RGBA):
        self._check(x, y)
        self.pixels[y, x] = color

    def fill(self, color: RGBA):
        self.pixels[:, :] = color

    def copy(self) -> "PixelBuffer":
        buf = PixelBuffer(self._width, self._height)
        buf.pixels[:] = self.pixels
        return buf

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (self._width == other._width and self._height == other._height
                and np.array_equal(self.pixels, other.pixels))

    def __repr__(self):
        return f"PixelBuffer({self._width}x{self._height})"
