from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True, slots=True)
class TileAddress:
    """XYZ tile address. Row 0 is the northernmost row."""
    zoom: int
    column: int
    row: int

    def __post_init__(self) -> None:
        if self.zoom < 0:
            raise ValueError("zoom must be >= 0")

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.zoom, self.column, self.row)


@dataclass(frozen=True, slots=True)
class BBox:
    """Axis-aligned box in projected units: (min_x, min_y, max_x, max_y)."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def __post_init__(self) -> None:
        if not (self.min_x < self.max_x and self.min_y < self.max_y):
            raise ValueError(f"degenerate bbox: {self.as_tuple()}")

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)


@dataclass(frozen=True, slots=True)
class PixelWindow:
    """
    Half-open pixel rectangle [left, right) x [top, bottom).

    Used both for windows into the source raster and for sub-rectangles of
    an output tile.
    """
    left: int
    top: int
    right: int
    bottom: int

    def __post_init__(self) -> None:
        if self.left > self.right or self.top > self.bottom:
            raise ValueError(f"inverted window: {self.as_tuple()}")

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True, slots=True)
class FractionalWindow:
    """
    Source pixel rectangle with sub-pixel edges, [left, right) x [top, bottom).

    Read by nearest neighbour: output pixel i samples the source pixel under
    left + (i + 0.5) * width / out_width.
    """
    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self) -> None:
        if not (self.left < self.right and self.top < self.bottom):
            raise ValueError(f"empty fractional window: {self.as_tuple()}")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True, slots=True)
class RasterGeometry:
    """
    North-up georeferencing of a source raster.

    Attributes:
        origin_x, origin_y: projected coordinates of the top-left corner of pixel (0, 0).
        pixel_x, pixel_y: pixel size magnitudes in projected units (both > 0).
        width, height: raster dimensions in pixels.
    """
    origin_x: float
    origin_y: float
    pixel_x: float
    pixel_y: float
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.pixel_x <= 0 or self.pixel_y <= 0:
            raise ValueError("pixel sizes must be > 0")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("raster dimensions must be > 0")

    @property
    def bounds(self) -> BBox:
        return BBox(
            self.origin_x,
            self.origin_y - self.height * self.pixel_y,
            self.origin_x + self.width * self.pixel_x,
            self.origin_y,
        )


@dataclass(slots=True)
class BandSet:
    """
    Decoded bands for one pixel window.

    Attributes:
        bands: np.ndarray of shape (count, height, width) in the source dtype.
        bit_depth: bits per sample of the source (8 for uint8 imagery).
    """
    bands: np.ndarray
    bit_depth: int = 8

    def __post_init__(self) -> None:
        if not isinstance(self.bands, np.ndarray):
            raise TypeError("bands must be a numpy ndarray")
        if self.bands.ndim != 3:
            raise ValueError("bands must be 3D (count, height, width)")

    @property
    def count(self) -> int:
        return int(self.bands.shape[0])

    @property
    def height(self) -> int:
        return int(self.bands.shape[1])

    @property
    def width(self) -> int:
        return int(self.bands.shape[2])

    @property
    def dtype(self) -> np.dtype:
        return self.bands.dtype


@dataclass(frozen=True, slots=True)
class PackedPixelBuffer:
    """Interleaved row-major pixels, top row first, channel order R,G,B,A."""
    data: bytes
    width: int
    height: int
    channels: int = 4

    def __post_init__(self) -> None:
        expected = self.width * self.height * self.channels
        if len(self.data) != expected:
            raise ValueError(f"buffer holds {len(self.data)} bytes, expected {expected}")

    def as_array(self) -> np.ndarray:
        """View as (height, width, channels) uint8 without copying."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width, self.channels)


@dataclass(frozen=True, slots=True)
class EncodedTile:
    content: bytes
    media_type: str
