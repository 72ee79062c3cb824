from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from common.types import BandSet, PackedPixelBuffer, PixelWindow
from tileserver.errors import InsufficientBands


CHANNELS = 4          # R, G, B, A
ALPHA_OPAQUE = 255    # alpha written for every pixel that has raster data
ALPHA_EMPTY = 0       # alpha for tile pixels outside the raster
MIN_BANDS = 3


def to_uint8(band: np.ndarray, rescale: Optional[Tuple[float, float]] = None) -> np.ndarray:
    """
    Normalize one band to 8 bits.

    - uint8 passes through untouched (unless `rescale` is given).
    - rescale=(lo, hi): linear stretch lo..hi -> 0..255, clipped.
    - wider integers: scaled by 255 / dtype max; negatives clip to 0.
    - floats: clipped to [0, 255].
    Scaled values are rounded to nearest.
    """
    if rescale is not None:
        lo, hi = rescale
        scaled = (band.astype(np.float64) - lo) * (255.0 / (hi - lo))
        return np.clip(np.rint(scaled), 0, 255).astype(np.uint8)
    if band.dtype == np.uint8:
        return band
    if np.issubdtype(band.dtype, np.integer):
        top = float(np.iinfo(band.dtype).max)
        scaled = band.astype(np.float64) * (255.0 / top)
        return np.clip(np.rint(scaled), 0, 255).astype(np.uint8)
    if np.issubdtype(band.dtype, np.floating) or band.dtype == np.bool_:
        return np.clip(np.rint(np.nan_to_num(band.astype(np.float64))), 0, 255).astype(np.uint8)
    raise TypeError(f"unsupported band dtype {band.dtype}")


def composite(
    band_set: BandSet,
    width: int,
    height: int,
    rescale: Optional[Tuple[float, float]] = None,
) -> PackedPixelBuffer:
    """
    Interleave the first three bands as R,G,B and add a constant alpha.

    output[i*4 + 0..2] = bands[0..2][i], output[i*4 + 3] = ALPHA_OPAQUE
    Extra bands are ignored. Fewer than three raises InsufficientBands;
    grayscale is never expanded.
    """
    if band_set.count < MIN_BANDS:
        raise InsufficientBands(f"raster provides {band_set.count} band(s), {MIN_BANDS} required")
    if (band_set.height, band_set.width) != (height, width):
        raise ValueError(f"band set is {band_set.width}x{band_set.height}, expected {width}x{height}")

    out = np.empty((height, width, CHANNELS), dtype=np.uint8)
    for c in range(MIN_BANDS):
        out[..., c] = to_uint8(band_set.bands[c], rescale)
    out[..., 3] = ALPHA_OPAQUE
    return PackedPixelBuffer(out.tobytes(), width, height, CHANNELS)


def blank(width: int, height: int) -> PackedPixelBuffer:
    """Fully transparent buffer."""
    return PackedPixelBuffer(bytes(width * height * CHANNELS), width, height, CHANNELS)


def place(buffer: PackedPixelBuffer, rect: PixelWindow, tile_size: int) -> PackedPixelBuffer:
    """
    Paste `buffer` at `rect` inside a transparent tile_size x tile_size tile.
    Returns `buffer` unchanged when it already fills the tile.
    """
    if (rect.width, rect.height) != (buffer.width, buffer.height):
        raise ValueError(f"rect {rect.as_tuple()} does not match a {buffer.width}x{buffer.height} buffer")
    if rect.as_tuple() == (0, 0, tile_size, tile_size):
        return buffer
    canvas = np.zeros((tile_size, tile_size, buffer.channels), dtype=np.uint8)
    canvas[rect.top:rect.bottom, rect.left:rect.right] = buffer.as_array()
    return PackedPixelBuffer(canvas.tobytes(), tile_size, tile_size, buffer.channels)
