from __future__ import annotations

import math
from typing import Tuple

from common.types import BBox, FractionalWindow, PixelWindow, RasterGeometry


# --- Web Mercator (EPSG:3857) constants ---
WEB_MERCATOR_HALF_EXTENT = 20037508.342789244   # pi * 6378137 (m)
TILE_SIZE = 256

# Edges closer than this to an integer pixel index snap onto it, so that
# float noise in the geotransform does not grow a window by a whole pixel.
_SNAP_PX = 1e-6


class EmptyWindowError(ValueError):
    """The requested area does not overlap the raster."""


# -------------------------
# Tile addressing
# -------------------------
def resolution(zoom: int, tile_size: int = TILE_SIZE, half_extent: float = WEB_MERCATOR_HALF_EXTENT) -> float:
    """Projected units per tile pixel at `zoom`."""
    return (2.0 * half_extent) / (tile_size * 2.0 ** zoom)


def tile_to_bbox(
    zoom: int,
    column: int,
    row: int,
    tile_size: int = TILE_SIZE,
    half_extent: float = WEB_MERCATOR_HALF_EXTENT,
) -> BBox:
    """
    Bounding box of XYZ tile (zoom, column, row) in projected units.

    Rows count southwards from the top of the map while projected Y grows
    northwards, so the top edge of row r is `half_extent - r * span`.
    Out-of-range columns/rows are not clamped; they just land off the map.
    """
    span = tile_size * resolution(zoom, tile_size, half_extent)
    return BBox(
        min_x=column * span - half_extent,
        min_y=half_extent - (row + 1) * span,
        max_x=(column + 1) * span - half_extent,
        max_y=half_extent - row * span,
    )


# -------------------------
# Window resolution
# -------------------------
def geo2pix(x: float, y: float, geom: RasterGeometry) -> Tuple[float, float]:
    """
    Projected (x, y) to fractional pixel (col, row). Row grows as y decreases.
    """
    col = (x - geom.origin_x) / geom.pixel_x
    row = (geom.origin_y - y) / geom.pixel_y
    return col, row


def pix2geo(col: float, row: float, geom: RasterGeometry) -> Tuple[float, float]:
    """Inverse of geo2pix()."""
    return geom.origin_x + col * geom.pixel_x, geom.origin_y - row * geom.pixel_y


def _snap(v: float) -> float:
    r = round(v)
    return float(r) if abs(v - r) < _SNAP_PX else v


def clamp_window(window: PixelWindow, width: int, height: int) -> PixelWindow:
    """Clamp every edge independently into [0, width] x [0, height]."""
    left = min(max(window.left, 0), width)
    right = min(max(window.right, 0), width)
    top = min(max(window.top, 0), height)
    bottom = min(max(window.bottom, 0), height)
    return PixelWindow(left, top, max(left, right), max(top, bottom))


def bbox_to_pixel_window(bbox: BBox, geom: RasterGeometry) -> PixelWindow:
    """
    Pixel window of the raster covered by `bbox`.

    Rounding: edges are snapped onto integers when within 1e-6 px, then
    left/top are floored and right/bottom ceiled, so every pixel the bbox
    touches is included. The result is clamped to the raster.

    Raises:
        EmptyWindowError: the clamped window has zero width or height.
    """
    c0, r0 = geo2pix(bbox.min_x, bbox.max_y, geom)  # top-left corner
    c1, r1 = geo2pix(bbox.max_x, bbox.min_y, geom)  # bottom-right corner
    raw = PixelWindow(
        left=math.floor(_snap(c0)),
        top=math.floor(_snap(r0)),
        right=max(math.floor(_snap(c0)), math.ceil(_snap(c1))),
        bottom=max(math.floor(_snap(r0)), math.ceil(_snap(r1))),
    )
    window = clamp_window(raw, geom.width, geom.height)
    if window.is_empty:
        raise EmptyWindowError(f"bbox {bbox.as_tuple()} does not overlap raster {geom.width}x{geom.height}")
    return window


def tile_pixel_rect(bbox: BBox, geom: RasterGeometry, tile_size: int = TILE_SIZE) -> PixelWindow:
    """
    Sub-rectangle of a `tile_size` tile (in tile pixels) that the raster covers.

    Interior tiles get the whole tile; edge tiles get the part that overlaps
    the raster bounds, rounded to the nearest tile pixel.

    Raises:
        EmptyWindowError: the overlap rounds to less than one tile pixel.
    """
    rb = geom.bounds
    ix0, iy0 = max(bbox.min_x, rb.min_x), max(bbox.min_y, rb.min_y)
    ix1, iy1 = min(bbox.max_x, rb.max_x), min(bbox.max_y, rb.max_y)
    if ix0 >= ix1 or iy0 >= iy1:
        raise EmptyWindowError(f"bbox {bbox.as_tuple()} does not overlap raster bounds {rb.as_tuple()}")

    sx = tile_size / bbox.width
    sy = tile_size / bbox.height
    rect = clamp_window(
        PixelWindow(
            left=int(math.floor((ix0 - bbox.min_x) * sx + 0.5)),
            top=int(math.floor((bbox.max_y - iy1) * sy + 0.5)),
            right=int(math.floor((ix1 - bbox.min_x) * sx + 0.5)),
            bottom=int(math.floor((bbox.max_y - iy0) * sy + 0.5)),
        ),
        tile_size,
        tile_size,
    )
    if rect.is_empty:
        raise EmptyWindowError("raster overlap is smaller than one tile pixel")
    return rect


def rect_source_window(bbox: BBox, geom: RasterGeometry, rect: PixelWindow, tile_size: int = TILE_SIZE) -> FractionalWindow:
    """
    Exact source-pixel extent of tile pixels `rect`, clamped to the raster.

    Reading this window into a (rect.height, rect.width) buffer puts every
    tile pixel over the source pixel beneath its centre, even when tile edges
    fall inside source pixels.

    Raises:
        EmptyWindowError: the clamped extent has no area.
    """
    ux = bbox.width / tile_size
    uy = bbox.height / tile_size
    c0, r0 = geo2pix(bbox.min_x + rect.left * ux, bbox.max_y - rect.top * uy, geom)
    c1, r1 = geo2pix(bbox.min_x + rect.right * ux, bbox.max_y - rect.bottom * uy, geom)
    left, right = (min(max(_snap(c), 0.0), geom.width) for c in (c0, c1))
    top, bottom = (min(max(_snap(r), 0.0), geom.height) for r in (r0, r1))
    if not (left < right and top < bottom):
        raise EmptyWindowError(f"tile pixels {rect.as_tuple()} map to no source pixels")
    return FractionalWindow(left, top, right, bottom)
