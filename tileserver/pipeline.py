from __future__ import annotations

import asyncio
import re
import time
from typing import Any, Optional, Sequence, Tuple

from common.geo import bbox_to_pixel_window, rect_source_window, tile_pixel_rect, tile_to_bbox
from common.logging_setup import get_logger
from common.types import BBox, EncodedTile, PackedPixelBuffer, TileAddress
from tileserver.compositor import blank, composite, place
from tileserver.config import TileSchemeConfig
from tileserver.encoder import EXTENSIONS, encode
from tileserver.errors import BadAddress, EmptyWindow
from tileserver.raster_source import RasterSource
from tileserver.reader import RasterAccessor, gdal_env, read_window


log = get_logger("tileserver.pipeline")

_INT_RE = re.compile(r"-?[0-9]+")
# Beyond 2**53 projected coordinates stop being representable as floats.
_MAX_INDEX = 2 ** 53


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise BadAddress(f"{name} must be an integer")
    if isinstance(value, int):
        v = value
    else:
        s = str(value).strip()
        if not _INT_RE.fullmatch(s):
            raise BadAddress(f"{name} must be an integer, got {value!r}")
        v = int(s)
    if abs(v) > _MAX_INDEX:
        raise BadAddress(f"{name} out of range: {v}")
    return v


def parse_tile_address(z: Any, x: Any, y: Any, *, max_zoom: int = 24) -> TileAddress:
    """
    Validate raw path parameters into a TileAddress.

    Columns/rows outside [0, 2**z) are accepted; they render as empty tiles.
    """
    zoom = _parse_int(z, "z")
    if zoom < 0:
        raise BadAddress(f"z must be >= 0, got {zoom}")
    if zoom > max_zoom:
        raise BadAddress(f"z must be <= {max_zoom}, got {zoom}")
    return TileAddress(zoom=zoom, column=_parse_int(x, "x"), row=_parse_int(y, "y"))


def on_map(address: TileAddress) -> bool:
    """True when column and row both lie in [0, 2**zoom)."""
    n = 1 << address.zoom
    return 0 <= address.column < n and 0 <= address.row < n


def split_extension(y: str, default_fmt: str) -> Tuple[str, str]:
    """'12.png' -> ('12', 'png'); '12' -> ('12', default_fmt)."""
    stem, dot, ext = str(y).rpartition(".")
    if not dot:
        return str(y), default_fmt
    fmt = EXTENSIONS.get(ext.lower())
    if fmt is None:
        raise BadAddress(f"unsupported tile extension .{ext}")
    return stem, fmt


class TilePipeline:
    """
    address -> bbox -> pixel window -> decoded bands -> RGBA buffer -> image.

    Stateless apart from configuration; one instance serves all requests.
    Tiles entirely outside the raster are answered with a transparent tile.
    """

    def __init__(
        self,
        source: RasterSource,
        scheme: Optional[TileSchemeConfig] = None,
        *,
        bands: Sequence[int] = (1, 2, 3),
        rescale: Optional[Tuple[float, float]] = None,
    ):
        self.source = source
        self.scheme = scheme or TileSchemeConfig()
        self.bands = tuple(bands)
        self.rescale = rescale

    def bbox(self, address: TileAddress) -> BBox:
        return tile_to_bbox(
            address.zoom, address.column, address.row,
            tile_size=self.scheme.tile_size, half_extent=self.scheme.half_extent,
        )

    def _read_and_composite(self, locator: str, bbox: BBox) -> PackedPixelBuffer:
        ts = self.scheme.tile_size
        with gdal_env(), RasterAccessor(locator) as acc:
            geom = acc.geometry
            window = bbox_to_pixel_window(bbox, geom)
            rect = tile_pixel_rect(bbox, geom, ts)
            src = rect_source_window(bbox, geom, rect, ts)
            band_set = read_window(acc, src, out_shape=(rect.height, rect.width), indexes=self.bands)
        log.debug(
            "Window read",
            extra={"extra": {"window": window.as_tuple(), "source": src.as_tuple(), "rect": rect.as_tuple()}},
        )
        packed = composite(band_set, rect.width, rect.height, rescale=self.rescale)
        return place(packed, rect, ts)

    async def render(self, address: TileAddress, fmt: Optional[str] = None, raster_id: Optional[str] = None) -> EncodedTile:
        fmt = fmt or self.scheme.format
        t0 = time.perf_counter()
        buffer: Optional[PackedPixelBuffer] = None
        if on_map(address):
            locator = await self.source.locate(raster_id)
            try:
                buffer = await asyncio.to_thread(self._read_and_composite, locator, self.bbox(address))
            except EmptyWindow as e:
                log.debug("Tile outside raster", extra={"extra": {"zxy": address.as_tuple(), "reason": str(e)}})
        else:
            log.debug("Tile off the map", extra={"extra": {"zxy": address.as_tuple()}})
        empty = buffer is None
        if buffer is None:
            buffer = blank(self.scheme.tile_size, self.scheme.tile_size)
        tile = encode(buffer, fmt)
        dt_ms = int(1000.0 * (time.perf_counter() - t0))
        log.info(
            "Tile rendered",
            extra={"extra": {"zxy": address.as_tuple(), "fmt": fmt, "bytes": len(tile.content), "empty": empty, "latency_ms": dt_ms}},
        )
        return tile

    async def render_path(self, z: Any, x: Any, y: Any, raster_id: Optional[str] = None) -> Tuple[TileAddress, EncodedTile]:
        """Parse raw path parameters (y may carry an extension) and render."""
        y_stem, fmt = split_extension(y, self.scheme.format)
        address = parse_tile_address(z, x, y_stem, max_zoom=self.scheme.max_zoom)
        return address, await self.render(address, fmt=fmt, raster_id=raster_id)
