from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import rasterio
from rasterio.enums import Resampling
from rasterio.errors import RasterioError
from rasterio.windows import Window

from common.types import BandSet, FractionalWindow, PixelWindow, RasterGeometry
from tileserver.errors import DecodeFailure, InconsistentBandSet


AnyWindow = Union[PixelWindow, FractionalWindow]


def gdal_env() -> rasterio.Env:
    """GDAL options for reading one object over HTTP(S) without listing its 'directory'."""
    return rasterio.Env(GDAL_DISABLE_READDIR_ON_OPEN="EMPTY_DIR", GDAL_HTTP_MERGE_CONSECUTIVE_RANGES="YES")


class RasterAccessor:
    """
    Windowed access to one georeferenced raster, opened once per request.

    `locator` is anything rasterio.open() accepts: a local path, or an
    HTTPS (presigned) URL which GDAL reads with range requests.
    """

    def __init__(self, locator: str):
        self.locator = locator
        try:
            self._ds = rasterio.open(locator)
        except (RasterioError, OSError) as e:
            raise DecodeFailure("could not open raster") from e

    def __enter__(self) -> "RasterAccessor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._ds.close()

    @property
    def width(self) -> int:
        return int(self._ds.width)

    @property
    def height(self) -> int:
        return int(self._ds.height)

    @property
    def count(self) -> int:
        return int(self._ds.count)

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self._ds.dtypes[0])

    @property
    def bit_depth(self) -> int:
        return self.dtype.itemsize * 8

    @property
    def crs(self) -> Optional[str]:
        return self._ds.crs.to_string() if self._ds.crs else None

    @property
    def geometry(self) -> RasterGeometry:
        """North-up geometry from the affine geotransform."""
        t = self._ds.transform
        if t.b != 0 or t.d != 0:
            raise DecodeFailure("rotated or sheared geotransforms are not supported")
        if t.a <= 0 or t.e >= 0:
            raise DecodeFailure(f"raster is not north-up (pixel size {t.a}, {t.e})")
        return RasterGeometry(
            origin_x=float(t.c),
            origin_y=float(t.f),
            pixel_x=float(t.a),
            pixel_y=float(-t.e),
            width=self.width,
            height=self.height,
        )

    def read(self, indexes: Sequence[int], window: AnyWindow, out_shape: Tuple[int, int]) -> np.ndarray:
        """
        Read `indexes` (1-based) over `window`, fitted to out_shape=(h, w) by nearest neighbour.

        Fractional windows are passed through as-is; GDAL samples each output
        pixel at its centre within the sub-pixel extent.
        """
        try:
            return self._ds.read(
                indexes=list(indexes),
                window=Window(window.left, window.top, window.width, window.height),
                out_shape=(len(indexes), out_shape[0], out_shape[1]),
                resampling=Resampling.nearest,
            )
        except (RasterioError, OSError) as e:
            raise DecodeFailure(f"could not read window {window.as_tuple()}") from e


def read_window(
    accessor: RasterAccessor,
    window: AnyWindow,
    out_shape: Optional[Tuple[int, int]] = None,
    indexes: Sequence[int] = (1, 2, 3),
) -> BandSet:
    """
    Decode `window` into a BandSet of shape (bands, h, w).

    out_shape defaults to the window's own size (rounded up for fractional
    windows). Band indexes the raster does
    not have are dropped; the compositor decides whether enough remain.
    Any band whose sample count differs from h * w is an internal
    inconsistency and raises InconsistentBandSet.
    """
    h, w = out_shape if out_shape is not None else (math.ceil(window.height), math.ceil(window.width))
    available = [i for i in indexes if i <= accessor.count]
    if not available:
        return BandSet(np.zeros((0, h, w), dtype=accessor.dtype), bit_depth=accessor.bit_depth)

    data = accessor.read(available, window, (h, w))
    if not isinstance(data, np.ndarray) or data.ndim != 3 or data.shape[0] != len(available):
        raise InconsistentBandSet(f"decoder returned shape {getattr(data, 'shape', None)} for {len(available)} bands")
    for i in range(data.shape[0]):
        if data[i].size != h * w:
            raise InconsistentBandSet(f"band {available[i]} has {data[i].size} samples, expected {h * w}")
    if data.shape[1:] != (h, w):
        raise InconsistentBandSet(f"decoder returned {data.shape[1:]} for a {h}x{w} window")
    return BandSet(np.ma.getdata(data), bit_depth=accessor.bit_depth)
