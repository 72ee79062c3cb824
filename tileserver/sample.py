"""
Synthetic georeferenced rasters for local runs and tests.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import rasterio
from rasterio.enums import Resampling
from rasterio.transform import from_bounds

from common.geo import WEB_MERCATOR_HALF_EXTENT


WORLD_BOUNDS = (-WEB_MERCATOR_HALF_EXTENT, -WEB_MERCATOR_HALF_EXTENT, WEB_MERCATOR_HALF_EXTENT, WEB_MERCATOR_HALF_EXTENT)


def synthesize_bands(width: int, height: int, count: int = 3, dtype: str = "uint8", seed: int = 1234) -> np.ndarray:
    """Gradient + checkerboard pattern so tile edges are easy to eyeball."""
    top = float(np.iinfo(dtype).max) if np.issubdtype(np.dtype(dtype), np.integer) else 255.0
    rng = np.random.default_rng(seed)
    xs = np.linspace(0.0, 1.0, width, dtype=np.float64)[None, :]
    ys = np.linspace(0.0, 1.0, height, dtype=np.float64)[:, None]
    checker = ((np.arange(height)[:, None] // 32 + np.arange(width)[None, :] // 32) % 2).astype(np.float64)
    planes = [xs + 0 * ys, ys + 0 * xs, 0.5 * checker + 0.25]
    out = np.empty((count, height, width), dtype=dtype)
    for i in range(count):
        plane = planes[i % 3] + rng.normal(0.0, 0.01, size=(height, width))
        out[i] = np.clip(plane, 0.0, 1.0) * top
    return out


def write_sample_raster(
    path: Path | str,
    *,
    width: int = 256,
    height: int = 256,
    bounds: Tuple[float, float, float, float] = WORLD_BOUNDS,
    values: Optional[Sequence[float]] = None,
    count: int = 3,
    dtype: str = "uint8",
    crs: str = "EPSG:3857",
    overviews: Sequence[int] = (),
    seed: int = 1234,
) -> Path:
    """
    Write a north-up GeoTIFF covering `bounds` (minx, miny, maxx, maxy).

    values: one constant per band; otherwise a synthetic pattern is written.
    overviews: decimation factors to build (e.g. (2, 4, 8)); the file is
    tiled when any are requested, like a cloud-optimized GeoTIFF.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if values is not None:
        if len(values) != count:
            raise ValueError(f"{len(values)} values given for {count} bands")
        data = np.stack([np.full((height, width), v, dtype=dtype) for v in values])
    else:
        data = synthesize_bands(width, height, count, dtype, seed)

    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": count,
        "dtype": dtype,
        "crs": crs,
        "transform": from_bounds(*bounds, width, height),
    }
    if overviews and width >= 256 and height >= 256:
        profile.update({"tiled": True, "blockxsize": 256, "blockysize": 256})
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data)
        if overviews:
            dst.build_overviews(list(overviews), Resampling.nearest)
    return path
