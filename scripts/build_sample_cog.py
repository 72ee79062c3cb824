#!/usr/bin/env python3
"""
Write a synthetic georeferenced raster so the tile server can run without S3.

Creates an RGB GeoTIFF in EPSG:3857 (tiled, with overviews) covering the
whole Web Mercator square by default, or --bounds if given.

Examples:
  python scripts/build_sample_cog.py --out data/sample_cog.tif
  python scripts/build_sample_cog.py --out data/flat.tif --size 256 --values 10 20 30
  python scripts/build_sample_cog.py --out data/u16.tif --dtype uint16 --bounds -1e6 -1e6 1e6 1e6

Then point config/params.yaml at it:
  source: {kind: file, path: data/sample_cog.tif}
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from common.logging_setup import get_logger
from tileserver.sample import WORLD_BOUNDS, write_sample_raster


log = get_logger("scripts.build_sample_cog")


def main() -> None:
    ap = argparse.ArgumentParser(description="Build a synthetic EPSG:3857 GeoTIFF")
    ap.add_argument("--out", default="data/sample_cog.tif")
    ap.add_argument("--size", type=int, default=2048, help="Raster width/height in pixels")
    ap.add_argument("--bounds", nargs=4, type=float, default=list(WORLD_BOUNDS), metavar=("MINX", "MINY", "MAXX", "MAXY"))
    ap.add_argument("--values", nargs="+", type=float, default=None, help="Constant value per band")
    ap.add_argument("--bands", type=int, default=3)
    ap.add_argument("--dtype", default="uint8", choices=["uint8", "uint16", "int16", "float32"])
    ap.add_argument("--overviews", nargs="*", type=int, default=[2, 4, 8])
    ap.add_argument("--seed", type=int, default=1234)
    args = ap.parse_args()

    path = write_sample_raster(
        args.out,
        width=args.size,
        height=args.size,
        bounds=tuple(args.bounds),
        values=args.values,
        count=args.bands,
        dtype=args.dtype,
        overviews=args.overviews,
        seed=args.seed,
    )
    log.info("Sample raster written", extra={"extra": {"path": str(path), "size": args.size, "dtype": args.dtype}})
    print("Serve it with:")
    print(f"  TILESERVER_CONFIG=... python -m tileserver.server   # source: {{kind: file, path: {path}}}")


if __name__ == "__main__":
    main()
