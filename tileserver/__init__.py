"""
COG Tile Server

- Maps XYZ tile addresses (z/x/y) onto a georeferenced source raster
- Reads the matching pixel window (S3 presigned URL or local file, via rasterio)
- Packs bands 1..3 into RGBA and encodes PNG/JPEG/WebP
- Serves /tiles/{z}/{x}/{y}[.png|.jpg|.webp] and /health (FastAPI)

Entry point:
    python -m tileserver.server
"""
from .pipeline import TilePipeline, parse_tile_address

__all__ = ["TilePipeline", "parse_tile_address"]
