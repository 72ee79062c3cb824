"""Shared pytest fixtures: small GeoTIFFs written with rasterio."""

import os
import sys

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_bounds

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from common.geo import WEB_MERCATOR_HALF_EXTENT
from tileserver.sample import write_sample_raster

H = WEB_MERCATOR_HALF_EXTENT


@pytest.fixture
def constant_raster(tmp_path):
    """256x256 world-extent raster with bands 10, 20, 30."""
    return write_sample_raster(tmp_path / "constant.tif", values=(10, 20, 30))


@pytest.fixture
def single_band_raster(tmp_path):
    return write_sample_raster(tmp_path / "gray.tif", values=(42,), count=1)


@pytest.fixture
def quadrant_raster(tmp_path):
    """128x128 raster covering only the north-east quadrant of the world, bands 200, 100, 50."""
    return write_sample_raster(
        tmp_path / "ne.tif", width=128, height=128, bounds=(0.0, 0.0, H, H), values=(200, 100, 50)
    )


@pytest.fixture
def index_raster(tmp_path):
    """
    256x256 world-extent raster where band 1 = column index, band 2 = row index,
    band 3 = 7. Makes it obvious which source pixel ended up where.
    """
    path = tmp_path / "index.tif"
    cols, rows = np.meshgrid(np.arange(256, dtype=np.uint8), np.arange(256, dtype=np.uint8))
    data = np.stack([cols, rows, np.full((256, 256), 7, dtype=np.uint8)])
    profile = {
        "driver": "GTiff",
        "height": 256,
        "width": 256,
        "count": 3,
        "dtype": "uint8",
        "crs": "EPSG:3857",
        "transform": from_bounds(-H, -H, H, H, 256, 256),
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data)
    return path


@pytest.fixture
def coarse_raster(tmp_path):
    """
    5x5 world-extent raster: band 1 = column * 50, band 2 = row * 50, band 3 = 0.
    At z >= 1 tile edges fall inside source pixels.
    """
    path = tmp_path / "coarse.tif"
    cols, rows = np.meshgrid(np.arange(5, dtype=np.uint8), np.arange(5, dtype=np.uint8))
    data = np.stack([cols * 50, rows * 50, np.zeros((5, 5), dtype=np.uint8)])
    profile = {
        "driver": "GTiff",
        "height": 5,
        "width": 5,
        "count": 3,
        "dtype": "uint8",
        "crs": "EPSG:3857",
        "transform": from_bounds(-H, -H, H, H, 5, 5),
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data)
    return path
