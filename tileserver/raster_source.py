"""
Raster source adapters: turn a raster identifier into something rasterio can open.

- S3RasterSource issues a short-lived presigned GET URL (GDAL reads it over
  HTTP range requests, so only the window's blocks are fetched).
- LocalRasterSource returns a filesystem path (development and tests).

The boto3 client is created lazily, once per region, and shared by all
requests. boto3 clients are thread-safe and this module never mutates it.
"""
from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.logging_setup import get_logger
from tileserver.config import SourceConfig
from tileserver.errors import DecodeFailure, SourceUnavailable


log = get_logger("tileserver.raster_source")


@functools.lru_cache(maxsize=None)
def s3_client(region: str):
    """Process-wide S3 client for `region`."""
    return boto3.client("s3", region_name=region)


class RasterSource(Protocol):
    default_id: str

    async def locate(self, raster_id: Optional[str] = None) -> str:
        """Return a locator (URL or path) for `raster_id` that rasterio can open."""


class S3RasterSource:
    def __init__(self, bucket: str, *, default_key: str, region: str = "us-east-1", expires_in: int = 3600, client=None):
        """
        Params:
            bucket: S3 bucket holding the rasters.
            default_key: object key served when no raster id is given.
            region: AWS region of the bucket.
            expires_in: presigned URL lifetime in seconds.
            client: optional boto3 S3 client (defaults to the shared one for `region`).
        """
        if not bucket:
            raise ValueError("S3 bucket is required")
        self.bucket = bucket
        self.default_id = default_key
        self.region = region
        self.expires_in = int(expires_in)
        self._client = client

    @property
    def client(self):
        return self._client if self._client is not None else s3_client(self.region)

    def presign(self, key: str) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            raise SourceUnavailable(f"could not sign s3://{self.bucket}/{key}") from e

    async def locate(self, raster_id: Optional[str] = None) -> str:
        key = raster_id or self.default_id
        url = await asyncio.to_thread(self.presign, key)
        log.debug("Presigned raster URL", extra={"extra": {"bucket": self.bucket, "key": key, "expires_in": self.expires_in}})
        return url


class LocalRasterSource:
    def __init__(self, path: str):
        self.path = Path(path)
        self.default_id = self.path.name

    async def locate(self, raster_id: Optional[str] = None) -> str:
        if raster_id is not None and Path(raster_id).name != raster_id:
            raise DecodeFailure(f"raster id must be a bare file name: {raster_id!r}", stage="source")
        p = self.path if raster_id in (None, self.default_id) else self.path.parent / raster_id
        if not p.exists():
            raise DecodeFailure(f"raster not found: {p}", stage="source")
        return str(p)


def source_from_config(cfg: SourceConfig) -> RasterSource:
    if cfg.kind == "file":
        return LocalRasterSource(cfg.path or "")
    return S3RasterSource(cfg.bucket, default_key=cfg.key, region=cfg.region, expires_in=cfg.expires_in)
