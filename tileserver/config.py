from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from common.geo import TILE_SIZE, WEB_MERCATOR_HALF_EXTENT


DEFAULT_CONFIG_PATH = "config/params.yaml"

_FORMATS = ("png", "jpeg", "webp")


@dataclass(frozen=True)
class TileSchemeConfig:
    tile_size: int = TILE_SIZE
    half_extent: float = WEB_MERCATOR_HALF_EXTENT
    max_zoom: int = 24
    format: str = "png"


@dataclass(frozen=True)
class SourceConfig:
    """
    Where the source raster lives.

    kind="s3" issues a presigned GET URL for s3://bucket/key;
    kind="file" opens `path` directly (local development, tests).
    """
    kind: str = "s3"
    bucket: str = "cog-tesing"
    key: str = "output_cog.tif"
    region: str = "us-east-1"
    expires_in: int = 3600
    path: Optional[str] = None
    bands: Tuple[int, ...] = (1, 2, 3)
    rescale: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: Tuple[str, ...] = ("*",)
    cache_control: str = "public, max-age=300"


@dataclass(frozen=True)
class TileServerConfig:
    tiles: TileSchemeConfig = field(default_factory=TileSchemeConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"


def _section(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = payload.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} section must be a mapping")
    return dict(section)


def _check_keys(data: Dict[str, Any], cls: type, name: str) -> None:
    unknown = sorted(set(data) - {f.name for f in fields(cls)})
    if unknown:
        raise ValueError(f"unknown {name} keys: {', '.join(map(str, unknown))}")


def _build_tiles(data: Dict[str, Any]) -> TileSchemeConfig:
    _check_keys(data, TileSchemeConfig, "tiles")
    for key in ("tile_size", "max_zoom"):
        if data.get(key) is not None:
            data[key] = int(data[key])
    if data.get("half_extent") is not None:
        data["half_extent"] = float(data["half_extent"])
    if data.get("format") is not None:
        fmt = str(data["format"]).lower()
        data["format"] = "jpeg" if fmt == "jpg" else fmt
        if data["format"] not in _FORMATS:
            raise ValueError(f"tiles.format must be one of {_FORMATS}")
    cfg = TileSchemeConfig(**data)
    if cfg.tile_size <= 0 or cfg.half_extent <= 0 or cfg.max_zoom < 0:
        raise ValueError("tiles.tile_size and tiles.half_extent must be > 0, tiles.max_zoom >= 0")
    return cfg


def _build_source(data: Dict[str, Any]) -> SourceConfig:
    _check_keys(data, SourceConfig, "source")
    if data.get("expires_in") is not None:
        data["expires_in"] = int(data["expires_in"])
    if "bands" in data:
        bands = data.get("bands") or []
        if not isinstance(bands, (list, tuple)) or any(int(b) < 1 for b in bands):
            raise ValueError("source.bands must be a list of 1-based band indexes")
        data["bands"] = tuple(int(b) for b in bands)
    rescale = data.get("rescale")
    if rescale is not None:
        if not isinstance(rescale, (list, tuple)) or len(rescale) != 2:
            raise ValueError("source.rescale must be [min, max]")
        lo, hi = float(rescale[0]), float(rescale[1])
        if hi <= lo:
            raise ValueError("source.rescale max must be greater than min")
        data["rescale"] = (lo, hi)
    cfg = SourceConfig(**data)
    if cfg.kind not in ("s3", "file"):
        raise ValueError(f"source.kind must be 's3' or 'file', got {cfg.kind!r}")
    if cfg.kind == "file" and not cfg.path:
        raise ValueError("source.path is required when source.kind is 'file'")
    return cfg


def _build_server(data: Dict[str, Any]) -> ServerConfig:
    _check_keys(data, ServerConfig, "server")
    if data.get("port") is not None:
        data["port"] = int(data["port"])
    if "cors_origins" in data:
        data["cors_origins"] = tuple(str(o) for o in (data.get("cors_origins") or []))
    return ServerConfig(**data)


def build_config(payload: Dict[str, Any]) -> TileServerConfig:
    """Turn a parsed YAML mapping into a validated TileServerConfig."""
    return TileServerConfig(
        tiles=_build_tiles(_section(payload, "tiles")),
        source=_build_source(_section(payload, "source")),
        server=_build_server(_section(payload, "server")),
        log_level=str(_section(payload, "logging").get("level", "INFO")).upper(),
    )


def load_config(path: Optional[str] = None) -> TileServerConfig:
    """
    Load config from `path`, else $TILESERVER_CONFIG, else config/params.yaml.
    A missing file yields the built-in defaults.
    """
    path = path or os.environ.get("TILESERVER_CONFIG") or DEFAULT_CONFIG_PATH
    if not Path(path).exists():
        return build_config({})
    with open(path, "r", encoding="utf-8") as f:
        payload = yaml.safe_load(f) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return build_config(payload)
