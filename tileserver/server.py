from __future__ import annotations

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from common.logging_setup import get_logger, setup_logging
from tileserver.config import TileServerConfig, load_config
from tileserver.errors import SourceUnavailable, TileError
from tileserver.pipeline import TilePipeline
from tileserver.raster_source import RasterSource, source_from_config


log = get_logger("tileserver.server")


def _status_for(err: TileError) -> int:
    if err.client_error:
        return 400
    if isinstance(err, SourceUnavailable):
        return 502
    return 500


def create_app(cfg: Optional[TileServerConfig] = None, source: Optional[RasterSource] = None) -> FastAPI:
    """
    Build the HTTP app. `source` overrides the configured raster source
    (tests pass a LocalRasterSource or a fake).
    """
    cfg = cfg or load_config()
    setup_logging(cfg.log_level, force=True)

    pipeline = TilePipeline(
        source or source_from_config(cfg.source),
        cfg.tiles,
        bands=cfg.source.bands,
        rescale=cfg.source.rescale,
    )

    app = FastAPI(title="COG Tile Server", version="1.0.0")
    app.state.config = cfg
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.server.cors_origins),
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(TileError)
    async def tile_error_handler(request: Request, exc: TileError) -> JSONResponse:
        status = _status_for(exc)
        if exc.client_error:
            log.warning("Rejected tile request", extra={"extra": {"path": request.url.path, **exc.to_dict()}})
        else:
            log.error("Tile request failed", exc_info=exc, extra={"extra": {"path": request.url.path, **exc.to_dict()}})
        return JSONResponse(exc.to_dict(), status_code=status)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "source": {
                "kind": cfg.source.kind,
                "raster": pipeline.source.default_id,
            },
            "tiles": {
                "tile_size": cfg.tiles.tile_size,
                "half_extent": cfg.tiles.half_extent,
                "max_zoom": cfg.tiles.max_zoom,
                "format": cfg.tiles.format,
            },
        }

    @app.get("/tiles/{z}/{x}/{y}")
    async def tile(z: str, x: str, y: str):
        """
        Return tile image bytes. `y` may carry an extension (.png, .jpg, .webp)
        selecting the output format; otherwise the configured format is used.
        """
        address, encoded = await pipeline.render_path(z, x, y)
        zoom, column, row = address.as_tuple()
        headers = {
            "Cache-Control": cfg.server.cache_control,
            "X-Tile-Z": str(zoom),
            "X-Tile-X": str(column),
            "X-Tile-Y": str(row),
        }
        return Response(content=encoded.content, media_type=encoded.media_type, headers=headers)

    return app


def main() -> None:
    cfg = load_config()
    uvicorn.run(create_app(cfg), host=cfg.server.host, port=cfg.server.port)


# -------- local dev entrypoint --------
if __name__ == "__main__":
    main()
