"""
Failure taxonomy for the tile pipeline.

Every error names the stage that raised it and whether the caller is at
fault, so the HTTP layer can pick a status without inspecting messages.

EmptyWindow (tile entirely off the raster) is not an error here: it is
raised as common.geo.EmptyWindowError and always answered with a
transparent tile by the pipeline.
"""
from __future__ import annotations

from typing import Optional

from common.geo import EmptyWindowError as EmptyWindow


class TileError(Exception):
    code = "tile_error"
    stage = "pipeline"
    client_error = False

    def __init__(self, detail: str, *, stage: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if stage is not None:
            self.stage = stage

    def to_dict(self) -> dict:
        out = {"error": self.code, "stage": self.stage, "detail": self.detail}
        if self.__cause__ is not None:
            out["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return out


class BadAddress(TileError):
    """z/x/y did not parse as integers or are structurally invalid."""
    code = "bad_address"
    stage = "address"
    client_error = True


class InsufficientBands(TileError):
    code = "insufficient_bands"
    stage = "composite"


class DecodeFailure(TileError):
    """The raster could not be located, opened or read."""
    code = "decode_failure"
    stage = "read"


class SourceUnavailable(DecodeFailure):
    """Storage refused to issue a locator for the raster."""
    code = "source_unavailable"
    stage = "source"


class InconsistentBandSet(DecodeFailure):
    """Decoder returned arrays that do not match the requested window."""
    code = "inconsistent_bandset"


class EncodeFailure(TileError):
    code = "encode_failure"
    stage = "encode"


__all__ = [
    "TileError",
    "BadAddress",
    "EmptyWindow",
    "InsufficientBands",
    "DecodeFailure",
    "SourceUnavailable",
    "InconsistentBandSet",
    "EncodeFailure",
]
