from __future__ import annotations

import io
from typing import Dict

from PIL import Image

from common.types import EncodedTile, PackedPixelBuffer
from tileserver.errors import EncodeFailure


# format -> (Pillow format name, media type)
FORMATS: Dict[str, tuple] = {
    "png": ("PNG", "image/png"),
    "jpeg": ("JPEG", "image/jpeg"),
    "webp": ("WEBP", "image/webp"),
}

EXTENSIONS = {"png": "png", "jpg": "jpeg", "jpeg": "jpeg", "webp": "webp"}


def media_type(fmt: str) -> str:
    return FORMATS[fmt][1]


def encode(buffer: PackedPixelBuffer, fmt: str = "png", quality: int = 90) -> EncodedTile:
    """
    Encode an RGBA buffer. JPEG has no alpha channel, so it is dropped.
    """
    if fmt not in FORMATS:
        raise EncodeFailure(f"unsupported tile format {fmt!r}")
    if buffer.channels != 4 or len(buffer.data) != buffer.width * buffer.height * 4:
        raise EncodeFailure(
            f"buffer layout violated: {len(buffer.data)} bytes for {buffer.width}x{buffer.height}x{buffer.channels}"
        )
    pil_format, mtype = FORMATS[fmt]
    try:
        img = Image.frombuffer("RGBA", (buffer.width, buffer.height), buffer.data, "raw", "RGBA", 0, 1)
        if fmt == "jpeg":
            img = img.convert("RGB")
        out = io.BytesIO()
        if fmt == "png":
            img.save(out, format=pil_format)
        else:
            img.save(out, format=pil_format, quality=quality)
    except (OSError, ValueError) as e:
        raise EncodeFailure(f"{pil_format} encoder failed") from e
    return EncodedTile(content=out.getvalue(), media_type=mtype)
