from __future__ import annotations
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .config import get_settings
from .qr import to_data_url

settings = get_settings()

def compress_image(raw: bytes, max_width: int | None = None) -> bytes:
    """Downscale to ``max_width`` (keeping aspect ratio) and re-encode as PNG."""
    limit = max_width or settings.image_max_width
    try:
        img = Image.open(BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("unsupported image") from e

    width, height = img.size
    if width > limit:
        height = max(1, round(height * limit / width))
        width = limit
        img = img.resize((width, height), Image.LANCZOS)

    # PNG keeps transparency of cut-out bin pictures
    if img.mode not in ("RGB", "RGBA", "L", "LA"):
        img = img.convert("RGBA")
    b = BytesIO(); img.save(b, format="PNG", optimize=True)
    return b.getvalue()

def image_to_data_url(raw: bytes, max_width: int | None = None) -> str:
    return to_data_url(compress_image(raw, max_width))
