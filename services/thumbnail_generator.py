"""Thumbnail generator service.

Provides a small OOP wrapper around Pillow to create preview thumbnails
for session images. The resulting thumbnail fits within the configured
size and is returned as a PNG `EncodedImage`.

Example:
    tg = ThumbnailGenerator(max_size=(256, 256))
    preview = tg.create_thumbnail(image)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from models.encoded_image import EncodedImage


class ThumbnailGenerator:
    """Generate thumbnails from encoded images.

    Args:
        max_size: Maximum width and height for the thumbnail. Defaults to (256, 256).
        background: Optional background color used when flattening images with alpha.
            If None, images with alpha are flattened against white.
    """

    def __init__(self, max_size: Tuple[int, int] = (256, 256), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def create_thumbnail(self, image: EncodedImage) -> EncodedImage:
        """Create a PNG thumbnail preserving aspect ratio.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        try:
            src = Image.open(io.BytesIO(image.data))
            src.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Image bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        # Flatten alpha against the background color
        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="PNG", optimize=True)
        return EncodedImage(data=out_io.getvalue(), mime_type="image/png")
