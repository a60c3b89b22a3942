"""Validation helpers for uploaded images."""

import os

from fastapi import HTTPException, UploadFile

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp")


def is_image_type(content_type: str | None) -> bool:
    """Return True when a declared content type is an image type."""
    if not content_type:
        return False
    return content_type.lower().split(";", 1)[0].strip().startswith("image/")


def validate_image_file(image_file: UploadFile) -> None:
    """Accept only uploads declared as images.

    The check is best-effort: the declared content type is trusted, and a
    known image extension is accepted when the client sent no content type.
    """
    if image_file.content_type:
        if not is_image_type(image_file.content_type):
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
    elif not (image_file.filename or "").lower().endswith(IMAGE_EXTENSIONS):
        raise HTTPException(status_code=415, detail="Unsupported or missing image content type.")

    size = getattr(image_file, "size", None)
    if size is not None and size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"Image exceeds the {MAX_UPLOAD_BYTES} byte upload limit.")
