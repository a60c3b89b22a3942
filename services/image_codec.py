"""Turn uploaded files into `EncodedImage` values.

Reading an upload is asynchronous (an `UploadFile`, a file on disk or a
base64 websocket payload); encoding the bytes is not. A failed read raises
`ImageReadError` and never yields a partial image. Image content is not
inspected: the declared MIME type is trusted.
"""

from __future__ import annotations

import binascii
import mimetypes
from pathlib import Path
from typing import Optional, Protocol, Tuple

import aiofiles
from fastapi import UploadFile

from models.encoded_image import EncodedImage
from services.errors import ImageReadError

DEFAULT_MIME_TYPE = "image/png"


class ImageSource(Protocol):
    """Anything that can asynchronously yield raw bytes and a declared MIME type."""

    async def read(self) -> Tuple[bytes, Optional[str]]:
        ...


class UploadFileSource:
    """Read an image posted as a multipart `UploadFile`."""

    def __init__(self, upload: UploadFile) -> None:
        self.upload = upload

    async def read(self) -> Tuple[bytes, Optional[str]]:
        try:
            data = await self.upload.read()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise ImageReadError("Unable to read uploaded image.") from exc
        return data, self.upload.content_type


class PathSource:
    """Read an image from the local filesystem with aiofiles."""

    def __init__(self, path: str | Path, mime_type: Optional[str] = None) -> None:
        self.path = Path(path)
        self.mime_type = mime_type

    async def read(self) -> Tuple[bytes, Optional[str]]:
        async with aiofiles.open(self.path, "rb") as f:
            data = await f.read()
        mime_type = self.mime_type or mimetypes.guess_type(self.path.name)[0]
        return data, mime_type


class Base64Source:
    """Decode an image sent as base64 text (websocket uploads)."""

    def __init__(self, text: str, mime_type: Optional[str] = None) -> None:
        self.text = text
        self.mime_type = mime_type

    async def read(self) -> Tuple[bytes, Optional[str]]:
        payload = self.text.strip()
        mime_type = self.mime_type
        # Accept full data URLs as produced by browser FileReaders.
        if payload.startswith("data:") and "," in payload:
            header, payload = payload.split(",", 1)
            if not mime_type:
                mime_type = header[len("data:"):].split(";", 1)[0] or None
        try:
            data = EncodedImage.from_base64(payload, mime_type or DEFAULT_MIME_TYPE).data
        except (binascii.Error, ValueError) as exc:
            raise ImageReadError("Image payload is not valid base64.") from exc
        return data, mime_type


class ImageCodec:
    """Convert raw uploads into canonical images."""

    def __init__(self, default_mime_type: str = DEFAULT_MIME_TYPE) -> None:
        self.default_mime_type = default_mime_type

    def encode(self, data: bytes, mime_type: Optional[str]) -> EncodedImage:
        """Wrap raw bytes and their declared MIME type.

        Raises:
            ImageReadError: If no bytes were read.
        """
        if not data:
            raise ImageReadError("Uploaded image is empty.")
        mime = (mime_type or "").split(";", 1)[0].strip().lower() or self.default_mime_type
        return EncodedImage(data=bytes(data), mime_type=mime)

    async def load(self, source: ImageSource) -> EncodedImage:
        """Read a source and encode it.

        Raises:
            ImageReadError: If the underlying read fails or yields nothing.
        """
        try:
            data, mime_type = await source.read()
        except ImageReadError:
            raise
        except OSError as exc:
            raise ImageReadError(f"Unable to read image: {exc.strerror or exc}") from exc
        return self.encode(data, mime_type)
