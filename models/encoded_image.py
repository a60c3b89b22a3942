from __future__ import annotations

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class EncodedImage:
    """Canonical in-memory image held by a session slot.

    Attributes:
        data: Raw image bytes as uploaded or returned by the model.
        mime_type: Declared MIME type (e.g. image/png). Not verified against the bytes.
    """

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        """Return the image bytes as a base64 UTF-8 string."""
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        """Return a data URL suitable for vision input or inline previews."""
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_base64(cls, text: str | bytes, mime_type: str) -> "EncodedImage":
        """Build an image from base64 text; raises binascii.Error on invalid input."""
        return cls(data=base64.b64decode(text, validate=True), mime_type=mime_type)

    def __repr__(self) -> str:
        return f"EncodedImage(mime_type={self.mime_type!r}, size={self.size})"
