"""Error taxonomy shared by the workflow, codec and model client."""

from __future__ import annotations


class ValidationError(ValueError):
    """A precondition was not met; the message is shown to the user as-is."""


class ImageReadError(OSError):
    """An uploaded image could not be read."""


class RemoteError(Exception):
    """The remote model rejected the request or could not be reached.

    Args:
        detail: Human-readable reason, surfaced verbatim next to the operation.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail
