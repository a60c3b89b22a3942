"""Events consumed by the session reducer.

Actions describe what the user asked for; events describe what actually
happened once uploads were read and remote calls resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from models.encoded_image import EncodedImage
from models.session_models import ImageSlot, OperationKind


@dataclass(frozen=True)
class ImageStored:
    slot: ImageSlot
    image: EncodedImage


@dataclass(frozen=True)
class ImageRemoved:
    slot: ImageSlot
    index: Optional[int] = None


@dataclass(frozen=True)
class UploadFailed:
    slot: ImageSlot
    reason: str


@dataclass(frozen=True)
class RequirementsEdited:
    text: str


@dataclass(frozen=True)
class PromptEdited:
    text: str


@dataclass(frozen=True)
class OperationStarted:
    kind: OperationKind


@dataclass(frozen=True)
class OperationSucceeded:
    kind: OperationKind
    token: int
    result: Union[str, EncodedImage]


@dataclass(frozen=True)
class OperationFailed:
    kind: OperationKind
    token: int
    reason: str


Event = Union[
    ImageStored,
    ImageRemoved,
    UploadFailed,
    RequirementsEdited,
    PromptEdited,
    OperationStarted,
    OperationSucceeded,
    OperationFailed,
]
