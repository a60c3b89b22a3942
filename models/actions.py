"""User actions accepted by the workflow controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from services.image_codec import ImageSource


@dataclass(frozen=True)
class UploadTarget:
    source: "ImageSource"


@dataclass(frozen=True)
class RemoveTarget:
    pass


@dataclass(frozen=True)
class UploadInput:
    source: "ImageSource"


@dataclass(frozen=True)
class RemoveInput:
    index: int


@dataclass(frozen=True)
class UploadReference:
    source: "ImageSource"


@dataclass(frozen=True)
class RemoveReference:
    pass


@dataclass(frozen=True)
class EditRequirements:
    text: str


@dataclass(frozen=True)
class EditPrompt:
    text: str


@dataclass(frozen=True)
class Generate:
    pass


@dataclass(frozen=True)
class Optimize:
    pass


@dataclass(frozen=True)
class RunTest:
    pass


UploadAction = Union[UploadTarget, UploadInput, UploadReference]
RemoteAction = Union[Generate, Optimize, RunTest]
Action = Union[
    UploadTarget,
    RemoveTarget,
    UploadInput,
    RemoveInput,
    UploadReference,
    RemoveReference,
    EditRequirements,
    EditPrompt,
    Generate,
    Optimize,
    RunTest,
]
