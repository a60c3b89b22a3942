"""Session domain models for the prompt workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple

from models.encoded_image import EncodedImage


class OperationKind(str, Enum):
	"""Remote operations a session can run."""

	DERIVE = "derive"
	REFINE = "refine"
	RENDER = "render"


class OperationPhase(str, Enum):
	IDLE = "idle"
	IN_FLIGHT = "in_flight"
	FAILED = "failed"


class ImageSlot(str, Enum):
	"""Places an image can live in a session."""

	TARGET = "target"
	INPUT = "input"
	REFERENCE = "reference"
	GENERATED = "generated"


@dataclass(frozen=True)
class OperationStatus:
	"""State of one remote operation kind.

	`token` is the latest request token issued for the kind. A completion
	carrying any other token is stale and gets dropped.
	"""

	phase: OperationPhase = OperationPhase.IDLE
	reason: Optional[str] = None
	token: int = 0

	@property
	def in_flight(self) -> bool:
		return self.phase is OperationPhase.IN_FLIGHT

	@property
	def failed(self) -> bool:
		return self.phase is OperationPhase.FAILED

	def started(self) -> "OperationStatus":
		return OperationStatus(phase=OperationPhase.IN_FLIGHT, token=self.token + 1)

	def succeeded(self) -> "OperationStatus":
		return OperationStatus(phase=OperationPhase.IDLE, token=self.token)

	def failed_with(self, reason: str) -> "OperationStatus":
		return OperationStatus(phase=OperationPhase.FAILED, reason=reason, token=self.token)

	def invalidated(self) -> "OperationStatus":
		"""Reset to idle and retire whatever request is outstanding."""
		return OperationStatus(phase=OperationPhase.IDLE, token=self.token + 1)


@dataclass(frozen=True)
class SessionState:
	"""Immutable snapshot of one editing session.

	A new snapshot is produced for every transition; nothing mutates an
	existing one.
	"""

	target_image: Optional[EncodedImage] = None
	input_images: Tuple[EncodedImage, ...] = ()
	additional_requirements: str = ""
	prompt: Optional[str] = None
	test_reference_image: Optional[EncodedImage] = None
	generated_test_image: Optional[EncodedImage] = None
	derive: OperationStatus = field(default_factory=OperationStatus)
	refine: OperationStatus = field(default_factory=OperationStatus)
	render: OperationStatus = field(default_factory=OperationStatus)
	upload_errors: Mapping[ImageSlot, str] = field(default_factory=dict)
	revision: int = 0

	def operation(self, kind: OperationKind) -> OperationStatus:
		return getattr(self, kind.value)

	@property
	def has_prompt(self) -> bool:
		return self.prompt is not None and bool(self.prompt.strip())

	def image_at(self, slot: ImageSlot, index: int = 0) -> Optional[EncodedImage]:
		"""Return the image held by a slot, or None when the slot is empty."""
		if slot is ImageSlot.TARGET:
			return self.target_image
		if slot is ImageSlot.REFERENCE:
			return self.test_reference_image
		if slot is ImageSlot.GENERATED:
			return self.generated_test_image
		if 0 <= index < len(self.input_images):
			return self.input_images[index]
		return None
