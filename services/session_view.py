"""Render session snapshots into JSON-ready dictionaries for the view layer."""

from __future__ import annotations

from typing import Any, Dict, Optional

from models.encoded_image import EncodedImage
from models.session_models import ImageSlot, OperationKind, OperationStatus, SessionState


def _image_view(image: Optional[EncodedImage], url: str) -> Optional[Dict[str, Any]]:
    if image is None:
        return None
    return {"mime_type": image.mime_type, "size": image.size, "url": url}


def _operation_view(status: OperationStatus) -> Dict[str, Any]:
    return {"status": status.phase.value, "error": status.reason}


def render_snapshot(session_id: str, state: SessionState) -> Dict[str, Any]:
    """Return everything a client needs to draw the session.

    Image bytes are not inlined; each image points at its download route.
    """
    base = f"/sessions/{session_id}/images"
    return {
        "session_id": session_id,
        "revision": state.revision,
        "target_image": _image_view(state.target_image, f"{base}/{ImageSlot.TARGET.value}"),
        "input_images": [
            _image_view(image, f"{base}/{ImageSlot.INPUT.value}?index={index}")
            for index, image in enumerate(state.input_images)
        ],
        "additional_requirements": state.additional_requirements,
        "prompt": state.prompt,
        "test_reference_image": _image_view(state.test_reference_image, f"{base}/{ImageSlot.REFERENCE.value}"),
        "generated_test_image": _image_view(state.generated_test_image, f"{base}/{ImageSlot.GENERATED.value}"),
        "operations": {kind.value: _operation_view(state.operation(kind)) for kind in OperationKind},
        "upload_errors": {slot.value: reason for slot, reason in state.upload_errors.items()},
    }
