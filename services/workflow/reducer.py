"""Pure state transitions for a prompt workflow session.

`reduce(state, event)` never mutates `state`; it returns either the same
object (nothing changed) or a new snapshot with `revision` bumped.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict

from models.encoded_image import EncodedImage
from models.events import (
    Event,
    ImageRemoved,
    ImageStored,
    OperationFailed,
    OperationStarted,
    OperationSucceeded,
    PromptEdited,
    RequirementsEdited,
    UploadFailed,
)
from models.session_models import ImageSlot, OperationKind, SessionState

LOGGER = logging.getLogger(__name__)


def _commit(state: SessionState, **changes) -> SessionState:
    return replace(state, revision=state.revision + 1, **changes)


def _without_upload_error(state: SessionState, slot: ImageSlot) -> Dict[ImageSlot, str]:
    return {key: value for key, value in state.upload_errors.items() if key is not slot}


def _store_image(state: SessionState, event: ImageStored) -> SessionState:
    errors = _without_upload_error(state, event.slot)
    if event.slot is ImageSlot.TARGET:
        return _commit(state, target_image=event.image, upload_errors=errors)
    if event.slot is ImageSlot.INPUT:
        return _commit(state, input_images=state.input_images + (event.image,), upload_errors=errors)
    if event.slot is ImageSlot.REFERENCE:
        return _commit(state, test_reference_image=event.image, upload_errors=errors)
    raise ValueError(f"Images cannot be uploaded into the {event.slot.value} slot.")


def _remove_image(state: SessionState, event: ImageRemoved) -> SessionState:
    errors = _without_upload_error(state, event.slot)
    if event.slot is ImageSlot.TARGET:
        return _commit(state, target_image=None, upload_errors=errors)
    if event.slot is ImageSlot.REFERENCE:
        return _commit(state, test_reference_image=None, upload_errors=errors)
    if event.slot is ImageSlot.INPUT:
        index = event.index
        if index is None or not 0 <= index < len(state.input_images):
            return state
        remaining = state.input_images[:index] + state.input_images[index + 1:]
        return _commit(state, input_images=remaining, upload_errors=errors)
    raise ValueError(f"Images cannot be removed from the {event.slot.value} slot.")


def _start(state: SessionState, kind: OperationKind) -> SessionState:
    status = state.operation(kind)
    if status.in_flight:
        return state
    if kind is OperationKind.DERIVE:
        # A new prompt invalidates the old prompt, its test result, and any
        # refine or render still running against it.
        return _commit(
            state,
            derive=status.started(),
            prompt=None,
            generated_test_image=None,
            test_reference_image=None,
            render=state.render.invalidated(),
            refine=state.refine.invalidated() if state.refine.in_flight else state.refine,
        )
    if kind is OperationKind.RENDER:
        return _commit(state, render=status.started(), generated_test_image=None)
    return _commit(state, **{kind.value: status.started()})


def _is_current(state: SessionState, kind: OperationKind, token: int) -> bool:
    status = state.operation(kind)
    if status.in_flight and status.token == token:
        return True
    LOGGER.debug("Discarding stale %s completion (token %s, current %s)", kind.value, token, status.token)
    return False


def _succeed(state: SessionState, event: OperationSucceeded) -> SessionState:
    if not _is_current(state, event.kind, event.token):
        return state
    status = state.operation(event.kind).succeeded()
    if event.kind is OperationKind.DERIVE:
        reference = state.input_images[0] if state.input_images else None
        return _commit(state, derive=status, prompt=event.result, test_reference_image=reference)
    if event.kind is OperationKind.REFINE:
        return _commit(state, refine=status, prompt=event.result)
    if not isinstance(event.result, EncodedImage):
        raise TypeError("Render results must be EncodedImage instances.")
    return _commit(state, render=status, generated_test_image=event.result)


def _fail(state: SessionState, event: OperationFailed) -> SessionState:
    if not _is_current(state, event.kind, event.token):
        return state
    status = state.operation(event.kind).failed_with(event.reason)
    return _commit(state, **{event.kind.value: status})


def reduce(state: SessionState, event: Event) -> SessionState:
    """Apply a single event to a snapshot and return the resulting snapshot."""
    if isinstance(event, ImageStored):
        return _store_image(state, event)
    if isinstance(event, ImageRemoved):
        return _remove_image(state, event)
    if isinstance(event, UploadFailed):
        errors = dict(state.upload_errors)
        errors[event.slot] = event.reason
        return _commit(state, upload_errors=errors)
    if isinstance(event, RequirementsEdited):
        return _commit(state, additional_requirements=event.text)
    if isinstance(event, PromptEdited):
        return _commit(state, prompt=event.text)
    if isinstance(event, OperationStarted):
        return _start(state, event.kind)
    if isinstance(event, OperationSucceeded):
        return _succeed(state, event)
    if isinstance(event, OperationFailed):
        return _fail(state, event)
    raise TypeError(f"Unsupported event: {event!r}")
