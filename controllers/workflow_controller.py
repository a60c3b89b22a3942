"""Orchestrate one prompt workflow session.

The controller owns the session snapshot, reads uploads, runs the three
remote operations and feeds every outcome through the reducer. Each
operation kind has at most one request in flight; a duplicate request is
ignored. Completions are applied with the token they were issued, so a
result that was overtaken by a newer request is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, Coroutine, List, Optional, Set, Union

from models.actions import (
    Action,
    EditPrompt,
    EditRequirements,
    Generate,
    Optimize,
    RemoveInput,
    RemoveReference,
    RemoveTarget,
    RunTest,
    UploadInput,
    UploadReference,
    UploadTarget,
)
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
from services.errors import ImageReadError, RemoteError, ValidationError
from services.image_codec import ImageCodec
from services.openai.model_client import RemoteModelClient
from services.workflow.reducer import reduce

LOGGER = logging.getLogger(__name__)
UNEXPECTED_ERROR = "An unexpected error occurred."

Listener = Callable[[SessionState], None]
RemoteResult = Union[str, EncodedImage]

_UPLOAD_SLOTS = {
    UploadTarget: ImageSlot.TARGET,
    UploadInput: ImageSlot.INPUT,
    UploadReference: ImageSlot.REFERENCE,
}
_REMOTE_KINDS = {
    Generate: OperationKind.DERIVE,
    Optimize: OperationKind.REFINE,
    RunTest: OperationKind.RENDER,
}


class WorkflowController:
    """Single entry point for every state change of a session."""

    def __init__(
        self,
        client: RemoteModelClient,
        codec: Optional[ImageCodec] = None,
        state: Optional[SessionState] = None,
    ) -> None:
        if client is None:
            raise ValueError("A remote model client is required.")
        self.client = client
        self.codec = codec or ImageCodec()
        self._state = state or SessionState()
        self._listeners: List[Listener] = []
        self._pending: Set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        """Current snapshot; safe to hold on to since snapshots never change."""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every new snapshot; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def dispatch(self, action: Action) -> SessionState:
        """Apply an action and wait until any remote call it starts has resolved.

        Raises:
            ValidationError: If the action's precondition does not hold.
        """
        if type(action) in _REMOTE_KINDS:
            pending = self._begin(action)
            if pending is not None:
                await pending
            return self._state

        if type(action) in _UPLOAD_SLOTS:
            await self._upload(_UPLOAD_SLOTS[type(action)], action)
        elif isinstance(action, RemoveTarget):
            self._apply(ImageRemoved(ImageSlot.TARGET))
        elif isinstance(action, RemoveInput):
            self._apply(ImageRemoved(ImageSlot.INPUT, action.index))
        elif isinstance(action, RemoveReference):
            self._apply(ImageRemoved(ImageSlot.REFERENCE))
        elif isinstance(action, EditRequirements):
            self._apply(RequirementsEdited(action.text))
        elif isinstance(action, EditPrompt):
            if self._state.prompt is None:
                raise ValidationError("Generate a prompt before editing it.")
            self._apply(PromptEdited(action.text))
        else:
            raise TypeError(f"Unsupported action: {action!r}")
        return self._state

    def submit(self, action: Union[Generate, Optimize, RunTest]) -> SessionState:
        """Start a remote operation without waiting for it.

        Preconditions are checked and the in-flight state is applied before
        this returns; the remote call itself runs as a background task.
        """
        pending = self._begin(action)
        if pending is not None:
            kind = _REMOTE_KINDS[type(action)]
            try:
                task = asyncio.create_task(pending)
            except RuntimeError:
                pending.close()
                self._apply(OperationFailed(kind, self._state.operation(kind).token, UNEXPECTED_ERROR))
                raise
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return self._state

    async def drain(self) -> None:
        """Wait for every background operation started with `submit`."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _apply(self, event: Event) -> SessionState:
        new_state = reduce(self._state, event)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                try:
                    listener(new_state)
                except Exception:  # pylint: disable=broad-exception-caught
                    LOGGER.exception("Session listener failed")
        return self._state

    async def _upload(self, slot: ImageSlot, action: Union[UploadTarget, UploadInput, UploadReference]) -> None:
        try:
            image = await self.codec.load(action.source)
        except ImageReadError as exc:
            LOGGER.warning("Upload into %s slot failed: %s", slot.value, exc)
            self._apply(UploadFailed(slot, str(exc)))
            return
        self._apply(ImageStored(slot, image))

    def _begin(self, action: Union[Generate, Optimize, RunTest]) -> Optional[Coroutine[None, None, None]]:
        """Validate, mark the operation in flight and return the call to run.

        Returns None when the same operation is already in flight.
        """
        kind = _REMOTE_KINDS[type(action)]
        state = self._state
        if kind is OperationKind.DERIVE:
            if state.target_image is None:
                raise ValidationError("Please upload a target image.")
        elif not state.has_prompt:
            raise ValidationError("Generate a prompt first.")

        if state.operation(kind).in_flight:
            LOGGER.debug("Ignoring %s request; one is already in flight", kind.value)
            return None

        self._apply(OperationStarted(kind))
        state = self._state
        token = state.operation(kind).token

        if kind is OperationKind.DERIVE:
            call = partial(
                self.client.derive_prompt,
                state.target_image,
                list(state.input_images),
                state.additional_requirements,
            )
        elif kind is OperationKind.REFINE:
            call = partial(self.client.refine_prompt, state.prompt)
        else:
            references = [state.test_reference_image] if state.test_reference_image is not None else []
            call = partial(self.client.render_from_prompt, state.prompt, references)
        return self._run(kind, token, call)

    async def _run(self, kind: OperationKind, token: int, call: Callable[[], Awaitable[RemoteResult]]) -> None:
        try:
            result = await call()
        except RemoteError as exc:
            LOGGER.error("%s failed: %s", kind.value, exc.detail)
            self._apply(OperationFailed(kind, token, exc.detail))
        except ValidationError as exc:
            self._apply(OperationFailed(kind, token, str(exc)))
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Unexpected error during %s", kind.value)
            self._apply(OperationFailed(kind, token, UNEXPECTED_ERROR))
        else:
            self._apply(OperationSucceeded(kind, token, result))
