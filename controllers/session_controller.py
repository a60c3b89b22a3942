"""Session helpers translating HTTP requests into workflow actions."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import Response

from controllers.workflow_controller import WorkflowController
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
from models.session_models import ImageSlot, OperationKind
from services.errors import ValidationError
from services.image_codec import UploadFileSource
from services.realtime.session_store import SessionStore
from services.session_view import render_snapshot
from services.thumbnail_generator import ThumbnailGenerator
from utils.media_validation import validate_image_file

_UPLOAD_ACTIONS = {
	ImageSlot.TARGET: UploadTarget,
	ImageSlot.INPUT: UploadInput,
	ImageSlot.REFERENCE: UploadReference,
}
_OPERATION_ACTIONS = {
	OperationKind.DERIVE: Generate,
	OperationKind.REFINE: Optimize,
	OperationKind.RENDER: RunTest,
}


def _store(request: Request) -> SessionStore:
	store = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


def _controller(request: Request, session_id: str) -> WorkflowController:
	try:
		return _store(request).get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc


async def _dispatch(request: Request, session_id: str, action: Action) -> Dict[str, Any]:
	controller = _controller(request, session_id)
	try:
		state = await controller.dispatch(action)
	except ValidationError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return render_snapshot(session_id, state)


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new session and return its empty snapshot."""
	session_id, controller = _store(request).create()
	return render_snapshot(session_id, controller.state)


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the current snapshot of a session."""
	return render_snapshot(session_id, _controller(request, session_id).state)


async def delete_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Discard a session and its images."""
	try:
		_store(request).delete(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc
	return {"session_id": session_id, "deleted": True}


async def upload_image(request: Request, session_id: str, slot: ImageSlot, image: UploadFile) -> Dict[str, Any]:
	"""Store an uploaded image in a slot; read failures land in `upload_errors`."""
	_controller(request, session_id)
	validate_image_file(image)
	action = _UPLOAD_ACTIONS[slot](UploadFileSource(image))
	return await _dispatch(request, session_id, action)


async def remove_image(request: Request, session_id: str, slot: ImageSlot, index: Optional[int] = None) -> Dict[str, Any]:
	"""Clear a slot; removing an input image that does not exist changes nothing."""
	if slot is ImageSlot.TARGET:
		action: Action = RemoveTarget()
	elif slot is ImageSlot.REFERENCE:
		action = RemoveReference()
	else:
		action = RemoveInput(index if index is not None else -1)
	return await _dispatch(request, session_id, action)


async def edit_requirements(request: Request, session_id: str, text: str) -> Dict[str, Any]:
	return await _dispatch(request, session_id, EditRequirements(text))


async def edit_prompt(request: Request, session_id: str, text: str) -> Dict[str, Any]:
	return await _dispatch(request, session_id, EditPrompt(text))


async def run_operation(request: Request, session_id: str, kind: OperationKind, wait: bool) -> Tuple[int, Dict[str, Any]]:
	"""Start a remote operation.

	Returns:
		`(status_code, snapshot)`: 200 with the settled snapshot when `wait`
		is true, otherwise 202 with the snapshot showing the operation in flight.
	"""
	action = _OPERATION_ACTIONS[kind]()
	if wait:
		return 200, await _dispatch(request, session_id, action)

	controller = _controller(request, session_id)
	try:
		state = controller.submit(action)
	except ValidationError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return 202, render_snapshot(session_id, state)


async def get_image(request: Request, session_id: str, slot: ImageSlot, index: int = 0, thumbnail: bool = False) -> Response:
	"""Return the raw bytes (or a PNG preview) of the image held by a slot.

	Raises:
		HTTPException(404) if the slot is empty.
		HTTPException(415) if a preview is requested for undecodable bytes.
	"""
	image = _controller(request, session_id).state.image_at(slot, index)
	if image is None:
		raise HTTPException(status_code=404, detail="Image not found")

	if thumbnail:
		try:
			image = ThumbnailGenerator().create_thumbnail(image)
		except ValueError as exc:
			raise HTTPException(status_code=415, detail=str(exc)) from exc
	return Response(content=image.data, media_type=image.mime_type)
