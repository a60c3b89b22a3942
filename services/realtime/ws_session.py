"""Dispatch realtime websocket events to the session workflow."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket

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
from models.session_models import SessionState
from services.image_codec import Base64Source
from services.session_view import render_snapshot
from utils.media_validation import MAX_UPLOAD_BYTES, is_image_type

LOGGER = logging.getLogger(__name__)

_UPLOADS = {
	"target.upload": UploadTarget,
	"input.upload": UploadInput,
	"reference.upload": UploadReference,
}
_REMOTE = {
	"prompt.generate": Generate,
	"prompt.optimize": Optimize,
	"prompt.test": RunTest,
}


class RealtimeSessionHandler:
	"""Route websocket messages for a single workflow session."""

	def __init__(self, session_id: str, controller: WorkflowController) -> None:
		self.session_id = session_id
		self.controller = controller

	def state_message(self, state: Optional[SessionState] = None) -> Dict[str, Any]:
		"""Return the snapshot frame pushed to the client."""
		snapshot = render_snapshot(self.session_id, state or self.controller.state)
		return {"type": "session.state", **snapshot}

	async def handle(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload.

		State changes reach the client through the snapshot subscription;
		only failures are answered directly.
		"""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type in _REMOTE:
				# Remote calls run in the background so the socket keeps reading.
				self.controller.submit(_REMOTE[message_type]())
			else:
				await self.controller.dispatch(self._action(message_type, payload))
		except Exception as exc:
			LOGGER.debug("Rejected %s message: %s", message_type, exc)
			await self._send_error(websocket, request_id, str(exc))

	def _action(self, message_type: Any, payload: Dict[str, Any]) -> Action:
		"""Translate a websocket message into a workflow action."""
		if message_type in _UPLOADS:
			image_b64 = (payload.get("image_b64") or "").strip()
			if not image_b64:
				raise ValueError("Image payload is required.")
			if len(image_b64) * 3 // 4 > MAX_UPLOAD_BYTES:
				raise ValueError(f"Image exceeds the {MAX_UPLOAD_BYTES} byte upload limit.")
			mime_type = payload.get("mime_type")
			if mime_type and not is_image_type(mime_type):
				raise ValueError(f"Unsupported image content type: {mime_type}")
			return _UPLOADS[message_type](Base64Source(image_b64, mime_type))
		if message_type == "target.remove":
			return RemoveTarget()
		if message_type == "reference.remove":
			return RemoveReference()
		if message_type == "input.remove":
			index = payload.get("index")
			if not isinstance(index, int):
				raise ValueError("An integer index is required.")
			return RemoveInput(index)
		if message_type == "requirements.edit":
			return EditRequirements(str(payload.get("text") or ""))
		if message_type == "prompt.edit":
			return EditPrompt(str(payload.get("text") or ""))
		raise ValueError("Unsupported message type.")

	async def _send_error(self, websocket: WebSocket, request_id: Any, detail: str) -> None:
		await self._send(websocket, {"type": "error", "request_id": request_id, "detail": detail})

	async def _send(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		await websocket.send_text(json.dumps(payload))
