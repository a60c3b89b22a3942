"""WebSocket endpoint streaming session snapshots and accepting actions."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.session_store import SessionStore
from services.realtime.ws_session import RealtimeSessionHandler

router = APIRouter()
LOGGER = logging.getLogger(__name__)


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


async def _forward(websocket: WebSocket, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
	while True:
		message = await queue.get()
		await websocket.send_text(json.dumps(message))


def _stop_on_failure(unsubscribe: Callable[[], None]) -> Callable[["asyncio.Task[None]"], None]:
	"""Drop the snapshot subscription once the sender task dies with an error."""

	def _done(task: "asyncio.Task[None]") -> None:
		if task.cancelled():
			return
		exc = task.exception()
		if exc is not None:
			LOGGER.warning("Snapshot sender stopped: %s", exc)
			unsubscribe()

	return _done


@router.websocket("/ws/{session_id}")
async def realtime_socket(websocket: WebSocket, session_id: str, store: SessionStore = Depends(_require_session_store)):
	"""Push every snapshot of a session and apply actions sent by the client."""
	await websocket.accept()
	try:
		controller = store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = RealtimeSessionHandler(session_id, controller)
	queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
	queue.put_nowait(handler.state_message())
	unsubscribe = controller.subscribe(lambda state: queue.put_nowait(handler.state_message(state)))
	sender = asyncio.create_task(_forward(websocket, queue))
	sender.add_done_callback(_stop_on_failure(unsubscribe))
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			try:
				payload = json.loads(raw)
			except Exception:
				await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be JSON"}))
				continue
			if not isinstance(payload, dict):
				await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be a JSON object"}))
				continue
			await handler.handle(websocket, payload)
	finally:
		unsubscribe()
		sender.cancel()
	try:
		await websocket.close()
	except Exception:
		pass
