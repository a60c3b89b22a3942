"""Simple in-memory store for prompt workflow sessions."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Tuple
from uuid import uuid4

from controllers.workflow_controller import WorkflowController
from services.image_codec import ImageCodec
from services.openai.model_client import RemoteModelClient

LOGGER = logging.getLogger(__name__)


class SessionStore:
	"""Create, look up and discard workflow sessions.

	Sessions only live as long as the process; nothing is persisted.
	"""

	def __init__(self, client: RemoteModelClient, codec_factory: Callable[[], ImageCodec] = ImageCodec) -> None:
		self.client = client
		self.codec_factory = codec_factory
		self._sessions: Dict[str, WorkflowController] = {}

	def create(self) -> Tuple[str, WorkflowController]:
		"""Create a new session with a fresh, empty state."""
		session_id = uuid4().hex
		controller = WorkflowController(self.client, codec=self.codec_factory())
		self._sessions[session_id] = controller
		LOGGER.info("Session %s created", session_id)
		return session_id, controller

	def get(self, session_id: str) -> WorkflowController:
		"""Return a session's controller or raise KeyError if missing."""
		controller = self._sessions.get(session_id)
		if controller is None:
			raise KeyError(f"Session {session_id} not found")
		return controller

	def delete(self, session_id: str) -> None:
		"""Drop a session and every image it holds."""
		if self._sessions.pop(session_id, None) is None:
			raise KeyError(f"Session {session_id} not found")
		LOGGER.info("Session %s deleted", session_id)

	def __len__(self) -> int:
		return len(self._sessions)

	async def drain(self) -> None:
		"""Wait for background operations of every session to settle."""
		for controller in list(self._sessions.values()):
			await controller.drain()
