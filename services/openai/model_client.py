"""Remote model capability: derive, refine and render prompts via OpenAI."""

from __future__ import annotations

import base64
import binascii
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional, Sequence

import openai
from openai import AsyncOpenAI

from models.encoded_image import EncodedImage
from services.errors import RemoteError, ValidationError
from services.openai.image_prompts import (
    build_derive_system_prompt,
    build_derive_user_prompt,
    build_refine_system_prompt,
)
from services.openai.media_inputs import as_upload_files, build_derive_inputs, build_refine_inputs
from services.openai.response_parser import extract_image_b64, extract_text, extract_usage

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-5")
DEFAULT_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "gpt-image-1")


class RemoteModelClient(ABC):
    """Three one-shot request/response calls to a generative model.

    Implementations raise `RemoteError` for any rejection or transport
    failure and never retry on their own.
    """

    @abstractmethod
    async def derive_prompt(
        self,
        target: Optional[EncodedImage],
        inputs: Sequence[EncodedImage],
        extra_instructions: str,
    ) -> str:
        """Describe how to obtain `target`, optionally from `inputs`."""

    @abstractmethod
    async def refine_prompt(self, prompt: str) -> str:
        """Return an improved version of `prompt`; the caller replaces the old one with it."""

    @abstractmethod
    async def render_from_prompt(self, prompt: str, references: Sequence[EncodedImage]) -> EncodedImage:
        """Render an image from `prompt`, conditioned on `references` when given."""


class OpenAIModelClient(RemoteModelClient):
    """`RemoteModelClient` backed by the Responses and Images APIs."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
    ) -> None:
        """Initialize with a shared async OpenAI client.

        Args:
            client: Async OpenAI client created at application startup.
            model: Vision-capable text model used to derive and refine prompts.
            image_model: Image model used to render test images.
        """
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.image_model = image_model

    async def derive_prompt(
        self,
        target: Optional[EncodedImage],
        inputs: Sequence[EncodedImage],
        extra_instructions: str,
    ) -> str:
        if target is None:
            raise ValidationError("Please upload a target image.")

        payload = build_derive_inputs(
            build_derive_system_prompt(),
            build_derive_user_prompt(len(inputs), extra_instructions or ""),
            target=target,
            inputs=inputs,
        )
        response = await self._call("derive_prompt", self.client.responses.create(model=self.model, input=payload))
        return self._require_text(response, "The model returned an empty prompt.")

    async def refine_prompt(self, prompt: str) -> str:
        if not prompt or not prompt.strip():
            raise ValidationError("There is no prompt to optimize.")

        payload = build_refine_inputs(build_refine_system_prompt(), prompt)
        response = await self._call("refine_prompt", self.client.responses.create(model=self.model, input=payload))
        return self._require_text(response, "The model returned an empty optimized prompt.")

    async def render_from_prompt(self, prompt: str, references: Sequence[EncodedImage]) -> EncodedImage:
        if not prompt or not prompt.strip():
            raise ValidationError("There is no prompt to test.")

        if references:
            request = self.client.images.edit(
                model=self.image_model,
                image=as_upload_files(references),
                prompt=prompt,
            )
        else:
            request = self.client.images.generate(model=self.image_model, prompt=prompt)
        response = await self._call("render_from_prompt", request)

        image_b64 = extract_image_b64(response)
        if not image_b64:
            raise RemoteError("The model did not return an image.")
        try:
            data = base64.b64decode(image_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise RemoteError("The model returned an unreadable image.") from exc
        return EncodedImage(data=data, mime_type="image/png")

    async def _call(self, operation: str, request: Awaitable[Any]) -> Any:
        """Await an SDK request, translating SDK failures into `RemoteError`."""
        try:
            response = await request
        except openai.APIError as exc:
            LOGGER.error("OpenAI %s request failed: %s", operation, exc)
            raise RemoteError(exc.message or str(exc)) from exc
        LOGGER.info("OpenAI %s response received: %s", operation, extract_usage(response))
        return response

    @staticmethod
    def _require_text(response: Any, empty_detail: str) -> str:
        text = extract_text(response).strip()
        if not text:
            raise RemoteError(empty_detail)
        return text
