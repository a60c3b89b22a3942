"""Tests for :class:`services.openai.model_client.OpenAIModelClient` with a stubbed SDK."""

from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace

import httpx
import openai
import pytest

from fakes import make_image
from services.errors import RemoteError, ValidationError
from services.openai.model_client import OpenAIModelClient


class _Recorder:
    """Async callable recording its keyword arguments."""

    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict] = []

    async def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _stub_openai(text: str = "a prompt", image_b64: str | None = None):
    text_response = SimpleNamespace(output_text=text, output=[], usage=SimpleNamespace(input_tokens=10, output_tokens=5))
    image_response = SimpleNamespace(data=[SimpleNamespace(b64_json=image_b64)] if image_b64 else [])
    return SimpleNamespace(
        responses=SimpleNamespace(create=_Recorder(text_response)),
        images=SimpleNamespace(generate=_Recorder(image_response), edit=_Recorder(image_response)),
    )


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://api.openai.com/v1/responses")


def test_derive_prompt_sends_target_then_inputs() -> None:
    stub = _stub_openai(text="  edit: add hat \n")
    client = OpenAIModelClient(stub, model="test-model")

    result = asyncio.run(
        client.derive_prompt(make_image("target"), [make_image("in-1"), make_image("in-2")], "keep it small")
    )

    assert result == "edit: add hat"
    (call,) = stub.responses.create.calls
    assert call["model"] == "test-model"
    system, user = call["input"]
    assert system["role"] == "system"
    images = [part["image_url"] for part in user["content"] if part["type"] == "input_image"]
    assert images == [
        make_image("target").to_data_url(),
        make_image("in-1").to_data_url(),
        make_image("in-2").to_data_url(),
    ]
    assert "keep it small" in user["content"][0]["text"]


def test_derive_prompt_without_target_never_calls_api() -> None:
    stub = _stub_openai()

    with pytest.raises(ValidationError):
        asyncio.run(OpenAIModelClient(stub).derive_prompt(None, [], ""))

    assert stub.responses.create.calls == []


def test_refine_prompt_returns_model_text() -> None:
    stub = _stub_openai(text="Make the subject's clothing a deep blue hue")

    result = asyncio.run(OpenAIModelClient(stub).refine_prompt("make it blue"))

    assert result == "Make the subject's clothing a deep blue hue"
    assert "make it blue" in stub.responses.create.calls[0]["input"][1]["content"][0]["text"]


def test_empty_model_answer_is_a_remote_error() -> None:
    stub = _stub_openai(text="   ")

    with pytest.raises(RemoteError, match="empty"):
        asyncio.run(OpenAIModelClient(stub).refine_prompt("p"))


def test_render_without_references_uses_generate() -> None:
    stub = _stub_openai(image_b64=base64.b64encode(b"png-bytes").decode())

    image = asyncio.run(OpenAIModelClient(stub, image_model="img-model").render_from_prompt("a cat", []))

    assert image.data == b"png-bytes"
    assert image.mime_type == "image/png"
    assert stub.images.generate.calls == [{"model": "img-model", "prompt": "a cat"}]
    assert stub.images.edit.calls == []


def test_render_with_reference_uses_edit() -> None:
    stub = _stub_openai(image_b64=base64.b64encode(b"edited").decode())
    reference = make_image("ref", mime_type="image/jpeg")

    image = asyncio.run(OpenAIModelClient(stub).render_from_prompt("a cat", [reference]))

    assert image.data == b"edited"
    (call,) = stub.images.edit.calls
    assert call["image"] == [("reference-0.jpg", b"ref", "image/jpeg")]
    assert call["prompt"] == "a cat"


def test_render_without_image_payload_is_a_remote_error() -> None:
    stub = _stub_openai(image_b64=None)

    with pytest.raises(RemoteError):
        asyncio.run(OpenAIModelClient(stub).render_from_prompt("a cat", []))


def test_status_errors_surface_sdk_message() -> None:
    stub = _stub_openai()
    response = httpx.Response(429, request=_request())
    stub.responses.create.error = openai.RateLimitError("You exceeded your current quota", response=response, body=None)

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(OpenAIModelClient(stub).refine_prompt("p"))

    assert excinfo.value.detail == "You exceeded your current quota"


def test_connection_errors_become_remote_errors() -> None:
    stub = _stub_openai()
    stub.images.generate.error = openai.APIConnectionError(request=_request())

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(OpenAIModelClient(stub).render_from_prompt("p", []))

    assert excinfo.value.detail == "Connection error."


def test_client_is_required() -> None:
    with pytest.raises(ValueError):
        OpenAIModelClient(None)
