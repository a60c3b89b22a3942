"""Utilities to build multimodal input payloads for the Responses API."""

from typing import Any, Dict, List, Sequence

from models.encoded_image import EncodedImage


def text_message(role: str, text: str) -> Dict[str, Any]:
    """Wrap text as a single Responses API message."""
    return {"type": "message", "role": role, "content": [{"type": "input_text", "text": text}]}


def image_content(image: EncodedImage) -> Dict[str, Any]:
    """Return an input_image content part carrying the image as a data URL."""
    return {"type": "input_image", "image_url": image.to_data_url()}


def build_derive_inputs(
    system_prompt: str,
    user_prompt: str,
    *,
    target: EncodedImage,
    inputs: Sequence[EncodedImage],
) -> List[Dict[str, Any]]:
    """Build the input array: target first, then input images in upload order."""
    content: List[Dict[str, Any]] = [{"type": "input_text", "text": user_prompt}, image_content(target)]
    content.extend(image_content(image) for image in inputs)
    return [
        text_message("system", system_prompt),
        {"type": "message", "role": "user", "content": content},
    ]


def build_refine_inputs(system_prompt: str, prompt: str) -> List[Dict[str, Any]]:
    """Build the input array for prompt optimization."""
    return [
        text_message("system", system_prompt),
        text_message("user", f"Prompt to improve:\n{prompt}"),
    ]


def as_upload_files(images: Sequence[EncodedImage]) -> List[tuple]:
    """Convert images into (filename, bytes, content_type) tuples for `images.edit`."""
    files = []
    for index, image in enumerate(images):
        extension = image.mime_type.split("/")[-1] or "png"
        if extension == "jpeg":
            extension = "jpg"
        files.append((f"reference-{index}.{extension}", image.data, image.mime_type))
    return files
