"""Helpers to extract text, images and usage from OpenAI responses."""

from __future__ import annotations

from typing import Any, Dict, Optional


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def extract_text(response: Any) -> str:
    """Return the concatenated output_text of a Responses API payload."""
    output_text = _field(response, "output_text")
    if isinstance(output_text, str) and output_text:
        return output_text
    parts = []
    for item in _field(response, "output", None) or []:
        if _field(item, "type") != "message":
            continue
        for content in _field(item, "content", None) or []:
            if _field(content, "type") == "output_text":
                parts.append(_field(content, "text", "") or "")
    return "".join(parts)


def extract_image_b64(response: Any) -> Optional[str]:
    """Return the first base64 image of an Images API payload, if any."""
    data = _field(response, "data", None) or []
    if not data:
        return None
    return _field(data[0], "b64_json")


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage if present."""
    usage = _field(response, "usage")
    return {
        "input_tokens": _field(usage, "input_tokens") if usage else None,
        "output_tokens": _field(usage, "output_tokens") if usage else None,
    }
