"""Extract plain reply text from heterogeneous provider envelopes.

Providers nest the generated text differently, and the nesting changes
between API generations of the same provider. Each known shape is an
independent strategy; `extract_reply` tries them in order and returns the
first non-blank result. No strategy raises on missing or malformed fields.
"""
from typing import Any, Callable, Tuple

from ..utils.logging import log_event


def _text_of(part: Any) -> str:
    """Text of a content part: `{"text": str}` or `{"text": {"value": str}}`."""
    if not isinstance(part, dict):
        return ""
    text = part.get("text")
    if isinstance(text, str):
        return text
    if isinstance(text, dict) and isinstance(text.get("value"), str):
        return text["value"]
    return ""


def from_output_text(data: Any) -> str:
    """Responses API convenience field holding the whole answer."""
    if isinstance(data, dict) and isinstance(data.get("output_text"), str):
        return data["output_text"]
    return ""


def from_output_items(data: Any) -> str:
    """Responses API `output[].content[]` parts, concatenated in order."""
    if not isinstance(data, dict) or not isinstance(data.get("output"), list):
        return ""
    parts = []
    for item in data["output"]:
        if not isinstance(item, dict) or not isinstance(item.get("content"), list):
            continue
        for piece in item["content"]:
            parts.append(_text_of(piece))
    return "".join(parts)


def from_candidates(data: Any) -> str:
    """Gemini `candidates[].content.parts[]`, concatenated in order."""
    if not isinstance(data, dict) or not isinstance(data.get("candidates"), list):
        return ""
    parts = []
    for candidate in data["candidates"]:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content")
        if not isinstance(content, dict) or not isinstance(content.get("parts"), list):
            continue
        for piece in content["parts"]:
            parts.append(_text_of(piece))
    return "".join(parts)


def from_choices(data: Any) -> str:
    """Chat completions `choices[0].message.content` (or legacy `choices[0].text`)."""
    if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
        return ""
    if not data["choices"] or not isinstance(data["choices"][0], dict):
        return ""
    first = data["choices"][0]
    message = first.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    if isinstance(first.get("text"), str):
        return first["text"]
    return ""


STRATEGIES: Tuple[Tuple[str, Callable[[Any], str]], ...] = (
    ("output_text", from_output_text),
    ("output", from_output_items),
    ("candidates", from_candidates),
    ("choices", from_choices),
)


def extract_reply(data: Any, raw_text: str = "") -> str:
    """Return the trimmed reply text, or "" when no known shape matched."""
    for _name, strategy in STRATEGIES:
        text = strategy(data).strip()
        if text:
            return text
    log_event(10, "normalizer_no_match", body_chars=len(raw_text or ""))
    return ""
