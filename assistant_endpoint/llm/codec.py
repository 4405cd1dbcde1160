"""
Request/response codec for the agent API.

Pure functions, no state. Two outgoing payload shapes:

    Simple call (call endpoint):
        {"message": "...", "parent_message_id": null, "file_ids": []}

    Chat completion (chat and streaming endpoints):
        {"messages": [{"role": "user",
                       "content": [{"type": "text", "text": "..."}]}],
         "stream": false}

Reply extraction tries each schema in priority order and never raises:
a malformed or unrecognised body degrades to the raw body text.
"""

import json
import re
from typing import Any, Callable, Optional

from ..models import Reply, ReplyKind

# Validation complaints that trigger the chat-completion fallback, e.g.
# "message content is required", "messages.0.content: field required",
# "body -> message_content: none is not an allowed value"
_CONTENT_COMPLAINT = re.compile(r"messages?(?:\W+\d+)?[\W_]+content", re.IGNORECASE)


# ════════════════════════════════════════════════════════════════════════════
# PAYLOADS
# ════════════════════════════════════════════════════════════════════════════


def build_call_payload(
    prompt: str,
    file_ids: list[str] | None = None,
    parent_message_id: str | None = None,
) -> dict:
    """Simple-call payload for the call endpoint."""
    return {
        "message": prompt,
        "parent_message_id": parent_message_id,
        "file_ids": list(file_ids) if file_ids else [],
    }


def build_chat_payload(prompt: str, stream: bool = False) -> dict:
    """Chat-completion payload with a single user turn."""
    return {
        "messages": [
            {
                "role": "user",
                "content": [{"type": "text", "text": prompt}],
            }
        ],
        "stream": stream,
    }


# ════════════════════════════════════════════════════════════════════════════
# REPLY DECODING
# ════════════════════════════════════════════════════════════════════════════


def _first_choice(data: dict) -> Optional[dict]:
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


def _decode_message(data: dict) -> Optional[tuple[ReplyKind, str]]:
    message = data.get("message")
    if isinstance(message, str):
        return ReplyKind.MESSAGE, message
    return None


def _decode_choice_message(data: dict) -> Optional[tuple[ReplyKind, str]]:
    choice = _first_choice(data)
    if choice is None:
        return None
    message = choice.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return ReplyKind.CHOICE_MESSAGE, message["content"]
    return None


def _decode_choice_text(data: dict) -> Optional[tuple[ReplyKind, str]]:
    choice = _first_choice(data)
    if choice is not None and isinstance(choice.get("text"), str):
        return ReplyKind.CHOICE_TEXT, choice["text"]
    return None


# Tried in order; the first decoder that matches wins
_DECODERS: list[Callable[[dict], Optional[tuple[ReplyKind, str]]]] = [
    _decode_message,
    _decode_choice_message,
    _decode_choice_text,
]


def _load_json(body: str) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return None


def decode_reply(body: str) -> Reply:
    """
    Decode a response body into a Reply.

    Priority:
    1. top-level "message" string
    2. choices[0].message.content
    3. choices[0].text
    4. the raw body, verbatim
    """
    body = body or ""
    data = _load_json(body)
    if isinstance(data, dict):
        for decoder in _DECODERS:
            match = decoder(data)
            if match is not None:
                kind, text = match
                return Reply(kind=kind, text=text, raw_body=body)
    return Reply(kind=ReplyKind.RAW, text=body, raw_body=body)


def extract_reply_text(body: str) -> str:
    """Reply text from a response body (see decode_reply for the order)."""
    return decode_reply(body).text


def is_message_content_complaint(body: str) -> bool:
    """True if an error body complains about the message content field."""
    return bool(body) and _CONTENT_COMPLAINT.search(body) is not None


# ════════════════════════════════════════════════════════════════════════════
# OTHER ENDPOINTS
# ════════════════════════════════════════════════════════════════════════════


def extract_file_id(body: str) -> str:
    """file_id from an upload response, or the raw body if there is none."""
    data = _load_json(body)
    if isinstance(data, dict):
        file_id = data.get("file_id")
        if file_id is not None and str(file_id):
            return str(file_id)
    return body


def parse_model_ids(body: str) -> list[str]:
    """
    Model ids from a models listing.

    Accepts {"data": [{"id": ...}]}, {"models": [...]}, or a bare list of
    ids or objects. Unparsable bodies yield an empty list.
    """
    data = _load_json(body)
    if isinstance(data, dict):
        data = data.get("data", data.get("models", []))
    if not isinstance(data, list):
        return []

    ids = []
    for item in data:
        if isinstance(item, str):
            ids.append(item)
        elif isinstance(item, dict) and item.get("id") is not None:
            ids.append(str(item["id"]))
    return sorted(ids)
