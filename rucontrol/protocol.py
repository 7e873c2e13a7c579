"""JSON wire format shared by the server, its clients and the turnstile device."""

from __future__ import annotations

import json
from typing import Any, Iterable

REQUEST_TERMINATOR = b"\r\n\r\n\r\n"
REPLY_TERMINATOR = b"\n\n\r\n"


class ProtocolError(ValueError):
    """Raised when a message does not follow the wire format."""


def _dump(items: Iterable[Any]) -> bytes:
    return json.dumps(list(items), indent=4, sort_keys=True, ensure_ascii=False).encode("utf-8") + b"\n"


def encode_request(items: Iterable[Any]) -> bytes:
    """Encode a request array, terminated as the clients send it."""
    return _dump(items) + REQUEST_TERMINATOR


def encode_reply(payload: Any) -> bytes:
    """Encode a server reply: raw text or bytes as is, anything else as a JSON array."""
    if isinstance(payload, bytes):
        body = payload
    elif isinstance(payload, str):
        body = payload.encode("utf-8")
    else:
        body = _dump(payload)
    return body + REPLY_TERMINATOR


def decode_message(data: bytes | str) -> tuple[dict[str, Any], list[Any]]:
    """Split a message into its header object and the remaining elements."""
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolError("message is not valid UTF-8") from exc
    try:
        document = json.loads(data)
    except json.JSONDecodeError as exc:
        raise ProtocolError("JSON is not configured as an Array") from exc
    if not isinstance(document, list):
        raise ProtocolError("JSON is not configured as an Array")
    if not document:
        raise ProtocolError("JSON array has no header")
    header, *rest = document
    if not isinstance(header, dict):
        header = {}
    return header, rest


def feedback(you_try: str, ok: bool, error_text: str | None = None) -> list[dict[str, Any]]:
    """Build a feedback reply telling the peer how its request went."""
    header: dict[str, Any] = {
        "ThereIs": "Feedback",
        "youTry": you_try,
        "Acknowledge": "noError" if ok else "Error",
    }
    if error_text is not None:
        header["ErrorText"] = error_text
    return [header]


def request_name(data: bytes | str) -> str:
    """Return what the sender of a request wants (its ``IWant`` field)."""
    header, _ = decode_message(data)
    value = header.get("IWant")
    return value if isinstance(value, str) else ""