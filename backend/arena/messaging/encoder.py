"""
JSON encoder/decoder for the text wire format.

Every frame is a single JSON object carrying a mandatory "type" field.
"""

import json
from typing import Any

# Frames above this size are rejected before parsing.
MAX_MESSAGE_BYTES = 64 * 1024


class DecodeError(Exception):
    """Error raised when an inbound frame cannot be decoded into a message dict."""


def encode(data: dict[str, Any]) -> str:
    """
    Encode a message dict into a compact JSON text frame.
    """
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def decode(raw: str, max_bytes: int = MAX_MESSAGE_BYTES) -> dict[str, Any]:
    """
    Decode a JSON text frame into a dict.

    Raises DecodeError if the frame is oversized, is not valid JSON,
    or does not hold a JSON object.
    """
    size = len(raw.encode("utf-8"))
    if size > max_bytes:
        raise DecodeError(f"payload too large: {size} bytes (max {max_bytes})")
    try:
        result = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeError(f"failed to decode JSON frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected object, got {type(result).__name__}")

    return result
