from __future__ import annotations

import binascii
import json
import re
from typing import Any

from jwt.utils import base64url_decode as _jwt_base64url_decode
from jwt.utils import base64url_encode as _jwt_base64url_encode

from .exceptions import DecodeError

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def base64url_encode(data: bytes) -> str:
    return _jwt_base64url_encode(data).decode("ascii")


def base64url_decode(segment: str) -> bytes:
    # urlsafe_b64decode silently discards foreign characters; reject them up front.
    if not isinstance(segment, str) or not _BASE64URL_RE.match(segment):
        raise DecodeError("segment is not base64url")
    if len(segment) % 4 == 1:
        raise DecodeError("segment has an impossible base64url length")
    try:
        return _jwt_base64url_decode(segment)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64url segment: {exc}") from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def encode_segment(value: Any) -> str:
    data = json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    ).encode("utf-8")
    return base64url_encode(data)


def decode_segment(segment: str) -> Any:
    data = base64url_decode(segment)
    try:
        return json.loads(data.decode("utf-8"), parse_constant=_reject_constant)
    except ValueError as exc:
        # Covers UnicodeDecodeError, JSONDecodeError and NaN/Infinity literals.
        raise DecodeError(f"invalid JSON segment: {exc}") from exc


def decode_unverified(token: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split and decode a token without checking its signature or timing claims."""
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise DecodeError("expected a token with three dot-separated parts")
    header = decode_segment(parts[0])
    claims = decode_segment(parts[1])
    if not isinstance(header, dict):
        raise DecodeError("token header must be a JSON object")
    if not isinstance(claims, dict):
        raise DecodeError("token claims must be a JSON object")
    return header, claims
