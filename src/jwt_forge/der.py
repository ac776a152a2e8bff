"""Conversion between DER and JOSE encodings of ECDSA signatures.

Signing APIs emit ``SEQUENCE { INTEGER r, INTEGER s }`` in DER, while JWS
(RFC 7518 section 3.4) carries ``r`` and ``s`` as two fixed-width big-endian
unsigned integers concatenated. The width of each half is the curve's
parameter size in bytes (32, 48 or 66).
"""

from __future__ import annotations

from .exceptions import MalformedSignatureError

_TAG_SEQUENCE = 0x30
_TAG_INTEGER = 0x02
_HIGH_BIT = 0x80
_LONG_FORM_ONE_BYTE = 0x81


def _read_length(data: bytes, offset: int) -> tuple[int, int]:
    if offset >= len(data):
        raise MalformedSignatureError("truncated DER length")
    first = data[offset]
    if first < _HIGH_BIT:
        return first, offset + 1
    # ECDSA signatures never need more than one length octet.
    if first != _LONG_FORM_ONE_BYTE or offset + 1 >= len(data):
        raise MalformedSignatureError("unsupported DER length encoding")
    length = data[offset + 1]
    if length < _HIGH_BIT:
        raise MalformedSignatureError("non-minimal DER length encoding")
    return length, offset + 2


def _read_integer(data: bytes, offset: int, param_bytes: int) -> tuple[bytes, int]:
    if offset >= len(data) or data[offset] != _TAG_INTEGER:
        raise MalformedSignatureError("expected DER INTEGER")
    length, offset = _read_length(data, offset + 1)
    end = offset + length
    if length == 0 or end > len(data):
        raise MalformedSignatureError("DER INTEGER length out of range")
    value = data[offset:end]

    if value[0] & _HIGH_BIT:
        raise MalformedSignatureError("negative DER INTEGER")
    if length > 1 and value[0] == 0 and not value[1] & _HIGH_BIT:
        raise MalformedSignatureError("non-minimal DER INTEGER")
    if length > param_bytes:
        if length != param_bytes + 1 or value[0] != 0:
            raise MalformedSignatureError("DER INTEGER wider than the curve")
        value = value[1:]
    return value.rjust(param_bytes, b"\x00"), end


def der_to_jose(signature: bytes, param_bytes: int) -> bytes:
    data = bytes(signature)
    if not data or data[0] != _TAG_SEQUENCE:
        raise MalformedSignatureError("expected DER SEQUENCE")
    length, offset = _read_length(data, 1)
    if offset + length != len(data):
        raise MalformedSignatureError("DER SEQUENCE length does not match signature size")

    r, offset = _read_integer(data, offset, param_bytes)
    s, offset = _read_integer(data, offset, param_bytes)
    if offset != len(data):
        raise MalformedSignatureError("trailing bytes after DER INTEGER pair")
    return r + s


def _encode_length(length: int) -> bytes:
    if length < _HIGH_BIT:
        return bytes([length])
    if length <= 0xFF:
        return bytes([_LONG_FORM_ONE_BYTE, length])
    raise MalformedSignatureError("DER content too long")


def _encode_integer(half: bytes) -> bytes:
    value = half.lstrip(b"\x00")
    if not value or value[0] & _HIGH_BIT:
        value = b"\x00" + value
    return bytes([_TAG_INTEGER]) + _encode_length(len(value)) + value


def jose_to_der(signature: bytes, param_bytes: int) -> bytes:
    data = bytes(signature)
    if len(data) != 2 * param_bytes:
        raise MalformedSignatureError(
            f"expected a {2 * param_bytes}-byte signature, got {len(data)} bytes"
        )
    content = _encode_integer(data[:param_bytes]) + _encode_integer(data[param_bytes:])
    return bytes([_TAG_SEQUENCE]) + _encode_length(len(content)) + content
