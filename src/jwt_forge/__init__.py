from __future__ import annotations

from .algorithms import (
    ALGORITHM_PRIORITY,
    AlgorithmFamily,
    AlgorithmRegistry,
    AlgorithmSpec,
    curve_param_bytes,
    digest_bits_for,
)
from .codec import decode_segment, decode_unverified, encode_segment
from .der import der_to_jose, jose_to_der
from .engine import CreateOptions, ErrorKind, Token, TokenEngine
from .exceptions import (
    DecodeError,
    InvalidKeyError,
    MalformedSignatureError,
    UnconfiguredAlgorithmError,
    UnsupportedAlgorithmError,
)
from .timestamps import resolve_timestamp
from .version import __version__

__all__ = [
    "ALGORITHM_PRIORITY",
    "AlgorithmFamily",
    "AlgorithmRegistry",
    "AlgorithmSpec",
    "CreateOptions",
    "DecodeError",
    "ErrorKind",
    "InvalidKeyError",
    "MalformedSignatureError",
    "Token",
    "TokenEngine",
    "UnconfiguredAlgorithmError",
    "UnsupportedAlgorithmError",
    "__version__",
    "curve_param_bytes",
    "decode_segment",
    "decode_unverified",
    "der_to_jose",
    "digest_bits_for",
    "encode_segment",
    "jose_to_der",
    "resolve_timestamp",
]
