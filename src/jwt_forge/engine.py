"""Token creation and verification.

``TokenEngine.create`` signs claims with a configured algorithm and raises on
misconfiguration. ``TokenEngine.verify`` never raises: every token string maps to
exactly one ``Token`` result whose ``error`` is ``None`` or an ``ErrorKind``.
"""

from __future__ import annotations

import enum
import hmac
import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Union

from .algorithms import AlgorithmFamily, AlgorithmRegistry, AlgorithmSpec, curve_param_bytes
from .codec import base64url_decode, base64url_encode, decode_segment, encode_segment
from .der import der_to_jose, jose_to_der
from .exceptions import DecodeError, UnconfiguredAlgorithmError
from .timestamps import TimestampInput, resolve_timestamp

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    INVALID = "invalid"
    UNAUTHORIZED = "unauthorized"
    EXPIRED = "expired"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Token:
    """Outcome of verifying one token string."""

    error: ErrorKind | None = None
    header: Mapping[str, Any] = field(default_factory=dict)
    claims: Mapping[str, Any] = field(default_factory=dict)
    # Instant the result was decided at; None reads the wall clock.
    checked_at: float | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "header", MappingProxyType(dict(self.header)))
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def payload(self) -> Mapping[str, Any]:
        return self.claims

    @property
    def remaining(self) -> float:
        return self.remaining_at(time.time() if self.checked_at is None else self.checked_at)

    def remaining_at(self, now: float) -> float:
        """Seconds until ``exp`` at ``now``, never negative; ``math.inf`` without ``exp``."""
        exp = self.claims.get("exp")
        if exp is None:
            return math.inf
        return max(0, exp - math.ceil(now))


@dataclass(frozen=True)
class CreateOptions:
    algorithm: str | None = None
    header: Mapping[str, Any] | None = None
    starts: TimestampInput | None = None
    expires: TimestampInput | None = None

    @classmethod
    def coerce(cls, options: CreateOptionsInput) -> CreateOptions:
        if options is None:
            return cls()
        if isinstance(options, CreateOptions):
            return options
        if isinstance(options, str):
            return cls(algorithm=options)
        if isinstance(options, Mapping):
            unknown = set(options) - {"algorithm", "header", "starts", "expires"}
            if unknown:
                raise ValueError(f"unknown create options: {', '.join(sorted(unknown))}")
            return cls(**dict(options))
        raise ValueError("options must be an algorithm name, a mapping or CreateOptions")


CreateOptionsInput = Union[CreateOptions, Mapping[str, Any], str, None]


class TokenEngine:
    def __init__(
        self,
        algorithms: AlgorithmRegistry | Mapping[str, Any],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if isinstance(algorithms, AlgorithmRegistry):
            self._registry = algorithms
        else:
            self._registry = AlgorithmRegistry(algorithms)
        self._clock = clock

    @property
    def registry(self) -> AlgorithmRegistry:
        return self._registry

    def create(
        self,
        claims: Mapping[str, Any],
        options: CreateOptionsInput = None,
        **overrides: Any,
    ) -> str:
        opts = CreateOptions.coerce(options)
        if overrides:
            opts = replace(opts, **overrides)

        algorithm = opts.algorithm or self._registry.default_algorithm
        spec = self._registry.spec_for(algorithm)
        if not spec.can_sign:
            raise UnconfiguredAlgorithmError(algorithm)

        now = self._clock()
        header: dict[str, Any] = {"alg": spec.identifier, "typ": "JWT"}
        if opts.header:
            header.update(opts.header)
            header["alg"] = spec.identifier

        body = dict(claims)
        body["iat"] = math.floor(now)
        if opts.starts is not None:
            body["nbf"] = resolve_timestamp(opts.starts, now=now)
        if opts.expires is not None:
            body["exp"] = resolve_timestamp(opts.expires, now=now)

        message = f"{encode_segment(header)}.{encode_segment(body)}"
        return f"{message}.{base64url_encode(self._sign(spec, message.encode('ascii')))}"

    def _sign(self, spec: AlgorithmSpec, message: bytes) -> bytes:
        if spec.family is AlgorithmFamily.HMAC:
            return spec.hmac(message)
        signature = spec.sign(message)
        if spec.family is AlgorithmFamily.ECDSA:
            return der_to_jose(signature, curve_param_bytes(spec.identifier))
        return signature

    def verify(self, token: str) -> Token:
        try:
            return self._verify(token)
        except Exception as exc:  # noqa: BLE001 - verification reports, never raises
            logger.debug("token rejected as invalid: %s: %s", type(exc).__name__, exc)
            return Token(ErrorKind.INVALID)

    def _verify(self, token: str) -> Token:
        parts = token.split(".")
        if len(parts) != 3:
            raise DecodeError(f"expected three dot-separated segments, got {len(parts)}")

        header = decode_segment(parts[0])
        claims = decode_segment(parts[1])
        if not isinstance(header, dict) or not isinstance(claims, dict):
            raise DecodeError("token header and claims must be JSON objects")
        if not header.get("alg"):
            raise DecodeError("token header has no alg")

        spec = self._registry.spec_for(header["alg"])
        # Verify exactly what was transmitted rather than a re-encoding of it.
        message = token[: -len(parts[2]) - 1]
        now = self._clock()

        error: ErrorKind | None = None
        if not self._check_signature(spec, message.encode("ascii"), parts[2]):
            error = ErrorKind.UNAUTHORIZED
        elif "exp" in claims and claims["exp"] < math.floor(now):
            error = ErrorKind.EXPIRED
        elif "nbf" in claims and claims["nbf"] > math.ceil(now):
            error = ErrorKind.INACTIVE

        if error is not None:
            logger.debug("token rejected: %s (alg=%s)", error.value, spec.identifier)
        return Token(error, header, claims, now)

    def _check_signature(self, spec: AlgorithmSpec, message: bytes, segment: str) -> bool:
        if spec.family is AlgorithmFamily.HMAC:
            expected = base64url_encode(spec.hmac(message))
            return hmac.compare_digest(expected.encode("ascii"), segment.encode("utf-8"))

        try:
            signature = base64url_decode(segment)
        except DecodeError:
            return False
        if spec.family is AlgorithmFamily.ECDSA:
            param_bytes = curve_param_bytes(spec.identifier)
            if len(signature) != 2 * param_bytes:
                return False
            signature = jose_to_der(signature, param_bytes)
        return spec.verify(message, signature)
