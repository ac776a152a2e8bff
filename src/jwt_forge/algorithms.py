from __future__ import annotations

import enum
import hmac as _hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt import algorithms as jwt_algorithms

from .exceptions import InvalidKeyError, UnconfiguredAlgorithmError, UnsupportedAlgorithmError

logger = logging.getLogger(__name__)

# Strongest first within a family; EC preferred over RSA preferred over HMAC.
ALGORITHM_PRIORITY: tuple[str, ...] = (
    "ES512",
    "ES384",
    "ES256",
    "RS512",
    "RS384",
    "RS256",
    "HS512",
    "HS384",
    "HS256",
)
SUPPORTED_ALGORITHMS = frozenset(ALGORITHM_PRIORITY)

# 256, 384 and 521-bit curves; 521 bits round up to 66 bytes.
EC_PARAM_BYTES: Mapping[str, int] = MappingProxyType({"ES256": 32, "ES384": 48, "ES512": 66})
_EC_CURVE_BITS: Mapping[str, int] = MappingProxyType({"ES256": 256, "ES384": 384, "ES512": 521})

_HMAC_DIGESTS = {
    256: jwt_algorithms.HMACAlgorithm.SHA256,
    384: jwt_algorithms.HMACAlgorithm.SHA384,
    512: jwt_algorithms.HMACAlgorithm.SHA512,
}
_HASHES: dict[int, type[hashes.HashAlgorithm]] = {
    256: hashes.SHA256,
    384: hashes.SHA384,
    512: hashes.SHA512,
}


class AlgorithmFamily(enum.Enum):
    HMAC = "HS"
    RSA = "RS"
    ECDSA = "ES"


def _require_supported(identifier: str) -> str:
    if identifier not in SUPPORTED_ALGORITHMS:
        supported = ", ".join(ALGORITHM_PRIORITY)
        raise UnsupportedAlgorithmError(
            f"unsupported algorithm: {identifier} (supported: {supported})"
        )
    return identifier


def family_for(identifier: str) -> AlgorithmFamily:
    return AlgorithmFamily(_require_supported(identifier)[:2])


def digest_bits_for(identifier: str) -> int:
    return int(_require_supported(identifier)[2:])


def curve_param_bytes(identifier: str) -> int:
    try:
        return EC_PARAM_BYTES[identifier]
    except KeyError:
        raise UnsupportedAlgorithmError(f"not an ECDSA algorithm: {identifier}") from None


@dataclass(frozen=True)
class AlgorithmSpec:
    """Key material and primitive dispatch for one algorithm identifier.

    ``sign`` and ``verify`` work on the primitive's native signature form, which is
    DER for ECDSA; JOSE conversion is the caller's concern.
    """

    identifier: str
    family: AlgorithmFamily
    digest_bits: int
    signing_key: Any
    verifying_key: Any

    @property
    def can_sign(self) -> bool:
        return self.signing_key is not None

    def hmac(self, message: bytes) -> bytes:
        if self.family is not AlgorithmFamily.HMAC:
            raise UnsupportedAlgorithmError(f"{self.identifier} is not an HMAC algorithm")
        if self.signing_key is None:
            raise UnconfiguredAlgorithmError(self.identifier)
        return jwt_algorithms.HMACAlgorithm(_HMAC_DIGESTS[self.digest_bits]).sign(
            message, self.signing_key
        )

    def sign(self, message: bytes) -> bytes:
        if self.signing_key is None:
            raise UnconfiguredAlgorithmError(self.identifier)
        if self.family is AlgorithmFamily.HMAC:
            return self.hmac(message)
        hash_alg = _HASHES[self.digest_bits]
        if self.family is AlgorithmFamily.RSA:
            return jwt_algorithms.RSAAlgorithm(hash_alg).sign(message, self.signing_key)
        # ECAlgorithm.sign would already emit raw r||s; the key gives us DER.
        return self.signing_key.sign(message, ec.ECDSA(hash_alg()))

    def verify(self, message: bytes, signature: bytes) -> bool:
        if self.family is AlgorithmFamily.HMAC:
            return _hmac.compare_digest(self.hmac(message), signature)
        hash_alg = _HASHES[self.digest_bits]
        if self.family is AlgorithmFamily.RSA:
            return jwt_algorithms.RSAAlgorithm(hash_alg).verify(
                message, self.verifying_key, signature
            )
        try:
            self.verifying_key.verify(signature, message, ec.ECDSA(hash_alg()))
        except InvalidSignature:
            return False
        return True


def _split_material(material: Any) -> tuple[Any, Any]:
    if isinstance(material, Mapping):
        unknown = set(material) - {"key", "pub"}
        if unknown:
            raise InvalidKeyError(f"unexpected key material fields: {', '.join(sorted(unknown))}")
        return material.get("key"), material.get("pub")
    return material, None


def _prepare_asymmetric(identifier: str, family: AlgorithmFamily, key: Any) -> Any:
    prepared: Any = key
    if isinstance(key, (str, bytes)):
        hash_alg = _HASHES[digest_bits_for(identifier)]
        try:
            if family is AlgorithmFamily.RSA:
                prepared = jwt_algorithms.RSAAlgorithm(hash_alg).prepare_key(key)
            else:
                prepared = jwt_algorithms.ECAlgorithm(hash_alg).prepare_key(key)
        except (InvalidKeyError, TypeError, ValueError, UnsupportedAlgorithm) as exc:
            raise InvalidKeyError(f"could not load key for {identifier}: {exc}") from exc

    # RSAAlgorithm.prepare_key loads any PEM private key, whatever its type.
    if family is AlgorithmFamily.RSA:
        if not isinstance(prepared, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
            raise InvalidKeyError(f"{identifier} requires an RSA key")
        return prepared

    if not isinstance(prepared, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        raise InvalidKeyError(f"{identifier} requires an EC key")
    expected_bits = _EC_CURVE_BITS[identifier]
    if prepared.curve.key_size != expected_bits:
        raise InvalidKeyError(
            f"{identifier} requires a {expected_bits}-bit curve, got {prepared.curve.name}"
        )
    return prepared


def _verification_half(key: Any) -> Any:
    if isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        return key.public_key()
    return key


def _build_spec(identifier: str, material: Any) -> AlgorithmSpec:
    family = family_for(identifier)
    digest_bits = digest_bits_for(identifier)
    key, pub = _split_material(material)
    if key is None and pub is None:
        raise InvalidKeyError(f"missing key material for {identifier}")

    if family is AlgorithmFamily.HMAC:
        if pub is not None:
            raise InvalidKeyError(f"{identifier} uses a shared secret; 'pub' is not allowed")
        if not isinstance(key, (bytes, str)):
            raise InvalidKeyError(f"{identifier} requires a bytes or str secret")
        secret = jwt_algorithms.HMACAlgorithm(_HMAC_DIGESTS[digest_bits]).prepare_key(key)
        if not secret:
            raise InvalidKeyError(f"{identifier} secret must not be empty")
        return AlgorithmSpec(identifier, family, digest_bits, secret, secret)

    signing_key = _prepare_asymmetric(identifier, family, key) if key is not None else None
    if signing_key is not None and not isinstance(
        signing_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)
    ):
        raise InvalidKeyError(f"{identifier} 'key' must be a private key")
    verifying_key = (
        _prepare_asymmetric(identifier, family, pub) if pub is not None else signing_key
    )
    return AlgorithmSpec(
        identifier,
        family,
        digest_bits,
        signing_key,
        _verification_half(verifying_key),
    )


class AlgorithmRegistry:
    """Immutable identifier -> AlgorithmSpec table, shareable across threads."""

    def __init__(self, algorithms: Mapping[str, Any]) -> None:
        specs = {
            identifier: _build_spec(identifier, material)
            for identifier, material in algorithms.items()
        }
        self._specs: Mapping[str, AlgorithmSpec] = MappingProxyType(specs)
        # Verify-only entries cannot be the signing default.
        self._default = next(
            (a for a in ALGORITHM_PRIORITY if a in specs and specs[a].can_sign), None
        )
        logger.debug(
            "configured algorithms: %s (default: %s)",
            ", ".join(self.identifiers) or "-",
            self._default,
        )

    @property
    def default_algorithm(self) -> str | None:
        return self._default

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(a for a in ALGORITHM_PRIORITY if a in self._specs)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def spec_for(self, identifier: str | None) -> AlgorithmSpec:
        spec = self._specs.get(identifier) if isinstance(identifier, str) else None
        if spec is None:
            raise UnconfiguredAlgorithmError(identifier)
        return spec

    def digest_bits_for(self, identifier: str) -> int:
        return digest_bits_for(identifier)
