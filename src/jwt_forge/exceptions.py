from __future__ import annotations

from jwt import exceptions as jwt_exceptions

# Re-exported so callers only need this module for key errors too.
InvalidKeyError = jwt_exceptions.InvalidKeyError


class DecodeError(jwt_exceptions.DecodeError):
    """A token segment is not valid base64url or does not hold valid JSON."""


class MalformedSignatureError(DecodeError):
    """An ECDSA signature is not well-formed DER or has the wrong JOSE width."""


class UnsupportedAlgorithmError(jwt_exceptions.InvalidAlgorithmError):
    pass


class UnconfiguredAlgorithmError(jwt_exceptions.InvalidAlgorithmError):
    def __init__(self, identifier: str | None) -> None:
        super().__init__(f"no key material configured for algorithm: {identifier}")
        self.identifier = identifier
