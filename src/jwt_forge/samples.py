from __future__ import annotations

import secrets
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from .algorithms import AlgorithmFamily, digest_bits_for, family_for
from .engine import TokenEngine
from .timestamps import TimestampInput

_CURVES = {"ES256": ec.SECP256R1, "ES384": ec.SECP384R1, "ES512": ec.SECP521R1}

SAMPLE_CLAIMS = {"sub": "demo-user", "aud": "demo-aud", "iss": "demo-iss"}


def _pem_pair(private_key: Any) -> tuple[str, str]:
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )
    return private_pem, public_pem


def generate_key_material(alg: str) -> dict[str, str]:
    family = family_for(alg)
    if family is AlgorithmFamily.HMAC:
        return {"key": secrets.token_hex(digest_bits_for(alg) // 8)}
    if family is AlgorithmFamily.RSA:
        private_key: Any = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    else:
        private_key = ec.generate_private_key(_CURVES[alg]())
    private_pem, public_pem = _pem_pair(private_key)
    return {"key": private_pem, "pub": public_pem}


def generate_sample(alg: str, expires: TimestampInput = "1h") -> dict[str, Any]:
    material = generate_key_material(alg)
    engine = TokenEngine({alg: material})
    token = engine.create(SAMPLE_CLAIMS, alg, expires=expires)
    result = engine.verify(token)
    return {
        "alg": alg,
        "token": token,
        "header": dict(result.header),
        "claims": dict(result.claims),
        "ok": result.ok,
        "error": result.error.value if result.error else None,
        **material,
    }
