from __future__ import annotations

import threading
from collections.abc import Callable

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from jwt_forge.algorithms import (
    ALGORITHM_PRIORITY,
    EC_PARAM_BYTES,
    AlgorithmFamily,
    AlgorithmRegistry,
    curve_param_bytes,
    digest_bits_for,
    family_for,
)
from jwt_forge.exceptions import (
    InvalidKeyError,
    UnconfiguredAlgorithmError,
    UnsupportedAlgorithmError,
)
from jwt_forge.samples import generate_key_material


def _rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _public_pem(private_key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> str:
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )


def test_curve_param_table() -> None:
    assert dict(EC_PARAM_BYTES) == {"ES256": 32, "ES384": 48, "ES512": 66}
    assert curve_param_bytes("ES512") == 66
    with pytest.raises(UnsupportedAlgorithmError):
        curve_param_bytes("RS256")


@pytest.mark.parametrize(
    ("alg", "family", "bits"),
    [
        ("HS256", AlgorithmFamily.HMAC, 256),
        ("HS512", AlgorithmFamily.HMAC, 512),
        ("RS384", AlgorithmFamily.RSA, 384),
        ("ES256", AlgorithmFamily.ECDSA, 256),
        ("ES512", AlgorithmFamily.ECDSA, 512),
    ],
)
def test_family_and_digest_parsing(alg: str, family: AlgorithmFamily, bits: int) -> None:
    assert family_for(alg) is family
    assert digest_bits_for(alg) == bits


@pytest.mark.parametrize("alg", ["none", "PS256", "EdDSA", "HS1024", "hs256", ""])
def test_unsupported_identifiers_fail_fast(alg: str) -> None:
    with pytest.raises(UnsupportedAlgorithmError):
        AlgorithmRegistry({alg: {"key": b"secret"}})


def test_default_algorithm_prefers_ec_then_rsa_then_hmac() -> None:
    registry = AlgorithmRegistry(
        {
            "HS512": {"key": b"s1"},
            "RS256": generate_key_material("RS256"),
            "ES384": generate_key_material("ES384"),
        }
    )
    assert registry.default_algorithm == "ES384"
    assert registry.identifiers == ("ES384", "RS256", "HS512")

    assert AlgorithmRegistry({"HS256": b"a", "HS384": b"b"}).default_algorithm == "HS384"
    assert AlgorithmRegistry({}).default_algorithm is None


def test_default_algorithm_skips_verify_only_entries() -> None:
    material = generate_key_material("ES512")
    registry = AlgorithmRegistry({"ES512": {"pub": material["pub"]}, "HS256": b"secret"})
    assert registry.default_algorithm == "HS256"
    assert registry.spec_for("ES512").can_sign is False


def test_spec_for_unconfigured_algorithm() -> None:
    registry = AlgorithmRegistry({"HS256": {"key": "secret"}})
    assert registry.spec_for("HS256").signing_key == b"secret"
    assert "HS256" in registry
    assert "HS384" not in registry
    with pytest.raises(UnconfiguredAlgorithmError) as info:
        registry.spec_for("HS384")
    assert info.value.identifier == "HS384"
    with pytest.raises(UnconfiguredAlgorithmError):
        registry.spec_for(None)


def test_private_key_object_is_reduced_for_verification() -> None:
    private_key = _rsa_private_key()
    spec = AlgorithmRegistry({"RS256": private_key}).spec_for("RS256")
    assert spec.signing_key is private_key
    assert isinstance(spec.verifying_key, rsa.RSAPublicKey)

    signature = spec.sign(b"message")
    assert spec.verify(b"message", signature)
    assert not spec.verify(b"other message", signature)


def test_pub_is_preferred_for_verification() -> None:
    signer = _rsa_private_key()
    other = _rsa_private_key()
    spec = AlgorithmRegistry(
        {"RS512": {"key": signer, "pub": _public_pem(other)}}
    ).spec_for("RS512")
    assert not spec.verify(b"message", spec.sign(b"message"))


@pytest.mark.parametrize(("alg", "curve"), [("ES256", ec.SECP256R1), ("ES384", ec.SECP384R1)])
def test_ec_sign_emits_der_and_verify_accepts_it(
    alg: str, curve: type[ec.EllipticCurve]
) -> None:
    spec = AlgorithmRegistry({alg: ec.generate_private_key(curve())}).spec_for(alg)
    signature = spec.sign(b"message")
    assert signature[0] == 0x30
    assert spec.verify(b"message", signature)
    assert not spec.verify(b"tampered", signature)


def test_hmac_matches_known_vector() -> None:
    # RFC 4231 test case 2.
    spec = AlgorithmRegistry({"HS256": b"Jefe"}).spec_for("HS256")
    digest = spec.hmac(b"what do ya want for nothing?")
    assert digest.hex() == "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
    assert spec.verify(b"what do ya want for nothing?", digest)


@pytest.mark.parametrize(
    ("alg", "material", "match"),
    [
        ("RS256", lambda: ec.generate_private_key(ec.SECP256R1()), "RSA key"),
        ("ES256", _rsa_private_key, "EC key"),
        ("ES256", lambda: ec.generate_private_key(ec.SECP384R1()), "256-bit curve"),
        ("ES512", lambda: ec.generate_private_key(ec.SECP256R1()), "521-bit curve"),
        ("RS256", lambda: "not a pem", "could not load"),
        ("HS256", lambda: {"key": b"s", "pub": b"p"}, "not allowed"),
        ("HS256", lambda: b"", "must not be empty"),
        ("HS256", lambda: 12345, "bytes or str"),
        ("RS256", lambda: {}, "missing key material"),
        ("RS256", lambda: {"private": "x"}, "unexpected key material"),
    ],
)
def test_bad_key_material_fails_fast(
    alg: str, material: Callable[[], object], match: str
) -> None:
    with pytest.raises(InvalidKeyError, match=match):
        AlgorithmRegistry({alg: material()})


def test_public_key_cannot_be_used_as_signing_key() -> None:
    private_key = _rsa_private_key()
    with pytest.raises(InvalidKeyError, match="private key"):
        AlgorithmRegistry({"RS256": {"key": private_key.public_key()}})


def test_hmac_refuses_pem_secret() -> None:
    material = generate_key_material("RS256")
    with pytest.raises(InvalidKeyError):
        AlgorithmRegistry({"HS256": material["key"]})


def test_registry_is_read_only_and_shareable() -> None:
    registry = AlgorithmRegistry({alg: generate_key_material(alg) for alg in ("HS256", "ES256")})
    with pytest.raises(TypeError):
        registry._specs["HS384"] = registry.spec_for("HS256")  # type: ignore[index]

    errors: list[BaseException] = []

    def worker() -> None:
        try:
            for _ in range(20):
                spec = registry.spec_for("ES256")
                assert spec.verify(b"m", spec.sign(b"m"))
        except BaseException as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors


def test_priority_covers_every_supported_algorithm() -> None:
    assert len(ALGORITHM_PRIORITY) == 9
    assert ALGORITHM_PRIORITY[0] == "ES512"
    assert ALGORITHM_PRIORITY[-1] == "HS256"
