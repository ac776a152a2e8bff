from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .algorithms import AlgorithmFamily, family_for


def _looks_like_pem(text: str) -> bool:
    return "BEGIN" in text and "KEY" in text


def _looks_like_json(text: str) -> bool:
    return text.strip().startswith("{")


def load_key_text(text: str, alg: str) -> Any:
    if family_for(alg) is AlgorithmFamily.HMAC:
        if _looks_like_pem(text) or _looks_like_json(text):
            raise ValueError("refusing to use PEM/JWK as HMAC secret")
        return text.encode("utf-8")
    if _looks_like_json(text):
        raise ValueError("expected PEM text, got JSON")
    if not _looks_like_pem(text):
        raise ValueError(f"{alg} requires a PEM-encoded key")
    return text


def load_key_file(path: str | Path, alg: str) -> Any:
    content = Path(path).read_text(encoding="utf-8").strip()
    if not content:
        raise ValueError(f"key file is empty: {path}")
    return load_key_text(content, alg)


def parse_key_assignment(value: str) -> tuple[str, str]:
    alg, sep, path = value.partition("=")
    alg, path = alg.strip(), path.strip()
    if not sep or not alg or not path:
        raise ValueError(f"expected ALG=PATH, got {value!r}")
    family_for(alg)
    return alg, path


def build_algorithms(
    keys: Iterable[str] = (),
    pubs: Iterable[str] = (),
) -> dict[str, dict[str, Any]]:
    """Build the engine's ``{alg: {"key": ..., "pub": ...}}`` mapping from ALG=PATH pairs.

    A ``pub`` without a matching ``key`` gives a verify-only entry.
    """
    algorithms: dict[str, dict[str, Any]] = {}
    for assignment in keys:
        alg, path = parse_key_assignment(assignment)
        if "key" in algorithms.get(alg, {}):
            raise ValueError(f"duplicate --key for {alg}")
        algorithms.setdefault(alg, {})["key"] = load_key_file(path, alg)
    for assignment in pubs:
        alg, path = parse_key_assignment(assignment)
        if family_for(alg) is AlgorithmFamily.HMAC:
            raise ValueError(f"{alg} uses a shared secret; pass it with --key")
        if "pub" in algorithms.get(alg, {}):
            raise ValueError(f"duplicate --pub for {alg}")
        algorithms.setdefault(alg, {})["pub"] = load_key_file(path, alg)
    return algorithms
