from __future__ import annotations

from importlib import metadata

DISTRIBUTION = "jwt-forge"
# Signing and verification are delegated to these.
BACKENDS = ("PyJWT", "cryptography")


def _installed(name: str) -> str | None:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return None


def get_version() -> str:
    return _installed(DISTRIBUTION) or "0.0.0"


def version_report() -> str:
    """One-line version string naming the crypto backends in use, for ``--version``."""
    backends = ", ".join(f"{name} {_installed(name) or 'unknown'}" for name in BACKENDS)
    return f"{DISTRIBUTION} {__version__} ({backends})"


__version__ = get_version()
