from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import Any

from jwt import exceptions as jwt_exceptions

from .algorithms import ALGORITHM_PRIORITY
from .codec import decode_unverified
from .engine import TokenEngine
from .keys import build_algorithms
from .samples import generate_sample
from .timestamps import TimestampInput
from .version import version_report


def _ensure_dict(obj: Any, context: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"{context} must be a JSON object")
    return obj


def _load_claims(args: argparse.Namespace) -> dict[str, Any]:
    if args.claims and args.claims_file:
        raise ValueError("use only one of --claims or --claims-file")
    if args.claims_file:
        obj = json.loads(Path(args.claims_file).read_text(encoding="utf-8"))
        return _ensure_dict(obj, "claims")
    if args.claims:
        return _ensure_dict(json.loads(args.claims), "claims")
    return {}


def _load_header(args: argparse.Namespace) -> dict[str, Any] | None:
    if not args.header:
        return None
    return _ensure_dict(json.loads(args.header), "header")


def _parse_time(value: str | None) -> TimestampInput | None:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return value
    return int(number) if number.is_integer() else number


def _print_json(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _load_token(token_arg: str) -> str:
    if token_arg != "-":
        return token_arg.strip()
    token = sys.stdin.read().strip()
    if not token:
        raise ValueError("stdin is empty; expected JWT")
    return token


def _engine_from_args(args: argparse.Namespace) -> TokenEngine:
    if not args.key and not args.pub:
        raise ValueError("missing key material; provide --key ALG=PATH or --pub ALG=PATH")
    return TokenEngine(build_algorithms(args.key or (), args.pub or ()))


def _cmd_create(args: argparse.Namespace) -> int:
    engine = _engine_from_args(args)
    token = engine.create(
        _load_claims(args),
        algorithm=args.alg,
        header=_load_header(args),
        starts=_parse_time(args.starts),
        expires=_parse_time(args.expires),
    )
    print(token)
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    engine = _engine_from_args(args)
    result = engine.verify(_load_token(args.token))
    remaining = result.remaining
    _print_json(
        {
            "ok": result.ok,
            "error": result.error.value if result.error else None,
            "header": dict(result.header),
            "claims": dict(result.claims),
            "remaining": None if math.isinf(remaining) else remaining,
        }
    )
    if not result.ok:
        print(f"error: token {result.error.value}", file=sys.stderr)
        return 2
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    header, claims = decode_unverified(_load_token(args.token))
    _print_json({"header": header, "claims": claims})
    return 0


def _cmd_sample(args: argparse.Namespace) -> int:
    _print_json(generate_sample(args.alg, expires=_parse_time(args.expires)))
    return 0


def _add_key_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--key",
        action="append",
        metavar="ALG=PATH",
        help="Secret (HS*) or PEM private key (RS*/ES*) file for an algorithm (repeatable)",
    )
    parser.add_argument(
        "--pub",
        action="append",
        metavar="ALG=PATH",
        help="PEM public key file used for verification (repeatable; RS*/ES* only)",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="jwt-forge")
    parser.add_argument("--version", action="version", version=version_report())
    parser.add_argument("--verbose", action="store_true", help="Log debug output to stderr")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_create = sub.add_parser("create", help="Create a signed JWT")
    p_create.add_argument("--claims", help="JSON claims object")
    p_create.add_argument("--claims-file", help="Path to JSON claims file")
    p_create.add_argument("--header", help="Extra JSON header fields (optional)")
    p_create.add_argument(
        "--alg",
        choices=ALGORITHM_PRIORITY,
        help="Algorithm (default: strongest configured)",
    )
    p_create.add_argument(
        "--starts",
        help="Not-before time: epoch seconds/milliseconds or a duration like 10m",
    )
    p_create.add_argument(
        "--expires",
        help="Expiry time: epoch seconds/milliseconds or a duration like 1h",
    )
    _add_key_arguments(p_create)
    p_create.set_defaults(func=_cmd_create)

    p_verify = sub.add_parser("verify", help="Verify a JWT signature and exp/nbf claims")
    p_verify.add_argument("--token", required=True, help="JWT string (use '-' to read from stdin)")
    _add_key_arguments(p_verify)
    p_verify.set_defaults(func=_cmd_verify)

    p_decode = sub.add_parser("decode", help="Decode a JWT without verifying it")
    p_decode.add_argument("--token", required=True, help="JWT string (use '-' to read from stdin)")
    p_decode.set_defaults(func=_cmd_decode)

    p_sample = sub.add_parser("sample", help="Generate throwaway keys and a demo token")
    p_sample.add_argument("--alg", choices=ALGORITHM_PRIORITY, default="HS256")
    p_sample.add_argument("--expires", default="1h", help="Expiry (default: 1h)")
    p_sample.set_defaults(func=_cmd_sample)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        return 130
    except (ValueError, OSError, jwt_exceptions.PyJWTError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
