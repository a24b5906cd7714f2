"""CLI for Medoro dataplane operations.

Usage:
    python -m medoro keygen [--key-id ID] [--label LABEL]
    python -m medoro sign-url <key> [--method PUT|GET|DELETE] [--expires SECONDS] [--policy-file FILE]
    python -m medoro put <key> <file> --policy-file FILE [--content-type TYPE]
    python -m medoro get <key> [--output FILE]
    python -m medoro delete <key>

Every command except ``keygen`` reads its configuration from ``MEDORO_ORIGIN``,
``MEDORO_KEY_ID`` and ``MEDORO_PRIVATE_KEY``.

Examples:
    # Create a key pair and the bucket configuration entry trusting it
    python -m medoro keygen --key-id laptop --label "Laptop key"

    # Presign a download link valid for one hour
    python -m medoro sign-url reports/2024.csv --method GET --expires 3600

    # Upload with a size/type policy
    python -m medoro put notes/today.txt ./today.txt --policy-file policy.json

Exit codes:
    0: Success
    1: Operation failed (signature, network, or service error)
    2: Usage or configuration error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

from .client import DEFAULT_EXPIRES_IN_SECONDS, MedoroDataplaneClient
from .commands import Command, DeleteObjectCommand, GetObjectCommand, PutObjectCommand
from .config import load_config_from_env
from .errors import ClientError
from .keys import generate_private_key, private_key_to_base64, trusted_key_entry
from .policy import ValidationPolicy, parse_policy
from .result import Failure, Result, Success
from .schemas import BucketConfig, BucketConfigV1


def _print_error(error: ClientError) -> None:
    print(
        json.dumps({"kind": error.kind, "message": error.message, "code": error.code}),
        file=sys.stderr,
    )


def _load_client() -> Result[MedoroDataplaneClient, str]:
    match load_config_from_env():
        case Failure(exc):
            return Failure(f"Invalid configuration: {exc}")
        case Success(config):
            return MedoroDataplaneClient.from_config(config).map_error(lambda error: error.message)


def _load_policy(path: str) -> Result[ValidationPolicy, str]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        return Failure(f"Cannot read policy file {path}: {exc}")
    return parse_policy(data).map_error(lambda error: error.message)


def cmd_keygen(key_id: str, label: str) -> int:
    """Print a new private key and the bucket configuration that trusts it."""
    private_key = generate_private_key()
    bucket_config = BucketConfig(
        v1=BucketConfigV1(allowed_public_keys={key_id: trusted_key_entry(private_key, label)})
    )
    print(
        json.dumps(
            {
                "keyId": key_id,
                "privateKey": private_key_to_base64(private_key),
                "bucketConfig": bucket_config.model_dump(by_alias=True),
            },
            indent=2,
        )
    )
    return 0


async def cmd_sign_url(key: str, method: str, expires: int, policy_file: str | None) -> int:
    """Print a signed URL for ``method`` on ``key``."""
    match _load_client():
        case Failure(message):
            print(message, file=sys.stderr)
            return 2
        case Success(client):
            pass

    command: Command
    if method == "PUT":
        if policy_file is None:
            print("--policy-file is required for PUT", file=sys.stderr)
            return 2
        match _load_policy(policy_file):
            case Failure(message):
                print(message, file=sys.stderr)
                return 2
            case Success(policy):
                command = PutObjectCommand(key=key, policy=policy)
    elif method == "GET":
        command = GetObjectCommand(key=key)
    else:
        command = DeleteObjectCommand(key=key)

    match await client.create_signed_url(command, expires):
        case Failure(error):
            _print_error(error)
            return 2 if error.kind == "validation" else 1
        case Success(signed):
            print(str(signed.url))
            return 0


async def cmd_put(key: str, file: str, policy_file: str, content_type: str | None) -> int:
    match _load_client():
        case Failure(message):
            print(message, file=sys.stderr)
            return 2
        case Success(client):
            pass
    match _load_policy(policy_file):
        case Failure(message):
            print(message, file=sys.stderr)
            return 2
        case Success(policy):
            pass
    try:
        content = Path(file).read_bytes()
    except OSError as exc:
        print(f"Cannot read {file}: {exc}", file=sys.stderr)
        return 2

    async with client:
        result = await client.put_object(key, content, policy, content_type=content_type)
    match result:
        case Failure(error):
            _print_error(error)
            return 1
        case Success(data):
            print(json.dumps(data, indent=2))
            return 0


async def cmd_get(key: str, output: str | None) -> int:
    match _load_client():
        case Failure(message):
            print(message, file=sys.stderr)
            return 2
        case Success(client):
            pass

    async with client:
        match await client.get_object(key):
            case Failure(error):
                _print_error(error)
                return 1
            case Success(response):
                try:
                    if output is None:
                        async for chunk in response.aiter_bytes():
                            sys.stdout.buffer.write(chunk)
                        sys.stdout.buffer.flush()
                    else:
                        with open(output, "wb") as handle:
                            async for chunk in response.aiter_bytes():
                                handle.write(chunk)
                finally:
                    await response.aclose()
                return 0


async def cmd_delete(key: str) -> int:
    match _load_client():
        case Failure(message):
            print(message, file=sys.stderr)
            return 2
        case Success(client):
            pass

    async with client:
        result = await client.delete_object(key)
    match result:
        case Failure(error):
            _print_error(error)
            return 1
        case Success(data):
            print(json.dumps(data, indent=2))
            return 0


def main() -> NoReturn:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Medoro dataplane CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    keygen_parser = subparsers.add_parser("keygen", help="Generate an Ed25519 signing key")
    keygen_parser.add_argument("--key-id", default="default", help="Key id (default: default)")
    keygen_parser.add_argument("--label", default="medoro-cli", help="Human-readable key label")

    sign_parser = subparsers.add_parser("sign-url", help="Print a signed URL")
    sign_parser.add_argument("key", help="Object key")
    sign_parser.add_argument("--method", default="GET", choices=["PUT", "GET", "DELETE"])
    sign_parser.add_argument(
        "--expires",
        type=int,
        default=DEFAULT_EXPIRES_IN_SECONDS,
        help=f"Signature lifetime in seconds (default: {DEFAULT_EXPIRES_IN_SECONDS})",
    )
    sign_parser.add_argument("--policy-file", help="JSON validation policy (PUT only)")

    put_parser = subparsers.add_parser("put", help="Upload a file")
    put_parser.add_argument("key", help="Object key")
    put_parser.add_argument("file", help="File to upload")
    put_parser.add_argument("--policy-file", required=True, help="JSON validation policy")
    put_parser.add_argument("--content-type", help="Content-Type header")

    get_parser = subparsers.add_parser("get", help="Download an object")
    get_parser.add_argument("key", help="Object key")
    get_parser.add_argument("--output", help="Write to FILE instead of stdout")

    delete_parser = subparsers.add_parser("delete", help="Delete an object")
    delete_parser.add_argument("key", help="Object key")

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "keygen":
        exit_code = cmd_keygen(args.key_id, args.label)
    elif args.command == "sign-url":
        exit_code = asyncio.run(cmd_sign_url(args.key, args.method, args.expires, args.policy_file))
    elif args.command == "put":
        exit_code = asyncio.run(cmd_put(args.key, args.file, args.policy_file, args.content_type))
    elif args.command == "get":
        exit_code = asyncio.run(cmd_get(args.key, args.output))
    elif args.command == "delete":
        exit_code = asyncio.run(cmd_delete(args.key))
    else:
        parser.print_help()
        sys.exit(2)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
