"""Ed25519 key material helpers.

Private keys are accepted either as PKCS#8 PEM or as the base64 encoding of the
raw 32-byte seed. Public keys are exchanged as base64 of the raw 32 bytes, the
``contentBase64`` form of a bucket's trusted-key configuration.
"""

from __future__ import annotations

import base64

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .errors import InvalidInput
from .result import Failure, Result, Success
from .schemas import TrustedPublicKey


def generate_private_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


def private_key_to_base64(private_key: Ed25519PrivateKey) -> str:
    raw = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(raw).decode("ascii")


def public_key_to_base64(public_key: Ed25519PublicKey) -> str:
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return base64.b64encode(raw).decode("ascii")


def load_private_key(material: str) -> Result[Ed25519PrivateKey, InvalidInput]:
    """Load an Ed25519 private key from PEM or base64 raw form.

    Returns:
        Success(Ed25519PrivateKey), or Failure(InvalidInput) for undecodable
        material or a key of another algorithm.
    """
    text = material.strip()
    try:
        if text.startswith("-----BEGIN"):
            key = serialization.load_pem_private_key(text.encode("ascii"), password=None)
            if not isinstance(key, Ed25519PrivateKey):
                return Failure(
                    InvalidInput(
                        message=f"Expected an Ed25519 private key, got {type(key).__name__}",
                        field="private_key",
                    )
                )
            return Success(key)
        return Success(Ed25519PrivateKey.from_private_bytes(base64.b64decode(text, validate=True)))
    except (ValueError, TypeError) as exc:
        return Failure(InvalidInput(message=f"Invalid private key: {exc}", field="private_key"))


def load_public_key(content_base64: str) -> Result[Ed25519PublicKey, InvalidInput]:
    try:
        return Success(
            Ed25519PublicKey.from_public_bytes(base64.b64decode(content_base64, validate=True))
        )
    except ValueError as exc:
        return Failure(InvalidInput(message=f"Invalid public key: {exc}", field="public_key"))


def trusted_key_entry(private_key: Ed25519PrivateKey, label: str) -> TrustedPublicKey:
    """Bucket configuration entry that lets the service verify ``private_key``'s signatures."""
    return TrustedPublicKey(
        alg="ed25519",
        content_base64=public_key_to_base64(private_key.public_key()),
        label=label,
    )


__all__ = [
    "generate_private_key",
    "load_private_key",
    "load_public_key",
    "private_key_to_base64",
    "public_key_to_base64",
    "trusted_key_entry",
]
