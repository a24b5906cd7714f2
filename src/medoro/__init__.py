"""
Python client for the Medoro object-storage dataplane.

Commands (store / fetch / remove) are signed into time-bounded URLs with
Ed25519 HTTP message signatures, dispatched over httpx, and every response is
classified into ``Success`` or exactly one typed ``ClientError``.
"""

from __future__ import annotations

from .client import (
    DEFAULT_EXPIRES_IN_SECONDS,
    MAX_EXPIRES_IN_SECONDS,
    MIN_EXPIRES_IN_SECONDS,
    MedoroDataplaneClient,
    SignedUrl,
    verify_signed_url,
)
from .commands import Command, DeleteObjectCommand, GetObjectCommand, PutObjectCommand
from .config import DataplaneConfig, load_config_from_env
from .errors import (
    ApiError,
    ClientError,
    InvalidInput,
    JsonParseError,
    NetworkError,
    ResponseValidationError,
    SignatureError,
)
from .policy import (
    EndsWith,
    GreaterThanOrEqual,
    LessThanOrEqual,
    OneOf,
    Range,
    StartsWith,
    ValidationCondition,
    ValidationPolicy,
    decode_policy,
    encode_policy,
)
from .result import Failure, Result, Success
from .schemas import BucketConfig, TrustedPublicKey


__all__ = [
    # Client
    "MedoroDataplaneClient",
    "SignedUrl",
    "verify_signed_url",
    "DEFAULT_EXPIRES_IN_SECONDS",
    "MIN_EXPIRES_IN_SECONDS",
    "MAX_EXPIRES_IN_SECONDS",
    # Commands
    "Command",
    "PutObjectCommand",
    "GetObjectCommand",
    "DeleteObjectCommand",
    # Policy
    "ValidationPolicy",
    "ValidationCondition",
    "StartsWith",
    "EndsWith",
    "LessThanOrEqual",
    "GreaterThanOrEqual",
    "OneOf",
    "Range",
    "encode_policy",
    "decode_policy",
    # Errors
    "ClientError",
    "InvalidInput",
    "SignatureError",
    "NetworkError",
    "JsonParseError",
    "ResponseValidationError",
    "ApiError",
    # Result
    "Result",
    "Success",
    "Failure",
    # Configuration
    "DataplaneConfig",
    "load_config_from_env",
    "BucketConfig",
    "TrustedPublicKey",
]
