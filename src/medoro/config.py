"""Client configuration.

Environment variables:
    MEDORO_ORIGIN: Bucket origin, e.g. ``https://my-bucket.content-serve.com``
    MEDORO_KEY_ID: Id of the public key registered with the bucket
    MEDORO_PRIVATE_KEY: Ed25519 private key (base64 raw seed or PKCS#8 PEM)
    MEDORO_TIMEOUT_SECONDS: Overall request timeout (default 60)
    MEDORO_CONNECT_TIMEOUT_SECONDS: Connect timeout (default 5)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Annotated
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from .result import Result
from .validation import validate_model


ENV_PREFIX = "MEDORO_"


class DataplaneConfig(BaseModel):
    """Long-lived, read-only settings shared by every call a client makes."""

    origin: str
    key_id: Annotated[str, Field(min_length=1)]
    private_key: SecretStr
    timeout_seconds: Annotated[float, Field(gt=0)] = 60.0
    connect_timeout_seconds: Annotated[float, Field(gt=0)] = 5.0

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("origin")
    @classmethod
    def _http_origin(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"origin must be an absolute http(s) URL, got {value!r}")
        return value


def load_config_from_env(
    environ: Mapping[str, str] | None = None,
) -> Result[DataplaneConfig, ValidationError]:
    """Build a DataplaneConfig from ``MEDORO_*`` environment variables.

    Unset optional variables fall back to the model defaults; missing required
    ones surface as a validation Failure naming the field.
    """
    env = os.environ if environ is None else environ
    fields = {
        "origin": "ORIGIN",
        "key_id": "KEY_ID",
        "private_key": "PRIVATE_KEY",
        "timeout_seconds": "TIMEOUT_SECONDS",
        "connect_timeout_seconds": "CONNECT_TIMEOUT_SECONDS",
    }
    data: dict[str, object] = {
        name: env[ENV_PREFIX + suffix]
        for name, suffix in fields.items()
        if ENV_PREFIX + suffix in env
    }
    return validate_model(DataplaneConfig, **data)


__all__ = ["DataplaneConfig", "ENV_PREFIX", "load_config_from_env"]
