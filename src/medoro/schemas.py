"""Pydantic schemas for the service's wire formats.

* The response envelope every API response is expected to conform to.
* The bucket's trusted-key configuration (which public keys may sign requests).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, TypeAlias

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    StringConstraints,
    TypeAdapter,
    field_validator,
)


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


class SuccessEnvelope(BaseModel):
    """``{"success": true, "data": <any>}``; ``data`` stays opaque."""

    success: StrictBool
    data: Any = None

    model_config = ConfigDict(frozen=True)

    @field_validator("success")
    @classmethod
    def _is_true(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("success must be true")
        return value


class ErrorBody(BaseModel):
    code: StrictStr
    type: StrictStr
    message: StrictStr
    details: Any = None

    model_config = ConfigDict(frozen=True)


class FailureEnvelope(BaseModel):
    """``{"success": false, "error": {code, type, message, details?}}``."""

    success: StrictBool
    error: ErrorBody

    model_config = ConfigDict(frozen=True)

    @field_validator("success")
    @classmethod
    def _is_false(cls, value: bool) -> bool:
        if value is not False:
            raise ValueError("success must be false")
        return value


# Discriminated on the boolean ``success`` flag; strict types so "true", 1 or
# numeric error codes are rejected rather than coerced.
ResponseEnvelope: TypeAlias = SuccessEnvelope | FailureEnvelope

ENVELOPE_ADAPTER: TypeAdapter[ResponseEnvelope] = TypeAdapter(ResponseEnvelope)


# ---------------------------------------------------------------------------
# Bucket configuration
# ---------------------------------------------------------------------------

NonEmptyStr: TypeAlias = Annotated[str, StringConstraints(min_length=1)]


class TrustedPublicKey(BaseModel):
    """Public key allowed to sign requests against a bucket."""

    alg: Literal["ed25519"] = "ed25519"
    content_base64: NonEmptyStr = Field(alias="contentBase64")
    label: NonEmptyStr

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class BucketConfigV1(BaseModel):
    allowed_public_keys: dict[str, TrustedPublicKey] = Field(alias="allowedPublicKeys")

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class BucketConfig(BaseModel):
    """Trusted-key configuration, keyed by key id: ``{"v1": {"allowedPublicKeys": {...}}}``."""

    v1: BucketConfigV1

    model_config = ConfigDict(frozen=True, extra="forbid")


__all__ = [
    "BucketConfig",
    "BucketConfigV1",
    "ENVELOPE_ADAPTER",
    "ErrorBody",
    "FailureEnvelope",
    "ResponseEnvelope",
    "SuccessEnvelope",
    "TrustedPublicKey",
]
