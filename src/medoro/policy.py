"""PUT-time validation policy.

A policy states the constraints the service must enforce on an upload
(content length, content type, key prefix, ...) and the access-control mode of
the stored object. It travels base64-encoded in the signed
``x-medoro-policy`` query parameter, so it is cryptographically bound to the
signer and the signature's time window.

Condition names are an open mapping: the service defines which names it
recognises (``content_length``, ``content_type``, ...), the client treats them
as opaque strings.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Annotated, Literal, TypeAlias

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    StringConstraints,
    ValidationError,
    field_validator,
)

from .errors import InvalidInput
from .result import Failure, Result, Success


_logger = logging.getLogger(__name__)

POLICY_PARAM = "x-medoro-policy"

Number: TypeAlias = StrictInt | StrictFloat
ConditionName: TypeAlias = Annotated[str, StringConstraints(min_length=1)]
AccessControl: TypeAlias = Literal["public", "private"]


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class StartsWith(_Condition):
    starts_with: StrictStr = Field(alias="startsWith")


class EndsWith(_Condition):
    ends_with: StrictStr = Field(alias="endsWith")


class LessThanOrEqual(_Condition):
    lte: Number


class GreaterThanOrEqual(_Condition):
    gte: Number


class OneOf(_Condition):
    one_of: tuple[StrictStr | Number, ...] = Field(alias="oneOf")


class Range(_Condition):
    """Closed interval ``[low, high]``."""

    range: tuple[Number, Number]

    @field_validator("range")
    @classmethod
    def _warn_inverted(cls, value: tuple[float, float]) -> tuple[float, float]:
        # Order is not enforced client-side; the service owns range semantics.
        low, high = value
        if low > high:
            _logger.warning("Inverted range condition [%s, %s] passed through unchanged", low, high)
        return value


# Exactly one shape matches: object shapes forbid extra keys.
ValidationCondition: TypeAlias = (
    StrictStr
    | StrictInt
    | StrictFloat
    | StartsWith
    | EndsWith
    | LessThanOrEqual
    | GreaterThanOrEqual
    | OneOf
    | Range
)


class ValidationPolicy(BaseModel):
    """Constraints a PUT must satisfy server-side, plus the object's access mode.

    Example:
        ```python
        policy = ValidationPolicy(
            conditions={
                "content_length": LessThanOrEqual(lte=1_000_000),
                "content_type": "text/plain",
            },
            access_control="private",
        )
        ```
    """

    conditions: dict[ConditionName, ValidationCondition]
    access_control: AccessControl = Field(alias="accessControl")

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class PolicyDocument(BaseModel):
    """Versioned wire form of a policy: ``{"apiPutV1": {...}}``."""

    api_put_v1: ValidationPolicy = Field(alias="apiPutV1")

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def encode_policy(policy: ValidationPolicy) -> str:
    """Serialize a policy to compact JSON and base64-encode it.

    Serialization never mutates the policy.
    """
    document = PolicyDocument(api_put_v1=policy)
    payload = document.model_dump_json(by_alias=True)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def parse_policy(data: object) -> Result[ValidationPolicy, InvalidInput]:
    """Validate decoded JSON as a policy.

    Accepts either the versioned document (``{"apiPutV1": {...}}``) or the bare
    policy object.
    """
    try:
        if isinstance(data, dict) and "apiPutV1" in data:
            return Success(PolicyDocument.model_validate(data).api_put_v1)
        return Success(ValidationPolicy.model_validate(data))
    except ValidationError as exc:
        return Failure(
            InvalidInput(
                message=f"Invalid validation policy: {exc}",
                field="policy",
                context={"issues": exc.errors(include_url=False), "raw_data": data},
            )
        )


def decode_policy(value: str) -> Result[ValidationPolicy, InvalidInput]:
    """Inverse of :func:`encode_policy`, e.g. for the value of ``x-medoro-policy``."""
    try:
        payload = base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        return Failure(
            InvalidInput(message=f"Policy is not valid base64: {exc}", field=POLICY_PARAM)
        )
    try:
        document = PolicyDocument.model_validate_json(payload)
    except ValidationError as exc:
        return Failure(
            InvalidInput(
                message=f"Invalid validation policy: {exc}",
                field=POLICY_PARAM,
                context={"issues": exc.errors(include_url=False)},
            )
        )
    return Success(document.api_put_v1)


__all__ = [
    "AccessControl",
    "EndsWith",
    "GreaterThanOrEqual",
    "LessThanOrEqual",
    "OneOf",
    "POLICY_PARAM",
    "PolicyDocument",
    "Range",
    "StartsWith",
    "ValidationCondition",
    "ValidationPolicy",
    "decode_policy",
    "encode_policy",
    "parse_policy",
]
