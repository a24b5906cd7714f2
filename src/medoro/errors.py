"""Error ADTs surfaced by the dataplane client.

Every failure path of the client ends in exactly one of these frozen
dataclasses, wrapped in ``Failure``. The ``kind`` field is the stable
discriminator callers can switch on; ``context`` carries structured diagnostic
data whose shape varies by kind and is deliberately left open.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class InvalidInput:
    """Caller input rejected before any signing or network call.

    Attributes:
        message: Human-readable error description
        field: Name of the offending input, when there is one
        code: Optional machine-readable code
        context: Offending value or validation issues
    """

    message: str
    field: str | None = None
    code: str | None = None
    context: object | None = None
    kind: Literal["validation"] = "validation"


@dataclass(frozen=True)
class SignatureError:
    """The signing primitive could not produce a signature.

    Raised for missing or unencodable key identifiers, absent key material,
    a signed component missing from the request, or a failing signer.
    Permanent for a given call: it is a configuration problem.
    """

    message: str
    code: str | None = None
    context: object | None = None
    kind: Literal["signature_error"] = "signature_error"


@dataclass(frozen=True)
class NetworkError:
    """Transport failure (connect, DNS, TLS, timeout, read).

    Callers may retry with their own backoff; the client never retries.
    """

    message: str
    code: str | None = None
    context: object | None = None
    kind: Literal["network_error"] = "network_error"


@dataclass(frozen=True)
class JsonParseError:
    """Response body was not JSON, or not parseable as JSON."""

    message: str
    code: str | None = None
    context: object | None = None
    kind: Literal["json_parse_error"] = "json_parse_error"


@dataclass(frozen=True)
class ResponseValidationError:
    """Response JSON does not match the success/failure envelope."""

    message: str
    code: str | None = None
    context: object | None = None
    kind: Literal["validation_error"] = "validation_error"


@dataclass(frozen=True)
class ApiError:
    """Error reported by the service.

    ``kind`` is the error ``type`` declared in the failure envelope (usually
    ``"api_error"``), or ``"api_error"`` when the service answered a fetch with
    a non-success status but no structured error body. In the latter case
    ``code`` is the HTTP status.
    """

    message: str
    code: str | None = None
    context: object | None = None
    kind: str = "api_error"


# Union type for all client errors - enables exhaustive pattern matching
ClientError = (
    InvalidInput
    | SignatureError
    | NetworkError
    | JsonParseError
    | ResponseValidationError
    | ApiError
)


__all__ = [
    "ApiError",
    "ClientError",
    "InvalidInput",
    "JsonParseError",
    "NetworkError",
    "ResponseValidationError",
    "SignatureError",
]
