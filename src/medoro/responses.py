"""Response classification.

Turns a completed HTTP response into either the envelope's ``data`` or exactly
one typed error. Checks run in a fixed order and each produces its own error
kind:

1. declared content type is not JSON   -> JsonParseError
2. body is not parseable JSON          -> JsonParseError
3. JSON does not match the envelope    -> ResponseValidationError
4. ``success: true``                   -> Success(data)
5. ``success: false``                  -> ApiError from the envelope

Malformed input is never coerced or partially accepted.
"""

from __future__ import annotations

import logging

import httpx

from .errors import ApiError, ClientError, JsonParseError, ResponseValidationError
from .result import Failure, Result, Success
from .schemas import ENVELOPE_ADAPTER, FailureEnvelope, SuccessEnvelope
from .validation import validate_value


_logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def parse_json_response(
    response: httpx.Response,
    *,
    require_json_content_type: bool = True,
) -> Result[object, ClientError]:
    """Classify a response whose body has already been read.

    Args:
        response: Response with its body loaded (``await response.aread()``)
        require_json_content_type: Reject responses not declared as JSON
            before attempting to parse them

    Returns:
        Success(data) for a success envelope, otherwise Failure with one of
        JsonParseError, ResponseValidationError or ApiError.
    """
    status_context = {"status": response.status_code, "status_text": response.reason_phrase}

    content_type = response.headers.get("content-type")
    if require_json_content_type and JSON_CONTENT_TYPE not in (content_type or ""):
        return Failure(
            JsonParseError(
                message="Response is not JSON",
                context={
                    **status_context,
                    "content_type": content_type,
                    "content": response.text,
                },
            )
        )

    try:
        raw_data = response.json()
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError
        return Failure(
            JsonParseError(
                message=f"Failed to parse JSON response: {exc}",
                context=status_context,
            )
        )

    match validate_value(ENVELOPE_ADAPTER, raw_data):
        case Failure(exc):
            _logger.debug("Envelope validation failed for HTTP %d", response.status_code)
            return Failure(
                ResponseValidationError(
                    message=f"API response validation failed: {exc}",
                    context={"issues": exc.errors(include_url=False), "raw_data": raw_data},
                )
            )
        case Success(SuccessEnvelope(data=data)):
            return Success(data)
        case Success(FailureEnvelope(error=error)):
            return Failure(
                ApiError(
                    kind=error.type,
                    code=error.code,
                    message=error.message,
                    context=error.details or response.reason_phrase,
                )
            )
        case _:
            raise AssertionError("Unreachable: envelope union is exhaustive")


__all__ = ["JSON_CONTENT_TYPE", "parse_json_response"]
