"""Helper utilities for pure, Result-based Pydantic validation."""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from medoro.result import Failure, Result, Success


TModel = TypeVar("TModel", bound=BaseModel)
TValue = TypeVar("TValue")

__all__: list[str] = ["validate_model", "validate_value"]


def validate_model(model_cls: type[TModel], **data: object) -> Result[TModel, ValidationError]:
    """
    Construct a Pydantic model and surface validation issues as a Result.

    Pydantic still raises internally; the exception is caught here, at the
    boundary, and returned as a Failure carrying Pydantic's full error list.
    """
    try:
        return Success(model_cls(**data))
    except ValidationError as exc:
        return Failure(exc)


def validate_value(adapter: TypeAdapter[TValue], value: object) -> Result[TValue, ValidationError]:
    """Validate an already-decoded value (e.g. parsed JSON) against a TypeAdapter."""
    try:
        return Success(adapter.validate_python(value))
    except ValidationError as exc:
        return Failure(exc)
