"""Command ADT: immutable descriptions of one pending dataplane operation.

Commands are a closed tagged union (store / fetch / remove). They carry only
what the operation needs and hold no network or cryptographic state, so a
command can be signed, sent, or inspected any number of times without side
effects.

Example:
    ```python
    command = PutObjectCommand(
        key="avatars/42.png",
        content=png_bytes,
        policy=ValidationPolicy(
            conditions={"content_type": "image/png"},
            access_control="public",
        ),
        headers={"Content-Type": "image/png"},
    )
    match await client.send(command):
        case Success(data):
            ...
    ```
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, TypeAlias

from .policy import ValidationPolicy


HttpMethod: TypeAlias = Literal["PUT", "GET", "DELETE"]

# Payload accepted by a store command; async iterables are streamed.
Content: TypeAlias = bytes | str | AsyncIterable[bytes]


def _freeze_headers(headers: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(headers))


@dataclass(frozen=True)
class PutObjectCommand:
    """Store ``content`` under ``key``, subject to ``policy``.

    Attributes:
        key: Object key (path), resolved against the client origin
        policy: Server-enforced upload constraints, signed into the URL
        content: Payload to upload
        headers: Request headers, read-only after construction
    """

    key: str
    policy: ValidationPolicy
    content: Content | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    method: Literal["PUT"] = field(default="PUT", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _freeze_headers(self.headers))


@dataclass(frozen=True)
class GetObjectCommand:
    """Fetch the object stored under ``key``."""

    key: str
    headers: Mapping[str, str] = field(default_factory=dict)
    method: Literal["GET"] = field(default="GET", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _freeze_headers(self.headers))


@dataclass(frozen=True)
class DeleteObjectCommand:
    """Remove the object stored under ``key``."""

    key: str
    headers: Mapping[str, str] = field(default_factory=dict)
    method: Literal["DELETE"] = field(default="DELETE", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _freeze_headers(self.headers))


# Union type for all commands - enables exhaustive pattern matching
Command = PutObjectCommand | GetObjectCommand | DeleteObjectCommand


__all__ = [
    "Command",
    "Content",
    "DeleteObjectCommand",
    "GetObjectCommand",
    "HttpMethod",
    "PutObjectCommand",
]
