"""HTTP message signatures over selected request components.

Builds the signature base for a request from an ordered list of covered
components (``@method``, ``@scheme``, ``@authority``, ``@path``,
``@query-param;name=...`` and plain header names), hands its bytes to a
caller-provided signer, and renders the ``Signature-Input`` / ``Signature``
dictionary members for a single label::

    medoro=("@method" "@scheme" "@authority" "@path");keyid="k1";alg="ed25519";created=1700000000;expires=1700000060
    medoro=:<base64 signature>:

The module knows nothing about keys or where the two strings end up
(headers or query parameters); the client decides both.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TypeAlias
from urllib.parse import quote, urlsplit

import httpx
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from .errors import SignatureError
from .result import Failure, Result, Success


ENCODE_INPUT_ERROR = "Failed to encode signature input dictionary"

_KEY_RE = re.compile(r"^[a-z*][a-z0-9_\-.*]*$")
_ITEM_RE = re.compile(r'"(?P<name>[^"\\]+)"(?:;name="(?P<param>(?:[^"\\]|\\.)*)")?')
_PARAM_RE = re.compile(
    r';(?P<key>[a-z*][a-z0-9_\-.*]*)=(?:(?P<int>-?\d+)|"(?P<str>(?:[^"\\]|\\.)*)")'
)
_INPUT_RE = re.compile(r"^(?P<label>[a-z*][a-z0-9_\-.*]*)=(?P<params>\((?P<items>[^)]*)\).*)$")
_SIGNATURE_RE = re.compile(r"^(?P<label>[a-z*][a-z0-9_\-.*]*)=:(?P<value>[A-Za-z0-9+/=]*):$")


@dataclass(frozen=True)
class QueryParamComponent:
    """``"@query-param";name="<name>"``: one query parameter, by name."""

    name: str


SignatureComponent: TypeAlias = str | QueryParamComponent
SignatureParams: TypeAlias = Mapping[str, str | int | None]
SignFunction: TypeAlias = Callable[[bytes], Awaitable[Result[bytes, SignatureError]]]


@dataclass(frozen=True)
class SigningRequest:
    """The request surface the signature covers."""

    url: httpx.URL
    method: str
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SignatureOutput:
    """Serialized ``Signature-Input`` and ``Signature`` dictionary members."""

    signature_input: str
    signature: str


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _unquote(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def _component_id(component: SignatureComponent) -> str:
    match component:
        case QueryParamComponent(name=name):
            return f'"@query-param";name={_quote(name)}'
        case str():
            return _quote(component.lower())


def _authority(url: httpx.URL) -> str:
    # httpx drops default ports, which is what the canonical form wants
    host = url.host.lower()
    if ":" in host:
        host = f"[{host}]"
    return host if url.port is None else f"{host}:{url.port}"


def _component_value(
    component: SignatureComponent, request: SigningRequest
) -> Result[str, SignatureError]:
    url = request.url
    match component:
        case QueryParamComponent(name=name):
            values = url.params.get_list(name)
            if len(values) != 1:
                return Failure(
                    SignatureError(
                        message=f"Query parameter {name!r} must occur exactly once to be signed",
                        context={"occurrences": len(values)},
                    )
                )
            return Success(quote(values[0], safe=""))
        case "@method":
            return Success(request.method.upper())
        case "@scheme":
            return Success(url.scheme.lower())
        case "@authority":
            return Success(_authority(url))
        case "@path":
            return Success(urlsplit(str(url)).path or "/")
        case str() if component.startswith("@"):
            return Failure(SignatureError(message=f"Unsupported derived component: {component}"))
        case str():
            headers = {name.lower(): value for name, value in request.headers.items()}
            header = headers.get(component.lower())
            if header is None:
                return Failure(
                    SignatureError(message=f"Header {component!r} not present on request")
                )
            return Success(header.strip())


def _serialize_params(params: SignatureParams) -> Result[str, SignatureError]:
    parts: list[str] = []
    for name, value in params.items():
        if not _KEY_RE.match(name):
            return Failure(SignatureError(message=ENCODE_INPUT_ERROR, context={"param": name}))
        match value:
            case bool():
                return Failure(SignatureError(message=ENCODE_INPUT_ERROR, context={"param": name}))
            case int():
                parts.append(f";{name}={value}")
            case str() if value.isascii() and value.isprintable():
                parts.append(f";{name}={_quote(value)}")
            case _:
                return Failure(SignatureError(message=ENCODE_INPUT_ERROR, context={"param": name}))
    return Success("".join(parts))


def build_signature_base(
    components: Sequence[SignatureComponent],
    request: SigningRequest,
    signature_params: str,
) -> Result[str, SignatureError]:
    """Render the signature base: one ``"<id>": <value>`` line per component,
    terminated by the ``"@signature-params"`` line. No trailing newline."""
    lines: list[str] = []
    for component in components:
        match _component_value(component, request):
            case Failure(error):
                return Failure(error)
            case Success(value):
                lines.append(f"{_component_id(component)}: {value}")
    lines.append(f'"@signature-params": {signature_params}')
    return Success("\n".join(lines))


async def create_signature_for_request(
    *,
    signature_inputs: Sequence[SignatureComponent],
    signature_label: str,
    additional_params: SignatureParams,
    request: SigningRequest,
    sign: SignFunction,
) -> Result[SignatureOutput, SignatureError]:
    """Sign ``request`` over ``signature_inputs``.

    Args:
        signature_inputs: Covered components, in signing order
        signature_label: Dictionary key for both output members
        additional_params: Signature parameters (``keyid``, ``alg``,
            ``created``, ``expires``) serialized in the given order
        request: Request surface being signed
        sign: Coroutine turning the signature base bytes into signature bytes

    Returns:
        Success(SignatureOutput), or Failure(SignatureError) when parameters
        cannot be encoded, a covered component is missing, or ``sign`` fails.
    """
    if not _KEY_RE.match(signature_label):
        return Failure(
            SignatureError(message=ENCODE_INPUT_ERROR, context={"label": signature_label})
        )

    match _serialize_params(additional_params):
        case Failure(error):
            return Failure(error)
        case Success(serialized):
            params = serialized

    covered = " ".join(_component_id(component) for component in signature_inputs)
    signature_params = f"({covered}){params}"

    match build_signature_base(signature_inputs, request, signature_params):
        case Failure(error):
            return Failure(error)
        case Success(base):
            signature_base = base

    match await sign(signature_base.encode("utf-8")):
        case Failure(error):
            return Failure(error)
        case Success(signature_bytes):
            encoded = base64.b64encode(signature_bytes).decode("ascii")
            return Success(
                SignatureOutput(
                    signature_input=f"{signature_label}={signature_params}",
                    signature=f"{signature_label}=:{encoded}:",
                )
            )


def _parse_components(items: str) -> Result[list[SignatureComponent], SignatureError]:
    matches = list(_ITEM_RE.finditer(items))
    if " ".join(item.group(0) for item in matches) != items:
        return Failure(SignatureError(message="Malformed covered component list", context=items))
    components: list[SignatureComponent] = []
    for item in matches:
        name, param = item.group("name"), item.group("param")
        if name == "@query-param" and param is not None:
            components.append(QueryParamComponent(_unquote(param)))
        elif param is None:
            components.append(name)
        else:
            return Failure(SignatureError(message=f"Unsupported component parameters on {name}"))
    return Success(components)


def _parse_params(params: str) -> Result[dict[str, str | int], SignatureError]:
    matches = list(_PARAM_RE.finditer(params))
    if "".join(item.group(0) for item in matches) != params:
        return Failure(SignatureError(message="Malformed signature parameters", context=params))
    parsed: dict[str, str | int] = {}
    for item in matches:
        raw_int = item.group("int")
        key = item.group("key")
        parsed[key] = int(raw_int) if raw_int is not None else _unquote(item.group("str"))
    return Success(parsed)


def verify_signature_for_request(
    request: SigningRequest,
    public_key: Ed25519PublicKey,
    *,
    signature_input: str,
    signature: str,
    signature_label: str,
    now: int | None = None,
) -> Result[dict[str, str | int], SignatureError]:
    """Check an Ed25519 signature produced by :func:`create_signature_for_request`.

    The signature base is rebuilt from ``request`` using the covered
    components and parameters declared in ``signature_input``, so any change to
    a covered component after signing fails verification.

    Returns:
        Success(signature parameters) or Failure(SignatureError).
    """
    input_match = _INPUT_RE.match(signature_input)
    signature_match = _SIGNATURE_RE.match(signature)
    if input_match is None or signature_match is None:
        return Failure(SignatureError(message="Malformed signature dictionary"))
    labels = {input_match.group("label"), signature_match.group("label")}
    if labels != {signature_label}:
        return Failure(SignatureError(message=f"No signature labelled {signature_label!r}"))

    signature_params = input_match.group("params")
    items = input_match.group("items")
    param_text = signature_params[len(items) + 2 :]

    match _parse_components(items):
        case Failure(error):
            return Failure(error)
        case Success(parsed_components):
            components = parsed_components
    match _parse_params(param_text):
        case Failure(error):
            return Failure(error)
        case Success(parsed_params):
            params = parsed_params

    alg = params.get("alg")
    if alg is not None and alg != "ed25519":
        return Failure(SignatureError(message=f"Unsupported signature algorithm: {alg}"))
    expires = params.get("expires")
    if now is not None and isinstance(expires, int) and now > expires:
        return Failure(
            SignatureError(message="Signature expired", context={"expires": expires, "now": now})
        )

    match build_signature_base(components, request, signature_params):
        case Failure(error):
            return Failure(error)
        case Success(base):
            signature_base = base

    try:
        signature_bytes = base64.b64decode(signature_match.group("value"), validate=True)
        public_key.verify(signature_bytes, signature_base.encode("utf-8"))
    except (binascii.Error, InvalidSignature):
        return Failure(SignatureError(message="Signature verification failed"))
    return Success(params)


__all__ = [
    "ENCODE_INPUT_ERROR",
    "QueryParamComponent",
    "SignatureComponent",
    "SignatureOutput",
    "SignatureParams",
    "SignFunction",
    "SigningRequest",
    "build_signature_base",
    "create_signature_for_request",
    "verify_signature_for_request",
]
