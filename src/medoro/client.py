"""Dataplane client: signs commands into time-bounded URLs and dispatches them.

Each call runs three strictly sequential phases, and a failure in any phase
short-circuits the rest:

1. sign      - assemble the URL (policy parameter first), sign, append the
               signature parameters
2. dispatch  - one HTTP exchange over httpx, no retries
3. classify  - turn the response into Success(data) / Success(response) or a
               typed ClientError

The client holds only read-only credential material (origin, key id, private
key), so concurrent calls share nothing mutable.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import TracebackType
from typing import overload

import httpx
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .commands import (
    Command,
    Content,
    DeleteObjectCommand,
    GetObjectCommand,
    HttpMethod,
    PutObjectCommand,
)
from .config import DataplaneConfig
from .errors import ApiError, ClientError, InvalidInput, NetworkError, SignatureError
from .keys import load_private_key
from .policy import POLICY_PARAM, ValidationPolicy, encode_policy
from .responses import parse_json_response
from .result import Failure, Result, Success
from .signatures import (
    QueryParamComponent,
    SignatureComponent,
    SigningRequest,
    create_signature_for_request,
    verify_signature_for_request,
)


_logger = logging.getLogger(__name__)

SIGNATURE_LABEL = "medoro"
SIGNATURE_ALGORITHM = "ed25519"
SIGNATURE_INPUT_PARAM = "x-medoro-signature-input"
SIGNATURE_PARAM = "x-medoro-signature"

DEFAULT_EXPIRES_IN_SECONDS = 60
MIN_EXPIRES_IN_SECONDS = 10
MAX_EXPIRES_IN_SECONDS = 604800  # 7 days

_BASE_COMPONENTS: tuple[SignatureComponent, ...] = ("@method", "@scheme", "@authority", "@path")


@dataclass(frozen=True)
class SignedUrl:
    """A URL carrying time-bounded signature parameters, plus the method it was signed for."""

    url: httpx.URL
    method: HttpMethod


def _default_content_type(content: Content) -> str:
    return "text/plain" if isinstance(content, str) else "application/octet-stream"


class MedoroDataplaneClient:
    """
    Client for a Medoro bucket.

    Usage:
        ```python
        async with MedoroDataplaneClient(
            "https://my-bucket.content-serve.com",
            private_key=private_key,
            key_id="laptop",
        ) as client:
            match await client.put_object("notes/today.txt", "hello", policy):
                case Success(data):
                    print(data["message"])
                case Failure(error):
                    print(f"{error.kind}: {error.message}")
        ```

    ``create_signed_url`` works without entering the context; ``send`` and the
    object helpers need the HTTP client the context opens.
    """

    def __init__(
        self,
        origin: str,
        private_key: Ed25519PrivateKey | None,
        key_id: str | None,
        *,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            origin: Bucket origin that command keys are resolved against
            private_key: Ed25519 key used to sign requests
            key_id: Id under which the matching public key is registered
            timeout: httpx timeout (default: 60s overall, 5s connect)
            transport: Custom httpx transport (e.g. ``httpx.MockTransport``)
            clock: Source of the current time in seconds since the epoch
        """
        self.origin = origin
        self._origin_url = httpx.URL(origin)
        self._private_key = private_key
        self._key_id = key_id
        self._timeout = timeout or httpx.Timeout(60.0, connect=5.0)
        self._transport = transport
        self._clock = clock
        self._http: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: DataplaneConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Result[MedoroDataplaneClient, InvalidInput]:
        """Build a client from configuration, loading its private key."""
        timeout = httpx.Timeout(config.timeout_seconds, connect=config.connect_timeout_seconds)
        return load_private_key(config.private_key.get_secret_value()).map(
            lambda private_key: cls(
                config.origin,
                private_key=private_key,
                key_id=config.key_id,
                timeout=timeout,
                transport=transport,
            )
        )

    async def __aenter__(self) -> MedoroDataplaneClient:
        self._http = httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    # -------------------------------------------------------------------------
    # Signing
    # -------------------------------------------------------------------------

    def resolve(self, key: str) -> Result[httpx.URL, InvalidInput]:
        """Resolve ``key`` against the origin; the result must stay on the origin."""
        url = self._origin_url.join(key)
        origin = self._origin_url
        if (url.scheme, url.host, url.port) != (origin.scheme, origin.host, origin.port):
            return Failure(
                InvalidInput(
                    message=f"Key {key!r} resolves outside of origin {self.origin}",
                    field="key",
                    context=str(url),
                )
            )
        return Success(url)

    async def _sign(self, payload: bytes) -> Result[bytes, SignatureError]:
        if self._private_key is None:
            return Failure(
                SignatureError(message="Failed to sign request: no private key configured")
            )
        return Success(self._private_key.sign(payload))

    async def create_signed_url(
        self,
        command: Command,
        expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS,
    ) -> Result[SignedUrl, ClientError]:
        """
        Sign ``command`` into a URL valid for ``expires_in_seconds``.

        For store commands the base64 policy is set as ``x-medoro-policy``
        before signing and covered by the signature, so the service can trust
        the upload constraints without a prior round trip.

        Args:
            command: Command to sign; never mutated
            expires_in_seconds: Signature lifetime, 10 to 604800 inclusive

        Returns:
            Success(SignedUrl), or Failure with kind ``validation`` (bad expiry
            or key, nothing signed) or ``signature_error``.
        """
        if (
            isinstance(expires_in_seconds, bool)
            or not isinstance(expires_in_seconds, int)
            or not MIN_EXPIRES_IN_SECONDS <= expires_in_seconds <= MAX_EXPIRES_IN_SECONDS
        ):
            return Failure(
                InvalidInput(
                    message=(
                        f"expiresInSeconds must be between {MIN_EXPIRES_IN_SECONDS} "
                        f"and {MAX_EXPIRES_IN_SECONDS}"
                    ),
                    field="expires_in_seconds",
                    context=expires_in_seconds,
                )
            )

        # Phase 1: assemble
        match self.resolve(command.key):
            case Failure(error):
                return Failure(error)
            case Success(resolved):
                url = resolved

        signature_inputs: list[SignatureComponent] = list(_BASE_COMPONENTS)
        match command:
            case PutObjectCommand(policy=policy):
                signature_inputs.append(QueryParamComponent(POLICY_PARAM))
                url = url.copy_set_param(POLICY_PARAM, encode_policy(policy))
            case GetObjectCommand() | DeleteObjectCommand():
                pass

        # Phase 2: sign
        created = int(self._clock())
        signing_result = await create_signature_for_request(
            signature_inputs=signature_inputs,
            signature_label=SIGNATURE_LABEL,
            additional_params={
                "keyid": self._key_id or None,
                "alg": SIGNATURE_ALGORITHM,
                "created": created,
                "expires": created + expires_in_seconds,
            },
            request=SigningRequest(url=url, method=command.method, headers=command.headers),
            sign=self._sign,
        )

        # Phase 3: append
        match signing_result:
            case Failure(error):
                _logger.debug("Signing %s %s failed: %s", command.method, url.path, error.message)
                return Failure(error)
            case Success(output):
                signed_url = url.copy_set_param(SIGNATURE_INPUT_PARAM, output.signature_input)
                signed_url = signed_url.copy_set_param(SIGNATURE_PARAM, output.signature)
                _logger.debug(
                    "Signed %s %s (expires in %ds)", command.method, url.path, expires_in_seconds
                )
                return Success(SignedUrl(url=signed_url, method=command.method))

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _require_http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError(
                "HTTP client not initialized. Use 'async with MedoroDataplaneClient(...)'."
            )
        return self._http

    @overload
    async def send(self, command: GetObjectCommand) -> Result[httpx.Response, ClientError]: ...

    @overload
    async def send(
        self, command: PutObjectCommand | DeleteObjectCommand
    ) -> Result[object, ClientError]: ...

    async def send(self, command: Command) -> Result[object, ClientError]:
        """
        Sign and send ``command``, then classify the response.

        Returns:
            - GetObjectCommand: Success(httpx.Response) with the body unread and
              streaming on a 2xx status; the caller reads and closes it.
            - PutObjectCommand / DeleteObjectCommand: Success(envelope data).
            - Failure(ClientError) for every failure, never an exception.
        """
        http = self._require_http()

        match await self.create_signed_url(command):
            case Failure(error):
                return Failure(error)
            case Success(signed):
                signed_url = signed.url

        content = command.content if isinstance(command, PutObjectCommand) else None
        request = http.build_request(
            command.method, signed_url, headers=dict(command.headers), content=content
        )
        is_fetch = isinstance(command, GetObjectCommand)
        try:
            response = await http.send(request, stream=is_fetch)
        except httpx.RequestError as exc:
            _logger.debug("%s %s failed in transport: %s", command.method, signed_url.path, exc)
            return Failure(NetworkError(message=f"Network error during {command.method}: {exc}"))

        _logger.debug("%s %s -> HTTP %d", command.method, signed_url.path, response.status_code)

        if is_fetch and response.is_success:
            return Success(response)

        try:
            await response.aread()
        except httpx.RequestError as exc:
            return Failure(NetworkError(message=f"Network error during {command.method}: {exc}"))
        finally:
            await response.aclose()

        match command:
            case GetObjectCommand():
                return self._classify_failed_fetch(response)
            case PutObjectCommand() | DeleteObjectCommand():
                return parse_json_response(response)

    @staticmethod
    def _classify_failed_fetch(response: httpx.Response) -> Result[object, ClientError]:
        match parse_json_response(response):
            case Failure(error):
                return Failure(error)
            case Success(_):
                # Non-success status but a success envelope: no structured error to surface
                return Failure(
                    ApiError(
                        message="API returned a non-ok response",
                        code=str(response.status_code),
                        context=response.reason_phrase,
                    )
                )

    # -------------------------------------------------------------------------
    # Object helpers
    # -------------------------------------------------------------------------

    async def put_object(
        self,
        key: str,
        content: Content,
        policy: ValidationPolicy,
        *,
        content_type: str | None = None,
    ) -> Result[object, ClientError]:
        """Upload ``content`` under ``key``.

        ``Content-Type`` defaults to ``text/plain`` for text and
        ``application/octet-stream`` otherwise.
        """
        headers = {"Content-Type": content_type or _default_content_type(content)}
        return await self.send(
            PutObjectCommand(key=key, policy=policy, content=content, headers=headers)
        )

    async def get_object(self, key: str) -> Result[httpx.Response, ClientError]:
        return await self.send(GetObjectCommand(key=key))

    async def delete_object(self, key: str) -> Result[object, ClientError]:
        return await self.send(DeleteObjectCommand(key=key))


def verify_signed_url(
    url: httpx.URL | str,
    method: str,
    public_key: Ed25519PublicKey,
    *,
    headers: Mapping[str, str] | None = None,
    now: int | None = None,
) -> Result[dict[str, str | int], SignatureError]:
    """Verify the ``x-medoro-signature*`` parameters of a signed URL.

    Returns the signature parameters (``keyid``, ``created``, ``expires``, ...)
    on success. Passing ``now`` also rejects expired signatures.
    """
    signed_url = httpx.URL(url)
    signature_input = signed_url.params.get(SIGNATURE_INPUT_PARAM)
    signature = signed_url.params.get(SIGNATURE_PARAM)
    if signature_input is None or signature is None:
        return Failure(SignatureError(message="URL carries no signature parameters"))
    return verify_signature_for_request(
        SigningRequest(url=signed_url, method=method, headers=headers or {}),
        public_key,
        signature_input=signature_input,
        signature=signature,
        signature_label=SIGNATURE_LABEL,
        now=now,
    )


__all__ = [
    "DEFAULT_EXPIRES_IN_SECONDS",
    "MAX_EXPIRES_IN_SECONDS",
    "MIN_EXPIRES_IN_SECONDS",
    "MedoroDataplaneClient",
    "SIGNATURE_INPUT_PARAM",
    "SIGNATURE_LABEL",
    "SIGNATURE_PARAM",
    "SignedUrl",
    "verify_signed_url",
]
