"""
Minimal JSON-RPC 2.0 client for talking to devnet nodes.

Only three node methods are used by the harness:

- state_getStorage: read a storage value by key
- system_networkState: read the node's libp2p peer id
- author_submitExtrinsic: submit an encoded extrinsic

Requests are plain HTTP POSTs. The params are passed through as raw JSON,
so callers are responsible for supplying a valid JSON array or value.
"""

from __future__ import annotations

import json
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Final, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .errors import ProtocolError, TransportError
from .models import RpcResponse, SystemNetworkState

if TYPE_CHECKING:
    from devnet_harness.config import HarnessConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUEST_ID: Final = 1
"""Id attached to every request. Calls are never pipelined."""

HEADERS: Final = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}
"""Headers sent with every request."""


def to_hex(data: bytes) -> str:
    """Encode bytes as a 0x-prefixed lowercase hex string."""
    return "0x" + data.hex()


def from_hex(value: str) -> bytes:
    """
    Decode a 0x-prefixed hex string.

    Raises:
        ValueError: If the prefix is missing or the digits are not valid hex.
    """
    if not value.startswith("0x"):
        raise ValueError(f"hex string without 0x prefix: {value[:20]!r}")
    return bytes.fromhex(value[2:])


def build_request(method: str, params_json: str) -> bytes:
    """Build a JSON-RPC request body around pre-encoded params."""
    return (
        '{"jsonrpc":"2.0","method":"'
        + method
        + '","params":'
        + params_json
        + ',"id":'
        + str(REQUEST_ID)
        + "}"
    ).encode()


def decode_response(body: bytes, target: type[T] | Any) -> T:
    """
    Decode a JSON-RPC response body into the expected result shape.

    Decoding is strict: unknown fields in the envelope or in the result are
    rejected. An error envelope is surfaced as-is and the result is not decoded.

    Args:
        body: Raw response body.
        target: Type (or typing form) the result must validate against.

    Returns:
        The validated result.

    Raises:
        ProtocolError: If the envelope carries an error or either layer fails to decode.
    """
    try:
        response = RpcResponse.model_validate_json(body)
    except ValidationError as exc:
        raise ProtocolError(f"malformed response envelope: {exc}") from exc

    if response.error is not None:
        raise ProtocolError(
            response.error.message,
            code=response.error.code,
            data=response.error.data,
        )

    # Validate through JSON so nested objects get the same strict treatment as the envelope.
    try:
        return TypeAdapter(target).validate_json(json.dumps(response.result), strict=True)
    except ValidationError as exc:
        raise ProtocolError(f"unexpected result shape: {exc}") from exc


class RpcClient:
    """
    Async JSON-RPC client shared by all harness components.

    One underlying HTTP connection pool serves every node endpoint.
    """

    def __init__(
        self,
        *,
        client_timeout: float = 120.0,
        dial_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Create a client.

        Args:
            client_timeout: Overall per-request timeout in seconds.
            dial_timeout: Connection establishment timeout in seconds.
            transport: Optional transport override (tests use httpx.MockTransport).
        """
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(client_timeout, connect=dial_timeout),
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: HarnessConfig) -> RpcClient:
        """Create a client with the timeouts of a harness configuration."""
        return cls(client_timeout=config.client_timeout, dial_timeout=config.dial_timeout)

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def post(self, method: str, endpoint: str, params_json: str) -> bytes:
        """
        Send a JSON-RPC request and return the raw response body.

        Args:
            method: RPC method name.
            endpoint: Node URL, e.g. "http://localhost:8540".
            params_json: Params as a JSON text, e.g. '["0x6e6f6f74"]'.

        Returns:
            Body of the HTTP 200 response.

        Raises:
            TransportError: On connection failure, timeout, or a non-200 status.
        """
        try:
            response = await self._client.post(
                endpoint,
                content=build_request(method, params_json),
                headers=HEADERS,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} to {endpoint} failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise TransportError(
                f"{method} to {endpoint}: status code {response.status_code}",
                status_code=response.status_code,
            )

        return response.content

    async def get_storage(self, endpoint: str, key: bytes) -> bytes | None:
        """
        Read a storage value from a node.

        Returns:
            The stored bytes. An empty-string result yields b"".
            A null result (key not present) yields None.

        Raises:
            TransportError: If the request fails.
            ProtocolError: If the node returns an error or a non-hex result.
        """
        body = await self.post("state_getStorage", endpoint, json.dumps([to_hex(key)]))
        value: str | None = decode_response(body, str | None)

        if value is None:
            return None
        if value == "":
            return b""

        try:
            return from_hex(value)
        except ValueError as exc:
            raise ProtocolError(f"invalid storage value: {exc}") from exc

    async def get_peer_id(self, endpoint: str) -> str:
        """
        Read the libp2p peer id of a node.

        Raises:
            TransportError: If the request fails.
            ProtocolError: If the node returns an error or an unexpected shape.
        """
        body = await self.post("system_networkState", endpoint, "[]")
        state = decode_response(body, SystemNetworkState)
        return state.network_state.peer_id

    async def submit_extrinsic(self, endpoint: str, extrinsic_hex: str) -> bytes:
        """
        Submit a hex-encoded extrinsic to a node.

        Args:
            endpoint: Node URL.
            extrinsic_hex: Encoded extrinsic as hex, without the 0x prefix.

        Returns:
            Raw response body, undecoded.

        Raises:
            TransportError: If the request fails.
        """
        body = await self.post("author_submitExtrinsic", endpoint, json.dumps("0x" + extrinsic_hex))
        logger.debug("author_submitExtrinsic response from %s: %s", endpoint, body)
        return body
