"""Strict pydantic models for the JSON-RPC wire format."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StrictModel(BaseModel):
    """
    A strict, immutable pydantic base model.

    Unknown fields are rejected so that shape drift in a node's responses
    shows up as a decode error instead of silently ignored data.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        strict=True,
        populate_by_name=True,
    )


class RpcErrorObject(StrictModel):
    """Error member of a JSON-RPC response."""

    message: str
    """Server-provided error message."""

    code: int | None = None
    """JSON-RPC error code. Some nodes omit it."""

    data: dict[str, Any] | None = None
    """Optional structured error details."""


class RpcResponse(StrictModel):
    """
    JSON-RPC 2.0 response envelope.

    The result stays undecoded here. When an error is present it wins and the
    result is ignored, whatever it holds.
    """

    jsonrpc: str | None = None
    """Protocol version, "2.0". Not every node echoes it."""

    result: Any = None
    """Raw result payload."""

    error: RpcErrorObject | None = None
    """Populated when the call failed."""

    id: Any = None
    """Request id echoed by the server."""


class NetworkState(StrictModel):
    """
    Network identity of a node.

    Nodes report Go-style field names ("PeerID") or camelCase ("peerId");
    both are accepted.
    """

    peer_id: str = Field(validation_alias=AliasChoices("peerId", "PeerID", "peer_id"))
    """libp2p peer identifier."""

    multiaddrs: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("multiaddrs", "Multiaddrs"),
    )
    """Listen addresses of the node. Go nodes send null for an empty list."""


class SystemNetworkState(StrictModel):
    """Result of the system_networkState call."""

    network_state: NetworkState = Field(validation_alias="networkState")
    """The node's network identity."""
