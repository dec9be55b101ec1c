"""JSON-RPC client for devnet nodes."""

from .client import RpcClient, build_request, decode_response, from_hex, to_hex
from .errors import ProtocolError, RpcError, TransportError
from .models import NetworkState, RpcErrorObject, RpcResponse, SystemNetworkState

__all__ = [
    "RpcClient",
    "build_request",
    "decode_response",
    "from_hex",
    "to_hex",
    "RpcError",
    "TransportError",
    "ProtocolError",
    "RpcResponse",
    "RpcErrorObject",
    "NetworkState",
    "SystemNetworkState",
]
