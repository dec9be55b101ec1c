"""
JSON-RPC client errors.

Two failure kinds are kept apart so callers can decide what to retry:

- TransportError: the request never produced a usable HTTP 200 response
  (connection refused, timeout, bad status). Usually transient while a node boots.
- ProtocolError: the node answered, but with a JSON-RPC error object or a
  payload that does not match the expected shape.
"""

from __future__ import annotations

from typing import Any


class RpcError(Exception):
    """
    Base exception for JSON-RPC client failures.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class TransportError(RpcError):
    """
    Raised when the HTTP exchange fails.

    Attributes:
        status_code: HTTP status of the response, if one was received.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ProtocolError(RpcError):
    """
    Raised when a response is an error envelope or cannot be decoded.

    Attributes:
        code: JSON-RPC error code from the server, None for local decode failures.
        data: Structured error data from the server, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.data = data
        super().__init__(message)
