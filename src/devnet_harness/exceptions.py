"""Exception hierarchy for the devnet harness."""

from __future__ import annotations


class HarnessError(Exception):
    """
    Base exception for all fatal harness errors.

    Any HarnessError reaching the CLI terminates the run with a non-zero exit code.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigError(HarnessError):
    """Raised when the harness is configured with values it cannot run."""


class NodeLaunchError(HarnessError):
    """
    Raised when a node binary cannot be initialized or started.

    Attributes:
        index: Index of the node in the cluster.
        name: Key name of the node (e.g. "alice").
        detail: What went wrong.
    """

    def __init__(self, index: int, name: str, detail: str) -> None:
        self.index = index
        self.name = name
        self.detail = detail
        super().__init__(f"Node {index} ({name}): {detail}")


class BootnodeDiscoveryError(HarnessError):
    """Raised when the first node never reports a peer id in direct-connect mode."""
