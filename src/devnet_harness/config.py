"""
Configuration for a devnet harness run.

All tunables live in one frozen dataclass that is passed into each component.
Nothing is read from the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .exceptions import ConfigError

NODE_NAMES: Final[tuple[str, ...]] = (
    "alice",
    "bob",
    "charlie",
    "dave",
    "eve",
    "fred",
    "george",
    "heather",
    "ian",
)
"""Development key names, one per node slot, in start order."""

NODE_COUNT_STEP: Final = 3
"""Node counts must be a multiple of this."""

DEFAULT_BINARY: Final = Path("../../ChainSafe/gossamer/bin/gossamer")
"""Location of the node binary relative to the working directory."""

BASE_P2P_PORT: Final = 7000
"""P2P listen port of node 0. Node i listens on BASE_P2P_PORT + i."""

BASE_RPC_PORT: Final = 8540
"""JSON-RPC port of node 0. Node i serves on BASE_RPC_PORT + i."""

BOOTNODE_ADDR_PREFIX: Final = "/ip4/127.0.0.1/tcp/"
"""Multiaddr template prefix for the bootnode address."""


def validate_node_count(num_nodes: int) -> None:
    """
    Check that a node count can be run.

    Counts must be positive multiples of three, bounded by the number of named keys.

    Raises:
        ConfigError: If the count is not 3, 6 or 9.
    """
    if num_nodes <= 0 or num_nodes % NODE_COUNT_STEP != 0 or num_nodes > len(NODE_NAMES):
        allowed = ", ".join(
            str(n) for n in range(NODE_COUNT_STEP, len(NODE_NAMES) + 1, NODE_COUNT_STEP)
        )
        raise ConfigError(f"must use {allowed} nodes, got {num_nodes}")


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    """
    Parameters for bringing up and verifying a local devnet.

    Ports, retry ceilings and timeouts are explicit so tests can point the
    harness at fake binaries and fake endpoints.
    """

    num_nodes: int = 3
    """Number of nodes to start."""

    connect: bool = False
    """Whether nodes dial node 0 directly instead of relying on discovery."""

    binary: Path = DEFAULT_BINARY
    """Path to the node binary."""

    genesis: Path = Path("genesis.json")
    """Shared genesis file passed to every node's init step."""

    node_config: Path = Path("config.toml")
    """Shared node configuration file."""

    base_port: int = BASE_P2P_PORT
    """P2P port of node 0."""

    base_rpc_port: int = BASE_RPC_PORT
    """RPC port of node 0."""

    host: str = "localhost"
    """Host the node RPC servers are reached on."""

    state_root: Path = field(default_factory=Path.home)
    """Directory holding the per-node state directories."""

    log_dir: Path = Path(".")
    """Directory receiving log_<name>.out and err_<name>.out."""

    random_submit: bool = False
    """Submit the extrinsic to a uniformly random node instead of node 0."""

    settle_delay: float = 5.0
    """Seconds to wait after bring-up before the first storage read."""

    retry_interval: float = 1.0
    """Seconds between attempts in every retry loop."""

    peer_id_attempts: int = 36
    """Attempts at reading node 0's peer id in direct-connect mode."""

    baseline_attempts: int = 8
    """Attempts per node for the storage read before submission."""

    poll_attempts: int = 36
    """Attempts per node while waiting for the write to appear."""

    client_timeout: float = 120.0
    """Overall HTTP request timeout in seconds."""

    dial_timeout: float = 60.0
    """HTTP connect timeout in seconds."""

    storage_key: bytes = b"noot"
    """Storage key written by the extrinsic."""

    storage_value: bytes = b"washere"
    """Storage value written by the extrinsic."""

    def validate(self) -> None:
        """Raise ConfigError if this configuration cannot be run."""
        validate_node_count(self.num_nodes)

    def node_name(self, index: int) -> str:
        """Key name for node `index`."""
        return NODE_NAMES[index]

    def p2p_port(self, index: int) -> int:
        """P2P listen port for node `index`."""
        return self.base_port + index

    def rpc_port(self, index: int) -> int:
        """RPC port for node `index`."""
        return self.base_rpc_port + index

    def rpc_endpoint(self, index: int) -> str:
        """HTTP endpoint of node `index`'s JSON-RPC server."""
        return f"http://{self.host}:{self.rpc_port(index)}"

    def basepath(self, index: int) -> Path:
        """State directory for node `index`."""
        return self.state_root / f".gossamer_{self.node_name(index)}"

    def bootnode_address(self, peer_id: str) -> str:
        """Multiaddr of node 0 given its reported peer id."""
        return f"{BOOTNODE_ADDR_PREFIX}{self.base_port}/p2p/{peer_id}"
