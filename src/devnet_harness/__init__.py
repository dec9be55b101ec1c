"""
Devnet harness.

Launches a small local network of node processes, writes a storage entry
through JSON-RPC, and checks that every node observes it.
"""

from .cluster import ClusterState, CountdownLatch, NodeCluster
from .config import NODE_NAMES, HarnessConfig, validate_node_count
from .exceptions import BootnodeDiscoveryError, ConfigError, HarnessError, NodeLaunchError
from .extrinsic import StorageChangeExtrinsic
from .launcher import NodeProcess, init_and_start
from .retry import PollResult, poll
from .verify import StorageObservation, VerificationReport, verify_storage_change

__all__ = [
    # Configuration
    "HarnessConfig",
    "NODE_NAMES",
    "validate_node_count",
    # Errors
    "HarnessError",
    "ConfigError",
    "NodeLaunchError",
    "BootnodeDiscoveryError",
    # Cluster
    "NodeCluster",
    "ClusterState",
    "CountdownLatch",
    "NodeProcess",
    "init_and_start",
    # Verification
    "StorageChangeExtrinsic",
    "StorageObservation",
    "VerificationReport",
    "verify_storage_change",
    # Retry
    "PollResult",
    "poll",
]
