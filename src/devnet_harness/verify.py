"""
Storage propagation check against a running cluster.

Sequence:

1. Wait for the nodes to settle, then read the storage key from every node.
2. Submit one storage-change extrinsic to a single node.
3. Poll every node concurrently until it reports a non-empty value for the key.

The outcome is reported per node. No overall verdict is derived from it.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from .cluster import ClusterState, NodeCluster
from .config import HarnessConfig
from .extrinsic import StorageChangeExtrinsic
from .launcher import NodeProcess
from .retry import PollResult, poll
from .rpc import RpcClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StorageObservation:
    """Last storage read of one node."""

    index: int
    """Node index."""

    name: str
    """Node key name."""

    value: bytes | None
    """Value read, None if the key was absent or every read failed."""

    error: Exception | None
    """Error of the last read, if it failed."""

    attempts: int
    """Reads performed."""

    @property
    def present(self) -> bool:
        """Whether a non-empty value was read."""
        return bool(self.value)

    def hex(self) -> str:
        """Value as 0x-prefixed hex, "0x" when nothing was read."""
        return "0x" + (self.value or b"").hex()

    @classmethod
    def from_poll(cls, node: NodeProcess, result: PollResult[bytes | None]) -> StorageObservation:
        return cls(
            index=node.index,
            name=node.name,
            value=result.value,
            error=result.error,
            attempts=result.attempts,
        )


@dataclass(frozen=True, slots=True)
class VerificationReport:
    """Everything observed during one verification run."""

    baseline: list[StorageObservation]
    """Reads before submission, in node order."""

    final: list[StorageObservation]
    """Reads after submission, in node order."""

    submitted_to: int
    """Index of the node that received the extrinsic."""

    submit_response: bytes
    """Raw response body of the submission."""

    def observed_everywhere(self, expected: bytes) -> bool:
        """Whether every node's final read equals `expected`."""
        return bool(self.final) and all(obs.value == expected for obs in self.final)


async def read_baseline(
    cluster: NodeCluster,
    rpc: RpcClient,
    config: HarnessConfig,
) -> list[StorageObservation]:
    """
    Read the storage key from each node once, in order.

    Failures are tolerated and reported with whatever was last read.
    """
    logger.info("Storage before")
    observations: list[StorageObservation] = []
    for node in cluster.nodes:
        result = await poll(
            lambda endpoint=node.endpoint: rpc.get_storage(endpoint, config.storage_key),
            attempts=config.baseline_attempts,
            interval=config.retry_interval,
        )
        obs = StorageObservation.from_poll(node, result)
        if obs.error is not None:
            logger.warning("Storage read from node %d failed: %s", node.index, obs.error)
        logger.info("Got storage from node %d: %s", node.index, obs.hex())
        observations.append(obs)
    return observations


async def submit_storage_change(
    cluster: NodeCluster,
    rpc: RpcClient,
    config: HarnessConfig,
    rng: random.Random | None = None,
) -> tuple[int, bytes]:
    """
    Submit the storage-change extrinsic to one node.

    The target is node 0, or a uniformly random node when `random_submit` is set.

    Returns:
        Tuple of (target node index, raw response body).

    Raises:
        TransportError: If the submission fails. This is fatal to the run.
    """
    nodes = cluster.nodes
    if config.random_submit:
        target = (rng or random.Random()).randrange(len(nodes))
    else:
        target = 0

    ext = StorageChangeExtrinsic(key=config.storage_key, value=config.storage_value)
    response = await rpc.submit_extrinsic(nodes[target].endpoint, ext.encode().hex())

    logger.info("Submitted extrinsic to node %d", target)
    logger.info("Response: %s", response.decode(errors="replace"))
    return target, response


async def wait_for_storage(
    cluster: NodeCluster,
    rpc: RpcClient,
    config: HarnessConfig,
) -> list[StorageObservation]:
    """
    Poll every node concurrently until it reports a non-empty value.

    Each node's last read is logged when its loop ends, whether or not the
    value arrived. Returns once every loop has ended.
    """

    async def watch(node: NodeProcess) -> StorageObservation:
        result = await poll(
            lambda: rpc.get_storage(node.endpoint, config.storage_key),
            attempts=config.poll_attempts,
            interval=config.retry_interval,
            accept=bool,
        )
        obs = StorageObservation.from_poll(node, result)
        logger.info("Got storage from node %d: %s", node.index, obs.hex())
        return obs

    async with asyncio.TaskGroup() as tg:
        tasks = [tg.create_task(watch(node), name=f"poll-{node.name}") for node in cluster.nodes]
    return [task.result() for task in tasks]


async def verify_storage_change(
    cluster: NodeCluster,
    rpc: RpcClient,
    config: HarnessConfig | None = None,
    rng: random.Random | None = None,
) -> VerificationReport:
    """
    Run the full verification sequence against a started cluster.

    Args:
        cluster: Cluster whose nodes have all been launched.
        rpc: JSON-RPC client.
        config: Harness configuration. Defaults to the cluster's.
        rng: Random source for picking the submission target.

    Returns:
        Per-node observations before and after the submission.
    """
    config = config or cluster.config
    cluster.state = ClusterState.VERIFYING

    await asyncio.sleep(config.settle_delay)

    baseline = await read_baseline(cluster, rpc, config)
    target, response = await submit_storage_change(cluster, rpc, config, rng)
    final = await wait_for_storage(cluster, rpc, config)

    return VerificationReport(
        baseline=baseline,
        final=final,
        submitted_to=target,
        submit_response=response,
    )
