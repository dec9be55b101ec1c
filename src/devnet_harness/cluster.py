"""
Cluster manager for a local devnet of external node processes.

Brings up N nodes, optionally pointing every node at node 0 as a bootnode,
and guarantees every started process is killed when the cluster is left.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import BinaryIO

from .config import HarnessConfig
from .exceptions import BootnodeDiscoveryError, HarnessError, NodeLaunchError
from .launcher import NodeProcess, init_and_start
from .retry import poll
from .rpc import RpcClient

logger = logging.getLogger(__name__)

Launcher = Callable[[HarnessConfig, int, str | None, BinaryIO, BinaryIO], Awaitable[NodeProcess]]
"""Signature of the function that initializes and starts one node."""

REAP_TIMEOUT = 5.0
"""Seconds to wait for a killed process to be reaped."""


class ClusterState(Enum):
    """Lifecycle of a cluster."""

    IDLE = "idle"
    LAUNCHING = "launching"
    ALL_LAUNCHED = "all_launched"
    VERIFYING = "verifying"
    TEARDOWN = "teardown"


class CountdownLatch:
    """
    One-shot barrier released after a fixed number of count-downs.

    Waiters block until the count reaches zero.
    """

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("count must be non-negative")
        self._remaining = count
        self._released = 0
        self._event = asyncio.Event()
        if count == 0:
            self._event.set()

    @property
    def remaining(self) -> int:
        """Count-downs still needed."""
        return self._remaining

    @property
    def released(self) -> int:
        """Count-downs received so far."""
        return self._released

    def count_down(self) -> None:
        """Release one count. Releasing past zero is a bug."""
        if self._remaining == 0:
            raise RuntimeError("latch released more times than its count")
        self._remaining -= 1
        self._released += 1
        if self._remaining == 0:
            self._event.set()

    async def wait(self) -> None:
        """Block until every count has been released."""
        await self._event.wait()


@dataclass(slots=True)
class NodeCluster:
    """
    Manages the node processes of one harness run.

    Use as an async context manager so teardown runs on every exit path.
    """

    config: HarnessConfig
    """Harness configuration."""

    rpc: RpcClient
    """Client used for bootnode discovery."""

    launcher: Launcher = field(default=init_and_start)
    """Function that initializes and starts one node."""

    state: ClusterState = field(default=ClusterState.IDLE)
    """Current lifecycle state."""

    bootnode: str | None = field(default=None)
    """Address of node 0, set in direct-connect mode once its peer id is known."""

    startup_latch: CountdownLatch | None = field(default=None, repr=False)
    """Barrier released once per started node."""

    _nodes: dict[int, NodeProcess] = field(default_factory=dict, repr=False)
    """Started nodes by index."""

    _log_files: dict[int, tuple[BinaryIO, BinaryIO]] = field(default_factory=dict, repr=False)
    """Per-node (log, err) files."""

    _files: contextlib.ExitStack = field(default_factory=contextlib.ExitStack, repr=False)
    """Owns every open log file."""

    _watchers: list[asyncio.Task[int]] = field(default_factory=list, repr=False)
    """Exit watcher tasks, one per node."""

    @property
    def nodes(self) -> list[NodeProcess]:
        """Started nodes in index order."""
        return [self._nodes[i] for i in sorted(self._nodes)]

    async def __aenter__(self) -> NodeCluster:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop_all()

    def _open_log_files(self, index: int) -> tuple[BinaryIO, BinaryIO]:
        name = self.config.node_name(index)
        log_path = self.config.log_dir / f"log_{name}.out"
        err_path = self.config.log_dir / f"err_{name}.out"
        try:
            log_file = self._files.enter_context(open(log_path, "wb"))
            err_file = self._files.enter_context(open(err_path, "wb"))
        except OSError as e:
            raise HarnessError(f"failed to create log files for node {name}: {e}") from e
        return log_file, err_file

    async def _launch(self, index: int, bootnode: str | None, latch: CountdownLatch) -> None:
        stdout_file, stderr_file = self._log_files[index]
        try:
            node = await self.launcher(self.config, index, bootnode, stdout_file, stderr_file)
        except HarnessError:
            raise
        except Exception as e:
            raise NodeLaunchError(index, self.config.node_name(index), f"launch failed: {e}") from e
        self._nodes[index] = node
        latch.count_down()

    async def discover_bootnode(self) -> str:
        """
        Read node 0's peer id and build the bootnode address from it.

        Raises:
            BootnodeDiscoveryError: If no peer id is reported within the retry budget.
        """
        endpoint = self.config.rpc_endpoint(0)
        result = await poll(
            lambda: self.rpc.get_peer_id(endpoint),
            attempts=self.config.peer_id_attempts,
            interval=self.config.retry_interval,
            accept=bool,
        )
        if not result.accepted or result.value is None:
            raise BootnodeDiscoveryError(
                f"failed to get peer id from first node after {result.attempts} attempts: "
                f"{result.error}"
            )

        addr = self.config.bootnode_address(result.value)
        logger.info("Got node addr for node %s: %s", self.config.node_name(0), addr)
        return addr

    async def start_all(self) -> None:
        """
        Start every node and wait until all of them have been launched.

        In direct-connect mode node 0 starts first and the others receive its
        address. Otherwise all nodes start concurrently without a bootnode.

        Raises:
            ConfigError: If the node count is invalid. Nothing is created in that case.
            HarnessError: If a log file, init step, launch, or bootnode lookup fails.
        """
        self.config.validate()
        if self.state is not ClusterState.IDLE:
            raise HarnessError(f"cluster already started (state={self.state.value})")

        num = self.config.num_nodes
        logger.info("Starting %d nodes (connect=%s)", num, self.config.connect)
        self.state = ClusterState.LAUNCHING

        for i in range(num):
            self._log_files[i] = self._open_log_files(i)

        latch = CountdownLatch(num)
        self.startup_latch = latch

        first = 0
        if self.config.connect:
            # Every other node dials node 0 and finds the rest through it.
            await self._launch(0, None, latch)
            self.bootnode = await self.discover_bootnode()
            first = 1

        try:
            async with asyncio.TaskGroup() as tg:
                for i in range(first, num):
                    tg.create_task(
                        self._launch(i, self.bootnode, latch),
                        name=f"launch-{self.config.node_name(i)}",
                    )
        except ExceptionGroup as eg:
            # Surface the first launch failure as a plain error.
            raise eg.exceptions[0] from eg

        await latch.wait()
        self.state = ClusterState.ALL_LAUNCHED
        logger.info("All %d nodes launched", num)

        for node in self.nodes:
            self._watchers.append(
                asyncio.create_task(node.wait_for_exit(), name=f"watch-{node.name}")
            )

    async def stop_all(self) -> None:
        """Kill every started node, stop background tasks, and close log files."""
        self.state = ClusterState.TEARDOWN

        for watcher in self._watchers:
            if not watcher.done():
                watcher.cancel()
        await asyncio.gather(*self._watchers, return_exceptions=True)
        self._watchers.clear()

        for node in self.nodes:
            node.kill()

        for node in self.nodes:
            try:
                await asyncio.wait_for(node.process.wait(), timeout=REAP_TIMEOUT)
            except TimeoutError:
                logger.warning("Process %s did not exit after kill", node.name)
            await node.close()

        self._files.close()
        if self._nodes:
            logger.info("All nodes stopped")
