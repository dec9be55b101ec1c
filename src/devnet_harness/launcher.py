"""
Node process launcher.

Each node is brought up in two steps:

1. `<binary> init` writes fresh on-disk state into the node's basepath.
2. `<binary>` (no subcommand) runs the node with RPC enabled.

The launcher does not wait for the node to become ready. Readiness is
established later by polling the node's RPC endpoint.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Final

from .config import HarnessConfig
from .exceptions import NodeLaunchError

logger = logging.getLogger(__name__)

PUMP_CHUNK_SIZE: Final = 64 * 1024
"""Bytes read per iteration when copying node output to its log file."""


def init_command(config: HarnessConfig, index: int) -> list[str]:
    """Command line of the init step for node `index`."""
    return [
        str(config.binary),
        "init",
        "--config",
        str(config.node_config),
        "--basepath",
        str(config.basepath(index)),
        "--genesis",
        str(config.genesis),
        "--force",
    ]


def start_command(config: HarnessConfig, index: int, bootnode: str | None = None) -> list[str]:
    """Command line that runs node `index`, optionally dialing a bootnode."""
    cmd = [
        str(config.binary),
        "--port",
        str(config.p2p_port(index)),
        "--config",
        str(config.node_config),
        "--key",
        config.node_name(index),
        "--basepath",
        str(config.basepath(index)),
        "--rpcport",
        str(config.rpc_port(index)),
        "--rpc",
    ]
    if bootnode:
        cmd.extend(["--bootnodes", bootnode])
    return cmd


async def _pump(stream: asyncio.StreamReader, sink: BinaryIO) -> None:
    """Copy a process output stream into a file until EOF."""
    while chunk := await stream.read(PUMP_CHUNK_SIZE):
        sink.write(chunk)
        sink.flush()


@dataclass(slots=True)
class NodeProcess:
    """
    A running node owned by the harness.

    Holds the subprocess handle and the background tasks copying its output.
    """

    index: int
    """Node index in the cluster."""

    name: str
    """Key name of the node (e.g. "alice")."""

    p2p_port: int
    """P2P listen port."""

    rpc_port: int
    """JSON-RPC port."""

    endpoint: str
    """JSON-RPC endpoint URL."""

    basepath: Path
    """On-disk state directory."""

    process: asyncio.subprocess.Process
    """Underlying subprocess."""

    _pump_tasks: list[asyncio.Task[None]] = field(default_factory=list, repr=False)
    """Tasks copying stdout and stderr to the log files."""

    _killed: bool = field(default=False, repr=False)
    """Set once a kill has been issued."""

    @property
    def pid(self) -> int:
        """Process id."""
        return self.process.pid

    @property
    def killed(self) -> bool:
        """Whether the harness has issued a kill to this node."""
        return self._killed

    def kill(self) -> bool:
        """
        Send SIGKILL to the node, at most once.

        Failures are logged, not raised.

        Returns:
            True if this call issued the kill.
        """
        if self._killed:
            return False
        self._killed = True

        try:
            self.process.kill()
        except OSError as e:
            logger.warning("Could not kill process %s: %s", self.name, e)
        return True

    async def wait_for_exit(self) -> int:
        """
        Wait for the process to exit.

        An exit the harness did not cause is logged as a failure.

        Returns:
            The process return code.
        """
        returncode = await self.process.wait()
        if not self._killed:
            logger.error("Process %s failed with exit code %d", self.name, returncode)
        return returncode

    async def close(self, drain_timeout: float = 1.0) -> None:
        """
        Stop copying output to the log files.

        Output still in flight is drained for up to `drain_timeout` seconds,
        then the copy tasks are cancelled.
        """
        if self._pump_tasks:
            await asyncio.wait(self._pump_tasks, timeout=drain_timeout)
        for task in self._pump_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._pump_tasks, return_exceptions=True)
        self._pump_tasks.clear()


async def init_and_start(
    config: HarnessConfig,
    index: int,
    bootnode: str | None,
    stdout_file: BinaryIO,
    stderr_file: BinaryIO,
) -> NodeProcess:
    """
    Initialize a node's state and start it.

    Args:
        config: Harness configuration.
        index: Node index; selects ports, key name and basepath.
        bootnode: Multiaddr to dial on startup, or None to rely on discovery.
        stdout_file: Receives the init output and the node's stdout.
        stderr_file: Receives the node's stderr.

    Returns:
        The running node.

    Raises:
        NodeLaunchError: If either step cannot be run or init exits non-zero.
    """
    name = config.node_name(index)

    # Init step: stderr merged into stdout, all written to the node log.
    try:
        init_proc = await asyncio.create_subprocess_exec(
            *init_command(config, index),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise NodeLaunchError(index, name, f"failed to run init: {e}") from e

    output, _ = await init_proc.communicate()
    stdout_file.write(output)
    stdout_file.flush()

    if init_proc.returncode != 0:
        raise NodeLaunchError(index, name, f"init exited with code {init_proc.returncode}")
    logger.info("Initialized node %s", name)

    try:
        process = await asyncio.create_subprocess_exec(
            *start_command(config, index, bootnode),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise NodeLaunchError(index, name, f"failed to start: {e}") from e

    node = NodeProcess(
        index=index,
        name=name,
        p2p_port=config.p2p_port(index),
        rpc_port=config.rpc_port(index),
        endpoint=config.rpc_endpoint(index),
        basepath=config.basepath(index),
        process=process,
    )

    if process.stdout is None or process.stderr is None:
        node.kill()
        raise NodeLaunchError(index, name, "output pipes not available")
    node._pump_tasks = [
        asyncio.create_task(_pump(process.stdout, stdout_file), name=f"stdout-{name}"),
        asyncio.create_task(_pump(process.stderr, stderr_file), name=f"stderr-{name}"),
    ]

    logger.info(
        "Started node %s (pid=%d, port=%d, rpcport=%d, bootnode=%s)",
        name,
        process.pid,
        node.p2p_port,
        node.rpc_port,
        bootnode or "-",
    )
    return node
