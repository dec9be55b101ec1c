"""
Shared pytest fixtures for devnet harness tests.

Provides a fast configuration rooted in tmp_path and an RPC client wired to
an in-memory fake chain.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from devnet_harness.config import HarnessConfig
from devnet_harness.rpc import RpcClient
from tests.devnet_harness.helpers import FakeChain


@pytest.fixture
def config(tmp_path: Path) -> HarnessConfig:
    """Three-node configuration with short waits, writing only under tmp_path."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return HarnessConfig(
        num_nodes=3,
        binary=tmp_path / "node",
        genesis=tmp_path / "genesis.json",
        node_config=tmp_path / "config.toml",
        host="127.0.0.1",
        state_root=tmp_path / "state",
        log_dir=log_dir,
        settle_delay=0.0,
        retry_interval=0.01,
        peer_id_attempts=5,
        baseline_attempts=3,
        poll_attempts=10,
        client_timeout=5.0,
        dial_timeout=5.0,
    )


@pytest.fixture
def fake_chain() -> FakeChain:
    """In-memory JSON-RPC backend."""
    return FakeChain()


@pytest.fixture
async def rpc(fake_chain: FakeChain) -> AsyncGenerator[RpcClient, None]:
    """RPC client whose requests are answered by the fake chain."""
    client = RpcClient(transport=fake_chain.transport())
    try:
        yield client
    finally:
        await client.aclose()
