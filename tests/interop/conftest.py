"""
Shared pytest fixtures for interop tests.

Provides a harness configuration that runs the fake node binary as real
processes on free localhost ports.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

import devnet_harness
from devnet_harness.config import NODE_NAMES, HarnessConfig
from tests.devnet_harness.helpers import FAKE_NODE_SCRIPT, allocate_port_range, node_binary

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@pytest.fixture
def devnet_config(tmp_path: Path) -> HarnessConfig:
    """
    Three-node configuration driving the fake node binary.

    P2P and RPC ports come from separate free ranges, each wide enough for
    the largest supported cluster.
    """
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    genesis = tmp_path / "genesis.json"
    genesis.write_text("{}")

    binary = node_binary(
        tmp_path / "gossamer",
        FAKE_NODE_SCRIPT,
        Path(devnet_harness.__file__).parent.parent,
        sys.executable,
    )

    return HarnessConfig(
        num_nodes=3,
        binary=binary,
        genesis=genesis,
        node_config=tmp_path / "config.toml",
        base_port=allocate_port_range(len(NODE_NAMES)),
        base_rpc_port=allocate_port_range(len(NODE_NAMES)),
        host="127.0.0.1",
        state_root=tmp_path / "state",
        log_dir=log_dir,
        settle_delay=0.2,
        retry_interval=0.1,
        peer_id_attempts=100,
        baseline_attempts=3,
        poll_attempts=100,
        client_timeout=5.0,
        dial_timeout=5.0,
    )
