"""Test helpers for devnet harness tests."""

from __future__ import annotations

from pathlib import Path

from .mocks import FakeChain, FakeLauncher, FakeProcess, node_binary, rpc_error, rpc_result
from .ports import allocate_port_range

FAKE_NODE_SCRIPT = Path(__file__).with_name("fake_node.py")
"""Script implementing the node binary's command-line interface."""

__all__ = [
    "FAKE_NODE_SCRIPT",
    "FakeChain",
    "FakeLauncher",
    "FakeProcess",
    "allocate_port_range",
    "node_binary",
    "rpc_error",
    "rpc_result",
]
