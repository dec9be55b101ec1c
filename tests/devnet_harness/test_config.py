"""Tests for harness configuration and node-count validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from devnet_harness.config import NODE_NAMES, HarnessConfig, validate_node_count
from devnet_harness.exceptions import ConfigError


class TestValidateNodeCount:
    """Tests for validate_node_count()."""

    @pytest.mark.parametrize("num", [3, 6, 9])
    def test_multiples_of_three_accepted(self, num: int) -> None:
        """3, 6 and 9 nodes are supported."""
        validate_node_count(num)

    @pytest.mark.parametrize("num", [0, 1, 2, 4, 5, 7, 8, -3])
    def test_other_counts_rejected(self, num: int) -> None:
        """Counts that are not positive multiples of three are rejected."""
        with pytest.raises(ConfigError, match="must use 3, 6, 9 nodes"):
            validate_node_count(num)

    def test_more_nodes_than_keys_rejected(self) -> None:
        """12 is a multiple of three but there are only nine named keys."""
        assert len(NODE_NAMES) == 9
        with pytest.raises(ConfigError):
            validate_node_count(12)


class TestHarnessConfig:
    """Tests for per-node derived values."""

    def test_defaults(self) -> None:
        """Defaults match the devnet layout the node binary expects."""
        config = HarnessConfig()
        assert config.base_port == 7000
        assert config.base_rpc_port == 8540
        assert config.settle_delay == 5.0
        assert config.baseline_attempts == 8
        assert config.poll_attempts == 36
        assert config.storage_key == b"noot"
        assert config.storage_value == b"washere"

    def test_ports_offset_by_index(self) -> None:
        """Node i listens on base + i for both P2P and RPC."""
        config = HarnessConfig()
        assert [config.p2p_port(i) for i in range(3)] == [7000, 7001, 7002]
        assert config.rpc_port(2) == 8542
        assert config.rpc_endpoint(1) == "http://localhost:8541"

    def test_names_and_basepaths(self) -> None:
        """Each node gets its key name and its own state directory."""
        config = HarnessConfig(state_root=Path("/srv/devnet"))
        assert config.node_name(0) == "alice"
        assert config.node_name(8) == "ian"
        assert config.basepath(1) == Path("/srv/devnet/.gossamer_bob")

    def test_bootnode_address(self) -> None:
        """The bootnode address combines node 0's port and the peer id."""
        config = HarnessConfig(base_port=7100)
        assert (
            config.bootnode_address("12D3KooWAlice") == "/ip4/127.0.0.1/tcp/7100/p2p/12D3KooWAlice"
        )

    def test_frozen(self) -> None:
        """Configuration cannot be mutated after creation."""
        config = HarnessConfig()
        with pytest.raises(AttributeError):
            config.num_nodes = 6  # type: ignore[misc]
