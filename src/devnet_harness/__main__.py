"""
Devnet harness CLI entry point.

Start a local devnet of node processes, write one storage entry through
JSON-RPC, and report when every node sees it.

Usage::

    python -m devnet_harness --num 3
    python -m devnet_harness --num 6 --connect
    python -m devnet_harness --num 9 --path ./bin/gossamer --random-submit

Options:
    --num            Number of nodes: 3, 6 or 9 (default: 3)
    --connect        Directly connect every node to the first node
    --path           Path to the node binary
    --genesis        Genesis file passed to every node (default: genesis.json)
    --config         Node config file (default: config.toml)
    --log-dir        Directory for log_<name>.out and err_<name>.out (default: .)
    --random-submit  Submit the extrinsic to a random node instead of node 0
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

from .cluster import NodeCluster
from .config import DEFAULT_BINARY, HarnessConfig
from .exceptions import ConfigError, HarnessError
from .rpc import RpcClient, RpcError
from .verify import VerificationReport, verify_storage_change

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        return f"{timestamp} {levelname} {name}: {record.getMessage()}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure console logging for the harness."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # Per-request logs from the HTTP stack drown out the harness at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run_harness(
    config: HarnessConfig,
    rng: random.Random | None = None,
) -> VerificationReport:
    """
    Bring up the devnet, verify storage propagation, and tear everything down.

    Every node started is killed on return, including when an error propagates.

    Raises:
        HarnessError: On any fatal setup failure.
        RpcError: If the extrinsic cannot be submitted.
    """
    async with RpcClient.from_config(config) as rpc, NodeCluster(config, rpc) as cluster:
        await cluster.start_all()
        return await verify_storage_change(cluster, rpc, config, rng)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="devnet-harness",
        description="Local devnet storage propagation check",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--num",
        type=int,
        default=3,
        help="Number of nodes: 3, 6 or 9 (default: 3)",
    )
    parser.add_argument(
        "--connect",
        action="store_true",
        help="Directly connect every node to the first node",
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=DEFAULT_BINARY,
        help=f"Path to the node binary (default: {DEFAULT_BINARY})",
    )
    parser.add_argument(
        "--genesis",
        type=Path,
        default=Path("genesis.json"),
        help="Genesis file passed to every node (default: genesis.json)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.toml"),
        help="Node config file (default: config.toml)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("."),
        help="Directory for node log files (default: current directory)",
    )
    parser.add_argument(
        "--random-submit",
        action="store_true",
        help="Submit the extrinsic to a random node instead of node 0",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> HarnessConfig:
    """Translate parsed arguments into a harness configuration."""
    return HarnessConfig(
        num_nodes=args.num,
        connect=args.connect,
        binary=args.path,
        genesis=args.genesis,
        node_config=args.config,
        log_dir=args.log_dir,
        random_submit=args.random_submit,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.no_color)

    config = config_from_args(args)

    # Reject bad node counts before any file or process exists.
    try:
        config.validate()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Num nodes: %d", config.num_nodes)

    try:
        asyncio.run(run_harness(config))
    except (HarnessError, RpcError) as e:
        logger.error("%s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        sys.exit(130)


if __name__ == "__main__":
    main()
