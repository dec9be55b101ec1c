"""
Stand-in for the node binary used by launcher and interop tests.

Implements the two invocations the harness makes:

- `init --config C --basepath B --genesis G --force`: creates the basepath.
  Exits 1 when the genesis file does not exist.
- `--port P --config C --key K --basepath B --rpcport R --rpc [--bootnodes A]`:
  serves JSON-RPC on 127.0.0.1:R until killed.

All nodes started from the same state root share one storage file next to
their basepaths, which stands in for block propagation.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any

from aiohttp import web

from devnet_harness.extrinsic import StorageChangeExtrinsic

STORAGE_FILE = "fake_chain_storage.json"


def _load(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    return json.loads(path.read_text())


def _store(path: Path, storage: dict[str, str]) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent)
    with os.fdopen(fd, "w") as f:
        json.dump(storage, f)
    os.replace(tmp, path)


def run_init(args: argparse.Namespace) -> int:
    if not Path(args.genesis).exists():
        print(f"genesis file not found: {args.genesis}")
        return 1
    basepath = Path(args.basepath)
    basepath.mkdir(parents=True, exist_ok=True)
    (basepath / "initialized").write_text(args.genesis)
    print(f"initialized node state at {basepath}")
    return 0


def run_node(args: argparse.Namespace) -> int:
    basepath = Path(args.basepath)
    storage_path = basepath.parent / STORAGE_FILE
    peer_id = f"12D3KooWFake{args.key.capitalize()}{args.port}"
    (basepath / "bootnodes.txt").write_text(args.bootnodes or "")

    def dispatch(method: str, params: Any) -> Any:
        if method == "system_networkState":
            return {"networkState": {"PeerID": peer_id, "Multiaddrs": None}}
        if method == "state_getStorage":
            return _load(storage_path).get(params[0])
        if method == "author_submitExtrinsic":
            ext = StorageChangeExtrinsic.decode(bytes.fromhex(params[2:]))
            storage = _load(storage_path)
            key = "0x" + ext.key.hex()
            if ext.value is None:
                storage.pop(key, None)
            else:
                storage[key] = "0x" + ext.value.hex()
            _store(storage_path, storage)
            return "0x" + "ab" * 32
        raise LookupError(method)

    async def handle_rpc(request: web.Request) -> web.Response:
        """Answer one JSON-RPC call."""
        call = await request.json()
        try:
            body = {"jsonrpc": "2.0", "result": dispatch(call["method"], call["params"])}
        except LookupError:
            body = {"jsonrpc": "2.0", "error": {"message": "method not found", "code": -32601}}
        body["id"] = call["id"]
        return web.json_response(body)

    app = web.Application()
    app.add_routes([web.post("/", handle_rpc)])

    logging.basicConfig(stream=sys.stderr, level=logging.INFO)
    print(f"{args.key} listening on p2p port {args.port}, rpc port {args.rpcport}", flush=True)
    web.run_app(app, host="127.0.0.1", port=args.rpcport, print=None)
    return 0


def main(argv: list[str]) -> int:
    if argv and argv[0] == "init":
        parser = argparse.ArgumentParser()
        parser.add_argument("--config")
        parser.add_argument("--basepath", required=True)
        parser.add_argument("--genesis", required=True)
        parser.add_argument("--force", action="store_true")
        return run_init(parser.parse_args(argv[1:]))

    parser = argparse.ArgumentParser()
    parser.add_argument("--port", type=int, required=True)
    parser.add_argument("--config")
    parser.add_argument("--key", required=True)
    parser.add_argument("--basepath", required=True)
    parser.add_argument("--rpcport", type=int, required=True)
    parser.add_argument("--rpc", action="store_true")
    parser.add_argument("--bootnodes", default=None)
    return run_node(parser.parse_args(argv))


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
