"""
Port allocation for tests that run fake node processes.

Node i uses base + i, so a run of consecutive free ports is needed.
"""

from __future__ import annotations

import random
import socket
import threading

_LOW = 20000
_HIGH = 45000

_lock = threading.Lock()
_handed_out: set[int] = set()


def _is_free(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
    return True


def allocate_port_range(count: int, attempts: int = 200) -> int:
    """
    Find `count` consecutive free TCP ports on localhost.

    Ports handed out earlier in the session are never reused.

    Returns:
        The first port of the range.
    """
    with _lock:
        for _ in range(attempts):
            base = random.randrange(_LOW, _HIGH - count)
            ports = range(base, base + count)
            if any(p in _handed_out for p in ports):
                continue
            if all(_is_free(p) for p in ports):
                _handed_out.update(ports)
                return base
    raise RuntimeError(f"no range of {count} free ports found")
