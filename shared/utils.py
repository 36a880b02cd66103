from __future__ import annotations
from typing import Tuple

# ========================================
#           ADDRESS HELPERS
# ========================================
"""
Helpers the client configuration uses to decide whether a server address
string is usable before any socket is opened.
"""

Address = Tuple[str, int]


def is_hostport(s: str) -> bool:
    """
    Accepts 'hostname:port' or 'A.B.C.D:port'.

    Validates that:
    - Port is a valid integer between 1 and 65535
    - Hostname is non-empty

    Examples: "localhost:9000", "127.0.0.1:9000", "chat.example.com:4000"
    """
    try:
        if ':' not in s:
            return False
        host, port_s = s.rsplit(':', 1)
        if not host:
            return False
        port = int(port_s)
        return 0 < port <= 65535
    except ValueError:
        return False


def parse_hostport(s: str) -> Address:
    """Split 'host:port' into (host, port). Raises ValueError when malformed."""
    if not is_hostport(s):
        raise ValueError(f"Invalid server address {s!r}, expected host:port")
    host, port_s = s.rsplit(':', 1)
    return host, int(port_s)


def format_address(addr: Address) -> str:
    return f"{addr[0]}:{addr[1]}"
