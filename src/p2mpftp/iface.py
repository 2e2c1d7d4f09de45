from __future__ import annotations

import logging
import socket
import struct
import sys
from typing import Iterable, Optional

from .constants import PREFERRED_INTERFACES
from .errors import InterfaceError

log = logging.getLogger(__name__)

SIOCGIFADDR = 0xC0206921 if sys.platform == "darwin" else 0x8915


def interface_address(name: str) -> Optional[str]:
    """IPv4 address bound to interface ``name``, or None if it has none."""
    import fcntl

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        try:
            ifreq = fcntl.ioctl(s.fileno(), SIOCGIFADDR, struct.pack("256s", name[:15].encode()))
        except OSError:
            return None
    return socket.inet_ntoa(ifreq[20:24])


def candidate_interfaces() -> list[str]:
    try:
        present = [name for _, name in socket.if_nameindex()]
    except OSError:
        present = []
    preferred = [name for name in PREFERRED_INTERFACES if name in present]
    return preferred + [name for name in present if name not in preferred]


def discover_ipv4(names: Optional[Iterable[str]] = None) -> str:
    """First non-loopback IPv4 address among ``names`` (default: every local interface)."""
    tried = []
    for name in names if names is not None else candidate_interfaces():
        tried.append(name)
        addr = interface_address(name)
        if addr is None or addr.startswith("127."):
            continue
        log.debug("interface %s has address %s", name, addr)
        return addr
    raise InterfaceError(f"no IPv4 address found on interfaces: {', '.join(tried) or '(none)'}")
