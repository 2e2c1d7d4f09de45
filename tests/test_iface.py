from __future__ import annotations

import sys

import pytest

from p2mpftp.errors import InterfaceError
from p2mpftp.iface import candidate_interfaces, discover_ipv4, interface_address

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="ioctl interface lookup is unix-only")


def test_unknown_interface_has_no_address():
    assert interface_address("nosuchif0") is None


def test_loopback_is_skipped():
    with pytest.raises(InterfaceError):
        discover_ipv4(["lo", "lo0", "nosuchif0"])


def test_empty_candidate_list():
    with pytest.raises(InterfaceError, match="none"):
        discover_ipv4([])


def test_candidates_prefer_known_names():
    names = candidate_interfaces()
    preferred = [n for n in names if n in ("en0", "ens160", "eth0")]
    assert names[: len(preferred)] == preferred
