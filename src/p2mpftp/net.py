from __future__ import annotations

import enum
import logging
import random
import socket
from dataclasses import dataclass, field
from typing import Optional, Protocol, Tuple

log = logging.getLogger(__name__)

Address = Tuple[str, int]


class RecvStatus(enum.Enum):
    DATA = "data"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class RecvResult:
    status: RecvStatus
    data: bytes = b""
    addr: Optional[Address] = None
    error: Optional[OSError] = None

    @classmethod
    def timeout(cls) -> "RecvResult":
        return cls(RecvStatus.TIMEOUT)


class Transport(Protocol):
    def sendto(self, data: bytes, addr: Address) -> None: ...

    def recv(self, timeout_s: Optional[float] = None) -> RecvResult: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class Impairment:
    """Artificial inbound loss, used to exercise the retransmission path."""

    loss_rate: float = 0.0
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        if not 0.0 <= self.loss_rate <= 1.0:
            raise ValueError(f"loss rate must be within [0, 1], got {self.loss_rate}")

    def should_drop(self) -> bool:
        return self.rng.random() < self.loss_rate


class UdpEndpoint:
    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def listening(cls, host: str, port: int) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        return cls(sock)

    @classmethod
    def sending(cls) -> "UdpEndpoint":
        return cls(socket.socket(socket.AF_INET, socket.SOCK_DGRAM))

    @property
    def address(self) -> Address:
        return self.sock.getsockname()

    def sendto(self, data: bytes, addr: Address) -> None:
        try:
            self.sock.sendto(data, addr)
        except OSError as exc:
            log.debug("sendto %s:%d failed: %s", addr[0], addr[1], exc)

    def recv(self, timeout_s: Optional[float] = None, bufsize: int = 65535) -> RecvResult:
        if timeout_s is not None and timeout_s <= 0:
            return RecvResult.timeout()
        self.sock.settimeout(timeout_s)
        try:
            data, addr = self.sock.recvfrom(bufsize)
        except (socket.timeout, TimeoutError):
            return RecvResult.timeout()
        except OSError as exc:
            return RecvResult(RecvStatus.ERROR, error=exc)
        return RecvResult(RecvStatus.DATA, data, addr)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
