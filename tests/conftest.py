from __future__ import annotations

from collections import Counter, deque
from typing import Callable, Iterable, Optional

import pytest

from p2mpftp.net import Address, Impairment, RecvResult, RecvStatus
from p2mpftp.packet import Frame
from p2mpftp.receiver import Receiver


def ack_from(addr: Address, seq: int) -> RecvResult:
    return RecvResult(RecvStatus.DATA, Frame.make_ack(seq).to_bytes(), addr)


class FakeTransport:
    """Scripted transport: sends are recorded, recv() pops queued results.

    ``responder`` is called for every send and may return results to queue,
    which lets a test play the part of a remote peer.
    """

    def __init__(
        self,
        inbox: Iterable[RecvResult] = (),
        responder: Optional[Callable[[bytes, Address], Iterable[RecvResult]]] = None,
    ):
        self.inbox = deque(inbox)
        self.responder = responder
        self.sent: list[tuple[bytes, Address]] = []
        self.closed = False

    def sendto(self, data: bytes, addr: Address) -> None:
        self.sent.append((data, addr))
        if self.responder is not None:
            self.inbox.extend(self.responder(data, addr))

    def recv(self, timeout_s: Optional[float] = None) -> RecvResult:
        if self.inbox:
            return self.inbox.popleft()
        if timeout_s is None:
            raise AssertionError("blocking recv with nothing queued")
        return RecvResult.timeout()

    def close(self) -> None:
        self.closed = True

    @property
    def sent_frames(self) -> list[Frame]:
        return [Frame.from_bytes(data) for data, _ in self.sent]


class LoopbackNetwork:
    """In-memory network joining sender links to Receiver.handle().

    ``drop(addr, seq, attempt)`` decides whether a data datagram vanishes
    before reaching the receiver at ``addr``.
    """

    def __init__(self, drop: Optional[Callable[[Address, int, int], bool]] = None):
        self.drop = drop or (lambda addr, seq, attempt: False)
        self.receivers: dict[Address, Receiver] = {}
        self.links: dict[Address, "SenderLink"] = {}

    def add_receiver(self, addr: Address, out, impairment: Optional[Impairment] = None) -> Receiver:
        recv = Receiver(ReceiverLink(self, addr), out, impairment or Impairment())
        self.receivers[addr] = recv
        return recv

    def sender_link(self, own: Address) -> "SenderLink":
        link = SenderLink(self, own)
        self.links[own] = link
        return link


class SenderLink:
    def __init__(self, net: LoopbackNetwork, own: Address):
        self.net = net
        self.own = own
        self.inbox: deque[RecvResult] = deque()
        self.attempts: Counter = Counter()

    def sendto(self, data: bytes, addr: Address) -> None:
        seq = Frame.from_bytes(data).seq
        self.attempts[seq] += 1
        if self.net.drop(addr, seq, self.attempts[seq]):
            return
        self.net.receivers[addr].handle(data, self.own)

    def recv(self, timeout_s: Optional[float] = None) -> RecvResult:
        if self.inbox:
            return self.inbox.popleft()
        return RecvResult.timeout()

    def close(self) -> None:
        pass


class ReceiverLink:
    def __init__(self, net: LoopbackNetwork, own: Address):
        self.net = net
        self.own = own

    def sendto(self, data: bytes, addr: Address) -> None:
        self.net.links[addr].inbox.append(RecvResult(RecvStatus.DATA, data, self.own))

    def recv(self, timeout_s: Optional[float] = None) -> RecvResult:
        raise AssertionError("receivers are driven through handle() on this network")

    def close(self) -> None:
        pass


class SequenceRandom:
    """random.Random stand-in returning a fixed cycle of values."""

    def __init__(self, values: Iterable[float]):
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


@pytest.fixture
def network() -> LoopbackNetwork:
    return LoopbackNetwork()
