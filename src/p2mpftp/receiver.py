from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import BinaryIO

from .constants import INVALID_SEQ_NO
from .errors import FrameError
from .metrics import Metrics
from .net import Address, Impairment, RecvStatus, Transport
from .packet import Frame, PacketKind

log = logging.getLogger(__name__)


class Verdict(enum.Enum):
    IGNORED = "ignored"
    CORRUPT = "corrupt"
    DROPPED = "dropped"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(slots=True)
class ReceiverSession:
    out: BinaryIO
    expected_seq: int = 0
    last_accepted: int = INVALID_SEQ_NO
    finished: bool = False

    def accept(self, payload: bytes) -> None:
        self.out.write(payload)
        self.last_accepted = self.expected_seq
        self.expected_seq += 1
        if not payload:
            self.finished = True


@dataclass(slots=True)
class Receiver:
    """Receiving end of one transfer.

    Only the segment carrying ``expected_seq`` is written; anything else is
    answered with the last accepted sequence number, or INVALID_SEQ_NO when
    nothing has been accepted yet. Corrupt and artificially dropped segments
    get no answer at all, which leaves recovery to the sender's timer.
    """

    udp: Transport
    out: BinaryIO
    impairment: Impairment = field(default_factory=Impairment)
    linger_ms: int = 0
    session: ReceiverSession = field(init=False)
    metrics: Metrics = field(init=False, default_factory=Metrics)

    def __post_init__(self) -> None:
        self.session = ReceiverSession(self.out)

    def run(self) -> Metrics:
        while not self.session.finished:
            result = self.udp.recv()
            if result.status is RecvStatus.DATA:
                self.handle(result.data, result.addr)
            elif result.status is RecvStatus.ERROR:
                log.debug("recv failed: %s", result.error)

        self.out.flush()
        log.info(
            "transfer complete; segments=%d bytes=%d",
            self.session.expected_seq,
            self.metrics.bytes_written,
        )
        if self.linger_ms > 0:
            self._linger()
        return self.metrics.finish()

    def handle(self, raw: bytes, addr: Address) -> Verdict:
        try:
            frame = Frame.from_bytes(raw)
        except FrameError as exc:
            log.debug("ignoring malformed datagram from %s: %s", addr, exc)
            return Verdict.IGNORED
        if frame.kind is not PacketKind.DATA:
            return Verdict.IGNORED

        if not frame.checksum_ok:
            self.metrics.corrupt += 1
            log.debug("checksum mismatch; seq=%d", frame.seq)
            return Verdict.CORRUPT

        if self.impairment.should_drop():
            self.metrics.dropped += 1
            log.info("packet loss; seq=%d", frame.seq)
            return Verdict.DROPPED

        session = self.session
        if frame.seq == session.expected_seq and not session.finished:
            self._ack(frame.seq, addr)
            session.accept(frame.payload)
            self.metrics.bytes_written += len(frame.payload)
            return Verdict.ACCEPTED

        log.debug("out of sequence; got=%d expected=%d", frame.seq, session.expected_seq)
        self._ack(session.last_accepted, addr)
        return Verdict.REJECTED

    def _ack(self, seq: int, addr: Address) -> None:
        self.udp.sendto(Frame.make_ack(seq).to_bytes(), addr)
        self.metrics.packets_sent += 1

    def _linger(self) -> None:
        # keep answering retransmissions of the terminal segment until quiet
        quiet_s = self.linger_ms / 1000.0
        while True:
            result = self.udp.recv(quiet_s)
            if result.status is not RecvStatus.DATA:
                return
            self.handle(result.data, result.addr)
