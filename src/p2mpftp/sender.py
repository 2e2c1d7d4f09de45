from __future__ import annotations

import enum
import logging
import socket
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Sequence

from .constants import DEFAULT_MSS, DEFAULT_TIMEOUT_MS, INVALID_SEQ_NO
from .errors import FrameError, RetryLimitExceeded
from .metrics import Metrics
from .net import Address, RecvStatus, Transport, UdpEndpoint
from .packet import Frame, PacketKind
from .segmenter import iter_segments

log = logging.getLogger(__name__)


class DeliveryOutcome(enum.Enum):
    ACKED = "acked"
    DESYNCED = "desynced"


@dataclass(frozen=True, slots=True)
class Destination:
    address: Address
    endpoint: Transport
    metrics: Metrics = field(default_factory=Metrics)

    @classmethod
    def open(cls, host: str, port: int) -> "Destination":
        return cls((socket.gethostbyname(host), port), UdpEndpoint.sending())

    def close(self) -> None:
        self.endpoint.close()

    def __str__(self) -> str:
        return f"{self.address[0]}:{self.address[1]}"


@dataclass(slots=True)
class FanoutSender:
    """Stop-and-wait fan-out of one file to a fixed set of receivers.

    Each segment is resolved for every destination before the next one is
    read. A destination resolves a segment either by acknowledging its
    sequence number or by answering with the INVALID_SEQ_NO sentinel, which
    means it joined after the transfer started.
    """

    destinations: Sequence[Destination]
    f: BinaryIO
    mss: int = DEFAULT_MSS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: Optional[int] = None
    parallel: bool = False

    def __post_init__(self) -> None:
        self.destinations = tuple(self.destinations)
        if not self.destinations:
            raise ValueError("at least one destination is required")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout_ms} ms")

    def run(self) -> Metrics:
        metrics = Metrics()
        log.info(
            "sending to %d destination(s); mss=%d timeout=%dms",
            len(self.destinations),
            self.mss,
            self.timeout_ms,
        )

        if self.parallel:
            with ThreadPoolExecutor(max_workers=len(self.destinations)) as pool:
                for frame in iter_segments(self.f, self.mss):
                    list(pool.map(lambda d: self.deliver(d, frame), self.destinations))
        else:
            for frame in iter_segments(self.f, self.mss):
                for dest in self.destinations:
                    self.deliver(dest, frame)

        for dest in self.destinations:
            metrics.merge(dest.metrics)
        return metrics.finish()

    def deliver(self, dest: Destination, frame: Frame) -> DeliveryOutcome:
        raw = frame.to_bytes()
        timeout_s = self.timeout_ms / 1000.0
        retries = 0

        while True:
            dest.endpoint.sendto(raw, dest.address)
            dest.metrics.packets_sent += 1
            dest.metrics.bytes_sent += len(frame.payload)

            outcome = self._await_ack(dest, frame.seq, time.monotonic() + timeout_s)
            if outcome is not None:
                return outcome

            dest.metrics.timeouts += 1
            log.info("timeout; dest=%s seq=%d", dest, frame.seq)
            retries += 1
            if self.max_retries is not None and retries > self.max_retries:
                raise RetryLimitExceeded(dest.address, frame.seq, self.max_retries)
            dest.metrics.retransmits += 1

    def _await_ack(self, dest: Destination, seq: int, deadline: float) -> Optional[DeliveryOutcome]:
        """Wait for the ack of ``seq`` until ``deadline``; None means time ran out."""
        while True:
            result = dest.endpoint.recv(deadline - time.monotonic())

            if result.status is RecvStatus.TIMEOUT:
                return None
            if result.status is RecvStatus.ERROR:
                log.debug("recv from %s failed: %s", dest, result.error)
                time.sleep(max(0.0, deadline - time.monotonic()))
                return None

            if result.addr != dest.address:
                log.debug("ignoring datagram from %s while waiting on %s", result.addr, dest)
                continue
            try:
                ack = Frame.from_bytes(result.data)
            except FrameError as exc:
                log.debug("ignoring malformed datagram from %s: %s", dest, exc)
                continue
            if ack.kind is not PacketKind.ACK:
                continue

            if ack.seq == seq:
                return DeliveryOutcome.ACKED
            if ack.seq == INVALID_SEQ_NO:
                dest.metrics.desyncs += 1
                log.warning("destination %s is not synchronized; skipping seq=%d", dest, seq)
                return DeliveryOutcome.DESYNCED

            dest.metrics.stale_acks += 1
            log.debug("stale ack %d from %s while waiting on seq=%d", ack.seq, dest, seq)
