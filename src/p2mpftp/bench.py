from __future__ import annotations

import os
import random
import tempfile
import threading
from dataclasses import dataclass

from .constants import DEFAULT_MSS, DEFAULT_TIMEOUT_MS
from .net import Impairment, UdpEndpoint
from .receiver import Receiver
from .sender import Destination, FanoutSender


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    receivers: int
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float
    retransmits: int
    timeouts: int
    dropped: int


def run_benchmark(
    *,
    receivers: int = 2,
    size_bytes: int = 1_000_000,
    loss_rate: float = 0.0,
    mss: int = DEFAULT_MSS,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    parallel: bool = False,
    linger_ms: int = 500,
) -> BenchmarkResult:
    """Transfer random bytes to ``receivers`` loopback receivers and check every copy."""
    payload = os.urandom(size_bytes)

    with tempfile.TemporaryDirectory() as tmp:
        threads = []
        receiver_objs = []
        endpoints = []
        destinations = []
        try:
            for i in range(receivers):
                ep = UdpEndpoint.listening("127.0.0.1", 0)
                endpoints.append(ep)
                out = open(os.path.join(tmp, f"out-{i}"), "wb")
                recv = Receiver(ep, out, Impairment(loss_rate, random.Random(i)), linger_ms=linger_ms)
                receiver_objs.append(recv)

                def runner(r: Receiver = recv) -> None:
                    try:
                        r.run()
                    finally:
                        r.out.close()

                t = threading.Thread(target=runner, daemon=True)
                t.start()
                threads.append(t)
                destinations.append(Destination.open(*ep.address))

            src_path = os.path.join(tmp, "in")
            with open(src_path, "wb") as f:
                f.write(payload)
            with open(src_path, "rb") as f:
                send_metrics = FanoutSender(
                    destinations,
                    f,
                    mss=mss,
                    timeout_ms=timeout_ms,
                    parallel=parallel,
                ).run()

            for t in threads:
                t.join(timeout=10.0 + linger_ms / 1000.0)
        finally:
            for dest in destinations:
                dest.close()
            for ep in endpoints:
                ep.close()

        for i in range(receivers):
            with open(os.path.join(tmp, f"out-{i}"), "rb") as f:
                if f.read() != payload:
                    raise AssertionError(f"receiver {i} output differs from the input")

    duration_s = max(0.001, send_metrics.duration_s)
    return BenchmarkResult(
        receivers=receivers,
        bytes_transferred=size_bytes,
        duration_s=duration_s,
        throughput_mbps=(size_bytes * receivers * 8 / 1_000_000) / duration_s,
        retransmits=send_metrics.retransmits,
        timeouts=send_metrics.timeouts,
        dropped=sum(r.metrics.dropped for r in receiver_objs),
    )
