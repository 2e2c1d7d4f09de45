from __future__ import annotations

import time
from dataclasses import dataclass, field, fields


@dataclass(slots=True)
class Metrics:
    packets_sent: int = 0
    bytes_sent: int = 0
    bytes_written: int = 0
    timeouts: int = 0
    retransmits: int = 0
    stale_acks: int = 0
    desyncs: int = 0
    dropped: int = 0
    corrupt: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (max(self.bytes_sent, self.bytes_written) * 8 / 1_000_000) / self.duration_s

    def finish(self) -> "Metrics":
        self.end_ts = time.monotonic()
        return self

    def merge(self, other: "Metrics") -> None:
        for f in fields(self):
            if f.name in ("start_ts", "end_ts"):
                continue
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    def as_dict(self) -> dict:
        counters = {f.name: getattr(self, f.name) for f in fields(self) if not f.name.endswith("_ts")}
        return {**counters, "seconds": self.duration_s, "mbps": self.throughput_mbps}
