from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .constants import ACK_PKT, DATA_PKT, HEADER_FORMAT
from .errors import FrameError

HEADER = struct.Struct(HEADER_FORMAT)


def internet_checksum(payload: bytes) -> int:
    """One's-complement sum of big-endian 16-bit words, inverted.

    An odd trailing byte is the high byte of a word whose low byte is zero.
    """
    if len(payload) % 2:
        payload = payload + b"\x00"
    total = 0
    for (word,) in struct.iter_unpack("!H", payload):
        total += word
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


class PacketKind(enum.IntEnum):
    DATA = DATA_PKT
    ACK = ACK_PKT


@dataclass(frozen=True, slots=True)
class Frame:
    kind: PacketKind
    seq: int
    checksum: int = 0
    payload: bytes = b""

    @property
    def checksum_ok(self) -> bool:
        return internet_checksum(self.payload) == self.checksum

    @property
    def is_terminal(self) -> bool:
        return self.kind is PacketKind.DATA and not self.payload

    def to_bytes(self) -> bytes:
        return HEADER.pack(self.seq, self.checksum, int(self.kind)) + self.payload

    @staticmethod
    def from_bytes(raw: bytes) -> "Frame":
        if len(raw) < HEADER.size:
            raise FrameError(f"datagram too small to be a valid frame ({len(raw)} bytes)")

        seq, checksum, tag = HEADER.unpack_from(raw)
        try:
            kind = PacketKind(tag)
        except ValueError:
            raise FrameError(f"unknown packet type 0x{tag:04x}") from None

        payload = raw[HEADER.size :]
        if kind is PacketKind.ACK and payload:
            raise FrameError("ack frame carries a payload")

        return Frame(kind=kind, seq=seq, checksum=checksum, payload=payload)

    @staticmethod
    def make_ack(seq: int) -> "Frame":
        return Frame(kind=PacketKind.ACK, seq=seq)

    @staticmethod
    def data(seq: int, payload: bytes) -> "Frame":
        return Frame(
            kind=PacketKind.DATA,
            seq=seq,
            checksum=internet_checksum(payload),
            payload=payload,
        )
