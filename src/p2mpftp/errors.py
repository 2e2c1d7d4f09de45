from __future__ import annotations


class P2MPError(Exception):
    """Base class for local, non-recoverable failures."""


class ShortReadError(P2MPError):
    def __init__(self, seq: int, expected: int, got: int):
        super().__init__(f"short read at seq={seq}: expected {expected} bytes, got {got}")
        self.seq = seq
        self.expected = expected
        self.got = got


class InterfaceError(P2MPError):
    pass


class RetryLimitExceeded(P2MPError):
    def __init__(self, address, seq: int, retries: int):
        super().__init__(f"no ack from {address[0]}:{address[1]} for seq={seq} after {retries} retries")
        self.address = address
        self.seq = seq
        self.retries = retries


class FrameError(ValueError):
    pass
