from __future__ import annotations

import os
from typing import BinaryIO, Iterator

from .constants import MAX_MSS
from .errors import ShortReadError
from .packet import Frame


def segment_count(length: int, mss: int) -> int:
    """Number of ordinary (non-terminal) segments for a file of ``length`` bytes."""
    return -(-length // mss)


def measure(f: BinaryIO) -> int:
    f.seek(0, os.SEEK_END)
    length = f.tell()
    f.seek(0, os.SEEK_SET)
    return length


def iter_segments(f: BinaryIO, mss: int, length: int | None = None) -> Iterator[Frame]:
    """Yield the data segments of ``f`` followed by one empty terminal segment.

    Every read must return exactly the requested byte count; anything less
    means the file shrank underneath us and raises ShortReadError.
    """
    if not 1 <= mss <= MAX_MSS:
        raise ValueError(f"mss must be between 1 and {MAX_MSS}, got {mss}")
    if length is None:
        length = measure(f)

    count = segment_count(length, mss)
    for seq in range(count):
        size = mss if seq < count - 1 else length - mss * (count - 1)
        chunk = f.read(size)
        if len(chunk) != size:
            raise ShortReadError(seq, size, len(chunk))
        yield Frame.data(seq, chunk)

    yield Frame.data(count, b"")
