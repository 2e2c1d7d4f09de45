from __future__ import annotations

import io

import pytest

from p2mpftp.errors import ShortReadError
from p2mpftp.segmenter import iter_segments, segment_count


@pytest.mark.parametrize(
    "length, mss, expected",
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (1000, 7, 143)],
)
def test_segment_count(length, mss, expected):
    assert segment_count(length, mss) == expected


@pytest.mark.parametrize("length, mss", [(0, 4), (3, 4), (8, 4), (9, 4), (1025, 500)])
def test_segments_reproduce_file(length, mss):
    data = bytes(i % 251 for i in range(length))
    frames = list(iter_segments(io.BytesIO(data), mss))

    k = segment_count(length, mss)
    assert len(frames) == k + 1
    assert [f.seq for f in frames] == list(range(k + 1))
    assert all(len(f.payload) == mss for f in frames[: k - 1])
    assert b"".join(f.payload for f in frames[:k]) == data

    terminal = frames[-1]
    assert terminal.is_terminal
    assert terminal.seq == k


def test_last_segment_is_remainder():
    frames = list(iter_segments(io.BytesIO(b"abcdefg"), 3))
    assert [f.payload for f in frames] == [b"abc", b"def", b"g", b""]
    assert all(f.checksum_ok for f in frames)


def test_short_read_is_fatal():
    segments = iter_segments(io.BytesIO(b"abc"), 2, length=5)
    assert next(segments).payload == b"ab"
    with pytest.raises(ShortReadError) as exc_info:
        list(segments)
    assert exc_info.value.seq == 1
    assert exc_info.value.expected == 2
    assert exc_info.value.got == 1


@pytest.mark.parametrize("mss", [0, -1, 70000])
def test_invalid_mss(mss):
    with pytest.raises(ValueError):
        list(iter_segments(io.BytesIO(b"abc"), mss))


def test_length_measured_from_handle(tmp_path):
    path = tmp_path / "src.bin"
    path.write_bytes(b"x" * 25)
    with open(path, "rb") as f:
        frames = list(iter_segments(f, 10))
    assert [len(f.payload) for f in frames] == [10, 10, 5, 0]
