import random

import pytest

from yencstream.codec import (
    End,
    State,
    decode_incremental,
    encode,
    encode_ex,
    max_length,
)


def _random_bytes(size, seed):
    rng = random.Random(seed)
    return bytes(rng.randrange(256) for _ in range(size))


ALL_BYTES = bytes(range(256)) * 3


@pytest.mark.parametrize(
    "raw, expected",
    [
        (b"\x00", b"\x2a"),
        (b"\x20", b"\x4a"),
        (b"\xf6", b"\x3d\x60"),
        (b"H\xf6", b"\x72\x3d\x60"),
        (b"Hello World", b"\x72\x8f\x96\x96\x99\x4a\x81\x99\x9c\x96\x8e"),
    ],
)
def test_encode_known_values(raw, expected):
    assert encode(raw, 128) == expected


def test_encode_rejects_empty_source():
    with pytest.raises(ValueError, match="empty source"):
        encode(b"", 128)


@pytest.mark.parametrize("line_length", [0, -5])
def test_encode_rejects_bad_line_length(line_length):
    with pytest.raises(ValueError, match="invalid line length"):
        encode(b"abc", line_length)


def test_encode_ex_rejects_bad_line_length():
    with pytest.raises(ValueError):
        encode_ex(0, 0, b"abc", False)


def test_encode_ex_leaves_trailing_space_unless_end():
    open_out, _ = encode_ex(128, 0, b"H\xf6", False)
    closed_out, _ = encode_ex(128, 0, b"H\xf6", True)
    assert open_out.endswith(b" ")
    assert closed_out == b"\x72\x3d\x60"


@pytest.mark.parametrize("line_length", [1, 2, 3, 16, 128])
@pytest.mark.parametrize("seed", [1, 2])
def test_round_trip(line_length, seed):
    raw = _random_bytes(1500, seed) + ALL_BYTES
    encoded = encode(raw, line_length)
    decoded, consumed, end, _ = decode_incremental(encoded, State.CRLF)
    assert decoded == raw
    assert consumed == len(encoded)
    assert end is End.NONE


@pytest.mark.parametrize("line_length", [2, 16, 128])
def test_line_shape(line_length):
    encoded = encode(ALL_BYTES + b"\xf6" * 300 + b"\x04" * 300, line_length)
    lines = encoded.split(b"\r\n")
    for line in lines:
        assert 0 < len(line) <= line_length + 1
        assert line[:1] not in (b".", b" ", b"\t")
        assert line[-1:] not in (b" ", b"\t")
    for line in lines[:-1]:
        assert len(line) >= line_length


@pytest.mark.parametrize("chunk", [1, 7, 64, 129])
@pytest.mark.parametrize("line_length", [5, 128])
def test_encode_ex_streaming_matches_whole(chunk, line_length):
    raw = _random_bytes(900, 7) + ALL_BYTES
    pieces = []
    column = 0
    starts = range(0, len(raw), chunk)
    for start in starts:
        part = raw[start : start + chunk]
        is_last = start + chunk >= len(raw)
        out, column = encode_ex(line_length, column, part, is_last)
        pieces.append(out)
    assert b"".join(pieces) == encode(raw, line_length)


@pytest.mark.parametrize("line_length", [1, 10, 128])
def test_max_length_bounds_worst_case(line_length):
    raw = b"\xd6" * 1000  # encodes to NUL, always escaped
    assert len(encode(raw, line_length)) <= max_length(len(raw), line_length)
    mixed = ALL_BYTES
    assert len(encode(mixed, line_length)) <= max_length(len(mixed), line_length)


def test_max_length_grows_with_input():
    assert max_length(0, 128) < max_length(1, 128) < max_length(1000, 128)


def test_decode_stops_at_control_line():
    raw = b"foobar payload"
    encoded = encode(raw, 128)
    trailer = b"=yend size=14 part=1\r\n"
    src = encoded + b"\r\n" + trailer
    decoded, consumed, end, _ = decode_incremental(src, State.CRLF)
    assert end is End.CONTROL
    assert decoded == raw
    assert src[consumed - 2 :].startswith(b"=yend")


def test_decode_control_line_at_start():
    decoded, consumed, end, _ = decode_incremental(b"=yend size=0\r\n", State.CRLF)
    assert decoded == b""
    assert consumed == 2
    assert end is End.CONTROL


def test_decode_stops_at_article_end():
    raw = _random_bytes(300, 3)
    encoded = encode(raw, 32)
    src = encoded + b"\r\n.\r\nignored"
    decoded, consumed, end, state = decode_incremental(src, State.CRLF)
    assert end is End.ARTICLE
    assert decoded == raw
    assert src[consumed - 3 : consumed] == b".\r\n"
    assert state is State.CRLF


def test_decode_in_pieces_carries_state():
    raw = ALL_BYTES
    encoded = encode(raw, 16)
    for split in range(len(encoded) + 1):
        first, used1, end1, state = decode_incremental(encoded[:split], State.CRLF)
        second, used2, end2, _ = decode_incremental(encoded[split:], state)
        assert end1 is End.NONE and end2 is End.NONE
        assert used1 == split
        assert used2 == len(encoded) - split
        assert first + second == raw


def test_decode_dot_unstuffing():
    stuffed, _, _, _ = decode_incremental(b"\r\n..", State.NONE)
    plain, _, _, _ = decode_incremental(b".", State.NONE)
    assert stuffed == plain
    assert len(stuffed) == 1


def test_decode_empty_source_keeps_state():
    assert decode_incremental(b"", State.EQ) == (b"", 0, End.NONE, State.EQ)


def test_decode_accepts_integer_state():
    encoded = encode(b"Hello World", 128)
    by_int = decode_incremental(encoded, int(State.CRLF))
    by_enum = decode_incremental(encoded, State.CRLF)
    assert by_int == by_enum
    assert by_int[0] == b"Hello World"


def test_decode_pending_control_state():
    decoded, consumed, end, state = decode_incremental(b"ab\r\n=", State.NONE)
    assert end is End.NONE
    assert consumed == 5
    assert state is State.CRLFEQ
    assert decoded == decode_incremental(b"ab", State.NONE)[0]