"""Low-level yEnc encoding and incremental, end-aware decoding."""

from __future__ import annotations

import re
from enum import IntEnum

_CR = 0x0D
_LF = 0x0A
_EQ = 0x3D
_DOT = 0x2E
_Y = 0x79

_ENCODE_TABLE = bytes((i + 42) & 0xFF for i in range(256))
_DECODE_TABLE = bytes((i - 42) & 0xFF for i in range(256))

_ESCAPE_ALWAYS = frozenset((0x00, _LF, _CR, _EQ))
_WHITESPACE = frozenset((0x09, 0x20))
_ESCAPE_LAST = _ESCAPE_ALWAYS | _WHITESPACE
_ESCAPE_FIRST = _ESCAPE_LAST | {_DOT}

_ESCAPE_ALWAYS_RE = re.compile(rb"[\x00\n\r=]")
_DECODE_SPECIAL_RE = re.compile(rb"[\r\n=]")


class State(IntEnum):
    """Decoder state: which characters were seen last.

    CR is ``\\r``, LF is ``\\n``, EQ is ``=`` and DT is ``.``.
    """

    CRLF = 0
    EQ = 1
    CR = 2
    NONE = 3
    CRLFDT = 4
    CRLFDTCR = 5
    CRLFEQ = 6  # may also stand for "\r\n.="


class End(IntEnum):
    """Whether incremental decoding stopped at an end sequence."""

    NONE = 0  # end not reached
    CONTROL = 1  # "\r\n=y" found; consumed up to and including 'y'
    ARTICLE = 2  # "\r\n.\r\n" found; consumed up to and including the last '\n'


def max_length(length: int, line_length: int) -> int:
    """Upper bound on the encoded size of ``length`` bytes, with spare room."""
    ret = length * 2  # every character escaped
    ret += 2  # a newline may occur early
    ret += 64  # slack for block-wise encoders
    if line_length == 128:
        return ret + 2 * (length >> 6)
    return ret + 2 * ((length * 2) // line_length)


def _escaped(c: int) -> bytes:
    return bytes((_EQ, (c + 64) & 0xFF))


def encode_ex(
    line_length: int, column: int, src: bytes, is_end: bool
) -> tuple[bytes, int]:
    """Encode ``src`` continuing from ``column`` of the current line.

    Returns the encoded bytes and the column reached. A line break is written
    only before a character that no longer fits, so output from successive
    calls can be concatenated. When ``is_end`` is false a trailing tab or
    space is left unescaped; the caller must escape it if nothing follows.
    """
    if line_length < 1:
        raise ValueError("invalid line length")
    data = bytes(src).translate(_ENCODE_TABLE)
    out = bytearray()
    col = column
    n = len(data)
    last = n - 1
    i = 0
    while i < n:
        if col >= line_length:
            out += b"\r\n"
            col = 0
        if col == 0 or col >= line_length - 1 or i == last:
            c = data[i]
            if col == 0:
                special = _ESCAPE_FIRST
            elif col >= line_length - 1:
                special = _ESCAPE_LAST
            else:
                special = _ESCAPE_ALWAYS
            if c in special or (is_end and i == last and c in _WHITESPACE):
                out += _escaped(c)
                col += 2
            else:
                out.append(c)
                col += 1
            i += 1
            continue
        # Middle of a line: only NUL, LF, CR and '=' need escaping.
        stop = min(last, i + (line_length - 1 - col))
        match = _ESCAPE_ALWAYS_RE.search(data, i, stop)
        end = match.start() if match else stop
        out += data[i:end]
        col += end - i
        i = end
        if match:
            out += _escaped(data[i])
            col += 2
            i += 1
    return bytes(out), col


def encode(src: bytes, line_length: int = 128) -> bytes:
    """yEnc encode ``src`` as complete lines without any ``=y`` headers."""
    if not src:
        raise ValueError("empty source")
    if line_length < 1:
        raise ValueError("invalid line length")
    encoded, _ = encode_ex(line_length, 0, src, True)
    return encoded


def decode_incremental(
    src: bytes, state: State | int = State.CRLF
) -> tuple[bytes, int, End, State]:
    """Decode raw (dot-stuffed) yEnc data until an end sequence is met.

    Returns ``(decoded, consumed, end, state)``, where ``consumed`` counts the
    bytes of ``src`` used, including any end sequence found, and ``state`` is
    to be passed to the next call.
    """
    state = State(state)
    data = bytes(src)
    n = len(data)
    out = bytearray()
    i = 0
    while i < n:
        c = data[i]
        if state is State.NONE:
            match = _DECODE_SPECIAL_RE.search(data, i)
            stop = match.start() if match else n
            if stop > i:
                out += data[i:stop].translate(_DECODE_TABLE)
                i = stop
                continue
            i += 1
            if c == _CR:
                state = State.CR
            elif c == _EQ:
                state = State.EQ
            continue
        if state is State.EQ or state is State.CRLFEQ:
            if state is State.CRLFEQ and c == _Y:
                return bytes(out), i + 1, End.CONTROL, State.NONE
            out.append((c - 106) & 0xFF)
            i += 1
            state = State.CR if c == _CR else State.NONE
        elif state is State.CR:
            if c == _LF:
                i += 1
                state = State.CRLF
            else:
                state = State.NONE
        elif state is State.CRLF:
            if c == _DOT:
                i += 1
                state = State.CRLFDT
            elif c == _EQ:
                i += 1
                state = State.CRLFEQ
            else:
                state = State.NONE
        elif state is State.CRLFDT:
            if c == _CR:
                i += 1
                state = State.CRLFDTCR
            elif c == _EQ:
                i += 1
                state = State.CRLFEQ
            else:
                state = State.NONE
        else:  # State.CRLFDTCR
            if c == _LF:
                return bytes(out), i + 1, End.ARTICLE, State.CRLF
            state = State.NONE
    return bytes(out), n, End.NONE, state