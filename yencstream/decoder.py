"""Streaming decoder for yEnc encoded NNTP article bodies."""

from __future__ import annotations

import re
import threading
import zlib
from enum import IntEnum
from typing import BinaryIO

from .codec import End, State, decode_incremental
from .meta import DecodedMeta

_BUFFER_SIZE = 4096
_ARTICLE_END = b".\r\n"
_LINE_END = b"\r\n"

_STRING_STOP_RE = re.compile(rb"[\x00\r\n]")
_FIELD_STOP_RE = re.compile(rb"[\x00 \r\n]")
_INT_RE = re.compile(rb"[+-]?[0-9]+")
_HEX_RE = re.compile(rb"[0-9a-fA-F]{8}")

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


class DecodeError(Exception):
    """Raised when an article cannot be decoded.

    ``decoded`` holds the output produced by the failing step and
    ``consumed`` the number of input bytes that step used.
    """

    def __init__(self, message: str, decoded: bytes = b"", consumed: int = 0) -> None:
        super().__init__(message)
        self.decoded = decoded
        self.consumed = consumed


class DataMissingError(DecodeError):
    """The article holds no yEnc data."""


class DataCorruptionError(DecodeError):
    """The article ended early or its size does not match its headers."""


class CrcMismatchError(DecodeError):
    """The CRC32 of the decoded data differs from the one in the trailer."""


class Format(IntEnum):
    """Encoding detected for an article body."""

    UNKNOWN = 0
    YENC = 1
    UU = 2


def detect_format(line: bytes) -> Format:
    """Guess the encoding of an article from one of its lines."""
    if line.startswith(b"=ybegin "):
        return Format.YENC

    if len(line) in (62, 63) and line[62:63] in (b"\n", b"\r") and line[:1] == b"M":
        return Format.UU

    if line.startswith(b"begin "):
        ok = True
        pos = len(b"begin ")
        while pos < len(line) and line[pos] != 0x20:
            pos += 1
            if pos >= len(line) or not 0x30 <= line[pos] <= 0x37:
                ok = False
                break
        if ok:
            return Format.UU

    return Format.UNKNOWN


def _value_after(data: bytes, key: bytes | str) -> bytes:
    if isinstance(key, str):
        key = key.encode("ascii")
    data = bytes(data)
    start = data.find(key)
    if start == -1:
        raise ValueError(f"{key!r} not found")
    return data[start + len(key):]


def _cut(value: bytes, stop: re.Pattern[bytes]) -> bytes:
    match = stop.search(value)
    return value[: match.start()] if match else value


def extract_string(data: bytes, key: bytes | str) -> str:
    """Return the text after ``key`` up to the end of the line or a NUL.

    Raises :class:`ValueError` if ``key`` does not occur in ``data``.
    """
    value = _cut(_value_after(data, key), _STRING_STOP_RE)
    return value.decode("utf-8", "surrogateescape")


def extract_int(data: bytes, key: bytes | str) -> int:
    """Return the decimal integer after ``key``, ending at a space or line end.

    Raises :class:`ValueError` if ``key`` is missing or the value is not a
    64-bit signed integer.
    """
    value = _cut(_value_after(data, key), _FIELD_STOP_RE)
    if not _INT_RE.fullmatch(value):
        raise ValueError(f"invalid integer {value!r}")
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer {value!r} out of range")
    return number


def extract_crc(data: bytes, key: bytes | str) -> int:
    """Return the CRC32 written in hexadecimal after ``key``.

    Only the last eight digits count; shorter values are padded with zeros.
    Raises :class:`ValueError` if ``key`` is missing or the digits are not hex.
    """
    try:
        value = _cut(_value_after(data, key), _FIELD_STOP_RE)
    except ValueError:
        raise ValueError("crc not found") from None
    digits = value[-8:].rjust(8, b"0")
    if not _HEX_RE.fullmatch(digits):
        raise ValueError(f"invalid crc {value!r}")
    return int(digits, 16)


def _int_or_zero(line: bytes, key: bytes) -> int:
    try:
        return extract_int(line, key)
    except ValueError:
        return 0


class Decoder:
    """Read yEnc encoded article data from ``reader`` and return it decoded.

    Headers are parsed into :attr:`meta`. Errors found at the end of the
    article are raised by :meth:`read` once all data decoded before them has
    been returned.
    """

    def __init__(self, reader: BinaryIO | None) -> None:
        self.meta = DecodedMeta()
        self.state = State.CRLF
        self.reset(reader)

    def reset(self, reader: BinaryIO | None) -> None:
        """Discard all state and start decoding from ``reader``."""
        self._reader = reader
        self._src = bytearray()
        self._out = bytearray()
        self._eof = False
        self._complete = False
        self._error: DecodeError | None = None

        self._body = False
        self._begin = False
        self._part = False
        self._end = False
        self._has_crc = False

        self.state = State.CRLF
        self._format = Format.UNKNOWN
        self._actual_size = 0
        self._expected_crc = 0
        self._crc = 0
        self.meta = DecodedMeta()

    def read(self, size: int | None = -1) -> bytes:
        """Return up to ``size`` decoded bytes, or all of them if ``size`` < 0.

        Returns ``b""`` once the article has been decoded completely.
        """
        if size is None:
            size = -1
        if size == 0:
            return b""
        while True:
            if self._out and (size > 0 or self._complete):
                return self._take(size)
            if self._complete:
                if self._error is not None:
                    raise self._error
                return b""
            self._step()

    def _take(self, size: int) -> bytes:
        if size < 0 or size >= len(self._out):
            chunk = bytes(self._out)
            self._out.clear()
        else:
            chunk = bytes(self._out[:size])
            del self._out[:size]
        return chunk

    def _step(self) -> None:
        if self._src or self._eof:
            try:
                decoded, consumed, finished = self.transform(bytes(self._src), self._eof)
            except DecodeError as exc:
                self._out += exc.decoded
                del self._src[: exc.consumed]
                self._complete = True
                self._error = exc
                return
            self._out += decoded
            del self._src[:consumed]
            if finished:
                self._complete = True
                return
            if self._eof:
                self._complete = True
                self._error = DataCorruptionError(
                    "end of input reached inside yEnc data"
                )
                return
            if decoded:
                return
        if self._reader is None:
            raise ValueError("decoder has no reader")
        chunk = self._reader.read(_BUFFER_SIZE)
        if chunk:
            self._src += chunk
        else:
            self._eof = True

    def transform(self, src: bytes, at_eof: bool) -> tuple[bytes, int, bool]:
        """Decode as much of ``src`` as possible.

        Returns ``(decoded, consumed, finished)``; when ``finished`` is false
        the unconsumed rest of ``src`` must be passed again with more input.
        At the end of the article the result is verified and a
        :class:`DecodeError` raised if it does not match the headers.
        """
        src = bytes(src)
        out = bytearray()
        pos = 0
        while True:
            if self._body and self._format is Format.YENC:
                decoded, used, end, self.state = decode_incremental(src[pos:], self.state)
                if decoded:
                    self._crc = zlib.crc32(decoded, self._crc)
                    self._actual_size += len(decoded)
                    out += decoded
                if end is End.CONTROL:
                    pos += used - 2
                    self._body = False
                elif end is End.ARTICLE:
                    pos += used - 3
                    self._body = False
                else:
                    if self.state is State.CRLFEQ:
                        # Leave the '=' for the line parser to see "=y".
                        self.state = State.CRLF
                        pos += used - 1
                    else:
                        pos += used
                    return bytes(out), pos, False

            restart = False
            while True:
                if src.startswith(_ARTICLE_END, pos):
                    at_eof = True
                    pos += len(_ARTICLE_END)
                    break
                eol = src.find(_LINE_END, pos)
                if eol == -1:
                    break
                line = src[pos: eol + 2]
                pos = eol + 2
                if self._format is Format.UNKNOWN:
                    self._format = detect_format(line)
                if self._format is Format.YENC:
                    self._process_yenc(line)
                    restart = True
                    break
                if self._format is Format.UU:
                    out += line
            if not restart:
                break

        if not at_eof:
            return bytes(out), pos, False

        self.meta.hash = self._crc
        error = self._verify()
        if error is not None:
            error.decoded = bytes(out)
            error.consumed = pos
            raise error
        return bytes(out), pos, True

    def _verify(self) -> DecodeError | None:
        meta = self.meta
        if self._format is Format.UU:
            return DecodeError("uuencoded articles are not supported")
        if not self._begin:
            return DataMissingError('end of article without finding "=ybegin" header')
        if not self._end:
            return DataCorruptionError('end of article without finding "=yend" trailer')
        expected_size = meta.part_size if self._part else meta.file_size
        if expected_size != self._actual_size:
            return DataCorruptionError(
                f"expected size {meta.part_size} but got {self._actual_size}"
            )
        if self._has_crc and self._expected_crc != meta.hash:
            return CrcMismatchError(
                f"expected decoded data to have CRC32 hash 0x{self._expected_crc:08x}"
                f" but got 0x{meta.hash:08x}"
            )
        return None

    def _process_yenc(self, line: bytes) -> None:
        meta = self.meta
        if line.startswith(b"=ybegin "):
            self._begin = True
            meta.file_size = _int_or_zero(line, b" size=")
            try:
                meta.file_name = extract_string(line, b" name=")
            except ValueError:
                meta.file_name = ""
            try:
                meta.part_number = extract_int(line, b" part=")
            except ValueError:
                meta.part_number = 0
                self._body = True
                meta.part_size = meta.file_size
            meta.total_parts = _int_or_zero(line, b" total=")
        elif line.startswith(b"=ypart "):
            self._part = True
            self._body = True
            begin = 0
            try:
                begin = extract_int(line, b" begin=")
                meta.offset = begin - 1
            except ValueError:
                pass
            try:
                end = extract_int(line, b" end=")
            except ValueError:
                pass
            else:
                if begin > 0:
                    meta.part_size = end - meta.offset
        elif line.startswith(b"=yend "):
            self._end = True
            key = b" pcrc32=" if self._part else b" crc32="
            try:
                self._expected_crc = extract_crc(line, key)
                self._has_crc = True
            except ValueError:
                pass
            meta.part_size = _int_or_zero(line, b" size=")


_pool: list[Decoder] = []
_pool_lock = threading.Lock()


def acquire_decoder(reader: BinaryIO | None) -> Decoder:
    """Return a decoder reading from ``reader``, reusing a released one if any."""
    with _pool_lock:
        decoder = _pool.pop() if _pool else None
    if decoder is None:
        return Decoder(reader)
    decoder.reset(reader)
    return decoder


def release_decoder(decoder: Decoder) -> None:
    """Return ``decoder`` to the pool; it must not be used afterwards."""
    decoder.reset(None)
    with _pool_lock:
        _pool.append(decoder)