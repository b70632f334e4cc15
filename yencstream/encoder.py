"""Streaming yEnc encoder that writes one complete part with headers."""

from __future__ import annotations

import threading
import zlib
from types import TracebackType
from typing import BinaryIO

from .codec import encode_ex
from .meta import Meta

_DEFAULT_LINE_LENGTH = 128
_WHITESPACE = (0x09, 0x20)


class Encoder:
    """yEnc encode the bytes written to it and pass them on to ``writer``.

    The ``=ybegin``/``=ypart`` header is written before the first data and
    the ``=yend`` trailer by :meth:`close`, which must be called when done.
    """

    def __init__(self, writer: BinaryIO, meta: Meta) -> None:
        self.line_length = _DEFAULT_LINE_LENGTH
        self._lock = threading.Lock()
        self._writer: BinaryIO | None = None
        self._meta = meta
        self._header_written = False
        self._crc = 0
        self._column = 0
        self._processed = 0
        self._pending = b""
        self.reset(writer, meta)

    def reset(self, writer: BinaryIO, meta: Meta) -> None:
        """Discard all state and start a new part written to ``writer``.

        Raises :class:`~yencstream.meta.MetaError` if ``meta`` is invalid.
        """
        meta.validate()
        with self._lock:
            self._writer = writer
            self._meta = meta
            self._header_written = False
            self._crc = 0
            self._pending = b""
            self._processed = 0

    def write(self, data: bytes) -> int:
        """Encode ``data`` and write it out; returns the number of input bytes.

        Encoded output is not necessarily complete until :meth:`close`.
        """
        with self._lock:
            writer = self._require_writer()
            data = bytes(data)
            self._crc = zlib.crc32(data, self._crc)
            self._write_header(writer)

            # A trailing space or tab from the previous write is followed by
            # more data, so it goes out unescaped.
            if self._pending:
                writer.write(self._pending)
                self._pending = b""

            if data:
                self._processed += len(data)
                encoded, self._column = encode_ex(
                    self.line_length, self._column, data, False
                )
                if encoded and encoded[-1] in _WHITESPACE:
                    self._pending = encoded[-1:]
                    encoded = encoded[:-1]
                if encoded:
                    writer.write(encoded)
            return len(data)

    def close(self) -> None:
        """Flush pending output and write the ``=yend`` trailer.

        Raises :class:`ValueError` if the encoder is already closed or if the
        number of bytes written differs from the part size in the metadata.
        """
        with self._lock:
            writer = self._require_writer()
            try:
                if self._pending:
                    writer.write(bytes((0x3D, (self._pending[0] + 64) & 0xFF)))
                    self._pending = b""
                trailer = "\r\n=yend size=%d part=%d pcrc32=%08x\r\n" % (
                    self._meta.part_size,
                    self._meta.part_number,
                    self._crc,
                )
                writer.write(trailer.encode("ascii"))
                if self._processed != self._meta.part_size:
                    raise ValueError(
                        "encode header has part size %d but actually encoded %d bytes"
                        % (self._meta.part_size, self._processed)
                    )
            finally:
                self._writer = None

    def __enter__(self) -> Encoder:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            if self._writer is not None:
                self.close()
        else:
            self._writer = None

    def _require_writer(self) -> BinaryIO:
        if self._writer is None:
            raise ValueError("encoder has no writer (closed or never opened)")
        return self._writer

    def _write_header(self, writer: BinaryIO) -> None:
        if self._header_written:
            return
        self._header_written = True
        m = self._meta
        header = (
            "=ybegin part=%d total=%d line=%d size=%d name=%s\r\n"
            "=ypart begin=%d end=%d\r\n"
            % (
                m.part_number,
                m.total_parts,
                self.line_length,
                m.file_size,
                m.file_name,
                m.begin(),
                m.end(),
            )
        )
        writer.write(header.encode("utf-8"))