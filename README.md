# yencstream

Streaming yEnc encoding and decoding for Usenet articles in pure Python. The
package depends only on the standard library.

* `yencstream.encoder.Encoder` writes a complete yEnc part to any binary
  writer. The part has `=ybegin`, `=ypart` and `=yend` lines. The encoder
  tracks the CRC32 and the byte count while data is written.
* `yencstream.decoder.Decoder` reads an article body from any binary reader.
  It parses the yEnc header lines and decodes the data as it streams. It then
  checks the size and CRC32 against the trailer.
* `yencstream.codec` holds the low-level functions. They work on raw yEnc data
  without `=y` lines.
* `yencstream.meta` holds the `Meta` and `DecodedMeta` part descriptions.

## Installation

```
pip install yencstream
```

## Encoding a part

```python
import io

from yencstream.encoder import Encoder
from yencstream.meta import Meta

data = b"Hello World"
out = io.BytesIO()
meta = Meta(
    file_name="hello.txt",
    file_size=len(data),
    part_number=1,
    total_parts=1,
    offset=0,
    part_size=len(data),
)

with Encoder(out, meta) as enc:
    enc.write(data)

article = out.getvalue()
```

The encoder writes the header before the first data. Lines are 128
characters long. `Encoder.line_length` holds this value.

`Encoder.close()`, or leaving the `with` block without an exception, does
three things:

* It escapes any trailing space or tab.
* It writes the `=yend size=... part=... pcrc32=...` trailer.
* It closes the encoder.

`close()` raises `ValueError` if the number of bytes written differs from
`part_size`. It also raises `ValueError` if the encoder is already closed.
`write()` after closing raises `ValueError` as well.

`Meta.validate()` runs when the encoder is created and when
`Encoder.reset(writer, meta)` is called. It raises `MetaError` for the first
field that is missing or out of range. The failing field's name is in
`MetaError.field`. `Meta.begin()` and `Meta.end()` give the 1-based
`=ypart begin`/`end` values, computed from `offset` and `part_size`.

## Decoding an article

```python
import io

from yencstream.decoder import Decoder

dec = Decoder(io.BytesIO(article))
payload = b""
while chunk := dec.read(4096):
    payload += chunk

print(dec.meta.file_name, dec.meta.part_size, hex(dec.meta.hash))
```

`read(size)` returns up to `size` decoded bytes. With no argument or a
negative size it returns all of them. It returns `b""` when the article is
done. The input ends at the end of the reader or at an NNTP `.\r\n` line.

All data decoded before the end is returned first. After that, `read()`
raises one of these errors:

* `DataMissingError`: no `=ybegin` header was found.
* `DataCorruptionError`: the `=yend` trailer is missing, the decoded size does
  not match the headers, or the input ended inside yEnc data.
* `CrcMismatchError`: the CRC32 does not match the `crc32`/`pcrc32` value in
  the trailer.
* `DecodeError`: the article looks uuencoded.

`DataMissingError`, `DataCorruptionError` and `CrcMismatchError` are
subclasses of `DecodeError`.

`Decoder.reset(reader)` makes a decoder ready for a new article.
`acquire_decoder(reader)` and `release_decoder(decoder)` keep a pool of
reusable decoders.

The module also has these header-parsing helpers: `detect_format(line)`
returns a `Format`, plus `extract_string`, `extract_int` and `extract_crc`.

## Low-level helpers

```python
from yencstream.codec import End, State, decode_incremental, encode

encoded = encode(b"foobar", 128)
decoded, consumed, end, state = decode_incremental(encoded, State.CRLF)
assert decoded == b"foobar" and end is End.NONE
```

* `encode(src, line_length=128)` encodes whole lines. It raises `ValueError`
  if the source is empty or the line length is below 1.
* `encode_ex(line_length, column, src, is_end)` carries on from a given column.
  It returns the encoded bytes and the new column.
* `decode_incremental(src, state)` stops at `\r\n=y` (`End.CONTROL`) or at
  `\r\n.\r\n` (`End.ARTICLE`). It returns the state to pass to the next call.
* `max_length(length, line_length)` gives an upper bound on the encoded size.

## What it does not do

* It does not uudecode. Lines of uuencoded articles are detected but not
  decoded, and reading such an article ends with `DecodeError`.
* It does not connect to news servers.
* It does not join the parts of a multi-part file. Each decoder handles one
  article.