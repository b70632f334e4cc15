"""Part metadata carried in yEnc ``=ybegin``, ``=ypart`` and ``=yend`` lines."""

from __future__ import annotations

from dataclasses import dataclass


class MetaError(ValueError):
    """Raised when part metadata is not usable for encoding.

    ``field`` names the attribute that failed validation.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


@dataclass
class Meta:
    """Description of one part of a yEnc encoded file."""

    file_name: str = ""
    file_size: int = 0
    part_number: int = 0
    total_parts: int = 0
    offset: int = 0
    part_size: int = 0

    def begin(self) -> int:
        """The ``=ypart begin`` value: the 1-based position of the part's first byte."""
        return self.offset + 1

    def end(self) -> int:
        """The ``=ypart end`` value: the 1-based position of the part's last byte."""
        return self.offset + self.part_size

    def validate(self) -> None:
        """Raise :class:`MetaError` for the first field that is out of range."""
        if not self.file_name:
            raise MetaError("file_name", "file name is empty")
        if self.file_size <= 0:
            raise MetaError("file_size", "file size is less than or equal to zero")
        if self.part_number <= 0:
            raise MetaError("part_number", "part number is less than or equal to zero")
        if self.total_parts < self.part_number:
            raise MetaError("total_parts", "total parts is less than part number")
        if self.offset < 0:
            raise MetaError("offset", "offset is less than zero")
        if self.part_size <= 0:
            raise MetaError("part_size", "part size is less than or equal to zero")


@dataclass
class DecodedMeta(Meta):
    """Metadata parsed from a decoded article, with the CRC32 of its data."""

    hash: int = 0