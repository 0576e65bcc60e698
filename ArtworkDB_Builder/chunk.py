"""
Generic chunk tree for the ArtworkDB container.

Every ArtworkDB record has the same prefix:

    +0x00  4-byte ASCII tag ("mhfd", "mhsd", ...)
    +0x04  u32 header length (this chunk's own fields + padding)

followed by type-specific fields, zero padding up to the header length, and
then the serialized children.  A chunk's total length is its header length
plus the total length of every child, so sizes are computed first and bytes
are emitted second.
"""

import struct
from dataclasses import dataclass, field
from typing import Any


class _TotalLength:
    """Field value placeholder resolved to the chunk's total length at emit time."""

    def __repr__(self) -> str:
        return "TOTAL_LENGTH"


TOTAL_LENGTH = _TotalLength()

# tag (4) + header length (4)
PREFIX_SIZE = 8


@dataclass
class Chunk:
    """
    One tagged record plus its nested children.

    Args:
        tag: 4 ASCII characters
        header_length: Fixed size of this chunk's header including padding
        fields: (offset, struct format, value) triples packed little-endian
                into the header.  ``TOTAL_LENGTH`` as a value is replaced
                with the computed total length.
        children: Chunks appended, in order, right after the padding
    """
    tag: str
    header_length: int
    fields: list[tuple[int, str, Any]] = field(default_factory=list)
    children: list["Chunk"] = field(default_factory=list)

    def __post_init__(self):
        if len(self.tag) != 4 or not self.tag.isascii():
            raise ValueError(f"Chunk tag must be 4 ASCII characters: {self.tag!r}")
        if self.header_length < PREFIX_SIZE:
            raise ValueError(f"{self.tag}: header length {self.header_length} "
                             f"is smaller than the {PREFIX_SIZE}-byte prefix")
        for offset, fmt, _ in self.fields:
            end = offset + struct.calcsize('<' + fmt)
            if offset < PREFIX_SIZE or end > self.header_length:
                raise ValueError(f"{self.tag}: field '{fmt}' at offset {offset} "
                                 f"is outside {PREFIX_SIZE}..{self.header_length}")

    @property
    def total_length(self) -> int:
        return self.header_length + sum(child.total_length for child in self.children)

    def header_bytes(self) -> bytes:
        """Pack the tag, header length and fields into a zero-padded header."""
        total_length = self.total_length

        header = bytearray(self.header_length)
        header[0:4] = self.tag.encode('ascii')
        struct.pack_into('<I', header, 4, self.header_length)
        for offset, fmt, value in self.fields:
            if value is TOTAL_LENGTH:
                value = total_length
            struct.pack_into('<' + fmt, header, offset, value)
        return bytes(header)

    def to_bytes(self) -> bytes:
        out = bytearray()
        self._emit(out)
        return bytes(out)

    def _emit(self, out: bytearray) -> None:
        out += self.header_bytes()
        for child in self.children:
            child._emit(out)
