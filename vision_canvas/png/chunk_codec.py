"""
PNG Chunk Codec
===============

Builds and parses PNG chunks.

Chunk layout (all integers big-endian):
    length (4) | type (4) | data (length) | crc32 over type+data (4)

Ref: https://www.w3.org/TR/png/#5Chunk-layout
"""

import logging
import struct
import zlib
from dataclasses import dataclass
from typing import Iterator

logger = logging.getLogger(__name__)

PNG_SIGNATURE = bytes([137, 80, 78, 71, 13, 10, 26, 10])
IEND = b"IEND"

_LENGTH = struct.Struct("!L")
_HEADER = struct.Struct("!L4s")


class MalformedContainer(ValueError):
    """The byte stream is not a structurally valid PNG for this operation."""


@dataclass(frozen=True)
class Chunk:
    """A parsed chunk and the offset of its length field in the file."""
    type: bytes
    data: bytes
    crc: int
    offset: int

    @property
    def size(self) -> int:
        """Total bytes on disk, including length, type and crc."""
        return 12 + len(self.data)


def make_chunk(type_tag: bytes, payload: bytes) -> bytes:
    """
    Frame ``payload`` as a PNG chunk.

    The length field counts payload bytes only; the crc covers
    type+payload and never the length.
    """
    if len(type_tag) != 4 or not type_tag.isalpha():
        raise ValueError(f"Chunk type must be 4 ASCII letters, got {type_tag!r}")

    body = type_tag + payload
    crc = zlib.crc32(body) & 0xFFFFFFFF
    return _LENGTH.pack(len(payload)) + body + _LENGTH.pack(crc)


def iter_chunks(png: bytes) -> Iterator[Chunk]:
    """
    Walk the chunk stream forward from the signature, verifying each crc.

    Stops after IEND. Raises MalformedContainer on a bad signature,
    truncation, crc mismatch, or a stream that ends without IEND.
    """
    if png[:8] != PNG_SIGNATURE:
        raise MalformedContainer("Invalid PNG signature")

    offset = 8
    total = len(png)
    while offset + 8 <= total:
        length, chunk_type = _HEADER.unpack_from(png, offset)
        data_start = offset + 8
        data_end = data_start + length
        if data_end + 4 > total:
            raise MalformedContainer(f"Truncated {chunk_type!r} chunk at offset {offset}")

        data = png[data_start:data_end]
        (crc,) = _LENGTH.unpack_from(png, data_end)
        expected = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
        if crc != expected:
            raise MalformedContainer(f"Bad CRC in {chunk_type!r} chunk at offset {offset}")

        chunk = Chunk(type=chunk_type, data=data, crc=crc, offset=offset)
        yield chunk

        if chunk_type == IEND:
            return
        offset += chunk.size

    raise MalformedContainer("No IEND chunk found")


def find_terminator(png: bytes) -> int:
    """Offset of the IEND chunk's length field."""
    for chunk in iter_chunks(png):
        if chunk.type == IEND:
            logger.debug(f"[PNG-CODEC] IEND at offset {chunk.offset} of {len(png)} bytes")
            return chunk.offset
    # iter_chunks raises before falling through
    raise MalformedContainer("No IEND chunk found")
