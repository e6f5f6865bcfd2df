"""Header and object index codec for map annotation files.

Layout (all integers big-endian):
- Preamble, 13 bytes:
  - magic "DZMP" (4 bytes)
  - version (u8)
  - byte length of the object index table (u32)
  - CRC-32 of the object index table (u32)
- Object count (u16)
- Object index table: one 8-byte entry per object
  - content_size (u32), type tag (u8), 3 reserved zero bytes
- Object payloads, concatenated in index order

Payload offsets are not stored; they are reconstructed on read as a
running sum of sizes starting right after the index table.
"""
import logging
import struct
import zlib
from dataclasses import dataclass, field
from typing import BinaryIO, List, Union

from .byte_utils import bytes_to_hex, read_u16, write_u16
from .errors import InvalidArgumentError, MalformedInputError, UnsupportedVersionError
from .map_types import (
    CONTENT_HEADER_FORMAT,
    CONTENT_HEADER_SIZE,
    COUNT_SIZE,
    DEFAULT_VERSION,
    MAGIC,
    MAX_OBJECT_COUNT,
    PREAMBLE_FORMAT,
    PREAMBLE_SIZE,
    SUPPORTED_VERSIONS,
    MapObjectType,
    object_type_from_tag,
)

logger = logging.getLogger(__name__)


@dataclass
class MapObjectHeader:
    """Object index entry (8 bytes)."""

    content_size: int                   # 4 bytes
    type: Union[MapObjectType, int]     # 1 byte, raw int for unknown tags
    content_start_index: int = -1       # computed on read, never stored

    @property
    def content_end_index(self) -> int:
        return self.content_start_index + self.content_size

    def to_bytes(self) -> bytes:
        try:
            return struct.pack(CONTENT_HEADER_FORMAT, self.content_size, int(self.type))
        except struct.error as e:
            raise InvalidArgumentError(
                f"Cannot encode index entry size={self.content_size} type={self.type!r}: {e}"
            ) from e

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0, content_start_index: int = -1) -> "MapObjectHeader":
        if offset < 0 or offset + CONTENT_HEADER_SIZE > len(data):
            raise MalformedInputError(f"Index entry at offset {offset} is truncated")
        size, tag = struct.unpack_from(CONTENT_HEADER_FORMAT, data, offset)
        return cls(
            content_size=size,
            type=object_type_from_tag(tag),
            content_start_index=content_start_index,
        )


def _index_checksum(index_table: bytes) -> int:
    return zlib.crc32(index_table) & 0xFFFFFFFF


@dataclass
class MapFileHeader:
    """Parsed file preamble plus the object index table."""

    version: int = DEFAULT_VERSION
    headers: List[MapObjectHeader] = field(default_factory=list)

    @property
    def object_count(self) -> int:
        return len(self.headers)

    @property
    def content_start(self) -> int:
        """Offset of the first payload byte."""
        return PREAMBLE_SIZE + COUNT_SIZE + self.object_count * CONTENT_HEADER_SIZE

    @property
    def total_size(self) -> int:
        """Expected file length implied by the index."""
        return self.content_start + sum(h.content_size for h in self.headers)

    def index_table(self) -> bytes:
        return b"".join(h.to_bytes() for h in self.headers)

    def to_bytes(self) -> bytes:
        """Preamble bytes for this header's version and index."""
        return self.emit(self.version, self.index_table())

    @staticmethod
    def emit(version: int, index_table: bytes) -> bytes:
        """Build the 13-byte preamble for ``version`` and a serialized index table.

        Raises:
            UnsupportedVersionError: If ``version`` cannot be written
        """
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersionError(version)
        return struct.pack(
            PREAMBLE_FORMAT,
            MAGIC,
            version,
            len(index_table),
            _index_checksum(index_table),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "MapFileHeader":
        """Parse preamble, object count and index table from file bytes.

        Args:
            data: File contents (at least through the end of the index table)

        Returns:
            MapFileHeader with content start offsets filled in

        Raises:
            MalformedInputError: On truncation, bad magic or index mismatch
            UnsupportedVersionError: If the version is not supported
        """
        if len(data) < PREAMBLE_SIZE + COUNT_SIZE:
            raise MalformedInputError(f"File too small for map header: {len(data)} bytes")

        version, index_length, checksum = cls._parse_preamble(data[:PREAMBLE_SIZE])
        count = read_u16(data, PREAMBLE_SIZE)
        index_start = PREAMBLE_SIZE + COUNT_SIZE
        index_table = bytes(data[index_start:index_start + count * CONTENT_HEADER_SIZE])
        return cls._from_index(version, index_length, checksum, count, index_table)

    @classmethod
    def read(cls, file: BinaryIO) -> "MapFileHeader":
        """Parse the header from an open binary file, reading no payload bytes.

        Args:
            file: Binary file handle positioned at the start of the file
        """
        preamble = file.read(PREAMBLE_SIZE)
        if len(preamble) < PREAMBLE_SIZE:
            raise MalformedInputError(f"File too small for map preamble: {len(preamble)} bytes")
        version, index_length, checksum = cls._parse_preamble(preamble)

        count_bytes = file.read(COUNT_SIZE)
        if len(count_bytes) < COUNT_SIZE:
            raise MalformedInputError("File truncated before object count")
        count = read_u16(count_bytes)

        index_table = file.read(count * CONTENT_HEADER_SIZE)
        return cls._from_index(version, index_length, checksum, count, index_table)

    @staticmethod
    def _parse_preamble(preamble: bytes):
        magic, version, index_length, checksum = struct.unpack(PREAMBLE_FORMAT, preamble)
        if magic != MAGIC:
            raise MalformedInputError(f"Invalid map file magic: {magic!r}")
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersionError(version)
        return version, index_length, checksum

    @classmethod
    def _from_index(cls, version: int, index_length: int, checksum: int,
                    count: int, index_table: bytes) -> "MapFileHeader":
        expected = count * CONTENT_HEADER_SIZE
        if index_length != expected:
            raise MalformedInputError(
                f"Object count mismatch: {count} objects need a {expected}-byte index, "
                f"preamble declares {index_length}"
            )
        if len(index_table) < expected:
            raise MalformedInputError(
                f"Index table truncated: expected {expected} bytes, got {len(index_table)}"
            )
        if _index_checksum(index_table) != checksum:
            raise MalformedInputError(
                f"Index checksum mismatch: stored 0x{checksum:08X}, "
                f"computed 0x{_index_checksum(index_table):08X}"
            )

        logger.debug("Header: %s", bytes_to_hex(index_table))

        headers = []
        running = PREAMBLE_SIZE + COUNT_SIZE + expected
        for i in range(count):
            head = MapObjectHeader.from_bytes(index_table, i * CONTENT_HEADER_SIZE, running)
            headers.append(head)
            running += head.content_size

        return cls(version=version, headers=headers)


def build_object_count(count: int) -> bytes:
    """Serialize the u16 object count that follows the preamble."""
    if count > MAX_OBJECT_COUNT:
        raise InvalidArgumentError(f"Too many map objects: {count} (max {MAX_OBJECT_COUNT})")
    return write_u16(count)
