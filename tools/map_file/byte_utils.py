"""Big-endian byte helpers shared by the map file codecs."""
import struct
from typing import Union

from .errors import InvalidArgumentError, MalformedInputError

Buffer = Union[bytes, bytearray, memoryview]

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")
_I16 = struct.Struct(">h")
_I32 = struct.Struct(">i")
_F32 = struct.Struct(">f")


def _check_range(buf: Buffer, offset: int, length: int) -> None:
    if offset < 0 or length < 0:
        raise MalformedInputError(f"Negative read range: offset={offset} length={length}")
    if offset + length > len(buf):
        raise MalformedInputError(
            f"Read of {length} bytes at offset {offset} exceeds buffer of {len(buf)} bytes"
        )


def _unpack(fmt: struct.Struct, buf: Buffer, offset: int):
    _check_range(buf, offset, fmt.size)
    return fmt.unpack_from(buf, offset)[0]


def _pack(fmt: struct.Struct, value) -> bytes:
    try:
        return fmt.pack(value)
    except (struct.error, OverflowError) as e:
        raise InvalidArgumentError(f"Value {value!r} does not fit format {fmt.format!r}: {e}") from e


def read_u16(buf: Buffer, offset: int = 0) -> int:
    return _unpack(_U16, buf, offset)


def read_u32(buf: Buffer, offset: int = 0) -> int:
    return _unpack(_U32, buf, offset)


def read_u64(buf: Buffer, offset: int = 0) -> int:
    return _unpack(_U64, buf, offset)


def read_i16(buf: Buffer, offset: int = 0) -> int:
    return _unpack(_I16, buf, offset)


def read_i32(buf: Buffer, offset: int = 0) -> int:
    return _unpack(_I32, buf, offset)


def read_f32(buf: Buffer, offset: int = 0) -> float:
    return _unpack(_F32, buf, offset)


def write_u16(value: int) -> bytes:
    return _pack(_U16, value)


def write_u32(value: int) -> bytes:
    return _pack(_U32, value)


def write_u64(value: int) -> bytes:
    return _pack(_U64, value)


def write_i16(value: int) -> bytes:
    return _pack(_I16, value)


def write_i32(value: int) -> bytes:
    return _pack(_I32, value)


def write_f32(value: float) -> bytes:
    return _pack(_F32, value)


def substring(buf: Buffer, start: int, length: int) -> bytes:
    """Copy ``length`` bytes starting at ``start``.

    Raises:
        MalformedInputError: If the range falls outside ``buf``
    """
    _check_range(buf, start, length)
    return bytes(buf[start:start + length])


def bytes_to_hex(buf: Buffer) -> str:
    """Format bytes as upper-case hex pairs, e.g. ``DE AD BE EF``."""
    return " ".join(f"{b:02X}" for b in bytes(buf))


class ByteReader:
    """Forward-only cursor over a byte buffer."""

    def __init__(self, buf: Buffer, offset: int = 0):
        self.buf = buf
        self.offset = offset

    @property
    def remaining(self) -> int:
        return len(self.buf) - self.offset

    @property
    def at_end(self) -> bool:
        return self.offset >= len(self.buf)

    def read_u16(self) -> int:
        value = read_u16(self.buf, self.offset)
        self.offset += 2
        return value

    def read_u32(self) -> int:
        value = read_u32(self.buf, self.offset)
        self.offset += 4
        return value

    def read_f32(self) -> float:
        value = read_f32(self.buf, self.offset)
        self.offset += 4
        return value

    def read_bytes(self, length: int) -> bytes:
        data = substring(self.buf, self.offset, length)
        self.offset += length
        return data
