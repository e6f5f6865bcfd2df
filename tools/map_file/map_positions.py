"""Point layer payloads (named collections of map positions).

Payload layout (big-endian):
- name: u16 length + ASCII bytes
- display name: u16 length + UTF-8 bytes
- position count: u32
- positions: count records of 12 bytes, x/y/z as float32
"""
import struct
from dataclasses import dataclass, field
from typing import ClassVar, Iterable, List, Tuple

from .byte_utils import ByteReader, write_u16, write_u32
from .errors import InvalidArgumentError, MalformedInputError
from .map_types import (
    MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS,
    MAX_STRING_LENGTH,
    POSITION_RECORD_SIZE,
    MapObjectType,
)

_POSITION = struct.Struct(">fff")


@dataclass(frozen=True)
class MapPosition:
    """A single 3-D marker position."""
    x: float
    y: float
    z: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def to_bytes(self) -> bytes:
        try:
            return _POSITION.pack(self.x, self.y, self.z)
        except (struct.error, OverflowError) as e:
            raise InvalidArgumentError(f"Cannot encode position {self.as_tuple()}: {e}") from e

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "MapPosition":
        if offset + POSITION_RECORD_SIZE > len(data):
            raise MalformedInputError(f"Position record at offset {offset} is truncated")
        return cls(*_POSITION.unpack_from(data, offset))


def _encode_string(value: str, encoding: str, what: str) -> bytes:
    try:
        raw = value.encode(encoding)
    except UnicodeEncodeError as e:
        raise InvalidArgumentError(f"Layer {what} {value!r} is not {encoding}") from e
    if len(raw) > MAX_STRING_LENGTH:
        raise InvalidArgumentError(
            f"Layer {what} is {len(raw)} bytes long (max {MAX_STRING_LENGTH})"
        )
    return write_u16(len(raw)) + raw


def _decode_string(reader: ByteReader, encoding: str, what: str) -> str:
    length = reader.read_u16()
    raw = reader.read_bytes(length)
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"Layer {what} is not valid {encoding}: {raw!r}") from e


@dataclass
class MapPositions:
    """A named layer of map positions.

    ``name`` identifies the layer to tools, ``display_name`` is what users
    see. Layers sharing a display name are merged when added to a MapFile.
    """

    object_type: ClassVar[MapObjectType] = MapObjectType.MAP_POINTS

    name: str
    display_name: str
    positions: List[MapPosition] = field(default_factory=list)

    @property
    def is_player_spawns(self) -> bool:
        return self.name == MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS

    def add_position(self, position: MapPosition) -> None:
        self.positions.append(position)

    def add_positions(self, positions: Iterable[MapPosition]) -> None:
        self.positions.extend(positions)

    def to_bytes(self) -> bytes:
        """Encode the layer payload.

        Raises:
            InvalidArgumentError: If a string or coordinate cannot be encoded
        """
        parts = [
            _encode_string(self.name, "ascii", "name"),
            _encode_string(self.display_name, "utf-8", "display name"),
            write_u32(len(self.positions)),
        ]
        parts.extend(pos.to_bytes() for pos in self.positions)
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, payload: bytes) -> "MapPositions":
        """Decode a layer payload.

        Args:
            payload: Exactly one layer payload, as sliced from the file

        Returns:
            MapPositions with every position in stored order

        Raises:
            MalformedInputError: On truncation, bad text or count mismatch
        """
        reader = ByteReader(payload)
        name = _decode_string(reader, "ascii", "name")
        display_name = _decode_string(reader, "utf-8", "display name")
        count = reader.read_u32()

        expected = count * POSITION_RECORD_SIZE
        if reader.remaining != expected:
            raise MalformedInputError(
                f"Layer {name!r} declares {count} positions ({expected} bytes) "
                f"but {reader.remaining} bytes remain"
            )

        records = reader.read_bytes(expected)
        positions = [
            MapPosition.from_bytes(records, i * POSITION_RECORD_SIZE)
            for i in range(count)
        ]
        return cls(name=name, display_name=display_name, positions=positions)

    def load_from_bytes(self, payload: bytes) -> None:
        """Replace this layer's name, display name and positions from a payload."""
        decoded = self.from_bytes(payload)
        self.name = decoded.name
        self.display_name = decoded.display_name
        self.positions = decoded.positions
