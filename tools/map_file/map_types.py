"""Type definitions and wire constants for the map annotation format."""
from enum import Enum, IntEnum


# Preamble: magic(4) + version(1) + index_length(4) + index_crc32(4)
MAGIC = b"DZMP"
PREAMBLE_FORMAT = ">4sBII"
PREAMBLE_SIZE = 13

# Object count follows the preamble
COUNT_SIZE = 2

# Index entry: content_size(4) + type(1) + reserved(3)
CONTENT_HEADER_FORMAT = ">IB3x"
CONTENT_HEADER_SIZE = 8

DEFAULT_VERSION = 0
SUPPORTED_VERSIONS = frozenset({0})

# Position record: x, y, z as big-endian float32
POSITION_RECORD_SIZE = 12

MAX_OBJECT_COUNT = 0xFFFF
MAX_STRING_LENGTH = 0xFFFF

MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS = "PlayerSpawnPoints"


class MapObjectType(IntEnum):
    """Type tags stored in the object index table."""
    MAP_IMAGE = 1
    MAP_POINTS = 2


class ReadMode(Enum):
    """Which payload types a read decodes."""
    ALL = "all"
    POSITIONS_ONLY = "positions"
    IMAGES_ONLY = "images"

    def reads(self, object_type) -> bool:
        if object_type == MapObjectType.MAP_POINTS:
            return self in (ReadMode.ALL, ReadMode.POSITIONS_ONLY)
        if object_type == MapObjectType.MAP_IMAGE:
            return self in (ReadMode.ALL, ReadMode.IMAGES_ONLY)
        return False


def object_type_from_tag(tag: int):
    """Map a raw tag to MapObjectType, keeping unknown tags as plain ints."""
    return MapObjectType(tag) if tag in MapObjectType._value2member_map_ else tag
