"""Map annotation file codec (point layers and embedded images)."""
from .errors import InvalidArgumentError, MalformedInputError, MapFileError, UnsupportedVersionError
from .map_file import MapFile, MapObject
from .map_file_header import MapFileHeader, MapObjectHeader
from .map_image import MapImage
from .map_positions import MapPosition, MapPositions
from .map_types import MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS, MapObjectType, ReadMode

__all__ = [
    "MapFile",
    "MapObject",
    "MapFileHeader",
    "MapObjectHeader",
    "MapImage",
    "MapPosition",
    "MapPositions",
    "MapObjectType",
    "ReadMode",
    "MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS",
    "MapFileError",
    "MalformedInputError",
    "UnsupportedVersionError",
    "InvalidArgumentError",
]
