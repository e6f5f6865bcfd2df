"""Map annotation document: ordered point layers and images.

A MapFile is bound to a path, read fully or selectively, edited through
add/remove with merge-on-add for point layers, and saved back. The order of
``content`` is the order objects are written in.
"""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .byte_utils import bytes_to_hex, substring
from .errors import InvalidArgumentError
from .map_file_header import MapFileHeader, MapObjectHeader, build_object_count
from .map_image import MapImage
from .map_positions import MapPositions
from .map_types import (
    DEFAULT_VERSION,
    MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS,
    MapObjectType,
    ReadMode,
)

logger = logging.getLogger(__name__)

MapObject = Union[MapPositions, MapImage]


class MapFile:
    """In-memory map annotation document."""

    def __init__(self, file: Optional[Union[str, Path]] = None):
        """Initialize document, optionally bound to a file.

        Args:
            file: Path used by read_* and save() when no path is given
        """
        self.file = Path(file) if file is not None else None
        self.content: List[MapObject] = []
        self.header: Optional[MapFileHeader] = None
        self.fully_read_content = False

    @property
    def version(self) -> int:
        return self.header.version if self.header is not None else DEFAULT_VERSION

    # --- Editing ---

    def add_map_object(self, obj: MapObject) -> None:
        """Append an object, merging point layers that share a display name."""
        if isinstance(obj, MapPositions):
            parent = self.get_positions_by_display_name(obj.display_name)
            if parent is not None:
                parent.add_positions(obj.positions)
                return
        self.content.append(obj)

    def add_map_objects(self, objects: Iterable[MapObject]) -> None:
        for obj in objects:
            self.add_map_object(obj)

    def remove_map_object(self, obj: MapObject) -> None:
        """Remove this exact object instance; equal copies are left alone."""
        for i, existing in enumerate(self.content):
            if existing is obj:
                del self.content[i]
                return

    def remove_all_positions(self) -> None:
        for obj in list(self.content):
            if isinstance(obj, MapPositions):
                self.remove_map_object(obj)

    def remove_all_images(self) -> None:
        for obj in list(self.content):
            if isinstance(obj, MapImage):
                self.remove_map_object(obj)

    # --- Queries ---

    def get_all_positions(self) -> List[MapPositions]:
        return [obj for obj in self.content if isinstance(obj, MapPositions)]

    def get_all_images(self) -> List[MapImage]:
        return [obj for obj in self.content if isinstance(obj, MapImage)]

    def get_positions_by_name(self, name: str) -> Optional[MapPositions]:
        return next((p for p in self.get_all_positions() if p.name == name), None)

    def get_positions_by_display_name(self, display_name: str) -> Optional[MapPositions]:
        return next(
            (p for p in self.get_all_positions() if p.display_name == display_name),
            None,
        )

    def get_player_spawns(self) -> Optional[MapPositions]:
        return self.get_positions_by_name(MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS)

    def get_all_event_spawns(self) -> List[MapPositions]:
        return [
            p for p in self.get_all_positions()
            if p.name != MAP_POSITIONS_NAME_PLAYER_SPAWNPOINTS
        ]

    # --- Reading ---

    def _require_file(self) -> Path:
        if self.file is None:
            raise InvalidArgumentError("MapFile is not bound to a file")
        return self.file

    def read_header(self) -> MapFileHeader:
        """Parse and cache the header and object index without reading payloads."""
        path = self._require_file()
        with open(path, "rb") as f:
            self.header = MapFileHeader.read(f)
        logger.debug("Content Headers: %d", self.header.object_count)
        return self.header

    def has_images(self) -> bool:
        """Check the object index for an image entry. No payload is read."""
        header = self.read_header()
        return any(head.type == MapObjectType.MAP_IMAGE for head in header.headers)

    def read_content(self, mode: ReadMode = ReadMode.ALL) -> None:
        """Read the bound file, decoding the payload types ``mode`` selects.

        Decoded objects are added to the current content with merge-on-add.

        Raises:
            InvalidArgumentError: If no file is bound
            MalformedInputError: If the header or a decoded payload is corrupt
            OSError: If the file cannot be read
        """
        path = self._require_file()
        with open(path, "rb") as f:
            data = f.read()
        self.load_bytes(data, mode)

    def read_positions_only(self) -> None:
        self.read_content(ReadMode.POSITIONS_ONLY)

    def read_images_only(self) -> None:
        self.read_content(ReadMode.IMAGES_ONLY)

    def load_bytes(self, data: bytes, mode: ReadMode = ReadMode.ALL) -> None:
        """Decode map file bytes into this document."""
        self.header = MapFileHeader.from_bytes(data)
        logger.debug("Content Headers: %d", self.header.object_count)

        for head in self.header.headers:
            logger.debug("Header: %d %d", head.content_start_index, head.content_size)
            if not isinstance(head.type, MapObjectType):
                logger.debug("Skipping object with unknown type tag %d", head.type)
                continue
            if not mode.reads(head.type):
                continue

            payload = substring(data, head.content_start_index, head.content_size)
            self.add_map_object(self._decode_object(head, payload))

        self.fully_read_content = mode == ReadMode.ALL

    @staticmethod
    def _decode_object(head: MapObjectHeader, payload: bytes) -> MapObject:
        if head.type == MapObjectType.MAP_IMAGE:
            return MapImage.from_bytes(payload)
        return MapPositions.from_bytes(payload)

    # --- Writing ---

    def to_bytes(self) -> bytes:
        """Serialize the document: preamble, count, index table, payloads."""
        payloads = []
        headers = []
        for obj in self.content:
            con = obj.to_bytes()
            payloads.append(con)
            headers.append(MapObjectHeader(len(con), obj.object_type, -1))

        count = build_object_count(len(headers))
        index_table = b"".join(head.to_bytes() for head in headers)
        preamble = MapFileHeader.emit(self.version, index_table)
        logger.debug("Head: %s", bytes_to_hex(preamble))
        logger.debug("Header: %s", bytes_to_hex(index_table))

        return preamble + count + index_table + b"".join(payloads)

    def save(self, file: Optional[Union[str, Path]] = None) -> None:
        """Write the document to ``file`` or, by default, the bound file.

        Raises:
            InvalidArgumentError: If no path is given and none is bound
            OSError: If the file cannot be written
        """
        path = Path(file) if file is not None else self._require_file()
        data = self.to_bytes()
        with open(path, "wb") as out:
            out.write(data)
        logger.debug("Saved %d objects (%d bytes) to %s", len(self.content), len(data), path)
