"""Embedded map image payloads.

Payload layout: u32 (big-endian) data length, then the image bytes.

The container never interprets the image bytes. They are usually a PNG or
JPEG file, and the Pillow helpers below work on them when they are, but any
blob round-trips unchanged.
"""
import io
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional, Tuple, Union

from PIL import Image

from .byte_utils import ByteReader, write_u32
from .errors import MalformedInputError
from .map_types import MapObjectType

# Modes Pillow can write to PNG without conversion
_PNG_MODES = ("1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA")


@dataclass
class MapImage:
    """An embedded raster image."""

    object_type: ClassVar[MapObjectType] = MapObjectType.MAP_IMAGE

    data: bytes = b""

    def load_from_bytes(self, payload: bytes) -> None:
        """Populate this image from a framed payload.

        Raises:
            MalformedInputError: If the length prefix disagrees with the payload
        """
        reader = ByteReader(payload)
        length = reader.read_u32()
        if reader.remaining != length:
            raise MalformedInputError(
                f"Image declares {length} data bytes but payload holds {reader.remaining}"
            )
        self.data = reader.read_bytes(length)

    @classmethod
    def from_bytes(cls, payload: bytes) -> "MapImage":
        image = cls()
        image.load_from_bytes(payload)
        return image

    def to_bytes(self) -> bytes:
        return write_u32(len(self.data)) + bytes(self.data)

    @classmethod
    def from_pil(cls, image: Image.Image, fmt: str = "PNG") -> "MapImage":
        """Encode a Pillow image into a new MapImage."""
        buf = io.BytesIO()
        image.save(buf, fmt)
        return cls(buf.getvalue())

    def to_pil(self) -> Image.Image:
        """Decode the payload with Pillow.

        Raises:
            MalformedInputError: If the bytes are not an image Pillow can read
        """
        try:
            img = Image.open(io.BytesIO(self.data))
            img.load()
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise MalformedInputError(f"Map image is not a readable image: {e}") from e
        return img

    @property
    def size(self) -> Tuple[int, int]:
        return self.to_pil().size

    @property
    def image_format(self) -> Optional[str]:
        return self.to_pil().format

    def save_png(self, path: Union[str, Path]) -> None:
        img = self.to_pil()
        if img.mode not in _PNG_MODES:
            img = img.convert("RGBA")
        img.save(path, "PNG")
