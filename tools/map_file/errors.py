"""Exceptions raised by the map file codec."""


class MapFileError(Exception):
    """Base class for map file errors."""


class MalformedInputError(MapFileError, ValueError):
    """Truncated data, size/count mismatch or otherwise corrupt input."""


class UnsupportedVersionError(MalformedInputError):
    """File header carries a version this codec cannot read."""

    def __init__(self, version: int):
        super().__init__(f"Unsupported map file version: {version}")
        self.version = version


class InvalidArgumentError(MapFileError, ValueError):
    """Operation called with a value it cannot handle (e.g. no bound file)."""
