#!/usr/bin/env python3
"""
Map annotation file tool

Inspects map annotation files and converts their point layers and images
to standard formats.

Usage:
    python -m map_file.map_tool <input.map> [output.json]
    python -m map_file.map_tool --info <input.map>
    python -m map_file.map_tool --pack <input.json> <output.map>
    python -m map_file.map_tool <input.map> --images <dir>
    python -m map_file.map_tool <input.map> --gltf <output.glb>

Requirements:
    Pillow (for --images), pygltflib (for --gltf)
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import MalformedInputError, MapFileError
from .gltf_exporter import PositionsGLTFExporter
from .map_file import MapFile
from .map_image import MapImage
from .map_positions import MapPosition, MapPositions
from .map_types import MapObjectType

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"PNG": ".png", "JPEG": ".jpg", "TIFF": ".tif"}


def map_to_dict(map_file: MapFile, image_files: Optional[List[str]] = None) -> Dict[str, Any]:
    """Convert a loaded document to a JSON-friendly dict."""
    layers = [
        {
            "name": layer.name,
            "display_name": layer.display_name,
            "positions": [list(pos.as_tuple()) for pos in layer.positions],
        }
        for layer in map_file.get_all_positions()
    ]

    images = []
    for i, image in enumerate(map_file.get_all_images()):
        entry: Dict[str, Any] = {"bytes": len(image.data)}
        if image_files is not None and i < len(image_files):
            entry["file"] = image_files[i]
        images.append(entry)

    return {"version": map_file.version, "layers": layers, "images": images}


def map_from_dict(data: Dict[str, Any], base_dir: Optional[Path] = None) -> MapFile:
    """Build a document from the dict produced by map_to_dict.

    Image entries are packed only when they carry a ``file`` path, resolved
    against ``base_dir``.
    """
    map_file = MapFile()
    for layer in data.get("layers", []):
        positions = [MapPosition(*map(float, pos)) for pos in layer.get("positions", [])]
        map_file.add_map_object(
            MapPositions(
                name=layer["name"],
                display_name=layer.get("display_name", layer["name"]),
                positions=positions,
            )
        )

    for entry in data.get("images", []):
        if "file" not in entry:
            continue
        image_path = Path(entry["file"])
        if base_dir is not None and not image_path.is_absolute():
            image_path = base_dir / image_path
        map_file.add_map_object(MapImage(image_path.read_bytes()))

    return map_file


def print_info(input_path: str) -> None:
    """Print version and object index without decoding payloads."""
    map_file = MapFile(input_path)
    header = map_file.read_header()

    print(f"File: {os.path.basename(input_path)}")
    print(f"Version: {header.version}")
    print(f"Objects ({header.object_count}):")
    for i, head in enumerate(header.headers):
        type_name = head.type.name if isinstance(head.type, MapObjectType) else f"UNKNOWN({head.type})"
        print(f"  [{i}] {type_name} offset={head.content_start_index} size={head.content_size}")


def image_extension(image: MapImage) -> str:
    """File extension for the image's format, ``.bin`` if Pillow cannot identify it."""
    try:
        fmt = image.image_format
    except MalformedInputError as e:
        logger.warning("Image is not decodable (%s), writing raw bytes", e)
        return ".bin"
    return IMAGE_EXTENSIONS.get(fmt, f".{fmt.lower()}" if fmt else ".bin")


def extract_images(map_file: MapFile, output_dir: str) -> List[Path]:
    """Write every image's bytes unchanged to ``output_dir``.

    Returns:
        Paths written, in image order
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    written = []
    for i, image in enumerate(map_file.get_all_images()):
        path = out / f"image_{i:03d}{image_extension(image)}"
        path.write_bytes(image.data)
        written.append(path)
        print(f"Exported: {path}")

    return written


def export_json(map_file: MapFile, output_path: str, image_files: Optional[List[str]] = None) -> None:
    output_data = map_to_dict(map_file, image_files)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2, ensure_ascii=False)

    count = sum(len(layer["positions"]) for layer in output_data["layers"])
    print(f"Extracted {len(output_data['layers'])} layers ({count} positions) to {output_path}")


def pack_json(input_path: str, output_path: str) -> None:
    with open(input_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    map_file = map_from_dict(data, base_dir=Path(input_path).parent)
    map_file.save(output_path)
    print(f"Packed {len(map_file.content)} objects to {output_path}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Inspect and convert map annotation files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s chernarus.map                      # Export layers to chernarus.json
  %(prog)s chernarus.map layers.json          # Export to specific file
  %(prog)s --info chernarus.map               # Show header and object index
  %(prog)s --pack layers.json chernarus.map   # Build a map file from JSON
  %(prog)s chernarus.map --images ./images    # Extract embedded images
  %(prog)s chernarus.map --gltf points.glb    # Export layers as glTF points
        """
    )

    parser.add_argument("input", help="Input .map file (or .json with --pack)")
    parser.add_argument("output", nargs="?", help="Output .json file (or .map with --pack)")
    parser.add_argument("--info", action="store_true", help="Show header info without decoding payloads")
    parser.add_argument("--pack", action="store_true", help="Build a .map file from JSON")
    parser.add_argument("--images", metavar="DIR", help="Extract embedded images to DIR")
    parser.add_argument("--gltf", metavar="FILE", help="Export point layers to a .glb file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.info:
            print_info(args.input)
            return 0

        if args.pack:
            if not args.output:
                print("Output .map file required with --pack", file=sys.stderr)
                return 1
            pack_json(args.input, args.output)
            return 0

        map_file = MapFile(args.input)
        map_file.read_content()

        output_path = None
        if args.output or not (args.images or args.gltf):
            output_path = args.output or os.path.splitext(args.input)[0] + ".json"

        image_files = None
        if args.images:
            written = extract_images(map_file, args.images)
            if output_path:
                # JSON file entries resolve against the JSON's directory on --pack
                json_dir = os.path.dirname(os.path.abspath(output_path))
                image_files = [os.path.relpath(os.path.abspath(p), json_dir) for p in written]

        if args.gltf:
            layers = PositionsGLTFExporter(map_file).export(args.gltf)
            print(f"Exported {layers} layers to {args.gltf}")

        if output_path:
            export_json(map_file, output_path, image_files)

    except (MapFileError, OSError, ValueError, KeyError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
