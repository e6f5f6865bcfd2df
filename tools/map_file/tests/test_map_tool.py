"""Tests for the map tool CLI."""
import json
import os
import subprocess
import sys
import tempfile
from pathlib import Path
import pytest

TOOLS_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, TOOLS_DIR)

from PIL import Image

from map_file.map_file import MapFile
from map_file.map_image import MapImage
from map_file.map_positions import MapPosition, MapPositions
from map_file.map_tool import main, map_from_dict, map_to_dict


def run_tool(*args):
    return subprocess.run(
        [sys.executable, "-m", "map_file.map_tool", *args],
        capture_output=True,
        text=True,
        cwd=TOOLS_DIR,
    )


def create_test_map(path, images=()):
    doc = MapFile(path)
    doc.add_map_objects([
        MapPositions("PlayerSpawnPoints", "Player Spawns", [
            MapPosition(100.0, 0.0, 200.0),
            MapPosition(150.5, 2.5, 175.25),
        ]),
        MapPositions("Heli", "Heli crashes", [MapPosition(1.0, 2.0, 3.0)]),
    ])
    doc.add_map_objects(images)
    doc.save()
    return doc


def test_cli_help():
    """CLI should show help."""
    result = run_tool("--help")

    assert result.returncode == 0
    assert "usage" in result.stdout.lower()


def test_cli_info():
    """CLI should list the object index."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        create_test_map(input_path, [MapImage(b"\x01\x02")])

        result = run_tool("--info", input_path)

        assert result.returncode == 0
        assert "Version: 0" in result.stdout
        assert "Objects (3):" in result.stdout
        assert "[0] MAP_POINTS" in result.stdout
        assert "[2] MAP_IMAGE" in result.stdout


def test_cli_export_json():
    """CLI should export layers next to the input by default."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        create_test_map(input_path)

        result = run_tool(input_path)

        assert result.returncode == 0
        assert "Extracted 2 layers (3 positions)" in result.stdout

        with open(os.path.join(tmpdir, "chernarus.json"), encoding="utf-8") as f:
            data = json.load(f)

        assert data["version"] == 0
        assert data["layers"][0]["display_name"] == "Player Spawns"
        assert data["layers"][0]["positions"][1] == [150.5, 2.5, 175.25]
        assert data["images"] == []


def test_cli_pack_round_trip():
    """CLI should rebuild an identical map file from exported JSON."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        json_path = os.path.join(tmpdir, "layers.json")
        packed_path = os.path.join(tmpdir, "packed.map")
        create_test_map(input_path)

        assert run_tool(input_path, json_path).returncode == 0
        result = run_tool("--pack", json_path, packed_path)

        assert result.returncode == 0
        assert "Packed 2 objects" in result.stdout
        with open(input_path, "rb") as a, open(packed_path, "rb") as b:
            assert a.read() == b.read()


def test_cli_pack_requires_output():
    with tempfile.TemporaryDirectory() as tmpdir:
        json_path = os.path.join(tmpdir, "layers.json")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump({"layers": []}, f)

        result = run_tool("--pack", json_path)

        assert result.returncode == 1
        assert "required" in result.stderr


def test_cli_images():
    """CLI should write decodable images as PNG and others as raw bytes."""
    png = MapImage.from_pil(Image.new("RGB", (8, 8), (0, 128, 255)))

    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        output_dir = os.path.join(tmpdir, "images")
        create_test_map(input_path, [png, MapImage(b"\xde\xad\xbe\xef")])

        result = run_tool(input_path, "--images", output_dir)

        assert result.returncode == 0
        assert os.path.exists(os.path.join(output_dir, "image_000.png"))
        with open(os.path.join(output_dir, "image_001.bin"), "rb") as f:
            assert f.read() == b"\xde\xad\xbe\xef"
        # No JSON unless asked for
        assert not os.path.exists(os.path.join(tmpdir, "chernarus.json"))


def test_cli_images_keep_bytes():
    """CLI should write image bytes unchanged with a matching extension."""
    jpeg = MapImage.from_pil(Image.new("RGB", (8, 8), (200, 10, 10)), "JPEG")

    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        output_dir = os.path.join(tmpdir, "images")
        create_test_map(input_path, [jpeg])

        result = run_tool(input_path, "--images", output_dir)

        assert result.returncode == 0
        with open(os.path.join(output_dir, "image_000.jpg"), "rb") as f:
            assert f.read() == jpeg.data


def test_cli_pack_images_from_subdirectory():
    """CLI should pack images written to a directory other than the JSON's."""
    jpeg = MapImage.from_pil(Image.new("RGB", (8, 8), (200, 10, 10)), "JPEG")
    png = MapImage.from_pil(Image.new("RGB", (4, 4), (0, 128, 255)))
    raw = MapImage(b"\xde\xad\xbe\xef")

    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        json_path = os.path.join(tmpdir, "out", "layers.json")
        images_dir = os.path.join(tmpdir, "sub", "images")
        packed_path = os.path.join(tmpdir, "packed.map")
        os.makedirs(os.path.dirname(json_path))
        create_test_map(input_path, [jpeg, png, raw])

        result = run_tool(input_path, json_path, "--images", images_dir)
        assert result.returncode == 0

        with open(json_path, encoding="utf-8") as f:
            data = json.load(f)
        assert [entry["file"] for entry in data["images"]] == [
            os.path.join("..", "sub", "images", "image_000.jpg"),
            os.path.join("..", "sub", "images", "image_001.png"),
            os.path.join("..", "sub", "images", "image_002.bin"),
        ]

        result = run_tool("--pack", json_path, packed_path)
        assert result.returncode == 0, result.stderr

        packed = MapFile(packed_path)
        packed.read_content()
        assert [img.data for img in packed.get_all_images()] == [jpeg.data, png.data, raw.data]
        with open(input_path, "rb") as a, open(packed_path, "rb") as b:
            assert a.read() == b.read()


def test_cli_gltf():
    """CLI should export point layers to GLB."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "chernarus.map")
        output_path = os.path.join(tmpdir, "points.glb")
        create_test_map(input_path)

        result = run_tool(input_path, "--gltf", output_path)

        assert result.returncode == 0
        assert "Exported 2 layers" in result.stdout
        assert os.path.getsize(output_path) > 0


def test_cli_invalid_file():
    """CLI should report malformed input and exit non-zero."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, "broken.map")
        with open(input_path, "wb") as f:
            f.write(b"NOPE" + b"\x00" * 20)

        result = run_tool(input_path)

        assert result.returncode == 1
        assert "Error:" in result.stderr
        assert "magic" in result.stderr


def test_main_missing_file(capsys):
    with tempfile.TemporaryDirectory() as tmpdir:
        assert main([os.path.join(tmpdir, "missing.map")]) == 1

    assert "Error:" in capsys.readouterr().err


def test_dict_round_trip_with_image_files():
    """Should pack images referenced by file name relative to the JSON."""
    doc = MapFile()
    doc.add_map_objects([
        MapPositions("Loot", "Loot", [MapPosition(1.0, 2.0, 3.0)]),
        MapImage(b"\x09\x08"),
    ])

    data = map_to_dict(doc, ["image_000.bin"])
    assert data["images"] == [{"bytes": 2, "file": "image_000.bin"}]

    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "image_000.bin"), "wb") as f:
            f.write(b"\x09\x08")

        rebuilt = map_from_dict(json.loads(json.dumps(data)), base_dir=Path(tmpdir))

    assert rebuilt.to_bytes() == doc.to_bytes()


def test_dict_missing_name():
    with pytest.raises(KeyError):
        map_from_dict({"layers": [{"positions": []}]})
