"""glTF exporter for map position layers."""
import struct
from typing import List, Optional, Sequence, Tuple

from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Mesh,
    Node,
    Primitive,
    Scene,
)

from .map_file import MapFile
from .map_positions import MapPositions

# glTF constants
ARRAY_BUFFER = 34962
FLOAT = 5126
POINTS = 0


class PositionsGLTFExporter:
    """Exports map position layers to a GLB point cloud.

    Each layer becomes one node with one mesh holding a single POINTS
    primitive. Node names are the layers' display names.
    """

    def __init__(self, map_file: MapFile):
        """Initialize exporter with a loaded map document.

        Args:
            map_file: Document whose position layers are exported
        """
        self.map_file = map_file

    def _compute_bounds(self, vertices: List[Tuple[float, float, float]]) -> Tuple[List[float], List[float]]:
        """Compute min/max bounds for a non-empty vertex list."""
        min_bounds = [float("inf")] * 3
        max_bounds = [float("-inf")] * 3

        for v in vertices:
            for i in range(3):
                min_bounds[i] = min(min_bounds[i], v[i])
                max_bounds[i] = max(max_bounds[i], v[i])

        return min_bounds, max_bounds

    def _select_layers(self, layers: Optional[Sequence[str]]) -> List[MapPositions]:
        """Pick layers to export by display name, all layers if None."""
        all_layers = self.map_file.get_all_positions()
        if layers is None:
            selected = all_layers
        else:
            wanted = set(layers)
            selected = [layer for layer in all_layers if layer.display_name in wanted]
        return [layer for layer in selected if layer.positions]

    def build(self, layers: Optional[Sequence[str]] = None) -> GLTF2:
        """Build the glTF document in memory.

        Args:
            layers: Display names to export; every non-empty layer if None

        Raises:
            ValueError: If no selected layer has positions
        """
        selected = self._select_layers(layers)
        if not selected:
            raise ValueError("No position data found in map file")

        gltf = GLTF2()
        gltf.asset = Asset(version="2.0", generator="Map File Tools")

        buffer_data = b""
        for index, layer in enumerate(selected):
            vertices = [pos.as_tuple() for pos in layer.positions]

            # glTF buffers are little-endian
            vertex_data = b"".join(struct.pack("<fff", *v) for v in vertices)

            gltf.bufferViews.append(
                BufferView(
                    buffer=0,
                    byteOffset=len(buffer_data),
                    byteLength=len(vertex_data),
                    target=ARRAY_BUFFER,
                )
            )
            buffer_data += vertex_data

            min_bounds, max_bounds = self._compute_bounds(vertices)
            gltf.accessors.append(
                Accessor(
                    bufferView=index,
                    componentType=FLOAT,
                    count=len(vertices),
                    type="VEC3",
                    max=max_bounds,
                    min=min_bounds,
                )
            )

            gltf.meshes.append(
                Mesh(
                    name=layer.name,
                    primitives=[Primitive(attributes=Attributes(POSITION=index), mode=POINTS)],
                )
            )
            gltf.nodes.append(Node(mesh=index, name=layer.display_name))

        gltf.buffers = [Buffer(byteLength=len(buffer_data))]
        gltf.scenes = [Scene(nodes=list(range(len(selected))))]
        gltf.scene = 0
        gltf.set_binary_blob(buffer_data)
        return gltf

    def export(self, output_path: str, layers: Optional[Sequence[str]] = None) -> int:
        """Export position layers to a GLB file.

        Args:
            output_path: Path for output .glb file
            layers: Display names to export; every non-empty layer if None

        Returns:
            Number of layers written

        Raises:
            ValueError: If no selected layer has positions
        """
        gltf = self.build(layers)
        gltf.save(output_path)
        return len(gltf.nodes)
