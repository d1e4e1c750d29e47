"""glTF exporter for MeshModel."""
import struct
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Material as GLTFMaterial,
    Mesh,
    Node,
    PbrMetallicRoughness,
    Primitive,
    Scene,
)

from mesh_errors import EmptyMesh
from mesh_model import MeshModel
from obj_exporter import material_name
from sdkmesh_types import INDEX_SENTINEL_32

FLOAT = 5126
UNSIGNED_INT = 5125
ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963
TRIANGLES = 4


class GLTFExporter:
    """Exports MeshModel data to glTF/GLB format."""

    def __init__(self, model: MeshModel, name: str = "mesh_0"):
        """Initialize exporter with a loaded mesh.

        Args:
            model: Mesh to export
            name: Node and mesh name in the glTF scene
        """
        self.model = model
        self.name = name

    def _compute_bounds(self, vertices: Sequence[Sequence[float]]) -> Tuple[List[float], List[float]]:
        """Compute min/max bounds for vertices."""
        if not vertices:
            return [0, 0, 0], [0, 0, 0]

        min_bounds = [float("inf")] * 3
        max_bounds = [float("-inf")] * 3

        for v in vertices:
            for i in range(3):
                min_bounds[i] = min(min_bounds[i], v[i])
                max_bounds[i] = max(max_bounds[i], v[i])

        return min_bounds, max_bounds

    def _triangles_by_material(self) -> Dict[int, List[int]]:
        """Group triangle indices by material id, in first-use order."""
        groups: Dict[int, List[int]] = {}
        for face, triangle in enumerate(self.model.triangles()):
            if INDEX_SENTINEL_32 in triangle:
                continue
            groups.setdefault(self.model.face_material(face), []).extend(triangle)
        return groups

    def _create_material(self, material_id: int) -> GLTFMaterial:
        if material_id < len(self.model.materials):
            material = self.model.materials[material_id]
            base_color = list(material.diffuse_color) + [material.alpha]
            alpha_mode = "BLEND" if material.alpha < 1.0 else "OPAQUE"
        else:
            base_color = [1.0, 1.0, 1.0, 1.0]
            alpha_mode = "OPAQUE"
        return GLTFMaterial(
            name=material_name(self.model, material_id),
            pbrMetallicRoughness=PbrMetallicRoughness(
                baseColorFactor=base_color,
                metallicFactor=0.0,
            ),
            alphaMode=alpha_mode,
        )

    def export(self, output_path: Union[str, Path]):
        """Export the mesh to a glTF/GLB file.

        Args:
            output_path: Path for output .glb (or .gltf) file

        Raises:
            EmptyMesh: If the mesh has no triangles
        """
        model = self.model
        groups = self._triangles_by_material()
        if model.is_empty or not groups:
            raise EmptyMesh("Mesh has no triangles to export")

        gltf = GLTF2()
        gltf.asset = Asset(version="2.0", generator="SDKMESH Converter")
        gltf.bufferViews = []
        gltf.accessors = []

        buffer_data = b""

        def add_view(data: bytes, target: int) -> int:
            nonlocal buffer_data
            # Views start on 4-byte boundaries
            if len(buffer_data) % 4:
                buffer_data += b"\x00" * (4 - len(buffer_data) % 4)
            gltf.bufferViews.append(
                BufferView(
                    buffer=0,
                    byteOffset=len(buffer_data),
                    byteLength=len(data),
                    target=target,
                )
            )
            buffer_data += data
            return len(gltf.bufferViews) - 1

        def add_vertex_accessor(values: Sequence[Sequence[float]], width: int, accessor_type: str, bounds: bool = False) -> int:
            flat = [c for v in values for c in v[:width]]
            view = add_view(struct.pack(f"<{len(flat)}f", *flat), ARRAY_BUFFER)
            accessor = Accessor(
                bufferView=view,
                componentType=FLOAT,
                count=len(values),
                type=accessor_type,
            )
            if bounds:
                accessor.min, accessor.max = self._compute_bounds(values)
            gltf.accessors.append(accessor)
            return len(gltf.accessors) - 1

        attributes = Attributes(
            POSITION=add_vertex_accessor(model.positions, 3, "VEC3", bounds=True)
        )
        if model.normals is not None:
            attributes.NORMAL = add_vertex_accessor(model.normals, 3, "VEC3")
        if model.texcoords is not None:
            attributes.TEXCOORD_0 = add_vertex_accessor(model.texcoords, 2, "VEC2")

        primitives = []
        gltf.materials = []
        for material_id, indices in groups.items():
            view = add_view(struct.pack(f"<{len(indices)}I", *indices), ELEMENT_ARRAY_BUFFER)
            gltf.accessors.append(
                Accessor(
                    bufferView=view,
                    componentType=UNSIGNED_INT,
                    count=len(indices),
                    type="SCALAR",
                )
            )
            gltf.materials.append(self._create_material(material_id))
            primitives.append(
                Primitive(
                    attributes=attributes,
                    indices=len(gltf.accessors) - 1,
                    material=len(gltf.materials) - 1,
                    mode=TRIANGLES,
                )
            )

        gltf.meshes = [Mesh(name=self.name, primitives=primitives)]
        gltf.nodes = [Node(mesh=0, name=self.name)]
        gltf.scenes = [Scene(nodes=[0])]
        gltf.scene = 0
        gltf.buffers = [Buffer(byteLength=len(buffer_data))]

        # Set binary data and save
        gltf.set_binary_blob(buffer_data)
        gltf.save(str(output_path))
