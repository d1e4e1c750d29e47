"""Wavefront OBJ export for MeshModel.

Triangle fans are merged back into polygons, and positions, texture
coordinates and normals are each deduplicated into their own index space.
"""
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from mesh_errors import EmptyMesh
from mesh_model import MeshModel
from sdkmesh_types import INDEX_SENTINEL_32


@dataclass
class FaceGroup:
    """Polygon rebuilt from a run of fan triangles."""
    corners: List[int] = field(default_factory=list)
    first_face: int = 0


class AttributePool:
    """Insertion-ordered set of attribute values keyed by exact bit pattern."""

    def __init__(self):
        self.values: List[tuple] = []
        self._lookup: Dict[bytes, int] = {}

    @staticmethod
    def key(value: Sequence[float]) -> bytes:
        return struct.pack(f"<{len(value)}d", *value)

    def insert(self, value: Sequence[float]) -> int:
        """Return the 0-based index of value, adding it if unseen."""
        key = self.key(value)
        index = self._lookup.get(key)
        if index is None:
            index = len(self.values)
            self._lookup[key] = index
            self.values.append(tuple(value))
        return index

    def __len__(self) -> int:
        return len(self.values)


def coalesce_faces(indices: Sequence[int]) -> List[FaceGroup]:
    """Merge consecutive fan triangles into polygons.

    A triangle (j0, j1, j2) extends the current polygon only when j0 is the
    polygon's first corner and j1 its last corner. Triangles that use the
    sentinel index are dropped.
    """
    face_count = len(indices) // 3
    groups = []
    face = 0
    while face < face_count:
        i0, i1, i2 = indices[face * 3:face * 3 + 3]
        group = FaceGroup(corners=[i0, i1, i2], first_face=face)
        face += 1
        if INDEX_SENTINEL_32 in group.corners:
            continue

        trailing = i2
        while face < face_count:
            j0, j1, j2 = indices[face * 3:face * 3 + 3]
            if j0 != i0 or j1 != trailing or j2 == INDEX_SENTINEL_32:
                break
            group.corners.append(j2)
            trailing = j2
            face += 1
        groups.append(group)
    return groups


def _fmt(value: float) -> str:
    # 9 significant digits round-trip a 32-bit float
    return f"{value:.9g}"


def material_name(model: MeshModel, material_id: int) -> str:
    """Name used for a material in OBJ/MTL output."""
    if material_id < len(model.materials) and model.materials[material_id].name:
        return model.materials[material_id].name
    return f"material{material_id}"


class ObjExporter:
    """Exports a MeshModel as OBJ text."""

    def __init__(self, model: MeshModel, material_library: Optional[str] = None):
        """Initialize exporter.

        Args:
            model: Loaded mesh
            material_library: MTL file name; when given, `mtllib` and
                `usemtl` statements are written. A polygon takes the
                material of its first triangle, so a fan that crosses a
                subset boundary is written under the first subset's material.
        """
        self.model = model
        self.material_library = material_library

    def build_lines(self) -> List[str]:
        """Build the OBJ document as a list of lines.

        Raises:
            EmptyMesh: If the model has no triangles
        """
        model = self.model
        if model.is_empty:
            raise EmptyMesh("Mesh has no triangles to export")

        positions = AttributePool()
        texcoords = AttributePool()
        normals = AttributePool()
        has_texcoords = model.texcoords is not None
        has_normals = model.normals is not None

        face_lines = []
        current_material = None
        for group in coalesce_faces(model.indices):
            if self.material_library is not None:
                material_id = model.face_material(group.first_face)
                if material_id != current_material:
                    face_lines.append(f"usemtl {material_name(model, material_id)}")
                    current_material = material_id

            tokens = []
            for vertex in group.corners:
                p = positions.insert(model.positions[vertex]) + 1
                t = texcoords.insert(model.texcoords[vertex]) + 1 if has_texcoords else None
                n = normals.insert(model.normals[vertex]) + 1 if has_normals else None
                if t is not None and n is not None:
                    tokens.append(f"{p}/{t}/{n}")
                elif t is not None:
                    tokens.append(f"{p}/{t}")
                elif n is not None:
                    tokens.append(f"{p}//{n}")
                else:
                    tokens.append(str(p))
            face_lines.append("f " + " ".join(tokens))

        if not face_lines:
            raise EmptyMesh("Mesh has no usable triangles to export")

        lines = []
        if self.material_library is not None:
            lines.append(f"mtllib {self.material_library}")
        lines.extend("v " + " ".join(_fmt(c) for c in v[:3]) for v in positions.values)
        lines.extend("vt " + " ".join(_fmt(c) for c in v[:2]) for v in texcoords.values)
        lines.extend("vn " + " ".join(_fmt(c) for c in v[:3]) for v in normals.values)
        lines.extend(face_lines)
        return lines

    def to_text(self) -> str:
        return "\n".join(self.build_lines()) + "\n"

    def export(self, output_path: Union[str, Path]):
        """Write the OBJ document to a file.

        Nothing is written if the mesh is empty.
        """
        text = self.to_text()
        with open(output_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)


def write_mtl(model: MeshModel, output_path: Union[str, Path]):
    """Write the model's materials as an MTL library."""
    lines = []
    for material_id, material in enumerate(model.materials):
        lines.append(f"newmtl {material_name(model, material_id)}")
        lines.append("Ka " + " ".join(_fmt(c) for c in material.ambient_color))
        lines.append("Kd " + " ".join(_fmt(c) for c in material.diffuse_color))
        lines.append("Ks " + " ".join(_fmt(c) for c in material.specular_color))
        lines.append("Ke " + " ".join(_fmt(c) for c in material.emissive_color))
        lines.append(f"Ns {_fmt(material.specular_power)}")
        lines.append(f"d {_fmt(material.alpha)}")
        if material.diffuse_texture:
            lines.append(f"map_Kd {material.diffuse_texture}")
        if material.normal_texture:
            lines.append(f"map_bump {material.normal_texture}")
        if material.specular_texture:
            lines.append(f"map_Ks {material.specular_texture}")
        if material.emissive_texture:
            lines.append(f"map_Ke {material.emissive_texture}")
        lines.append("")

    with open(output_path, "w", encoding="utf-8", newline="\n") as f:
        f.write("\n".join(lines))


def export_obj(model: MeshModel, output_path: Union[str, Path], material_library: Optional[str] = None):
    """Export a model to an OBJ file."""
    ObjExporter(model, material_library).export(output_path)
