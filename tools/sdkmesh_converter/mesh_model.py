"""In-memory mesh shared by loaders and exporters."""
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Vec4 = Tuple[float, float, float, float]


@dataclass
class Material:
    """Material in a format-neutral form."""
    name: str = ""
    diffuse_texture: str = ""
    normal_texture: str = ""
    specular_texture: str = ""
    emissive_texture: str = ""
    ambient_color: Vec3 = (0.0, 0.0, 0.0)
    diffuse_color: Vec3 = (0.0, 0.0, 0.0)
    specular_color: Vec3 = (0.0, 0.0, 0.0)
    emissive_color: Vec3 = (0.0, 0.0, 0.0)
    specular_power: float = 0.0
    alpha: float = 1.0


@dataclass
class MeshModel:
    """Vertex attributes, triangle indices and materials of one mesh.

    Optional attribute lists are None when the source did not declare them.
    `indices` is a flat triangle list (three per face) of 32-bit indices and
    `attributes` holds one material id per face.
    """
    positions: List[Vec3] = field(default_factory=list)
    normals: Optional[List[Vec3]] = None
    tangents: Optional[List[Vec4]] = None
    bitangents: Optional[List[Vec3]] = None
    texcoords: Optional[List[Vec2]] = None
    colors: Optional[List[Vec4]] = None
    blend_indices: Optional[List[Vec4]] = None
    blend_weights: Optional[List[Vec4]] = None
    indices: List[int] = field(default_factory=list)
    attributes: List[int] = field(default_factory=list)
    materials: List[Material] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def face_count(self) -> int:
        return len(self.indices) // 3

    @property
    def is_empty(self) -> bool:
        return not self.indices

    def reset(self):
        """Drop all mesh data so the model can be loaded again."""
        self.positions = []
        self.normals = None
        self.tangents = None
        self.bitangents = None
        self.texcoords = None
        self.colors = None
        self.blend_indices = None
        self.blend_weights = None
        self.indices = []
        self.attributes = []
        self.materials = []

    def triangles(self) -> Iterator[Tuple[int, int, int]]:
        """Iterate faces as index triples."""
        for i in range(0, len(self.indices) - 2, 3):
            yield self.indices[i], self.indices[i + 1], self.indices[i + 2]

    def face_material(self, face: int) -> int:
        """Material id of a face (0 when no per-face ids are stored)."""
        if face < len(self.attributes):
            return self.attributes[face]
        return 0
