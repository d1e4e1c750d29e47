"""Type definitions for the SDKMESH container format.

SDKMESH layout (DXUT sample framework, little-endian, natural alignment):
- Header (104 bytes)
- Vertex buffer headers (288 bytes each), index buffer headers (32 bytes each)
- Meshes (224), subsets (144), frames (184), materials (1256)
- Per-mesh subset index arrays and frame influence arrays (uint32 each)
- Vertex and index payloads, each starting on a 4096-byte boundary
"""
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple, Union

SDKMESH_FILE_VERSION = 101
SDKMESH_FILE_VERSION_V2 = 200
SUPPORTED_VERSIONS = (SDKMESH_FILE_VERSION, SDKMESH_FILE_VERSION_V2)

MAX_VERTEX_ELEMENTS = 32
MAX_VERTEX_STREAMS = 16
MAX_NAME = 100
MAX_PATH = 260

BUFFER_ALIGNMENT = 4096
MAX_PADDING = BUFFER_ALIGNMENT - 1

INDEX_SENTINEL_16 = 0xFFFF
INDEX_SENTINEL_32 = 0xFFFFFFFF


def round_up_4k(value: int) -> int:
    """Round a byte count up to the next payload boundary."""
    return ((value + BUFFER_ALIGNMENT - 1) // BUFFER_ALIGNMENT) * BUFFER_ALIGNMENT


def c_string(data: bytes) -> str:
    """Decode a NUL-terminated name field."""
    return data.split(b"\x00", 1)[0].decode("ascii", errors="replace")


class DeclUsage(IntEnum):
    """D3DDECLUSAGE values."""
    POSITION = 0
    BLENDWEIGHT = 1
    BLENDINDICES = 2
    NORMAL = 3
    PSIZE = 4
    TEXCOORD = 5
    TANGENT = 6
    BINORMAL = 7
    TESSFACTOR = 8
    POSITIONT = 9
    COLOR = 10
    FOG = 11
    DEPTH = 12
    SAMPLE = 13


class DeclType(IntEnum):
    """D3DDECLTYPE values."""
    FLOAT1 = 0
    FLOAT2 = 1
    FLOAT3 = 2
    FLOAT4 = 3
    D3DCOLOR = 4
    UBYTE4 = 5
    SHORT2 = 6
    SHORT4 = 7
    UBYTE4N = 8
    SHORT2N = 9
    SHORT4N = 10
    USHORT2N = 11
    USHORT4N = 12
    UDEC3 = 13
    DEC3N = 14
    FLOAT16_2 = 15
    FLOAT16_4 = 16
    UNUSED = 17


class IndexType(IntEnum):
    """Index buffer element width."""
    IT_16BIT = 0
    IT_32BIT = 1

    @property
    def width(self) -> int:
        return 2 if self == IndexType.IT_16BIT else 4


class PrimitiveType(IntEnum):
    """Subset primitive topology."""
    TRIANGLE_LIST = 0
    TRIANGLE_STRIP = 1
    LINE_LIST = 2
    LINE_STRIP = 3
    POINT_LIST = 4
    TRIANGLE_LIST_ADJ = 5
    TRIANGLE_STRIP_ADJ = 6
    LINE_LIST_ADJ = 7
    LINE_STRIP_ADJ = 8
    QUAD_PATCH_LIST = 9
    TRIANGLE_PATCH_LIST = 10


@dataclass
class SdkMeshHeader:
    """File header (104 bytes)."""
    version: int
    is_big_endian: int
    header_size: int
    non_buffer_data_size: int
    buffer_data_size: int
    num_vertex_buffers: int
    num_index_buffers: int
    num_meshes: int
    num_total_subsets: int
    num_frames: int
    num_materials: int
    vertex_stream_headers_offset: int
    index_stream_headers_offset: int
    mesh_data_offset: int
    subset_data_offset: int
    frame_data_offset: int
    material_data_offset: int

    STRUCT_FORMAT = '<IB3xQQQ6I6Q'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SdkMeshHeader':
        return cls(*struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE]))

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.version,
            self.is_big_endian,
            self.header_size,
            self.non_buffer_data_size,
            self.buffer_data_size,
            self.num_vertex_buffers,
            self.num_index_buffers,
            self.num_meshes,
            self.num_total_subsets,
            self.num_frames,
            self.num_materials,
            self.vertex_stream_headers_offset,
            self.index_stream_headers_offset,
            self.mesh_data_offset,
            self.subset_data_offset,
            self.frame_data_offset,
            self.material_data_offset,
        )


@dataclass
class VertexElement:
    """D3DVERTEXELEMENT9 (8 bytes)."""
    stream: int
    offset: int
    type: int
    method: int
    usage: int
    usage_index: int

    STRUCT_FORMAT = '<HHBBBB'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)
    END_STREAM = 0xFF

    @classmethod
    def from_bytes(cls, data: bytes) -> 'VertexElement':
        return cls(*struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE]))

    @classmethod
    def end(cls) -> 'VertexElement':
        """D3DDECL_END() terminator."""
        return cls(cls.END_STREAM, 0, DeclType.UNUSED, 0, 0, 0)

    @property
    def is_end(self) -> bool:
        return self.stream == self.END_STREAM

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.stream, self.offset, self.type, self.method, self.usage, self.usage_index,
        )


@dataclass
class VertexBufferHeader:
    """Vertex buffer header (288 bytes).

    `declaration` holds the elements before the D3DDECL_END terminator.
    """
    num_vertices: int
    size_bytes: int
    stride_bytes: int
    declaration: List[VertexElement]
    data_offset: int

    STRUCT_FORMAT = f'<QQQ{MAX_VERTEX_ELEMENTS * 8}sQ'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'VertexBufferHeader':
        num_vertices, size_bytes, stride_bytes, decl_data, data_offset = struct.unpack(
            cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE]
        )
        declaration = []
        for i in range(MAX_VERTEX_ELEMENTS):
            element = VertexElement.from_bytes(decl_data[i * 8:(i + 1) * 8])
            if element.is_end:
                break
            declaration.append(element)
        return cls(
            num_vertices=num_vertices,
            size_bytes=size_bytes,
            stride_bytes=stride_bytes,
            declaration=declaration,
            data_offset=data_offset,
        )

    def to_bytes(self) -> bytes:
        decl_data = b"".join(e.to_bytes() for e in self.declaration)
        if len(self.declaration) < MAX_VERTEX_ELEMENTS:
            decl_data += VertexElement.end().to_bytes()
        return struct.pack(
            self.STRUCT_FORMAT,
            self.num_vertices,
            self.size_bytes,
            self.stride_bytes,
            decl_data,
            self.data_offset,
        )


@dataclass
class IndexBufferHeader:
    """Index buffer header (32 bytes)."""
    num_indices: int
    size_bytes: int
    index_type: int
    data_offset: int

    STRUCT_FORMAT = '<QQI4xQ'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'IndexBufferHeader':
        return cls(*struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE]))

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.num_indices, self.size_bytes, self.index_type, self.data_offset,
        )


@dataclass
class MeshHeader:
    """Mesh record (224 bytes)."""
    name: str
    num_vertex_buffers: int
    vertex_buffers: List[int]
    index_buffer: int
    num_subsets: int
    num_frame_influences: int
    bounding_box_center: Tuple[float, float, float]
    bounding_box_extents: Tuple[float, float, float]
    subset_offset: int
    frame_influence_offset: int

    STRUCT_FORMAT = f'<{MAX_NAME}sB3x{MAX_VERTEX_STREAMS}IIII3f3f4xQQ'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'MeshHeader':
        values = struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE])
        streams_end = 2 + MAX_VERTEX_STREAMS
        return cls(
            name=c_string(values[0]),
            num_vertex_buffers=values[1],
            vertex_buffers=list(values[2:streams_end]),
            index_buffer=values[streams_end],
            num_subsets=values[streams_end + 1],
            num_frame_influences=values[streams_end + 2],
            bounding_box_center=tuple(values[streams_end + 3:streams_end + 6]),
            bounding_box_extents=tuple(values[streams_end + 6:streams_end + 9]),
            subset_offset=values[streams_end + 9],
            frame_influence_offset=values[streams_end + 10],
        )

    def to_bytes(self) -> bytes:
        vertex_buffers = list(self.vertex_buffers) + [0] * MAX_VERTEX_STREAMS
        return struct.pack(
            self.STRUCT_FORMAT,
            self.name.encode("ascii"),
            self.num_vertex_buffers,
            *vertex_buffers[:MAX_VERTEX_STREAMS],
            self.index_buffer,
            self.num_subsets,
            self.num_frame_influences,
            *self.bounding_box_center,
            *self.bounding_box_extents,
            self.subset_offset,
            self.frame_influence_offset,
        )


@dataclass
class SubsetRecord:
    """Subset record (144 bytes): a run of indices sharing one material."""
    name: str
    material_id: int
    primitive_type: int
    index_start: int
    index_count: int
    vertex_start: int
    vertex_count: int

    STRUCT_FORMAT = f'<{MAX_NAME}sII4xQQQQ'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SubsetRecord':
        values = struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE])
        return cls(c_string(values[0]), *values[1:])

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.name.encode("ascii"),
            self.material_id,
            self.primitive_type,
            self.index_start,
            self.index_count,
            self.vertex_start,
            self.vertex_count,
        )


@dataclass
class FrameRecord:
    """Frame record (184 bytes)."""
    name: str
    mesh: int
    parent_frame: int
    child_frame: int
    sibling_frame: int
    matrix: List[float]
    animation_data_index: int

    STRUCT_FORMAT = f'<{MAX_NAME}s4I16fI'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FrameRecord':
        values = struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE])
        return cls(
            name=c_string(values[0]),
            mesh=values[1],
            parent_frame=values[2],
            child_frame=values[3],
            sibling_frame=values[4],
            matrix=list(values[5:21]),
            animation_data_index=values[21],
        )

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.name.encode("ascii"),
            self.mesh,
            self.parent_frame,
            self.child_frame,
            self.sibling_frame,
            *self.matrix,
            self.animation_data_index,
        )


@dataclass
class MaterialRecordV1:
    """Version 101 material record (1256 bytes).

    Name and texture fields keep their raw NUL-padded bytes; decoding them
    is left to the material converter.
    """
    name: bytes
    material_instance_path: bytes
    diffuse_texture: bytes
    normal_texture: bytes
    specular_texture: bytes
    diffuse: Tuple[float, float, float, float]
    ambient: Tuple[float, float, float, float]
    specular: Tuple[float, float, float, float]
    emissive: Tuple[float, float, float, float]
    power: float

    STRUCT_FORMAT = f'<{MAX_NAME}s{MAX_PATH}s{MAX_PATH}s{MAX_PATH}s{MAX_PATH}s16ff6Q'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'MaterialRecordV1':
        values = struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE])
        return cls(
            name=values[0],
            material_instance_path=values[1],
            diffuse_texture=values[2],
            normal_texture=values[3],
            specular_texture=values[4],
            diffuse=tuple(values[5:9]),
            ambient=tuple(values[9:13]),
            specular=tuple(values[13:17]),
            emissive=tuple(values[17:21]),
            power=values[21],
        )

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.name,
            self.material_instance_path,
            self.diffuse_texture,
            self.normal_texture,
            self.specular_texture,
            *self.diffuse,
            *self.ambient,
            *self.specular,
            *self.emissive,
            self.power,
            0, 0, 0, 0, 0, 0,
        )


@dataclass
class MaterialRecordV2:
    """Version 200 (PBR) material record, same 1256-byte footprint as V1."""
    name: bytes
    albedo_texture: bytes
    normal_texture: bytes
    rma_texture: bytes
    emissive_texture: bytes
    alpha: float

    STRUCT_FORMAT = f'<{MAX_NAME}s{MAX_PATH}s{MAX_PATH}s{MAX_PATH}s{MAX_PATH}sf60s4x6Q'
    STRUCT_SIZE = struct.calcsize(STRUCT_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'MaterialRecordV2':
        values = struct.unpack(cls.STRUCT_FORMAT, data[:cls.STRUCT_SIZE])
        return cls(*values[:6])

    def to_bytes(self) -> bytes:
        return struct.pack(
            self.STRUCT_FORMAT,
            self.name,
            self.albedo_texture,
            self.normal_texture,
            self.rma_texture,
            self.emissive_texture,
            self.alpha,
            b"",
            0, 0, 0, 0, 0, 0,
        )


MaterialRecord = Union[MaterialRecordV1, MaterialRecordV2]
MATERIAL_RECORD_SIZE = MaterialRecordV1.STRUCT_SIZE


@dataclass
class SdkMeshContainer:
    """Everything read from one SDKMESH file."""
    header: SdkMeshHeader
    vertex_buffer: VertexBufferHeader
    index_buffer: IndexBufferHeader
    mesh: MeshHeader
    subsets: List[SubsetRecord] = field(default_factory=list)
    frame: Optional[FrameRecord] = None
    materials: List[MaterialRecord] = field(default_factory=list)
    subset_indices: List[int] = field(default_factory=list)
    frame_influence: int = 0
    vertex_data: bytes = b""
    index_data: bytes = b""
