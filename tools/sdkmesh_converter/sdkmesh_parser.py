"""Parser for DXUT SDKMESH container files."""
import struct
from typing import BinaryIO, List, Tuple

from mesh_errors import ContainerIOError, MalformedContainer, UnsupportedVersion
from sdkmesh_types import (
    MATERIAL_RECORD_SIZE,
    MAX_PADDING,
    SDKMESH_FILE_VERSION,
    SUPPORTED_VERSIONS,
    FrameRecord,
    IndexBufferHeader,
    IndexType,
    MaterialRecordV1,
    MaterialRecordV2,
    MeshHeader,
    PrimitiveType,
    SdkMeshContainer,
    SdkMeshHeader,
    SubsetRecord,
    VertexBufferHeader,
    round_up_4k,
)


class _SectionReader:
    """Sequential reader that rejects short reads."""

    def __init__(self, file: BinaryIO):
        self.file = file

    def read(self, size: int, what: str) -> bytes:
        try:
            data = self.file.read(size)
        except OSError as e:
            raise ContainerIOError(f"Failed to read {what}: {e}") from e
        if len(data) != size:
            raise ContainerIOError(
                f"Unexpected end of file in {what}: wanted {size} bytes, got {len(data)}"
            )
        return data


class SdkMeshParser:
    """Parses and validates SDKMESH files holding a single mesh."""

    # Fixed layout this reader accepts
    NUM_VERTEX_BUFFERS = 1
    NUM_INDEX_BUFFERS = 1
    NUM_MESHES = 1
    NUM_FRAMES = 1
    NUM_FRAME_INFLUENCES = 1

    def parse_header(self, file: BinaryIO) -> SdkMeshHeader:
        """Parse the file header from an open file.

        Raises:
            ContainerIOError: If the file is too short
            UnsupportedVersion: If the version tag is not recognized
        """
        data = _SectionReader(file).read(SdkMeshHeader.STRUCT_SIZE, "header")
        return self.parse_header_bytes(data)

    def parse_header_bytes(self, data: bytes) -> SdkMeshHeader:
        """Parse the file header from bytes.

        Args:
            data: At least 104 bytes of header data

        Returns:
            SdkMeshHeader with parsed data

        Raises:
            ContainerIOError: If data is too short
            UnsupportedVersion: If the version tag is not recognized
        """
        if len(data) < SdkMeshHeader.STRUCT_SIZE:
            raise ContainerIOError("Header data too short")

        header = SdkMeshHeader.from_bytes(data)
        if header.version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersion(header.version)
        return header

    def parse(self, file: BinaryIO) -> SdkMeshContainer:
        """Read a whole container from an open file positioned at its start.

        Static records are read in file order. The fixed-size headers are
        validated before the subset and material tables are read, and the
        whole static section before any buffer payload is read.

        Raises:
            ContainerIOError: On short reads or I/O failure
            UnsupportedVersion: If the version tag is not recognized
            MalformedContainer: If any offset, size or count is inconsistent
        """
        reader = _SectionReader(file)
        header = self.parse_header_bytes(reader.read(SdkMeshHeader.STRUCT_SIZE, "header"))

        vertex_buffer = VertexBufferHeader.from_bytes(
            reader.read(VertexBufferHeader.STRUCT_SIZE, "vertex buffer header")
        )
        index_buffer = IndexBufferHeader.from_bytes(
            reader.read(IndexBufferHeader.STRUCT_SIZE, "index buffer header")
        )
        mesh = MeshHeader.from_bytes(reader.read(MeshHeader.STRUCT_SIZE, "mesh header"))

        # Table counts size every read below
        self.validate_headers(header, mesh, vertex_buffer, index_buffer)

        subsets = [
            SubsetRecord.from_bytes(reader.read(SubsetRecord.STRUCT_SIZE, f"subset {i}"))
            for i in range(mesh.num_subsets)
        ]
        frame = FrameRecord.from_bytes(reader.read(FrameRecord.STRUCT_SIZE, "frame"))

        material_cls = MaterialRecordV1 if header.version == SDKMESH_FILE_VERSION else MaterialRecordV2
        materials = [
            material_cls.from_bytes(reader.read(MATERIAL_RECORD_SIZE, f"material {i}"))
            for i in range(header.num_materials)
        ]

        subset_indices = list(struct.unpack(
            f"<{mesh.num_subsets}I",
            reader.read(4 * mesh.num_subsets, "subset index array"),
        ))
        frame_influence = struct.unpack("<I", reader.read(4, "frame influence"))[0]

        container = SdkMeshContainer(
            header=header,
            vertex_buffer=vertex_buffer,
            index_buffer=index_buffer,
            mesh=mesh,
            subsets=subsets,
            frame=frame,
            materials=materials,
            subset_indices=subset_indices,
            frame_influence=frame_influence,
        )
        self.validate(container)

        container.vertex_data = reader.read(vertex_buffer.size_bytes, "vertex buffer")
        self._skip_padding(reader, vertex_buffer.size_bytes, "vertex buffer")
        container.index_data = reader.read(index_buffer.size_bytes, "index buffer")
        self._skip_padding(reader, index_buffer.size_bytes, "index buffer")
        return container

    def _skip_padding(self, reader: _SectionReader, size_bytes: int, what: str):
        """Consume the alignment padding that follows a payload."""
        padding = round_up_4k(size_bytes) - size_bytes
        if padding > MAX_PADDING:
            raise MalformedContainer(f"{what} padding of {padding} bytes exceeds {MAX_PADDING}")
        if padding:
            reader.read(padding, f"{what} padding")

    def expected_layout(
        self,
        header: SdkMeshHeader,
        mesh: MeshHeader,
        vb: VertexBufferHeader,
        ib: IndexBufferHeader,
    ) -> List[Tuple[str, int, int]]:
        """Pair every stored offset/size field with the value the layout implies.

        Table sizes come from the header's subset and material counts.

        Returns:
            List of (field name, stored value, expected value)
        """
        header_size = (
            SdkMeshHeader.STRUCT_SIZE
            + VertexBufferHeader.STRUCT_SIZE * self.NUM_VERTEX_BUFFERS
            + IndexBufferHeader.STRUCT_SIZE * self.NUM_INDEX_BUFFERS
        )
        vertex_headers_offset = SdkMeshHeader.STRUCT_SIZE
        index_headers_offset = vertex_headers_offset + VertexBufferHeader.STRUCT_SIZE * self.NUM_VERTEX_BUFFERS
        mesh_offset = index_headers_offset + IndexBufferHeader.STRUCT_SIZE * self.NUM_INDEX_BUFFERS
        subset_offset = mesh_offset + MeshHeader.STRUCT_SIZE * self.NUM_MESHES
        frame_offset = subset_offset + SubsetRecord.STRUCT_SIZE * header.num_total_subsets
        material_offset = frame_offset + FrameRecord.STRUCT_SIZE * self.NUM_FRAMES
        subset_table_offset = material_offset + MATERIAL_RECORD_SIZE * header.num_materials
        frame_influence_offset = subset_table_offset + 4 * mesh.num_subsets
        static_end = frame_influence_offset + 4 * self.NUM_FRAME_INFLUENCES

        vertex_data_offset = static_end
        index_data_offset = vertex_data_offset + round_up_4k(vb.size_bytes)
        buffer_data_size = round_up_4k(vb.size_bytes) + round_up_4k(ib.size_bytes)

        return [
            ("HeaderSize", header.header_size, header_size),
            ("VertexStreamHeadersOffset", header.vertex_stream_headers_offset, vertex_headers_offset),
            ("IndexStreamHeadersOffset", header.index_stream_headers_offset, index_headers_offset),
            ("MeshDataOffset", header.mesh_data_offset, mesh_offset),
            ("SubsetDataOffset", header.subset_data_offset, subset_offset),
            ("FrameDataOffset", header.frame_data_offset, frame_offset),
            ("MaterialDataOffset", header.material_data_offset, material_offset),
            ("NonBufferDataSize", header.non_buffer_data_size, static_end - header_size),
            ("BufferDataSize", header.buffer_data_size, buffer_data_size),
            ("Mesh.SubsetOffset", mesh.subset_offset, subset_table_offset),
            ("Mesh.FrameInfluenceOffset", mesh.frame_influence_offset, frame_influence_offset),
            ("VertexBuffer.DataOffset", vb.data_offset, vertex_data_offset),
            ("IndexBuffer.DataOffset", ib.data_offset, index_data_offset),
        ]

    def validate_headers(
        self,
        header: SdkMeshHeader,
        mesh: MeshHeader,
        vb: VertexBufferHeader,
        ib: IndexBufferHeader,
    ):
        """Check counts, offsets and sizes stored in the fixed-size headers.

        Needs nothing past the mesh header, so it can run before any
        variable-length table is read.

        Raises:
            UnsupportedVersion: If the version tag is not recognized
            MalformedContainer: On the first inconsistency found
        """
        if header.version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersion(header.version)
        if header.is_big_endian:
            raise MalformedContainer("Big-endian containers are not supported")

        counts = [
            ("NumVertexBuffers", header.num_vertex_buffers, self.NUM_VERTEX_BUFFERS),
            ("NumIndexBuffers", header.num_index_buffers, self.NUM_INDEX_BUFFERS),
            ("NumMeshes", header.num_meshes, self.NUM_MESHES),
            ("NumFrames", header.num_frames, self.NUM_FRAMES),
            ("NumTotalSubsets", header.num_total_subsets, mesh.num_subsets),
            ("Mesh.NumVertexBuffers", mesh.num_vertex_buffers, self.NUM_VERTEX_BUFFERS),
            ("Mesh.NumFrameInfluences", mesh.num_frame_influences, self.NUM_FRAME_INFLUENCES),
        ]
        for name, actual, expected in counts:
            if actual != expected:
                raise MalformedContainer(f"{name} is {actual}, expected {expected}")

        for name, actual, expected in self.expected_layout(header, mesh, vb, ib):
            if actual != expected:
                raise MalformedContainer(f"{name} is {actual}, expected {expected}")

    def validate(self, container: SdkMeshContainer):
        """Check a container's static section for internal consistency.

        Args:
            container: Container with all static records filled in

        Raises:
            UnsupportedVersion: If the version tag is not recognized
            MalformedContainer: On the first inconsistency found
        """
        header = container.header
        mesh = container.mesh
        vb = container.vertex_buffer
        ib = container.index_buffer

        self.validate_headers(header, mesh, vb, ib)
        if len(container.subsets) != header.num_total_subsets:
            raise MalformedContainer(
                f"{len(container.subsets)} subsets read, header declares {header.num_total_subsets}"
            )
        if len(container.materials) != header.num_materials:
            raise MalformedContainer(
                f"{len(container.materials)} materials read, header declares {header.num_materials}"
            )

        if mesh.vertex_buffers[0] != 0 or mesh.index_buffer != 0:
            raise MalformedContainer("Mesh references a missing vertex or index buffer")
        if container.frame_influence >= self.NUM_FRAMES:
            raise MalformedContainer(f"Frame influence {container.frame_influence} out of range")

        if vb.size_bytes != vb.num_vertices * vb.stride_bytes:
            raise MalformedContainer(
                f"Vertex buffer is {vb.size_bytes} bytes, expected "
                f"{vb.num_vertices} x {vb.stride_bytes}"
            )
        if ib.index_type not in (IndexType.IT_16BIT, IndexType.IT_32BIT):
            raise MalformedContainer(f"Unknown index type: {ib.index_type}")
        if ib.size_bytes != ib.num_indices * IndexType(ib.index_type).width:
            raise MalformedContainer(
                f"Index buffer is {ib.size_bytes} bytes, expected "
                f"{ib.num_indices} x {IndexType(ib.index_type).width}"
            )
        if ib.num_indices % 3:
            raise MalformedContainer(f"Index count {ib.num_indices} is not a multiple of 3")

        for slot in container.subset_indices:
            if slot >= len(container.subsets):
                raise MalformedContainer(f"Subset index {slot} out of range")
        for i, subset in enumerate(container.subsets):
            if subset.primitive_type != PrimitiveType.TRIANGLE_LIST:
                raise MalformedContainer(
                    f"Subset {i} has unsupported primitive type {subset.primitive_type}"
                )
            if subset.material_id >= len(container.materials):
                raise MalformedContainer(f"Subset {i} material {subset.material_id} out of range")
            if subset.index_start + subset.index_count > ib.num_indices:
                raise MalformedContainer(f"Subset {i} indices run past the index buffer")
