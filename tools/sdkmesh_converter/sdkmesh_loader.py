"""Loading SDKMESH files into a MeshModel.

Pipeline: container parser -> attribute decoder + index canonicalizer +
material converter -> MeshModel. The model is reset before loading and only
filled in once every step has succeeded.
"""
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from attribute_decoder import decode_attributes
from index_canonicalizer import unpack_indices, widen_indices
from material_converter import convert_materials
from mesh_errors import ContainerIOError
from mesh_model import MeshModel
from sdkmesh_parser import SdkMeshParser
from sdkmesh_types import SdkMeshContainer


class SdkMeshLoader:
    """Loads SDKMESH files into MeshModel instances."""

    def __init__(self, source: Union[str, Path, BinaryIO]):
        """Initialize loader with file path or file-like object.

        Args:
            source: Path to SDKMESH file or file-like object
        """
        self.source = source
        self.parser = SdkMeshParser()
        self.container: Optional[SdkMeshContainer] = None

    def _get_file(self) -> BinaryIO:
        """Get file handle, opening if needed."""
        if isinstance(self.source, (str, Path)):
            try:
                return open(self.source, "rb")
            except OSError as e:
                raise ContainerIOError(f"Cannot open {self.source}: {e}") from e
        self.source.seek(0)
        return self.source

    def _close_file(self, file: BinaryIO):
        """Close file if we opened it."""
        if isinstance(self.source, (str, Path)):
            file.close()

    def load(self, model: Optional[MeshModel] = None) -> MeshModel:
        """Parse the source and populate a mesh model.

        Args:
            model: Model to fill; a new one is created when omitted

        Returns:
            The populated model

        Raises:
            MeshConvertError: If any step fails; the model is left empty
        """
        if model is None:
            model = MeshModel()
        model.reset()

        file = self._get_file()
        try:
            container = self.parser.parse(file)
        finally:
            self._close_file(file)

        vb = container.vertex_buffer
        ib = container.index_buffer
        face_count = ib.num_indices // 3

        attributes = decode_attributes(vb, container.vertex_data)
        indices = widen_indices(
            unpack_indices(container.index_data, ib.index_type, ib.num_indices),
            ib.index_type,
            face_count,
            vb.num_vertices,
        )
        materials = convert_materials(container.materials, container.header.version)
        face_materials = self._face_materials(container, face_count)

        for name, values in attributes.items():
            setattr(model, name, values)
        model.indices = indices
        model.attributes = face_materials
        model.materials = materials

        self.container = container
        return model

    def _face_materials(self, container: SdkMeshContainer, face_count: int) -> List[int]:
        """Expand the mesh's subsets into one material id per face."""
        face_materials = [0] * face_count
        for slot in container.subset_indices:
            subset = container.subsets[slot]
            first = subset.index_start // 3
            last = (subset.index_start + subset.index_count) // 3
            for face in range(first, min(last, face_count)):
                face_materials[face] = subset.material_id
        return face_materials


def load_sdkmesh(source: Union[str, Path, BinaryIO], model: Optional[MeshModel] = None) -> MeshModel:
    """Load an SDKMESH file into a mesh model."""
    return SdkMeshLoader(source).load(model)
