"""Wavefront OBJ import into MeshModel.

Polygons are fan-triangulated around their first corner, the inverse of the
exporter's face coalescing. Each distinct position/texcoord/normal corner
becomes one model vertex.
"""
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple, Union

from mesh_errors import ContainerIOError, ObjParseError
from mesh_model import Material, MeshModel

Corner = Tuple[int, Optional[int], Optional[int]]


def _parse_floats(values: List[str], count: int, line_number: int) -> Tuple[float, ...]:
    if len(values) < count:
        raise ObjParseError(f"expected {count} values, got {len(values)}", line_number)
    try:
        return tuple(float(v) for v in values[:count])
    except ValueError as e:
        raise ObjParseError(str(e), line_number) from e


def _resolve(token: str, size: int, what: str, line_number: int) -> int:
    """Turn a 1-based or negative OBJ reference into a 0-based index."""
    try:
        index = int(token)
    except ValueError as e:
        raise ObjParseError(f"bad {what} index {token!r}", line_number) from e
    if index > 0:
        resolved = index - 1
    elif index < 0:
        resolved = size + index
    else:
        raise ObjParseError(f"{what} index 0 is not valid", line_number)
    if not 0 <= resolved < size:
        raise ObjParseError(f"{what} index {index} out of range ({size} defined)", line_number)
    return resolved


class ObjLoader:
    """Loads OBJ text into MeshModel instances."""

    def __init__(self, source: Union[str, Path, TextIO]):
        """Initialize loader with file path or text stream.

        Args:
            source: Path to OBJ file or file-like object opened in text mode
        """
        self.source = source

    def _get_file(self) -> TextIO:
        """Get file handle, opening if needed."""
        if isinstance(self.source, (str, Path)):
            try:
                return open(self.source, "r", encoding="utf-8")
            except OSError as e:
                raise ContainerIOError(f"Cannot open {self.source}: {e}") from e
        self.source.seek(0)
        return self.source

    def _close_file(self, file: TextIO):
        """Close file if we opened it."""
        if isinstance(self.source, (str, Path)):
            file.close()

    def load(self, model: Optional[MeshModel] = None) -> MeshModel:
        """Parse the OBJ source and populate a mesh model.

        Raises:
            ObjParseError: On malformed statements or bad references
        """
        if model is None:
            model = MeshModel()
        model.reset()

        file = self._get_file()
        try:
            lines = file.read().splitlines()
        finally:
            self._close_file(file)

        positions: List[Tuple[float, ...]] = []
        texcoords: List[Tuple[float, ...]] = []
        normals: List[Tuple[float, ...]] = []

        corner_lookup: Dict[Corner, int] = {}
        corners: List[Corner] = []
        indices: List[int] = []
        face_materials: List[int] = []
        materials: List[Material] = []
        material_ids: Dict[str, int] = {}
        current_material: Optional[int] = None

        for line_number, line in enumerate(lines, start=1):
            parts = line.split("#", 1)[0].split()
            if not parts:
                continue
            keyword, values = parts[0], parts[1:]

            if keyword == "v":
                positions.append(_parse_floats(values, 3, line_number))
            elif keyword == "vt":
                uv = _parse_floats(values, min(max(len(values), 1), 2), line_number)
                texcoords.append((uv + (0.0,))[:2])
            elif keyword == "vn":
                normals.append(_parse_floats(values, 3, line_number))
            elif keyword == "usemtl":
                name = " ".join(values)
                if name not in material_ids:
                    material_ids[name] = len(materials)
                    materials.append(Material(name=name))
                current_material = material_ids[name]
            elif keyword == "f":
                if len(values) < 3:
                    raise ObjParseError("face needs at least 3 corners", line_number)
                if current_material is None:
                    current_material = len(materials)
                    materials.append(Material(name="default"))
                    material_ids["default"] = current_material

                polygon = []
                for token in values:
                    refs = token.split("/")
                    if len(refs) > 3:
                        raise ObjParseError(f"bad face corner {token!r}", line_number)
                    p = _resolve(refs[0], len(positions), "position", line_number)
                    t = None
                    n = None
                    if len(refs) > 1 and refs[1]:
                        t = _resolve(refs[1], len(texcoords), "texcoord", line_number)
                    if len(refs) > 2 and refs[2]:
                        n = _resolve(refs[2], len(normals), "normal", line_number)
                    corner = (p, t, n)
                    if corner not in corner_lookup:
                        corner_lookup[corner] = len(corners)
                        corners.append(corner)
                    polygon.append(corner_lookup[corner])

                for k in range(1, len(polygon) - 1):
                    indices.extend((polygon[0], polygon[k], polygon[k + 1]))
                    face_materials.append(current_material)
            # o, g, s, mtllib and other statements carry nothing the model keeps

        model.positions = [positions[p] for p, _, _ in corners]
        if any(t is not None for _, t, _ in corners):
            model.texcoords = [texcoords[t] if t is not None else (0.0, 0.0) for _, t, _ in corners]
        if any(n is not None for _, _, n in corners):
            model.normals = [normals[n] if n is not None else (0.0, 0.0, 0.0) for _, _, n in corners]
        model.indices = indices
        model.attributes = face_materials
        model.materials = materials
        return model


def load_obj(source: Union[str, Path, TextIO], model: Optional[MeshModel] = None) -> MeshModel:
    """Load an OBJ file into a mesh model."""
    return ObjLoader(source).load(model)
