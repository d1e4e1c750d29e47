"""Vertex declaration matching and attribute decoding.

SDKMESH vertex formats list POSITION first, followed by an optional subset of
the other usages in a fixed order. Only declarations following that order are
recognized; anything else stops being matched.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from mesh_errors import AttributeDecodeError
from sdkmesh_types import DeclUsage, VertexBufferHeader, VertexElement
from vertex_stream import Value, VertexStream

PRIORITY_ORDER = (
    DeclUsage.BLENDWEIGHT,
    DeclUsage.BLENDINDICES,
    DeclUsage.NORMAL,
    DeclUsage.COLOR,
    DeclUsage.TANGENT,
    DeclUsage.BINORMAL,
    DeclUsage.TEXCOORD,
)

# usage -> (MeshModel attribute, components per vertex)
MODEL_ATTRIBUTES: Dict[DeclUsage, Tuple[str, int]] = {
    DeclUsage.POSITION: ("positions", 3),
    DeclUsage.BLENDWEIGHT: ("blend_weights", 4),
    DeclUsage.BLENDINDICES: ("blend_indices", 4),
    DeclUsage.NORMAL: ("normals", 3),
    DeclUsage.COLOR: ("colors", 4),
    DeclUsage.TANGENT: ("tangents", 4),
    DeclUsage.BINORMAL: ("bitangents", 3),
    DeclUsage.TEXCOORD: ("texcoords", 2),
}


def match_usages(declaration: Sequence[VertexElement]) -> List[Tuple[DeclUsage, VertexElement]]:
    """Match declaration slots against POSITION plus the fixed usage order.

    Each state of the matcher expects one usage. If the next unconsumed slot
    carries it, the slot is consumed; otherwise that usage is absent and the
    matcher moves on to the next state with the same slot.

    Returns:
        (usage, element) pairs for every recognized attribute, POSITION first

    Raises:
        AttributeDecodeError: If slot 0 is not POSITION
    """
    if not declaration or declaration[0].usage != DeclUsage.POSITION:
        raise AttributeDecodeError("Vertex declaration does not start with POSITION")

    found = [(DeclUsage.POSITION, declaration[0])]
    slot = 1
    for usage in PRIORITY_ORDER:
        if slot < len(declaration) and declaration[slot].usage == usage:
            found.append((usage, declaration[slot]))
            slot += 1
    return found


def _resize(value: Value, width: int) -> Value:
    if len(value) == width:
        return value
    if len(value) > width:
        return value[:width]
    return value + (0.0,) * (width - len(value))


def decode_attributes(
    vertex_buffer: VertexBufferHeader, data: bytes
) -> Dict[str, Optional[List[Value]]]:
    """Decode every recognized attribute of a vertex buffer.

    Args:
        vertex_buffer: Header with declaration, stride and vertex count
        data: Raw vertex payload

    Returns:
        Dict keyed by MeshModel attribute name. Attributes whose usage was
        not matched map to None.
    """
    stream = VertexStream(
        vertex_buffer.declaration,
        vertex_buffer.stride_bytes,
        vertex_buffer.num_vertices,
        data,
    )
    attributes = {name: None for name, _ in MODEL_ATTRIBUTES.values()}
    for usage, element in match_usages(vertex_buffer.declaration):
        name, width = MODEL_ATTRIBUTES[usage]
        attributes[name] = [_resize(v, width) for v in stream.read(usage, element.usage_index)]
    return attributes


def encode_attributes(model, declaration: Sequence[VertexElement], stride: int) -> bytes:
    """Pack a model's attributes into an interleaved vertex buffer.

    Raises:
        AttributeDecodeError: If a matched usage has no data in the model
    """
    stream = VertexStream(declaration, stride, model.vertex_count)
    for usage, element in match_usages(declaration):
        name, _ = MODEL_ATTRIBUTES[usage]
        values = getattr(model, name)
        if values is None:
            raise AttributeDecodeError(f"Mesh has no {name} for declared {usage.name}")
        stream.write(usage, values, element.usage_index)
    return stream.to_bytes()
