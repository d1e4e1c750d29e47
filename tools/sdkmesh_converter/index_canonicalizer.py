"""Widening of 16/32-bit index buffers to canonical 32-bit indices."""
import struct
from typing import List, Optional, Sequence

from mesh_errors import IndexOverflow, InvalidIndex, MalformedContainer
from sdkmesh_types import INDEX_SENTINEL_16, INDEX_SENTINEL_32, IndexType

# face_count * 3 must stay below this to size the canonical buffer
INDEX_GUARD = 0xFFFFFFFF


def unpack_indices(data: bytes, index_type: int, count: int) -> List[int]:
    """Unpack raw index buffer bytes.

    Raises:
        MalformedContainer: If the index type is unknown or data is short
    """
    if index_type == IndexType.IT_16BIT:
        fmt = f"<{count}H"
    elif index_type == IndexType.IT_32BIT:
        fmt = f"<{count}I"
    else:
        raise MalformedContainer(f"Unknown index type: {index_type}")

    size = struct.calcsize(fmt)
    if len(data) < size:
        raise MalformedContainer(
            f"Index buffer holds {len(data)} bytes, {count} indices need {size}"
        )
    return list(struct.unpack(fmt, data[:size]))


def widen_index(value: int) -> int:
    """Widen one 16-bit index, mapping the 16-bit sentinel to the 32-bit one."""
    if value == INDEX_SENTINEL_16:
        return INDEX_SENTINEL_32
    return value


def widen_indices(
    indices: Sequence[int],
    index_type: int,
    face_count: int,
    vertex_count: Optional[int] = None,
) -> List[int]:
    """Produce the canonical 32-bit triangle index array.

    Args:
        indices: Source indices as stored
        index_type: IT_16BIT or IT_32BIT
        face_count: Number of triangles the indices describe
        vertex_count: When given, every non-sentinel index must be below it

    Raises:
        IndexOverflow: If face_count * 3 reaches the guard threshold or the
            source does not hold face_count * 3 indices
        InvalidIndex: If an index is out of range for vertex_count
    """
    if face_count * 3 >= INDEX_GUARD:
        raise IndexOverflow(f"{face_count} faces exceed the index buffer limit")
    if len(indices) != face_count * 3:
        raise IndexOverflow(
            f"Expected {face_count * 3} indices for {face_count} faces, got {len(indices)}"
        )

    if index_type == IndexType.IT_16BIT:
        wide = [widen_index(i) for i in indices]
    else:
        wide = list(indices)

    if vertex_count is not None:
        for position, index in enumerate(wide):
            if index != INDEX_SENTINEL_32 and index >= vertex_count:
                raise InvalidIndex(
                    f"Index {index} at position {position} is out of range "
                    f"for {vertex_count} vertices"
                )
    return wide
