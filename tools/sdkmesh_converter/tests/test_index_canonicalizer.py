"""Tests for index buffer widening."""
import struct
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from index_canonicalizer import unpack_indices, widen_index, widen_indices
from mesh_errors import IndexOverflow, InvalidIndex, MalformedContainer
from sdkmesh_types import INDEX_SENTINEL_32, IndexType


def test_widen_index_sentinel():
    """The 16-bit restart value maps to the 32-bit one."""
    assert widen_index(0xFFFF) == 0xFFFFFFFF
    assert widen_index(0xFFFE) == 0xFFFE
    assert widen_index(0) == 0


def test_widen_16bit_verbatim():
    indices = [0, 1, 2, 0, 2, 3]
    assert widen_indices(indices, IndexType.IT_16BIT, 2) == indices


def test_widen_16bit_sentinel():
    result = widen_indices([0, 1, 0xFFFF], IndexType.IT_16BIT, 1)
    assert result == [0, 1, INDEX_SENTINEL_32]


def test_32bit_passthrough():
    """32-bit indices are copied unchanged, including 0xFFFF."""
    indices = [0xFFFF, 70000, 0xFFFFFFFF]
    assert widen_indices(indices, IndexType.IT_32BIT, 1) == indices


def test_invalid_index():
    with pytest.raises(InvalidIndex, match="position 2"):
        widen_indices([0, 1, 4], IndexType.IT_16BIT, 1, vertex_count=4)


def test_sentinel_skips_range_check():
    result = widen_indices([0, 1, 0xFFFF], IndexType.IT_16BIT, 1, vertex_count=3)
    assert result[2] == INDEX_SENTINEL_32


def test_face_count_guard():
    """0x55555555 faces need 0xFFFFFFFF indices, which hits the guard."""
    with pytest.raises(IndexOverflow):
        widen_indices([], IndexType.IT_32BIT, 0x55555555)


def test_face_count_mismatch():
    with pytest.raises(IndexOverflow, match="Expected 6"):
        widen_indices([0, 1, 2], IndexType.IT_16BIT, 2)


def test_index_errors_are_value_errors():
    with pytest.raises(ValueError):
        widen_indices([0, 1, 9], IndexType.IT_32BIT, 1, vertex_count=3)


def test_unpack_16bit():
    data = struct.pack("<3H", 1, 2, 0xFFFF)
    assert unpack_indices(data, IndexType.IT_16BIT, 3) == [1, 2, 0xFFFF]


def test_unpack_32bit():
    data = struct.pack("<3I", 1, 2, 100000)
    assert unpack_indices(data, IndexType.IT_32BIT, 3) == [1, 2, 100000]


def test_unpack_short_data():
    with pytest.raises(MalformedContainer):
        unpack_indices(b"\x00" * 4, IndexType.IT_16BIT, 3)


def test_unpack_unknown_type():
    with pytest.raises(MalformedContainer, match="Unknown index type"):
        unpack_indices(b"\x00" * 12, 7, 3)
