"""Tests for OBJ export."""
import os
import struct
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from container_builder import QUAD_INDICES, QUAD_NORMALS, QUAD_POSITIONS, QUAD_TEXCOORDS
from mesh_errors import EmptyMesh
from mesh_model import Material, MeshModel
from obj_exporter import AttributePool, ObjExporter, coalesce_faces, export_obj, write_mtl

SENTINEL = 0xFFFFFFFF


def quad_model(**kwargs):
    values = dict(
        positions=list(QUAD_POSITIONS),
        normals=list(QUAD_NORMALS),
        texcoords=list(QUAD_TEXCOORDS),
        indices=list(QUAD_INDICES),
        attributes=[0, 0],
    )
    values.update(kwargs)
    return MeshModel(**values)


def corners(indices):
    return [group.corners for group in coalesce_faces(indices)]


def test_coalesce_fan():
    assert corners([0, 1, 2, 0, 2, 3, 0, 3, 4]) == [[0, 1, 2, 3, 4]]


def test_coalesce_unrelated_triangles():
    assert corners([0, 1, 2, 5, 6, 7]) == [[0, 1, 2], [5, 6, 7]]


def test_coalesce_requires_shared_origin():
    assert corners([0, 1, 2, 1, 2, 3]) == [[0, 1, 2], [1, 2, 3]]


def test_coalesce_requires_trailing_edge():
    """Sharing the origin alone is not enough."""
    assert corners([0, 1, 2, 0, 1, 3]) == [[0, 1, 2], [0, 1, 3]]


def test_coalesce_first_face():
    groups = coalesce_faces([0, 1, 2, 0, 2, 3, 4, 5, 6])
    assert [g.first_face for g in groups] == [0, 2]


def test_coalesce_drops_sentinel_triangles():
    assert corners([0, 1, SENTINEL, 0, 2, 3]) == [[0, 2, 3]]


def test_coalesce_sentinel_stops_fan():
    assert corners([0, 1, 2, 0, 2, SENTINEL, 0, 2, 3]) == [[0, 1, 2], [0, 2, 3]]


def test_pool_dedup():
    pool = AttributePool()
    assert pool.insert((1.0, 2.0)) == 0
    assert pool.insert((3.0, 4.0)) == 1
    assert pool.insert((1.0, 2.0)) == 0
    assert len(pool) == 2


def test_pool_bit_exact():
    """Neighbouring float32 values and signed zeros stay distinct."""
    next_up = struct.unpack("<f", struct.pack("<I", 0x3F800001))[0]
    pool = AttributePool()
    assert pool.insert((1.0,)) == 0
    assert pool.insert((next_up,)) == 1
    assert pool.insert((0.0,)) == 2
    assert pool.insert((-0.0,)) == 3


def test_quad_text():
    text = ObjExporter(quad_model()).to_text()
    assert text == (
        "v 0 0 0\n"
        "v 1 0 0\n"
        "v 1 1 0\n"
        "v 0 1 0\n"
        "vt 0 0\n"
        "vt 1 0\n"
        "vt 1 1\n"
        "vt 0 1\n"
        "vn 0 0 1\n"
        "f 1/1/1 2/2/1 3/3/1 4/4/1\n"
    )


def test_positions_only():
    model = quad_model(normals=None, texcoords=None)
    lines = ObjExporter(model).build_lines()
    assert lines[-1] == "f 1 2 3 4"
    assert not any(line.startswith(("vt", "vn")) for line in lines)


def test_normals_only():
    model = quad_model(texcoords=None)
    assert ObjExporter(model).build_lines()[-1] == "f 1//1 2//1 3//1 4//1"


def test_texcoords_only():
    model = quad_model(normals=None)
    assert ObjExporter(model).build_lines()[-1] == "f 1/1 2/2 3/3 4/4"


def test_duplicate_positions_share_index():
    """Vertices split only by other attributes share one v line."""
    model = MeshModel(
        positions=[(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 0.0)],
        normals=[(0.0, 0.0, 1.0), (0.0, 0.0, 1.0), (0.0, 0.0, 1.0), (0.0, 0.0, -1.0)],
        indices=[0, 1, 2, 3, 2, 1],
    )
    lines = ObjExporter(model).build_lines()
    assert sum(line.startswith("v ") for line in lines) == 3
    assert sum(line.startswith("vn ") for line in lines) == 2
    assert lines[-2:] == ["f 1//1 2//1 3//1", "f 1//2 3//1 2//1"]


def test_float_precision():
    model = quad_model(positions=[(0.1, 0.0, 0.0)] + list(QUAD_POSITIONS[1:]))
    assert ObjExporter(model).build_lines()[0] == "v 0.1 0 0"


def test_empty_mesh_writes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "empty.obj")
        with pytest.raises(EmptyMesh):
            export_obj(MeshModel(), path)
        assert not os.path.exists(path)


def test_only_sentinel_triangles_is_empty():
    model = quad_model(indices=[0, 1, SENTINEL], attributes=[0])
    with pytest.raises(EmptyMesh):
        ObjExporter(model).build_lines()


def test_usemtl_switches():
    model = quad_model(
        indices=[0, 1, 2, 2, 3, 0],
        attributes=[0, 1],
        materials=[Material(name="red"), Material(name="")],
    )
    lines = ObjExporter(model, "quad.mtl").build_lines()
    assert lines[0] == "mtllib quad.mtl"
    assert [line for line in lines if line.startswith("usemtl")] == [
        "usemtl red",
        "usemtl material1",
    ]


def test_fan_across_materials_keeps_first():
    """A merged polygon uses the material of its first triangle."""
    model = quad_model(
        attributes=[0, 1],
        materials=[Material(name="red"), Material(name="blue")],
    )
    lines = ObjExporter(model, "quad.mtl").build_lines()
    assert [line for line in lines if line.startswith(("usemtl", "f "))] == [
        "usemtl red",
        "f 1/1/1 2/2/1 3/3/1 4/4/1",
    ]


def test_export_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "quad.obj")
        export_obj(quad_model(), path)
        with open(path, "r", encoding="utf-8") as f:
            assert f.read().endswith("f 1/1/1 2/2/1 3/3/1 4/4/1\n")


def test_write_mtl():
    model = quad_model(materials=[Material(
        name="brick",
        diffuse_texture="brick.dds",
        normal_texture="brick_n.dds",
        diffuse_color=(1.0, 0.5, 0.25),
        specular_power=32.0,
        alpha=0.5,
    )])
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "quad.mtl")
        write_mtl(model, path)
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()

    assert lines[0] == "newmtl brick"
    assert "Kd 1 0.5 0.25" in lines
    assert "Ns 32" in lines
    assert "d 0.5" in lines
    assert "map_Kd brick.dds" in lines
    assert "map_bump brick_n.dds" in lines
    assert not any(line.startswith("map_Ks") for line in lines)
