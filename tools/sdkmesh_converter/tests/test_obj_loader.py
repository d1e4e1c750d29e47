"""Tests for OBJ import."""
import io
import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mesh_errors import ContainerIOError, ObjParseError
from mesh_model import MeshModel
from obj_exporter import ObjExporter
from obj_loader import ObjLoader, load_obj

QUAD_OBJ = """\
# quad
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
vt 0 0
vt 1 0
vt 1 1
vt 0 1
vn 0 0 1
f 1/1/1 2/2/1 3/3/1 4/4/1
"""


def load_text(text, model=None):
    return ObjLoader(io.StringIO(text)).load(model)


def test_load_quad():
    model = load_text(QUAD_OBJ)
    assert model.vertex_count == 4
    assert model.indices == [0, 1, 2, 0, 2, 3]
    assert model.texcoords[2] == (1.0, 1.0)
    assert model.normals == [(0.0, 0.0, 1.0)] * 4
    assert model.attributes == [0, 0]
    assert [m.name for m in model.materials] == ["default"]


def test_round_trip_text():
    """Loading exported text and exporting again reproduces it."""
    model = load_text(QUAD_OBJ)
    assert ObjExporter(model).to_text() == QUAD_OBJ.split("\n", 1)[1]


def test_negative_indices():
    model = load_text("v 0 0 0\nv 1 0 0\nv 0 1 0\nf -3 -2 -1\n")
    assert model.indices == [0, 1, 2]
    assert model.normals is None
    assert model.texcoords is None


def test_shared_corners_deduplicated():
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\nv 1 1 0\nf 1 2 3\nf 3 2 4\n"
    model = load_text(text)
    assert model.vertex_count == 4
    assert model.indices == [0, 1, 2, 2, 1, 3]


def test_usemtl():
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\nusemtl red\nf 1 2 3\nusemtl blue\nf 1 3 2\nusemtl red\nf 2 3 1\n"
    model = load_text(text)
    assert [m.name for m in model.materials] == ["red", "blue"]
    assert model.attributes == [0, 1, 0]


def test_missing_texcoords_filled():
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0.5 0.5\nf 1/1 2 3\n"
    model = load_text(text)
    assert model.texcoords == [(0.5, 0.5), (0.0, 0.0), (0.0, 0.0)]


def test_single_component_texcoord():
    model = load_text("v 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0.5\nf 1/1 2/1 3/1\n")
    assert model.texcoords[0] == (0.5, 0.0)


def test_ignored_statements():
    text = "mtllib x.mtl\no thing\ng group\ns off\n" + QUAD_OBJ
    assert load_text(text).face_count == 2


def test_zero_index():
    with pytest.raises(ObjParseError, match="line 4"):
        load_text("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 0 1 2\n")


def test_index_out_of_range():
    with pytest.raises(ObjParseError, match="out of range"):
        load_text("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 4\n")


def test_too_few_corners():
    with pytest.raises(ObjParseError, match="at least 3"):
        load_text("v 0 0 0\nv 1 0 0\nf 1 2\n")


def test_bad_vertex():
    with pytest.raises(ObjParseError, match="line 1"):
        load_text("v 0 zero 0\n")


def test_failed_load_leaves_model_empty():
    model = load_text(QUAD_OBJ)
    with pytest.raises(ObjParseError):
        load_text("v 0 0 0\nf 1 1 9\n", model)
    assert model.is_empty
    assert model.positions == []


def test_load_from_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "quad.obj")
        with open(path, "w", encoding="utf-8") as f:
            f.write(QUAD_OBJ)
        model = load_obj(path, MeshModel())
        assert model.face_count == 2


def test_missing_path():
    with pytest.raises(ContainerIOError):
        load_obj("/nonexistent/quad.obj")
