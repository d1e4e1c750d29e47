"""Tests for SDKMESH material conversion."""
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from container_builder import v1_material, v2_material
from material_converter import convert_material, convert_materials, decode_string
from mesh_errors import UnsupportedVersion
from sdkmesh_types import (
    MAX_NAME,
    MAX_PATH,
    SDKMESH_FILE_VERSION,
    SDKMESH_FILE_VERSION_V2,
    MaterialRecordV1,
    MaterialRecordV2,
)


def test_decode_string():
    assert decode_string(b"brick\x00\x00\x00", MAX_NAME) == "brick"


def test_decode_string_unterminated():
    assert decode_string(b"x" * MAX_NAME, MAX_NAME) == ""


def test_decode_string_ansi():
    """Names are stored in the Windows ANSI code page."""
    assert decode_string(b"caf\xe9\x00", MAX_NAME) == "café"


def test_decode_string_undecodable():
    # 0x81 and 0x8d have no cp1252 mapping
    assert decode_string(b"\x81\x8d\x00", MAX_NAME) == ""


def test_decode_string_too_long():
    """Strings that would not fit with their terminator are dropped."""
    assert decode_string(b"abcd\x00", 4) == ""
    assert decode_string(b"abc\x00", 4) == "abc"


def test_convert_v1_colors():
    record = v1_material(
        name=b"red",
        diffuse=(1.0, 0.0, 0.0, 0.5),
        ambient=(0.25, 0.25, 0.25, 1.0),
        specular=(0.5, 0.5, 0.5, 1.0),
        emissive=(0.0, 0.0, 1.0, 1.0),
        power=16.0,
    )
    material = convert_material(record, SDKMESH_FILE_VERSION)

    assert material.name == "red"
    assert material.diffuse_color == (1.0, 0.0, 0.0)
    assert material.alpha == 0.5
    assert material.ambient_color == (0.25, 0.25, 0.25)
    assert material.specular_color == (0.5, 0.5, 0.5)
    assert material.emissive_color == (0.0, 0.0, 1.0)
    assert material.specular_power == 16.0


def test_convert_v1_textures():
    record = v1_material(
        diffuse_texture=b"brick_diff.dds",
        normal_texture=b"brick_norm.dds",
        specular_texture=b"brick_spec.dds",
    )
    material = convert_material(record, SDKMESH_FILE_VERSION)

    assert material.diffuse_texture == "brick_diff.dds"
    assert material.normal_texture == "brick_norm.dds"
    assert material.specular_texture == "brick_spec.dds"
    assert material.emissive_texture == ""


def test_convert_v2():
    record = v2_material(
        name=b"pbr",
        albedo_texture=b"albedo.dds",
        normal_texture=b"normal.dds",
        emissive_texture=b"glow.dds",
        alpha=0.25,
    )
    material = convert_material(record, SDKMESH_FILE_VERSION_V2)

    assert material.name == "pbr"
    assert material.alpha == 0.25
    assert material.diffuse_texture == "albedo.dds"
    assert material.normal_texture == "normal.dds"
    assert material.emissive_texture == "glow.dds"
    assert material.diffuse_color == (0.0, 0.0, 0.0)
    assert material.specular_power == 0.0


def test_convert_unsupported_version():
    with pytest.raises(UnsupportedVersion):
        convert_materials([v1_material()], 102)


def test_convert_mismatched_record():
    """A V1 record cannot be converted as version 200."""
    with pytest.raises(UnsupportedVersion):
        convert_material(v1_material(), SDKMESH_FILE_VERSION_V2)


def test_convert_materials_keeps_order():
    records = [v1_material(name=b"a"), v1_material(name=b"b")]
    assert [m.name for m in convert_materials(records, SDKMESH_FILE_VERSION)] == ["a", "b"]


def test_v1_record_layout():
    record = v1_material(name=b"stone", diffuse_texture=b"stone.dds", power=8.0)
    data = record.to_bytes()
    assert len(data) == MaterialRecordV1.STRUCT_SIZE
    assert data[:5] == b"stone"
    assert data[MAX_NAME + MAX_PATH:MAX_NAME + MAX_PATH + 9] == b"stone.dds"

    parsed = MaterialRecordV1.from_bytes(data)
    assert parsed.power == 8.0
    assert decode_string(parsed.diffuse_texture, MAX_PATH) == "stone.dds"


def test_v2_record_layout():
    data = v2_material(alpha=0.5).to_bytes()
    assert len(data) == MaterialRecordV2.STRUCT_SIZE
    assert MaterialRecordV2.from_bytes(data).alpha == 0.5
