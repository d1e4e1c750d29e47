"""Conversion of SDKMESH material records into Material objects.

Name and texture fields are narrow strings in the Windows ANSI code page
(cp1252), the encoding DXUT content tools write them in.
"""
from typing import List, Sequence

from mesh_errors import UnsupportedVersion
from mesh_model import Material
from sdkmesh_types import (
    MAX_NAME,
    MAX_PATH,
    SDKMESH_FILE_VERSION,
    SDKMESH_FILE_VERSION_V2,
    MaterialRecord,
    MaterialRecordV1,
    MaterialRecordV2,
)

NARROW_ENCODING = "cp1252"


def decode_string(buffer: bytes, capacity: int) -> str:
    """Decode a NUL-terminated narrow string into at most capacity-1 characters.

    Returns an empty string instead of failing when the buffer has no
    terminator, does not decode, or would not fit the destination.
    """
    end = buffer.find(b"\x00")
    if end < 0:
        return ""
    try:
        text = buffer[:end].decode(NARROW_ENCODING)
    except UnicodeDecodeError:
        return ""
    if len(text) >= capacity:
        return ""
    return text


def _convert_v1(record: MaterialRecordV1) -> Material:
    material = Material(
        name=decode_string(record.name, MAX_NAME),
        diffuse_texture=decode_string(record.diffuse_texture, MAX_PATH),
        normal_texture=decode_string(record.normal_texture, MAX_PATH),
        specular_texture=decode_string(record.specular_texture, MAX_PATH),
        ambient_color=tuple(record.ambient[:3]),
        diffuse_color=tuple(record.diffuse[:3]),
        specular_color=tuple(record.specular[:3]),
        emissive_color=tuple(record.emissive[:3]),
        specular_power=record.power,
        alpha=record.diffuse[3],
    )
    return material


def _convert_v2(record: MaterialRecordV2) -> Material:
    return Material(
        name=decode_string(record.name, MAX_NAME),
        diffuse_texture=decode_string(record.albedo_texture, MAX_PATH),
        normal_texture=decode_string(record.normal_texture, MAX_PATH),
        emissive_texture=decode_string(record.emissive_texture, MAX_PATH),
        alpha=record.alpha,
    )


def convert_material(record: MaterialRecord, version: int) -> Material:
    """Convert one material record according to the container version.

    Raises:
        UnsupportedVersion: If the version is unknown or the record layout
            does not belong to it
    """
    if version == SDKMESH_FILE_VERSION and isinstance(record, MaterialRecordV1):
        return _convert_v1(record)
    if version == SDKMESH_FILE_VERSION_V2 and isinstance(record, MaterialRecordV2):
        return _convert_v2(record)
    raise UnsupportedVersion(version)


def convert_materials(records: Sequence[MaterialRecord], version: int) -> List[Material]:
    """Convert a container's material table."""
    if version not in (SDKMESH_FILE_VERSION, SDKMESH_FILE_VERSION_V2):
        raise UnsupportedVersion(version)
    return [convert_material(record, version) for record in records]
