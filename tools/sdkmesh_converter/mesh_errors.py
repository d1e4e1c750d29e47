"""Exceptions raised while loading, converting and exporting meshes."""


class MeshConvertError(Exception):
    """Base class for every mesh conversion failure."""


class ContainerIOError(MeshConvertError, IOError):
    """Short read or underlying I/O failure."""


class MalformedContainer(MeshConvertError, ValueError):
    """Container offsets, sizes or counts disagree with its contents."""


class UnsupportedVersion(MeshConvertError, ValueError):
    """Version tag is not one of the recognized SDKMESH versions."""

    def __init__(self, version: int):
        super().__init__(f"Unsupported SDKMESH version: {version}")
        self.version = version


class AttributeDecodeError(MeshConvertError, ValueError):
    """A declared vertex attribute could not be read or written."""


class IndexOverflow(MeshConvertError, ValueError):
    """Index data does not fit the canonical index buffer."""


class InvalidIndex(MeshConvertError, ValueError):
    """Index references a vertex past the end of the vertex buffer."""


class EmptyMesh(MeshConvertError, ValueError):
    """Export attempted on a mesh without triangles."""


class ObjParseError(MeshConvertError, ValueError):
    """Malformed statement in OBJ text."""

    def __init__(self, message: str, line_number: int = 0):
        if line_number:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
