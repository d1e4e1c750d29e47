"""Strided vertex attribute codec for D3D9-style vertex declarations.

A VertexStream wraps one interleaved vertex buffer. Attributes are addressed
by usage (and usage index); each vertex's value comes back as a tuple of
floats, whatever the packed declaration type is.
"""
import struct
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from mesh_errors import AttributeDecodeError
from sdkmesh_types import DeclType, DeclUsage, VertexElement

Value = Tuple[float, ...]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _unorm(bits: int) -> Tuple[Callable[[int], float], Callable[[float], int]]:
    scale = float((1 << bits) - 1)
    return (
        lambda v: v / scale,
        lambda f: int(round(_clamp(f, 0.0, 1.0) * scale)),
    )


def _snorm(bits: int) -> Tuple[Callable[[int], float], Callable[[float], int]]:
    scale = float((1 << (bits - 1)) - 1)
    return (
        lambda v: max(v / scale, -1.0),
        lambda f: int(round(_clamp(f, -1.0, 1.0) * scale)),
    )


def _identity_int(low: int, high: int) -> Tuple[Callable[[int], float], Callable[[float], int]]:
    return (
        float,
        lambda f: int(round(_clamp(f, low, high))),
    )


class _PackedFormat:
    """Fixed struct layout with per-component conversions."""

    def __init__(self, fmt: str, to_float=None, from_float=None, swizzle: Sequence[int] = None):
        self.struct = struct.Struct(fmt)
        self.size = self.struct.size
        self.components = len(self.struct.unpack(bytes(self.size)))
        self.to_float = to_float or float
        self.from_float = from_float or float
        # Storage order -> logical order (D3DCOLOR is stored BGRA)
        self.swizzle = list(swizzle) if swizzle else list(range(self.components))

    def decode(self, data, offset: int) -> Value:
        raw = self.struct.unpack_from(data, offset)
        return tuple(self.to_float(raw[i]) for i in self.swizzle)

    def encode(self, data, offset: int, value: Value):
        stored = [0] * self.components
        for logical, storage in enumerate(self.swizzle):
            stored[storage] = self.from_float(value[logical])
        self.struct.pack_into(data, offset, *stored)


class _Dec3Format:
    """10:10:10:2 packed formats (UDEC3 unsigned, DEC3N signed normalized)."""

    size = 4
    components = 3

    def __init__(self, signed: bool):
        self.signed = signed

    def decode(self, data, offset: int) -> Value:
        packed = struct.unpack_from("<I", data, offset)[0]
        values = []
        for shift in (0, 10, 20):
            v = (packed >> shift) & 0x3FF
            if self.signed:
                if v & 0x200:
                    v -= 0x400
                values.append(max(v / 511.0, -1.0))
            else:
                values.append(float(v))
        return tuple(values)

    def encode(self, data, offset: int, value: Value):
        packed = 0
        for shift, f in zip((0, 10, 20), value):
            if self.signed:
                v = int(round(_clamp(f, -1.0, 1.0) * 511.0)) & 0x3FF
            else:
                v = int(round(_clamp(f, 0, 1023)))
            packed |= v << shift
        struct.pack_into("<I", data, offset, packed)


_UBYTE_N = _unorm(8)
_SHORT_N = _snorm(16)
_USHORT_N = _unorm(16)
_UBYTE = _identity_int(0, 255)
_SHORT = _identity_int(-32768, 32767)

FORMATS: Dict[int, object] = {
    DeclType.FLOAT1: _PackedFormat("<f"),
    DeclType.FLOAT2: _PackedFormat("<2f"),
    DeclType.FLOAT3: _PackedFormat("<3f"),
    DeclType.FLOAT4: _PackedFormat("<4f"),
    DeclType.D3DCOLOR: _PackedFormat("<4B", *_UBYTE_N, swizzle=(2, 1, 0, 3)),
    DeclType.UBYTE4: _PackedFormat("<4B", *_UBYTE),
    DeclType.SHORT2: _PackedFormat("<2h", *_SHORT),
    DeclType.SHORT4: _PackedFormat("<4h", *_SHORT),
    DeclType.UBYTE4N: _PackedFormat("<4B", *_UBYTE_N),
    DeclType.SHORT2N: _PackedFormat("<2h", *_SHORT_N),
    DeclType.SHORT4N: _PackedFormat("<4h", *_SHORT_N),
    DeclType.USHORT2N: _PackedFormat("<2H", *_USHORT_N),
    DeclType.USHORT4N: _PackedFormat("<4H", *_USHORT_N),
    DeclType.UDEC3: _Dec3Format(signed=False),
    DeclType.DEC3N: _Dec3Format(signed=True),
    DeclType.FLOAT16_2: _PackedFormat("<2e"),
    DeclType.FLOAT16_4: _PackedFormat("<4e"),
}


def element_size(decl_type: int) -> int:
    """Byte size of one packed value of a declaration type."""
    fmt = FORMATS.get(decl_type)
    if fmt is None:
        raise AttributeDecodeError(f"Unsupported vertex element type: {decl_type}")
    return fmt.size


def _usage_name(usage: int) -> str:
    try:
        return DeclUsage(usage).name
    except ValueError:
        return str(usage)


class VertexStream:
    """Reads and writes attributes of one interleaved vertex buffer."""

    def __init__(
        self,
        declaration: List[VertexElement],
        stride: int,
        vertex_count: int,
        data: Optional[bytes] = None,
    ):
        """Wrap a vertex buffer.

        Args:
            declaration: Vertex elements (without the terminator)
            stride: Bytes per vertex
            vertex_count: Number of vertices
            data: Existing buffer; a zero-filled one is created when omitted

        Raises:
            AttributeDecodeError: If the buffer is too small for the vertices
        """
        self.declaration = list(declaration)
        self.stride = stride
        self.vertex_count = vertex_count
        if data is None:
            self._data = bytearray(stride * vertex_count)
        else:
            if len(data) < stride * vertex_count:
                raise AttributeDecodeError(
                    f"Vertex buffer holds {len(data)} bytes, "
                    f"{vertex_count} vertices of stride {stride} need {stride * vertex_count}"
                )
            self._data = bytearray(data)

    def find_element(self, usage: int, usage_index: int = 0) -> VertexElement:
        """Find the declaration element for a usage.

        Raises:
            AttributeDecodeError: If the usage is not declared or cannot be
                addressed inside one vertex
        """
        element = next(
            (e for e in self.declaration if e.usage == usage and e.usage_index == usage_index),
            None,
        )
        if element is None:
            raise AttributeDecodeError(
                f"{_usage_name(usage)}{usage_index} is not declared in the vertex format"
            )
        if element.stream != 0:
            raise AttributeDecodeError(
                f"{_usage_name(usage)}{usage_index} uses stream {element.stream}, "
                "only stream 0 is supported"
            )
        size = element_size(element.type)
        if element.offset + size > self.stride:
            raise AttributeDecodeError(
                f"{_usage_name(usage)}{usage_index} at offset {element.offset} "
                f"overruns vertex stride {self.stride}"
            )
        return element

    def read(self, usage: int, usage_index: int = 0) -> List[Value]:
        """Read one attribute for every vertex."""
        element = self.find_element(usage, usage_index)
        fmt = FORMATS[element.type]
        return [
            fmt.decode(self._data, i * self.stride + element.offset)
            for i in range(self.vertex_count)
        ]

    def write(self, usage: int, values: Sequence[Sequence[float]], usage_index: int = 0):
        """Write one attribute for every vertex.

        Values shorter than the element type are zero-extended; extra
        components are dropped.
        """
        element = self.find_element(usage, usage_index)
        if len(values) != self.vertex_count:
            raise AttributeDecodeError(
                f"{_usage_name(usage)}{usage_index}: got {len(values)} values "
                f"for {self.vertex_count} vertices"
            )
        fmt = FORMATS[element.type]
        for i, value in enumerate(values):
            padded = tuple(value[:fmt.components]) + (0.0,) * (fmt.components - len(value))
            try:
                fmt.encode(self._data, i * self.stride + element.offset, padded)
            except (struct.error, OverflowError, ValueError) as e:
                raise AttributeDecodeError(
                    f"{_usage_name(usage)}{usage_index}: cannot pack vertex {i}: {e}"
                ) from e

    def to_bytes(self) -> bytes:
        return bytes(self._data)
