"""A growable byte buffer for serialising and deserialising binary data.

Data lives in a chain of fixed-size blocks. A block is never resized, so
memory views handed out by :meth:`ByteArray.get_read_buffers` and
:meth:`ByteArray.get_write_buffers` stay valid while the buffer grows.
"""

from __future__ import annotations

import math
import os
import struct
from typing import Iterator, List, Optional, Tuple, Union

BytesLike = Union[bytes, bytearray, memoryview]
StrOrBytes = Union[str, bytes, bytearray, memoryview]

_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF


def _encode_zigzag(value: int, bits: int) -> int:
    mask = (1 << bits) - 1
    if value < 0:
        return ((-value) * 2 - 1) & mask
    return (value * 2) & mask


def _decode_zigzag(value: int, bits: int) -> int:
    mask = (1 << bits) - 1
    result = ((value >> 1) ^ -(value & 1)) & mask
    if result >> (bits - 1):
        result -= 1 << bits
    return result


def _as_bytes(value: StrOrBytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class ByteArray:
    """Binary buffer with a read/write position, fixed and varint encodings."""

    def __init__(self, base_size: int = 4096) -> None:
        if base_size <= 0:
            raise ValueError("base_size must be positive")
        self._base_size = base_size
        self._nodes: List[bytearray] = [bytearray(base_size)]
        self._position = 0
        self._size = 0
        self._little_endian = False

    # ------------------------------------------------------------------
    # properties

    @property
    def base_size(self) -> int:
        """Size of each storage block."""
        return self._base_size

    @property
    def size(self) -> int:
        """Total number of bytes written so far."""
        return self._size

    @property
    def read_size(self) -> int:
        """Number of bytes between the position and the end of the data."""
        return self._size - self._position

    @property
    def little_endian(self) -> bool:
        """Whether fixed-width values use little-endian byte order."""
        return self._little_endian

    @little_endian.setter
    def little_endian(self, value: bool) -> None:
        self._little_endian = bool(value)

    @property
    def position(self) -> int:
        """Current read/write offset."""
        return self._position

    @position.setter
    def position(self, value: int) -> None:
        if value < 0 or value > self._capacity:
            raise IndexError("set_position out of range")
        self._position = value
        if self._position > self._size:
            self._size = self._position

    @property
    def _capacity(self) -> int:
        return len(self._nodes) * self._base_size

    # ------------------------------------------------------------------
    # internal helpers

    def _spans(self, position: int, length: int) -> Iterator[Tuple[bytearray, int, int]]:
        while length > 0:
            index, offset = divmod(position, self._base_size)
            count = min(self._base_size - offset, length)
            yield self._nodes[index], offset, count
            position += count
            length -= count

    def _add_capacity(self, size: int) -> None:
        available = self._capacity - self._position
        if size <= 0 or available >= size:
            return
        count = math.ceil((size - available) / self._base_size)
        self._nodes.extend(bytearray(self._base_size) for _ in range(count))

    def _gather(self, position: int, size: int) -> bytes:
        return b"".join(bytes(node[off:off + n]) for node, off, n in self._spans(position, size))

    @property
    def _order(self) -> str:
        return "<" if self._little_endian else ">"

    def _write_fixed(self, fmt: str, value: Union[int, float]) -> None:
        try:
            packed = struct.pack(self._order + fmt, value)
        except struct.error as exc:
            raise OverflowError(str(exc)) from exc
        self.write(packed)

    def _read_fixed(self, fmt: str) -> Union[int, float]:
        full = self._order + fmt
        return struct.unpack(full, self.read(struct.calcsize(full)))[0]

    def _write_varint(self, value: int, bits: int) -> None:
        value &= (1 << bits) - 1
        out = bytearray()
        while value >= 0x80:
            out.append((value & 0x7F) | 0x80)
            value >>= 7
        out.append(value)
        self.write(out)

    def _read_varint(self, bits: int) -> int:
        result = 0
        for shift in range(0, bits, 7):
            byte = self.read_fuint8()
            result |= (byte & 0x7F) << shift
            if byte < 0x80:
                break
        return result & ((1 << bits) - 1)

    # ------------------------------------------------------------------
    # fixed-width writes

    def write_fint8(self, value: int) -> None:
        self._write_fixed("b", value)

    def write_fuint8(self, value: int) -> None:
        self._write_fixed("B", value)

    def write_fint16(self, value: int) -> None:
        self._write_fixed("h", value)

    def write_fuint16(self, value: int) -> None:
        self._write_fixed("H", value)

    def write_fint32(self, value: int) -> None:
        self._write_fixed("i", value)

    def write_fuint32(self, value: int) -> None:
        self._write_fixed("I", value)

    def write_fint64(self, value: int) -> None:
        self._write_fixed("q", value)

    def write_fuint64(self, value: int) -> None:
        self._write_fixed("Q", value)

    # ------------------------------------------------------------------
    # variable-length writes

    def write_int32(self, value: int) -> None:
        self._write_varint(_encode_zigzag(value, 32), 32)

    def write_uint32(self, value: int) -> None:
        self._write_varint(value, 32)

    def write_int64(self, value: int) -> None:
        self._write_varint(_encode_zigzag(value, 64), 64)

    def write_uint64(self, value: int) -> None:
        self._write_varint(value, 64)

    def write_float(self, value: float) -> None:
        self._write_fixed("f", value)

    def write_double(self, value: float) -> None:
        self._write_fixed("d", value)

    # ------------------------------------------------------------------
    # strings

    def write_string_f16(self, value: StrOrBytes) -> None:
        data = _as_bytes(value)
        self.write_fuint16(len(data))
        self.write(data)

    def write_string_f32(self, value: StrOrBytes) -> None:
        data = _as_bytes(value)
        self.write_fuint32(len(data))
        self.write(data)

    def write_string_f64(self, value: StrOrBytes) -> None:
        data = _as_bytes(value)
        self.write_fuint64(len(data))
        self.write(data)

    def write_string_vint(self, value: StrOrBytes) -> None:
        data = _as_bytes(value)
        self.write_uint64(len(data))
        self.write(data)

    def write_string_without_length(self, value: StrOrBytes) -> None:
        self.write(_as_bytes(value))

    # ------------------------------------------------------------------
    # reads

    def read_fint8(self) -> int:
        return self._read_fixed("b")

    def read_fuint8(self) -> int:
        return self._read_fixed("B")

    def read_fint16(self) -> int:
        return self._read_fixed("h")

    def read_fuint16(self) -> int:
        return self._read_fixed("H")

    def read_fint32(self) -> int:
        return self._read_fixed("i")

    def read_fuint32(self) -> int:
        return self._read_fixed("I")

    def read_fint64(self) -> int:
        return self._read_fixed("q")

    def read_fuint64(self) -> int:
        return self._read_fixed("Q")

    def read_int32(self) -> int:
        return _decode_zigzag(self.read_uint32(), 32)

    def read_uint32(self) -> int:
        return self._read_varint(32)

    def read_int64(self) -> int:
        return _decode_zigzag(self.read_uint64(), 64)

    def read_uint64(self) -> int:
        return self._read_varint(64)

    def read_float(self) -> float:
        return self._read_fixed("f")

    def read_double(self) -> float:
        return self._read_fixed("d")

    def read_string_f16(self) -> bytes:
        return self.read(self.read_fuint16())

    def read_string_f32(self) -> bytes:
        return self.read(self.read_fuint32())

    def read_string_f64(self) -> bytes:
        return self.read(self.read_fuint64())

    def read_string_vint(self) -> bytes:
        return self.read(self.read_uint64())

    # ------------------------------------------------------------------
    # raw access

    def clear(self) -> None:
        """Drop all data and keep only the first block."""
        self._position = 0
        self._size = 0
        del self._nodes[1:]

    def write(self, data: BytesLike) -> None:
        """Write raw bytes at the position and advance it."""
        view = memoryview(data).cast("B")
        length = len(view)
        if length == 0:
            return
        self._add_capacity(length)
        consumed = 0
        for node, offset, count in self._spans(self._position, length):
            node[offset:offset + count] = view[consumed:consumed + count]
            consumed += count
        self._position += length
        if self._position > self._size:
            self._size = self._position

    def read(self, size: int) -> bytes:
        """Read ``size`` bytes at the position and advance it."""
        if size < 0 or size > self.read_size:
            raise IndexError("not enough len")
        data = self._gather(self._position, size)
        self._position += size
        return data

    def peek(self, size: int, position: int) -> bytes:
        """Return ``size`` bytes starting at ``position`` without moving."""
        if size < 0 or position < 0 or position > self._size or size > self._size - position:
            raise IndexError("not enough len")
        return self._gather(position, size)

    def write_to_file(self, name: Union[str, os.PathLike]) -> None:
        """Write the unread data to a file, replacing its contents."""
        with open(name, "wb") as fh:
            for node, offset, count in self._spans(self._position, self.read_size):
                fh.write(node[offset:offset + count])

    def read_from_file(self, name: Union[str, os.PathLike]) -> None:
        """Append the contents of a file at the position."""
        with open(name, "rb") as fh:
            while chunk := fh.read(self._base_size):
                self.write(chunk)

    def to_bytes(self) -> bytes:
        """Return the unread data without moving the position."""
        return self._gather(self._position, self.read_size)

    def to_hex_string(self) -> str:
        """Hex dump of the unread data, 32 bytes per line."""
        parts = []
        for index, byte in enumerate(self.to_bytes()):
            if index and index % 32 == 0:
                parts.append("\n")
            parts.append(f"{byte:02x} ")
        return "".join(parts)

    def get_read_buffers(
        self, length: Optional[int] = None, position: Optional[int] = None
    ) -> List[memoryview]:
        """Views over up to ``length`` readable bytes, one per block touched."""
        available = self.read_size
        length = available if length is None else min(length, available)
        if length <= 0:
            return []
        start = self._position if position is None else position
        return [memoryview(node)[offset:offset + count]
                for node, offset, count in self._spans(start, length)]

    def get_write_buffers(self, length: int) -> List[memoryview]:
        """Writable views covering ``length`` bytes from the position.

        Filling them does not move the position; advance it afterwards.
        """
        if length <= 0:
            return []
        self._add_capacity(length)
        return [memoryview(node)[offset:offset + count]
                for node, offset, count in self._spans(self._position, length)]