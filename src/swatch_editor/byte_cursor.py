from __future__ import annotations

import struct

from .errors import UnexpectedEnd

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_F32 = struct.Struct(">f")


class ByteReader:
    def __init__(self, data: bytes, source: str = "<memory>", base_offset: int = 0) -> None:
        self.data = data
        self.pos = 0
        self.source = source
        self.base_offset = base_offset

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def tell(self) -> int:
        return self.base_offset + self.pos

    def _ensure(self, size: int, context: str) -> None:
        if self.remaining() < size:
            raise UnexpectedEnd(
                f"unexpected EOF while reading {context}: need {size} bytes, {self.remaining()} left",
                source=self.source,
                offset=self.tell(),
            )

    def read_bytes(self, size: int, context: str = "bytes") -> bytes:
        self._ensure(size, context)
        chunk = bytes(self.data[self.pos : self.pos + size])
        self.pos += size
        return chunk

    def read_u16(self, context: str = "u16") -> int:
        return _U16.unpack(self.read_bytes(2, context))[0]

    def read_u32(self, context: str = "u32") -> int:
        return _U32.unpack(self.read_bytes(4, context))[0]

    def read_f32(self, context: str = "f32") -> float:
        return _F32.unpack(self.read_bytes(4, context))[0]

    def read_utf16be_cstring(self, context: str = "string") -> str:
        # Length counts UTF-16 code units, terminating null included.
        length = self.read_u16(f"{context} length")
        if length <= 1:
            self.read_bytes(length * 2, context)
            return ""
        raw = self.read_bytes(length * 2, context)
        value = raw.decode("utf-16-be", errors="surrogatepass")
        if value.endswith("\x00"):
            value = value[:-1]
        return value


class ByteWriter:
    """Append-only big-endian buffer with back-patched u32 length fields."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def write_bytes(self, data: bytes) -> None:
        self._buffer += data

    def write_u16(self, value: int) -> None:
        self._buffer += _U16.pack(value)

    def write_u32(self, value: int) -> None:
        self._buffer += _U32.pack(value)

    def write_f32(self, value: float) -> None:
        self._buffer += _F32.pack(value)

    def write_utf16be_cstring(self, value: str) -> None:
        raw = (value + "\x00").encode("utf-16-be", errors="surrogatepass")
        if len(raw) // 2 > 0xFFFF:
            raise ValueError(f"string of {len(raw) // 2 - 1} code units does not fit a u16 length")
        self.write_u16(len(raw) // 2)
        self._buffer += raw

    def reserve_u32(self) -> int:
        marker = len(self._buffer)
        self._buffer += b"\x00\x00\x00\x00"
        return marker

    def patch_u32(self, marker: int, value: int) -> None:
        if marker < 0 or marker + 4 > len(self._buffer):
            raise IndexError(f"no reserved u32 at offset {marker}")
        _U32.pack_into(self._buffer, marker, value)

    def begin_length(self) -> int:
        return self.reserve_u32()

    def end_length(self, marker: int) -> int:
        """Patch the field at ``marker`` with the number of bytes written after it."""
        length = len(self._buffer) - (marker + 4)
        self.patch_u32(marker, length)
        return length
