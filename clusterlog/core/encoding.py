"""
Binary wire primitives shared by every clusterlog encoding.

All integers are big-endian. Composite values are wrapped in a versioned
envelope so that peers running different releases can exchange state:

    struct_v (1 byte) - Version the writer produced
    compat_v (1 byte) - Oldest reader version able to decode the payload
    length (4 bytes) - Payload length in bytes
    payload (variable)

A reader rejects payloads whose compat_v is newer than it understands and
skips any trailing payload bytes it does not know about, so newer writers can
append fields without breaking older readers.

Which optional fields are present is negotiated with a ``Features`` bitmask
that is passed explicitly to every encode call.
"""

import struct
from contextlib import contextmanager
from enum import IntFlag
from typing import Iterable, Iterator, Union


class DecodeError(ValueError):
    """Encoded data is truncated, corrupted or of an incompatible version."""


class Features(IntFlag):
    """Optional wire-format capabilities understood by a peer or on-disk version."""

    NONE = 0
    CHANNELS = 1 << 0
    ENTITY_NAME = 1 << 1
    ADDRVEC = 1 << 2
    CHANNEL_TAIL = 1 << 3
    ALL = CHANNELS | ENTITY_NAME | ADDRVEC | CHANNEL_TAIL


def parse_features(value: Union[int, str, Iterable[str]]) -> Features:
    """
    Build a Features mask from a config value.

    Accepts an integer mask, "all", "none", or flag names either as a list or
    as a comma-separated string (case-insensitive).

    Raises:
        ValueError: If a flag name is unknown
    """
    if isinstance(value, Features):
        return value
    if isinstance(value, int):
        return Features(value) & Features.ALL

    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return Features(int(text)) & Features.ALL
        names = text.replace(";", ",").split(",")
    else:
        names = list(value)

    features = Features.NONE
    for name in names:
        name = str(name).strip()
        if not name:
            continue
        try:
            features |= Features[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown feature: {name!r}") from None
    return features


class Encoder:
    """Append-only builder for encoded buffers."""

    def __init__(self):
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def u8(self, value: int) -> None:
        self._buf += struct.pack(">B", value)

    def u16(self, value: int) -> None:
        self._buf += struct.pack(">H", value)

    def i16(self, value: int) -> None:
        self._buf += struct.pack(">h", value)

    def u32(self, value: int) -> None:
        self._buf += struct.pack(">I", value)

    def u64(self, value: int) -> None:
        self._buf += struct.pack(">Q", value)

    def i64(self, value: int) -> None:
        self._buf += struct.pack(">q", value)

    def raw(self, data: bytes) -> None:
        self._buf += data

    def string(self, value: str) -> None:
        data = value.encode("utf-8")
        self.u32(len(data))
        self._buf += data

    @contextmanager
    def versioned(self, struct_v: int, compat_v: int) -> Iterator["Encoder"]:
        """
        Wrap everything written inside the block in a versioned envelope.

        Args:
            struct_v: Version of the layout being written
            compat_v: Oldest reader version that can decode it
        """
        self.u8(struct_v)
        self.u8(compat_v)
        length_pos = len(self._buf)
        self.u32(0)
        start = len(self._buf)
        yield self
        struct.pack_into(">I", self._buf, length_pos, len(self._buf) - start)


class Decoder:
    """
    Cursor over an encoded buffer.

    Every read checks the remaining length first; a short read raises
    DecodeError instead of returning partial data.
    """

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0
        self._end = len(self._data)

    @property
    def position(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return self._end - self._pos

    def _take(self, size: int, what: str) -> bytes:
        if size > self.remaining():
            raise DecodeError(
                f"Truncated buffer reading {what}: need {size} bytes "
                f"at position {self._pos}, have {self.remaining()}"
            )
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def _unpack(self, fmt: str, what: str) -> int:
        return struct.unpack(fmt, self._take(struct.calcsize(fmt), what))[0]

    def u8(self, what: str = "u8") -> int:
        return self._unpack(">B", what)

    def u16(self, what: str = "u16") -> int:
        return self._unpack(">H", what)

    def i16(self, what: str = "i16") -> int:
        return self._unpack(">h", what)

    def u32(self, what: str = "u32") -> int:
        return self._unpack(">I", what)

    def u64(self, what: str = "u64") -> int:
        return self._unpack(">Q", what)

    def i64(self, what: str = "i64") -> int:
        return self._unpack(">q", what)

    def raw(self, size: int, what: str = "bytes") -> bytes:
        return self._take(size, what)

    def string(self, what: str = "string") -> str:
        length = self.u32(f"{what} length")
        data = self._take(length, what)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 in {what}") from e

    def count(self, what: str = "count") -> int:
        """Read an element count, rejecting counts the buffer cannot hold."""
        n = self.u32(what)
        if n > self.remaining():
            raise DecodeError(
                f"Invalid {what}: {n} elements but only {self.remaining()} bytes remain"
            )
        return n

    def expect_end(self) -> None:
        """Fail if any bytes remain unread."""
        if self.remaining():
            raise DecodeError(f"{self.remaining()} trailing bytes after encoded data")

    @contextmanager
    def versioned(self, supported_v: int, oldest_v: int, what: str) -> Iterator[int]:
        """
        Open a versioned envelope and yield its struct version.

        Reads inside the block are confined to the envelope payload. Payload
        bytes left unread when the block exits are skipped.

        Args:
            supported_v: Newest version this reader understands
            oldest_v: Oldest version this reader still decodes
            what: Name of the value, used in error messages

        Raises:
            DecodeError: If the envelope is truncated or incompatible
        """
        struct_v = self.u8(f"{what} struct version")
        compat_v = self.u8(f"{what} compat version")
        if compat_v > supported_v:
            raise DecodeError(
                f"Incompatible {what} encoding: requires version {compat_v}, "
                f"this reader supports up to {supported_v}"
            )
        if struct_v < oldest_v or struct_v < compat_v:
            raise DecodeError(f"Unsupported {what} struct version {struct_v}")

        length = self.u32(f"{what} length")
        if length > self.remaining():
            raise DecodeError(
                f"Truncated {what}: payload is {length} bytes, have {self.remaining()}"
            )

        end = self._pos + length
        outer_end = self._end
        self._end = end
        try:
            yield struct_v
        finally:
            self._end = outer_end
        self._pos = end
