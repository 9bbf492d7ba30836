"""
Identifiers for cluster members that emit log records.

- EntityRank: the numeric origin of a record (e.g. mon.0), part of its key
- EntityName: the human-readable daemon name (e.g. mon.a)
- EntityAddr: a network address the daemon listens on
- UTime: wall-clock timestamp with nanosecond resolution
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict

from clusterlog.core.encoding import DecodeError, Decoder, Encoder


class EntityType(IntEnum):
    """Kinds of cluster entity."""

    MON = 0x01
    MDS = 0x02
    OSD = 0x04
    CLIENT = 0x08
    MGR = 0x10

    def __str__(self) -> str:
        return self.name.lower()

    @classmethod
    def from_wire(cls, value: int) -> "EntityType":
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(f"Unknown entity type: {value}") from None


@dataclass(frozen=True)
class EntityRank:
    """
    Numeric identity of a cluster entity.

    Attributes:
        type: Entity kind
        num: Rank within the kind (-1 for "new", not yet assigned)
    """
    type: EntityType = EntityType.MON
    num: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", EntityType(self.type))
        if not -(1 << 63) <= self.num < (1 << 63):
            raise ValueError(f"Rank number out of range: {self.num}")

    def __str__(self) -> str:
        return f"{self.type.name.lower()}.{self.num}"

    def encode_into(self, enc: Encoder) -> None:
        enc.u8(self.type)
        enc.i64(self.num)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "EntityRank":
        entity_type = EntityType.from_wire(dec.u8("rank type"))
        return cls(type=entity_type, num=dec.i64("rank num"))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": str(self.type), "num": self.num}


@dataclass(frozen=True)
class EntityName:
    """
    Display name of a cluster entity.

    An empty id means the name is unknown (e.g. decoded from a peer that
    does not send names).
    """
    type: EntityType = EntityType.MON
    id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", EntityType(self.type))

    def __str__(self) -> str:
        if not self.id:
            return f"{self.type.name.lower()}."
        return f"{self.type.name.lower()}.{self.id}"

    def is_blank(self) -> bool:
        return not self.id

    def encode_into(self, enc: Encoder) -> None:
        enc.u32(self.type)
        enc.string(self.id)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "EntityName":
        entity_type = EntityType.from_wire(dec.u32("name type"))
        return cls(type=entity_type, id=dec.string("name id"))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": str(self.type), "id": self.id}


class AddrType(IntEnum):
    """Messenger protocol spoken at an address."""

    NONE = 0
    LEGACY = 1
    MSGR2 = 2
    ANY = 3


_ADDR_PREFIX = {
    AddrType.NONE: "-",
    AddrType.LEGACY: "v1",
    AddrType.MSGR2: "v2",
    AddrType.ANY: "any",
}


@dataclass(frozen=True)
class EntityAddr:
    """
    A network address an entity listens on.

    Attributes:
        type: Messenger protocol (NONE for the blank address)
        host: Host or IP address
        port: TCP port
        nonce: Instance nonce distinguishing restarts on the same address
    """
    type: AddrType = AddrType.NONE
    host: str = ""
    port: int = 0
    nonce: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"Port out of range: {self.port}")
        if not 0 <= self.nonce <= 0xFFFFFFFF:
            raise ValueError(f"Nonce out of range: {self.nonce}")

    def is_blank(self) -> bool:
        return self.type == AddrType.NONE

    def __str__(self) -> str:
        if self.is_blank():
            return "-"
        return f"{_ADDR_PREFIX[self.type]}:{self.host}:{self.port}/{self.nonce}"

    def encode_into(self, enc: Encoder) -> None:
        enc.u8(self.type)
        enc.u32(self.nonce)
        enc.string(self.host)
        enc.u16(self.port)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "EntityAddr":
        raw_type = dec.u8("addr type")
        try:
            addr_type = AddrType(raw_type)
        except ValueError:
            raise DecodeError(f"Unknown address type: {raw_type}") from None
        nonce = dec.u32("addr nonce")
        host = dec.string("addr host")
        port = dec.u16("addr port")
        return cls(type=addr_type, host=host, port=port, nonce=nonce)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": _ADDR_PREFIX[self.type],
            "addr": f"{self.host}:{self.port}",
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class UTime:
    """
    Wall-clock timestamp.

    Attributes:
        sec: Seconds since the Unix epoch
        nsec: Nanoseconds within the second
    """
    sec: int = 0
    nsec: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.sec <= 0xFFFFFFFF:
            raise ValueError(f"Seconds out of range: {self.sec}")
        if not 0 <= self.nsec < 1_000_000_000:
            raise ValueError(f"Nanoseconds out of range: {self.nsec}")

    @classmethod
    def now(cls) -> "UTime":
        ns = time.time_ns()
        return cls(sec=ns // 1_000_000_000, nsec=ns % 1_000_000_000)

    @classmethod
    def from_float(cls, seconds: float) -> "UTime":
        sec = int(seconds)
        nsec = min(int(round((seconds - sec) * 1_000_000_000)), 999_999_999)
        return cls(sec=sec, nsec=nsec)

    def __float__(self) -> float:
        return self.sec + self.nsec / 1_000_000_000

    def isoformat(self) -> str:
        dt = datetime.fromtimestamp(self.sec, tz=timezone.utc)
        return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{self.nsec // 1000:06d}+0000"

    def __str__(self) -> str:
        return self.isoformat()

    def encode_into(self, enc: Encoder) -> None:
        enc.u32(self.sec)
        enc.u32(self.nsec)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "UTime":
        sec = dec.u32("stamp sec")
        nsec = dec.u32("stamp nsec")
        if nsec >= 1_000_000_000:
            raise DecodeError(f"Invalid timestamp nanoseconds: {nsec}")
        return cls(sec=sec, nsec=nsec)

    def to_dict(self) -> Dict[str, Any]:
        return {"sec": self.sec, "nsec": self.nsec, "iso": self.isoformat()}
