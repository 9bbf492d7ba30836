"""
Cluster log records and their dedup keys.

A LogRecord is immutable once built. Its LogRecordKey, the (rank, stamp,
seq) triple, names the record for deduplication: two deliveries of the same
record through different paths produce equal keys.

Wire format (inside a versioned envelope, see clusterlog.core.encoding):

    rank
    address vector (v5) or a single legacy address (v2-v4)
    stamp
    seq (8 bytes)
    prio (2 bytes, signed)
    msg
    channel (v3+)
    name (v4+)

The struct version written depends on the negotiated Features; see
``record_struct_version``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from clusterlog.core import syslog
from clusterlog.core.channels import CHANNEL_AUDIT, CHANNEL_CLUSTER
from clusterlog.core.encoding import Decoder, Encoder, Features
from clusterlog.core.entity import (
    AddrType,
    EntityAddr,
    EntityName,
    EntityRank,
    EntityType,
    UTime,
)
from clusterlog.core.severity import (
    Severity,
    severity_from_wire,
    severity_tag,
    severity_to_string,
)

RECORD_STRUCT_V = 5
RECORD_COMPAT_V = 2
RECORD_OLDEST_V = 2

KEY_STRUCT_V = 1
KEY_COMPAT_V = 1

MAX_SEQ = 0xFFFFFFFFFFFFFFFF

# Record fields in the order their struct versions introduced them.
_RECORD_LEVELS = (Features.CHANNELS, Features.ENTITY_NAME, Features.ADDRVEC)


def record_struct_version(features: Features) -> int:
    """
    Record struct version for a feature mask.

    Levels are cumulative: a peer only gets v4 (names) if it also has
    channels, and v5 (address vectors) if it has both.
    """
    struct_v = RECORD_OLDEST_V
    for flag in _RECORD_LEVELS:
        if not features & flag:
            break
        struct_v += 1
    return struct_v


def _check_seq(seq: int) -> None:
    if seq < 0:
        raise ValueError(f"Sequence must be non-negative, got {seq}")
    if seq > MAX_SEQ:
        raise ValueError(f"Sequence out of range: {seq}")


@dataclass(frozen=True)
class LogRecordKey:
    """
    Dedup key of a log record.

    Attributes:
        rank: Origin of the record
        stamp: Time the origin stamped the record
        seq: Origin's sequence number for the record
    """
    rank: EntityRank
    stamp: UTime
    seq: int

    def __post_init__(self) -> None:
        _check_seq(self.seq)

    def __hash__(self) -> int:
        return hash((self.rank, self.seq))

    def encode_into(self, enc: Encoder) -> None:
        with enc.versioned(KEY_STRUCT_V, KEY_COMPAT_V):
            self.rank.encode_into(enc)
            self.stamp.encode_into(enc)
            enc.u64(self.seq)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "LogRecordKey":
        with dec.versioned(KEY_STRUCT_V, KEY_COMPAT_V, "log record key"):
            rank = EntityRank.decode_from(dec)
            stamp = UTime.decode_from(dec)
            seq = dec.u64("key seq")
        return cls(rank=rank, stamp=stamp, seq=seq)

    def encode(self) -> bytes:
        enc = Encoder()
        self.encode_into(enc)
        return enc.getvalue()

    @classmethod
    def decode(cls, data: bytes) -> "LogRecordKey":
        dec = Decoder(data)
        key = cls.decode_from(dec)
        dec.expect_end()
        return key

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": str(self.rank),
            "stamp": self.stamp.to_dict(),
            "seq": self.seq,
        }

    @classmethod
    def generate_test_instances(cls) -> List["LogRecordKey"]:
        return [
            cls(rank=EntityRank(), stamp=UTime(), seq=0),
            cls(
                rank=EntityRank(EntityType.OSD, 123),
                stamp=UTime(1_700_000_000, 500_000_000),
                seq=42,
            ),
        ]


@dataclass(frozen=True)
class LogRecord:
    """
    A single cluster log record.

    Attributes:
        name: Display name of the emitting daemon
        rank: Origin of the record
        addrs: Addresses the origin listens on
        stamp: Time the origin stamped the record
        seq: Origin's sequence number
        prio: Severity
        msg: Free-text message
        channel: Logical stream the record belongs to
    """
    name: EntityName = field(default_factory=EntityName)
    rank: EntityRank = field(default_factory=EntityRank)
    addrs: Tuple[EntityAddr, ...] = ()
    stamp: UTime = field(default_factory=UTime)
    seq: int = 0
    prio: Severity = Severity.DEBUG
    msg: str = ""
    channel: str = CHANNEL_CLUSTER

    def __post_init__(self) -> None:
        if not isinstance(self.addrs, tuple):
            object.__setattr__(self, "addrs", tuple(self.addrs))
        _check_seq(self.seq)
        if not isinstance(self.prio, Severity):
            object.__setattr__(self, "prio", severity_from_wire(int(self.prio)))

    def key(self) -> LogRecordKey:
        return LogRecordKey(rank=self.rank, stamp=self.stamp, seq=self.seq)

    identity = key

    def legacy_addr(self) -> EntityAddr:
        """The single address sent to peers that predate address vectors."""
        for addr in self.addrs:
            if addr.type in (AddrType.LEGACY, AddrType.ANY):
                return addr
        if self.addrs:
            return self.addrs[0]
        return EntityAddr()

    def encode_into(self, enc: Encoder, features: Features = Features.ALL) -> None:
        struct_v = record_struct_version(features)
        with enc.versioned(struct_v, RECORD_COMPAT_V):
            self.rank.encode_into(enc)
            if struct_v >= 5:
                enc.u32(len(self.addrs))
                for addr in self.addrs:
                    addr.encode_into(enc)
            else:
                self.legacy_addr().encode_into(enc)
            self.stamp.encode_into(enc)
            enc.u64(self.seq)
            enc.i16(self.prio)
            enc.string(self.msg)
            if struct_v >= 3:
                enc.string(self.channel)
            if struct_v >= 4:
                self.name.encode_into(enc)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "LogRecord":
        with dec.versioned(RECORD_STRUCT_V, RECORD_OLDEST_V, "log record") as struct_v:
            rank = EntityRank.decode_from(dec)
            if struct_v >= 5:
                count = dec.count("address count")
                addrs = tuple(EntityAddr.decode_from(dec) for _ in range(count))
            else:
                addr = EntityAddr.decode_from(dec)
                addrs = () if addr.is_blank() else (addr,)
            stamp = UTime.decode_from(dec)
            seq = dec.u64("record seq")
            prio = severity_from_wire(dec.i16("record prio"))
            msg = dec.string("record msg")

            if struct_v >= 3:
                channel = dec.string("record channel")
            elif prio == Severity.SECURITY:
                channel = CHANNEL_AUDIT
            else:
                channel = CHANNEL_CLUSTER

            if struct_v >= 4:
                name = EntityName.decode_from(dec)
            else:
                name = EntityName(type=rank.type)

        return cls(
            name=name,
            rank=rank,
            addrs=addrs,
            stamp=stamp,
            seq=seq,
            prio=prio,
            msg=msg,
            channel=channel,
        )

    def encode(self, features: Features = Features.ALL) -> bytes:
        """
        Encode the record for a peer or storage format.

        Args:
            features: Capabilities of the receiver

        Returns:
            Encoded record
        """
        enc = Encoder()
        self.encode_into(enc, features)
        return enc.getvalue()

    @classmethod
    def decode(cls, data: bytes) -> "LogRecord":
        """
        Decode a record produced by ``encode``.

        Raises:
            DecodeError: If data is truncated, corrupted or too new
        """
        dec = Decoder(data)
        record = cls.decode_from(dec)
        dec.expect_end()
        return record

    def log_to_syslog(
        self,
        level: str,
        facility: str,
        sink: Optional[Callable[[int, str], None]] = None,
    ) -> bool:
        """Export to the host syslog, see clusterlog.core.syslog.log_to_syslog."""
        return syslog.log_to_syslog(self, level, facility, sink=sink)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": str(self.name),
            "rank": str(self.rank),
            "addrs": [addr.to_dict() for addr in self.addrs],
            "stamp": self.stamp.to_dict(),
            "seq": self.seq,
            "channel": self.channel,
            "priority": severity_tag(self.prio),
            "severity": severity_to_string(self.prio),
            "message": self.msg,
        }

    def __str__(self) -> str:
        return (
            f"{self.stamp} {self.name} ({self.rank}) {self.seq} : "
            f"{self.channel} {severity_tag(self.prio)} {self.msg}"
        )

    @classmethod
    def generate_test_instances(cls) -> List["LogRecord"]:
        return [
            cls(),
            cls(
                name=EntityName(EntityType.MON, "a"),
                rank=EntityRank(EntityType.MON, 0),
                addrs=(
                    EntityAddr(AddrType.MSGR2, "10.0.0.1", 3300, 0),
                    EntityAddr(AddrType.LEGACY, "10.0.0.1", 6789, 0),
                ),
                stamp=UTime(1_700_000_000, 123_456_000),
                seq=1,
                prio=Severity.INFO,
                msg="mon.a calling monitor election",
                channel=CHANNEL_CLUSTER,
            ),
            cls(
                name=EntityName(EntityType.CLIENT, "admin"),
                rank=EntityRank(EntityType.CLIENT, 4151),
                addrs=(EntityAddr(AddrType.ANY, "10.0.0.7", 0, 2_914_122_451),),
                stamp=UTime(1_700_000_100, 0),
                seq=7,
                prio=Severity.SECURITY,
                msg="from='client.admin' cmd=[{\"prefix\": \"osd pool create\"}]: dispatch",
                channel=CHANNEL_AUDIT,
            ),
        ]
