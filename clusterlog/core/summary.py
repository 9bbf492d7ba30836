"""
Bounded, multi-channel summary of recent cluster log records.

The summary keeps, per channel, the most recent records in admission order
and a set of their keys for O(1) "already seen?" checks. Every admitted
record is assigned the next value of a single counter shared by all
channels, so each channel's tail is sorted by that counter and the tails can
be merged into one globally ordered view.

Not thread-safe: callers serialize add/prune/encode on a shared instance.
"""

import heapq
from collections import deque
from dataclasses import dataclass, field, replace
from operator import itemgetter
from typing import Any, Deque, Dict, Iterator, List, Set, Tuple

from clusterlog.core.channels import CHANNEL_AUDIT
from clusterlog.core.encoding import DecodeError, Decoder, Encoder, Features
from clusterlog.core.record import LogRecord, LogRecordKey
from clusterlog.utils.logging import get_logger

logger = get_logger(__name__)

SUMMARY_STRUCT_V = 3
SUMMARY_OLDEST_V = 2

# Layout for peers without CHANNEL_TAIL: the merged tail, no per-channel seqs.
LEGACY_SUMMARY_STRUCT_V = 2


@dataclass
class LogSummary:
    """
    Recent cluster log records, grouped by channel.

    Attributes:
        version: Freshness marker maintained by the owner, round-tripped only
        global_seq: Last sequence number assigned to an admitted record
        channels: Channel name -> deque of (assigned seq, record), oldest first
        seen: Keys of every record currently retained in any channel
    """
    version: int = 0
    global_seq: int = 0
    channels: Dict[str, Deque[Tuple[int, LogRecord]]] = field(default_factory=dict)
    seen: Set[LogRecordKey] = field(default_factory=set)

    def add(self, record: LogRecord) -> int:
        """
        Admit a record at the tail of its channel.

        Duplicates are not rejected; use ``contains`` first to skip them.

        Returns:
            Sequence number assigned to the record
        """
        self.global_seq += 1
        tail = self.channels.get(record.channel)
        if tail is None:
            tail = self.channels[record.channel] = deque()
        tail.append((self.global_seq, record))
        self.seen.add(record.key())
        return self.global_seq

    def prune(self, max_entries: int) -> int:
        """
        Drop the oldest records of every channel longer than max_entries.

        Args:
            max_entries: Records to retain per channel

        Returns:
            Number of records removed
        """
        if max_entries < 0:
            raise ValueError(f"max_entries must be non-negative, got {max_entries}")

        removed = 0
        for tail in self.channels.values():
            while len(tail) > max_entries:
                _, record = tail.popleft()
                self.seen.discard(record.key())
                removed += 1

        if removed:
            logger.debug(
                "Pruned cluster log summary",
                removed=removed,
                max_entries=max_entries,
                retained=len(self),
            )
        return removed

    def contains(self, key: LogRecordKey) -> bool:
        return key in self.seen

    def __contains__(self, key: LogRecordKey) -> bool:
        return key in self.seen

    def __len__(self) -> int:
        return sum(len(tail) for tail in self.channels.values())

    def channel_tail(self, channel: str) -> List[LogRecord]:
        """Records retained in one channel, oldest first."""
        return [record for _, record in self.channels.get(channel, ())]

    def iter_ordered_tail(self) -> Iterator[LogRecord]:
        """Lazily yield all retained records in admission order."""
        merged = heapq.merge(*self.channels.values(), key=itemgetter(0))
        for _, record in merged:
            yield record

    def build_ordered_tail(self) -> List[LogRecord]:
        """
        All retained records across channels, in admission order.

        Each channel tail is already sorted by assigned seq, so this is a
        k-way merge rather than a sort.
        """
        return list(self.iter_ordered_tail())

    def _rebuild_seen(self) -> None:
        self.seen = {
            record.key()
            for tail in self.channels.values()
            for _, record in tail
        }

    def encode_into(self, enc: Encoder, features: Features = Features.ALL) -> None:
        if not features & Features.CHANNEL_TAIL:
            tail = self.build_ordered_tail()
            with enc.versioned(LEGACY_SUMMARY_STRUCT_V, LEGACY_SUMMARY_STRUCT_V):
                enc.u64(self.version)
                enc.u32(len(tail))
                for record in tail:
                    record.encode_into(enc, features)
            return

        with enc.versioned(SUMMARY_STRUCT_V, SUMMARY_STRUCT_V):
            enc.u64(self.version)
            enc.u64(self.global_seq)
            enc.u32(len(self.channels))
            for channel in sorted(self.channels):
                tail = self.channels[channel]
                enc.string(channel)
                enc.u32(len(tail))
                for seq, record in tail:
                    enc.u64(seq)
                    record.encode_into(enc, features)

    @classmethod
    def decode_from(cls, dec: Decoder) -> "LogSummary":
        summary = cls()
        with dec.versioned(SUMMARY_STRUCT_V, SUMMARY_OLDEST_V, "log summary") as struct_v:
            summary.version = dec.u64("summary version")
            if struct_v < SUMMARY_STRUCT_V:
                for _ in range(dec.count("record count")):
                    summary.add(LogRecord.decode_from(dec))
            else:
                summary.global_seq = dec.u64("summary seq")
                for _ in range(dec.count("channel count")):
                    channel = dec.string("channel name")
                    if channel in summary.channels:
                        raise DecodeError(f"Duplicate channel in summary: {channel!r}")
                    summary.channels[channel] = cls._decode_tail(
                        dec, channel, summary.global_seq
                    )

        summary._rebuild_seen()
        return summary

    @staticmethod
    def _decode_tail(
        dec: Decoder,
        channel: str,
        global_seq: int,
    ) -> Deque[Tuple[int, LogRecord]]:
        tail: Deque[Tuple[int, LogRecord]] = deque()
        last_seq = 0
        for _ in range(dec.count("channel record count")):
            seq = dec.u64("assigned seq")
            record = LogRecord.decode_from(dec)
            if seq <= last_seq or seq > global_seq:
                raise DecodeError(
                    f"Out-of-order seq {seq} in channel {channel!r} "
                    f"(previous {last_seq}, summary seq {global_seq})"
                )
            # Records encoded without CHANNELS come back with a default channel.
            if record.channel != channel:
                record = replace(record, channel=channel)
            tail.append((seq, record))
            last_seq = seq
        return tail

    def encode(self, features: Features = Features.ALL) -> bytes:
        """
        Encode the whole summary.

        Args:
            features: Capabilities of the receiver, applied to every record

        Returns:
            Encoded summary
        """
        enc = Encoder()
        self.encode_into(enc, features)
        return enc.getvalue()

    @classmethod
    def decode(cls, data: bytes) -> "LogSummary":
        """
        Decode a summary produced by ``encode``.

        A fresh instance is built and only returned once the whole buffer
        decoded cleanly.

        Raises:
            DecodeError: If data is truncated, corrupted or too new
        """
        dec = Decoder(data)
        summary = cls.decode_from(dec)
        dec.expect_end()
        return summary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "seq": self.global_seq,
            "tail_by_channel": {
                channel: [
                    {"seq": seq, "entry": record.to_dict()}
                    for seq, record in tail
                ]
                for channel, tail in sorted(self.channels.items())
            },
            "seen": len(self.seen),
        }

    @classmethod
    def generate_test_instances(cls) -> List["LogSummary"]:
        empty = cls()

        populated = cls(version=3)
        for record in LogRecord.generate_test_instances():
            populated.add(record)

        pruned = cls(version=7)
        for record in LogRecord.generate_test_instances():
            pruned.add(record)
            pruned.add(replace(record, seq=record.seq + 100))
        pruned.add(replace(LogRecord(), channel=CHANNEL_AUDIT, seq=500))
        pruned.prune(1)

        return [empty, populated, pruned]
