"""Tests for LogSummary encoding and decoding."""

import struct
from collections import deque

import pytest

from clusterlog.core.channels import CHANNEL_AUDIT, CHANNEL_CLUSTER
from clusterlog.core.encoding import DecodeError, Features
from clusterlog.core.summary import LogSummary


@pytest.fixture
def summary(make_record):
    """Summary with three channels, pruned once."""
    summary = LogSummary(version=12)
    channels = [CHANNEL_CLUSTER, CHANNEL_AUDIT, "mgr"]
    for i in range(1, 31):
        summary.add(make_record(i, channels[i % 3]))
    summary.prune(6)
    return summary


class TestRoundTrip:
    """Test decode(encode(x)) for every capability combination."""

    def test_fixtures_full_capability(self):
        """Test canonical instances round trip exactly."""
        for original in LogSummary.generate_test_instances():
            assert LogSummary.decode(original.encode(Features.ALL)) == original

    def test_fixtures_every_capability(self, features, expected_after):
        """Test canonical instances round trip after default-filling."""
        for original in LogSummary.generate_test_instances():
            decoded = LogSummary.decode(original.encode(features))

            assert decoded.version == original.version
            if features & Features.CHANNEL_TAIL:
                assert decoded.global_seq == original.global_seq
                assert decoded.channels.keys() == original.channels.keys()
                for channel, tail in original.channels.items():
                    assert list(decoded.channels[channel]) == [
                        (seq, expected_after(record, features, keep_channel=True))
                        for seq, record in tail
                    ]
            else:
                assert decoded.build_ordered_tail() == [
                    expected_after(record, features)
                    for record in original.build_ordered_tail()
                ]

    def test_preserves_version_seq_and_order(self, summary):
        """Test every part of the aggregate is restored."""
        decoded = LogSummary.decode(summary.encode())

        assert decoded.version == 12
        assert decoded.global_seq == 30
        assert decoded == summary
        assert decoded.build_ordered_tail() == summary.build_ordered_tail()

    def test_index_rebuilt_from_records(self, summary):
        """Test the dedup index is reconstructed, not transferred."""
        decoded = LogSummary.decode(summary.encode())

        assert decoded.seen == summary.seen
        for record in summary.build_ordered_tail():
            assert decoded.contains(record.key())

    def test_admission_continues_after_decode(self, summary, make_record):
        """Test a decoded summary keeps assigning fresh seqs."""
        decoded = LogSummary.decode(summary.encode())

        assert decoded.add(make_record(31)) == 31

    def test_channel_restored_without_channel_field(self, make_record):
        """Test per-channel layout restores channels the records omit."""
        summary = LogSummary()
        summary.add(make_record(1, "mgr"))

        decoded = LogSummary.decode(summary.encode(Features.CHANNEL_TAIL))

        assert decoded.channel_tail("mgr")[0].channel == "mgr"


class TestLegacyLayout:
    """Test the layout for peers without CHANNEL_TAIL."""

    def test_struct_versions(self, summary):
        """Test the envelope version follows CHANNEL_TAIL."""
        assert summary.encode(Features.ALL)[0] == 3
        assert summary.encode(Features.ALL & ~Features.CHANNEL_TAIL)[0] == 2

    def test_reassigns_seqs_in_global_order(self, summary):
        """Test records are re-admitted in their original global order."""
        features = Features.ALL & ~Features.CHANNEL_TAIL

        decoded = LogSummary.decode(summary.encode(features))

        assert decoded.version == summary.version
        assert decoded.global_seq == len(summary)
        assert decoded.build_ordered_tail() == summary.build_ordered_tail()
        assert decoded.seen == summary.seen


class TestDecodeErrors:
    """Test hard failures on malformed input."""

    def test_scenario_c_truncated_mid_record(self, summary):
        """Test any truncation yields DecodeError, never a partial summary."""
        data = summary.encode()

        for cut in (len(data) // 3, len(data) // 2, len(data) - 1):
            with pytest.raises(DecodeError):
                LogSummary.decode(data[:cut])

    def test_every_truncation_point(self, make_record):
        """Test every prefix of a small summary is rejected."""
        summary = LogSummary()
        summary.add(make_record(1, CHANNEL_CLUSTER))
        summary.add(make_record(2, CHANNEL_AUDIT))
        data = summary.encode()

        for cut in range(len(data)):
            with pytest.raises(DecodeError):
                LogSummary.decode(data[:cut])

    def test_trailing_bytes(self, summary):
        """Test garbage after the summary is rejected."""
        with pytest.raises(DecodeError, match="trailing"):
            LogSummary.decode(summary.encode() + b"\x00\x01")

    def test_incompatible_version(self):
        """Test a summary requiring a newer reader is rejected."""
        data = struct.pack(">BBI", 4, 4, 0)

        with pytest.raises(DecodeError, match="Incompatible"):
            LogSummary.decode(data)

    def test_out_of_order_seqs(self, make_record):
        """Test per-channel seqs must strictly increase."""
        summary = LogSummary(global_seq=2)
        summary.channels[CHANNEL_CLUSTER] = deque(
            [(2, make_record(1)), (1, make_record(2))]
        )

        with pytest.raises(DecodeError, match="Out-of-order"):
            LogSummary.decode(summary.encode())

    def test_seq_beyond_global_seq(self, make_record):
        """Test assigned seqs cannot exceed the summary counter."""
        summary = LogSummary(global_seq=1)
        summary.channels[CHANNEL_CLUSTER] = deque([(5, make_record(1))])

        with pytest.raises(DecodeError, match="Out-of-order"):
            LogSummary.decode(summary.encode())

    def test_corrupted_record_type(self, make_record):
        """Test a corrupted field inside a record is reported."""
        summary = LogSummary()
        summary.add(make_record(1))
        data = bytearray(summary.encode())
        # First byte of the first record's rank type.
        rank_offset = 6 + 8 + 8 + 4 + 4 + len(CHANNEL_CLUSTER) + 4 + 8 + 6
        data[rank_offset] = 0x03

        with pytest.raises(DecodeError, match="Unknown entity type"):
            LogSummary.decode(bytes(data))
