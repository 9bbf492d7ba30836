"""Shared fixtures for clusterlog tests."""

import itertools
from dataclasses import replace

import pytest

from clusterlog.core.channels import CHANNEL_AUDIT, CHANNEL_CLUSTER
from clusterlog.core.encoding import Features
from clusterlog.core.entity import (
    AddrType,
    EntityAddr,
    EntityName,
    EntityRank,
    EntityType,
    UTime,
)
from clusterlog.core.record import LogRecord, record_struct_version
from clusterlog.core.severity import Severity

FLAGS = [
    Features.CHANNELS,
    Features.ENTITY_NAME,
    Features.ADDRVEC,
    Features.CHANNEL_TAIL,
]


def all_feature_combinations():
    """Every subset of the capability flags."""
    combos = []
    for size in range(len(FLAGS) + 1):
        for subset in itertools.combinations(FLAGS, size):
            features = Features.NONE
            for flag in subset:
                features |= flag
            combos.append(features)
    return combos


@pytest.fixture
def make_record():
    """Factory for records with sensible defaults."""
    def _make(seq=1, channel=CHANNEL_CLUSTER, prio=Severity.INFO, rank=0, msg=None):
        return LogRecord(
            name=EntityName(EntityType.OSD, str(rank)),
            rank=EntityRank(EntityType.OSD, rank),
            addrs=(EntityAddr(AddrType.MSGR2, "10.0.0.2", 6800, 1234),),
            stamp=UTime(1_700_000_000 + seq, 0),
            seq=seq,
            prio=prio,
            msg=msg if msg is not None else f"message {seq}",
            channel=channel,
        )

    return _make


@pytest.fixture
def expected_after():
    """
    The record a lower-capability peer ends up with.

    Fields introduced after the negotiated level are replaced by the
    documented decode defaults.
    """
    def _expected(record, features, keep_channel=False):
        struct_v = record_struct_version(features)

        if struct_v >= 5:
            addrs = record.addrs
        else:
            legacy = record.legacy_addr()
            addrs = () if legacy.is_blank() else (legacy,)

        if struct_v >= 3 or keep_channel:
            channel = record.channel
        elif record.prio == Severity.SECURITY:
            channel = CHANNEL_AUDIT
        else:
            channel = CHANNEL_CLUSTER

        if struct_v >= 4:
            name = record.name
        else:
            name = EntityName(type=record.rank.type)

        return replace(record, addrs=addrs, channel=channel, name=name)

    return _expected


@pytest.fixture(
    params=all_feature_combinations(),
    ids=lambda features: f"features={int(features)}",
)
def features(request):
    """Every capability combination a peer can negotiate."""
    return request.param
