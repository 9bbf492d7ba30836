"""
On-disk persistence of a LogSummary.

File format:
    Magic (7 bytes) - b"CLOGSUM"
    Store version (1 byte)
    CRC32C (4 bytes) - Checksum of the payload
    Length (4 bytes) - Payload length
    Payload (variable) - LogSummary.encode(features)

Writes go to a temporary file that is renamed over the target, so a crash
leaves either the previous or the new summary on disk.
"""

import os
import struct
from pathlib import Path
from typing import Optional, Union

import crc32c

from clusterlog.core.encoding import DecodeError, Features, parse_features
from clusterlog.core.summary import LogSummary
from clusterlog.utils.logging import get_logger

logger = get_logger(__name__)


class SummaryStore:
    """Saves and loads a LogSummary to a single checksummed file."""

    MAGIC = b"CLOGSUM"
    STORE_VERSION = 1
    HEADER_FORMAT = ">7sBII"
    HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
    FILE_NAME = "log_summary.bin"

    def __init__(self, path: Union[str, Path], features: Features = Features.ALL):
        """
        Initialize the store.

        Args:
            path: File holding the encoded summary
            features: Capabilities used when encoding on save
        """
        self.path = Path(path)
        self.features = features

    @classmethod
    def from_config(cls, config) -> "SummaryStore":
        """
        Build a store from the ``cluster_log`` config section.

        Args:
            config: Config instance

        Returns:
            Store under cluster_log.data_dir
        """
        data_dir = Path(config.get("cluster_log.data_dir", "./data"))
        features = parse_features(config.get("cluster_log.features", "all"))
        return cls(data_dir / cls.FILE_NAME, features=features)

    def save(self, summary: LogSummary, features: Optional[Features] = None) -> int:
        """
        Atomically write a summary.

        Args:
            summary: Summary to persist
            features: Overrides the store's encoding capabilities

        Returns:
            Bytes written
        """
        features = self.features if features is None else features
        payload = summary.encode(features)
        header = struct.pack(
            self.HEADER_FORMAT,
            self.MAGIC,
            self.STORE_VERSION,
            crc32c.crc32c(payload),
            len(payload),
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "wb") as f:
                f.write(header)
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            logger.error("Failed to save log summary", path=str(self.path), error=str(e))
            raise

        logger.info(
            "Saved log summary",
            path=str(self.path),
            version=summary.version,
            seq=summary.global_seq,
            records=len(summary),
            size=len(header) + len(payload),
        )
        return len(header) + len(payload)

    def load(self) -> LogSummary:
        """
        Read the persisted summary.

        Returns:
            Decoded summary, or an empty one if nothing was saved yet

        Raises:
            DecodeError: If the file is truncated or corrupted
        """
        if not self.path.exists():
            logger.debug("No persisted log summary", path=str(self.path))
            return LogSummary()

        data = self.path.read_bytes()
        try:
            summary = self._decode_file(data)
        except DecodeError as e:
            logger.warning(
                "Failed to load log summary",
                path=str(self.path),
                error=str(e),
            )
            raise

        logger.debug(
            "Loaded log summary",
            path=str(self.path),
            version=summary.version,
            seq=summary.global_seq,
            records=len(summary),
        )
        return summary

    def _decode_file(self, data: bytes) -> LogSummary:
        if len(data) < self.HEADER_SIZE:
            raise DecodeError(f"Data too short: {len(data)} bytes")

        magic, version, crc, length = struct.unpack(
            self.HEADER_FORMAT, data[: self.HEADER_SIZE]
        )
        if magic != self.MAGIC:
            raise DecodeError(f"Bad magic: {magic!r}")
        if version != self.STORE_VERSION:
            raise DecodeError(f"Unsupported store version: {version}")

        payload = data[self.HEADER_SIZE :]
        if len(payload) != length:
            raise DecodeError(
                f"Incomplete summary: expected {length} bytes, got {len(payload)} bytes"
            )

        computed_crc = crc32c.crc32c(payload)
        if computed_crc != crc:
            raise DecodeError(f"CRC mismatch: expected {crc}, computed {computed_crc}")

        return LogSummary.decode(payload)

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
