"""
Retention policy for cluster log summaries.

Wraps LogSummary.prune with the configured per-channel cap so owners of a
summary apply the same limit everywhere.
"""

from clusterlog.core.summary import LogSummary
from clusterlog.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_SUMMARY = 50


class RetentionManager:
    """Enforces the per-channel record cap on summaries."""

    def __init__(self, max_summary: int = DEFAULT_MAX_SUMMARY):
        """
        Initialize retention manager.

        Args:
            max_summary: Records retained per channel

        Raises:
            ValueError: If max_summary is negative
        """
        if max_summary < 0:
            raise ValueError(f"max_summary must be non-negative, got {max_summary}")
        self.max_summary = max_summary

        logger.info("Initialized retention manager", max_summary=max_summary)

    @classmethod
    def from_config(cls, config) -> "RetentionManager":
        return cls(int(config.get("cluster_log.max_summary", DEFAULT_MAX_SUMMARY)))

    def needs_pruning(self, summary: LogSummary) -> bool:
        return any(len(tail) > self.max_summary for tail in summary.channels.values())

    def apply(self, summary: LogSummary) -> int:
        """
        Prune a summary down to the configured cap.

        Args:
            summary: Summary to prune in place

        Returns:
            Number of records removed
        """
        if not self.needs_pruning(summary):
            return 0
        return summary.prune(self.max_summary)
