"""Persistence of cluster log summaries."""

from clusterlog.storage.store import SummaryStore

__all__ = ["SummaryStore"]
