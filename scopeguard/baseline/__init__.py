"""Baseline Store access."""

from .store import (
    BaselineReader,
    BaselineStore,
    InMemoryBaselineStore,
    JsonBaselineStore,
    SnapshotReader,
)
from .resilience import baseline_retrying, call_with_retry

__all__ = [
    "BaselineReader",
    "BaselineStore",
    "InMemoryBaselineStore",
    "JsonBaselineStore",
    "SnapshotReader",
    "baseline_retrying",
    "call_with_retry",
]
