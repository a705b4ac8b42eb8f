"""
Collector package for Diff QA Reporter.

Gathers changed files between two git references (or from literal diff
text) and exposes file contents at both sides of the change.
"""

from diff_qa_reporter.collector.collector import DiffCollector, DiffSnapshot
from diff_qa_reporter.collector.git_client import GitClient
from diff_qa_reporter.collector.sources import (
    ContentReader,
    GitContentReader,
    SnapshotContentReader,
)

__all__ = [
    "ContentReader",
    "DiffCollector",
    "DiffSnapshot",
    "GitClient",
    "GitContentReader",
    "SnapshotContentReader",
]
