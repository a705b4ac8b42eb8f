"""
Content readers for the two sides of a change.

The differs never talk to git or the filesystem directly; they ask a
ContentReader for a file's text at the base or head side.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from diff_qa_reporter.collector.git_client import GitClient
from diff_qa_reporter.models.diff import DiffFile
from diff_qa_reporter.parser.diff_parser import DiffParser

logger = logging.getLogger(__name__)


class ContentReader(ABC):
    """Read file contents at the base and head side of a change."""

    @abstractmethod
    def read_before(self, path: str) -> Optional[str]:
        """Content at the base side, or None if unavailable."""
        pass

    @abstractmethod
    def read_after(self, path: str) -> Optional[str]:
        """Content at the head side, or None if unavailable."""
        pass

    def tree_paths(self) -> Optional[set[str]]:
        """All paths present at the head side, or None if not listable."""
        return None


class GitContentReader(ContentReader):
    """Read contents lazily with `git cat-file -p <sha>:<path>`."""

    def __init__(
        self,
        client: GitClient,
        base_sha: str,
        head_sha: str,
        head_tree: Optional[set[str]] = None,
    ) -> None:
        self.client = client
        self.base_sha = base_sha
        self.head_sha = head_sha
        self._head_tree = head_tree
        self._cache: dict[tuple[str, str], Optional[str]] = {}

    def _read(self, sha: str, path: str) -> Optional[str]:
        key = (sha, path)
        if key not in self._cache:
            self._cache[key] = self.client.show(sha, path)
        return self._cache[key]

    def read_before(self, path: str) -> Optional[str]:
        return self._read(self.base_sha, path)

    def read_after(self, path: str) -> Optional[str]:
        return self._read(self.head_sha, path)

    def tree_paths(self) -> Optional[set[str]]:
        return self._head_tree


class SnapshotContentReader(ContentReader):
    """
    Read contents from snapshot directories or from the diff itself.

    Used when only diff text is available. Snapshot directories take
    precedence; without them, added files are rebuilt from their hunks
    (head side) and deleted files likewise (base side).
    """

    def __init__(
        self,
        files: list[DiffFile],
        before_dir: Optional[Path] = None,
        after_dir: Optional[Path] = None,
    ) -> None:
        self.before_dir = before_dir
        self.after_dir = after_dir
        self._by_head_path = {f.path: f for f in files}
        self._by_base_path = {f.base_path: f for f in files}

    @staticmethod
    def _read_file(root: Path, path: str) -> Optional[str]:
        candidate = root / path
        if not candidate.is_file():
            return None
        return candidate.read_text(encoding="utf-8", errors="replace")

    def read_before(self, path: str) -> Optional[str]:
        if self.before_dir is not None:
            return self._read_file(self.before_dir, path)
        diff_file = self._by_base_path.get(path)
        if diff_file is None:
            return None
        return DiffParser.reconstruct_content(diff_file, "before")

    def read_after(self, path: str) -> Optional[str]:
        if self.after_dir is not None:
            return self._read_file(self.after_dir, path)
        diff_file = self._by_head_path.get(path)
        if diff_file is None:
            return None
        return DiffParser.reconstruct_content(diff_file, "after")

    def tree_paths(self) -> Optional[set[str]]:
        if self.after_dir is None:
            return None
        return {
            p.relative_to(self.after_dir).as_posix()
            for p in self.after_dir.rglob("*")
            if p.is_file()
        }
