"""
Diff collector - gathers the changed files between two references.

Git queries are independent of each other, so they are fanned out on a
thread pool and joined before anything downstream runs. One blanket
timeout covers the whole collection step; if it expires the analysis
fails rather than reporting on a partial view of the diff.
"""

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from diff_qa_reporter.collector.git_client import GitClient
from diff_qa_reporter.collector.sources import (
    ContentReader,
    GitContentReader,
    SnapshotContentReader,
)
from diff_qa_reporter.config import CollectorConfig
from diff_qa_reporter.errors import CollectorTimeoutError, EmptyDiffError
from diff_qa_reporter.models.diff import DiffFile
from diff_qa_reporter.parser.diff_parser import DiffParser

logger = logging.getLogger(__name__)


@dataclass
class DiffSnapshot:
    """Everything collected for one (base, head) pair."""

    base: str
    head: str
    files: list[DiffFile]
    reader: ContentReader
    source: str
    scoped_diffs: dict[str, str] = field(default_factory=dict)
    base_sha: Optional[str] = None
    head_sha: Optional[str] = None


class DiffCollector:
    """
    Collect changed files from a git repository or from diff text.
    """

    def __init__(self, config: Optional[CollectorConfig] = None) -> None:
        """
        Initialize the collector.

        Args:
            config: Collector configuration (timeout, workers, prefixes).
        """
        self.config = config or CollectorConfig()

    def _gather(
        self,
        executor: ThreadPoolExecutor,
        tasks: dict[str, Callable[[], Any]],
        deadline: float,
    ) -> dict[str, Any]:
        """
        Run tasks in parallel and wait for all of them until the deadline.

        Raises:
            CollectorTimeoutError: If any task is still running at the deadline.
            Exception: The first exception raised by a task.
        """
        futures: dict[Future, str] = {executor.submit(fn): name for name, fn in tasks.items()}
        remaining = max(deadline - time.monotonic(), 0.0)
        done, pending = wait(futures, timeout=remaining, return_when=FIRST_EXCEPTION)

        for future in done:
            error = future.exception()
            if error is not None:
                for other in pending:
                    other.cancel()
                raise error

        if pending:
            for future in pending:
                future.cancel()
            raise CollectorTimeoutError(self.config.timeout_seconds)

        return {futures[future]: future.result() for future in done}

    def collect_from_git(
        self,
        repo_path: Path,
        base: str,
        head: str,
        path_prefixes: Optional[list[str]] = None,
    ) -> DiffSnapshot:
        """
        Collect the changes between two git references.

        Args:
            repo_path: Path to the repository.
            base: Base reference (branch, tag or SHA).
            head: Head reference.
            path_prefixes: Prefixes to produce scoped raw diffs for. Falls
                back to the configured prefixes.

        Returns:
            DiffSnapshot with the changed files in git's listing order.

        Raises:
            RefNotFoundError: If either reference cannot be resolved.
            EmptyDiffError: If base and head are identical.
            CollectorTimeoutError: If collection exceeds the timeout.
            GitCommandError: If a git query fails.
        """
        prefixes = path_prefixes if path_prefixes is not None else self.config.path_prefixes
        timeout = self.config.timeout_seconds
        deadline = time.monotonic() + timeout
        client = GitClient(repo_path, self.config.git_executable, timeout)

        executor = ThreadPoolExecutor(max_workers=self.config.max_workers)
        try:
            refs = self._gather(
                executor,
                {"base": lambda: client.resolve(base), "head": lambda: client.resolve(head)},
                deadline,
            )
            base_sha, head_sha = refs["base"], refs["head"]
            if base_sha == head_sha:
                raise EmptyDiffError(base, head)

            tasks: dict[str, Callable[[], Any]] = {
                "name_status": lambda: client.name_status(base_sha, head_sha),
                "diff": lambda: client.diff(base_sha, head_sha),
                "tree": lambda: client.list_tree(head_sha),
            }
            for prefix in prefixes:
                tasks[f"scoped:{prefix}"] = (
                    lambda p=prefix: client.diff(base_sha, head_sha, [p])
                )
            results = self._gather(executor, tasks, deadline)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        entries = DiffParser.parse_name_status(results["name_status"])
        if not entries:
            raise EmptyDiffError(base, head)

        parsed = {f.path: f for f in DiffParser.parse_string(results["diff"])}
        files: list[DiffFile] = []
        for status, path, source_path in entries:
            diff_file = parsed.get(path)
            if diff_file is None:
                # Binary files and pure renames have no hunks
                files.append(DiffFile(path=path, status=status, source_path=source_path))
                continue
            files.append(
                diff_file.model_copy(update={"status": status, "source_path": source_path})
            )

        logger.info(
            "Collected %d changed files between %s (%s) and %s (%s)",
            len(files), base, base_sha[:10], head, head_sha[:10],
        )
        return DiffSnapshot(
            base=base,
            head=head,
            files=files,
            reader=GitContentReader(client, base_sha, head_sha, results["tree"]),
            source=str(repo_path),
            scoped_diffs={p: results[f"scoped:{p}"] for p in prefixes},
            base_sha=base_sha,
            head_sha=head_sha,
        )

    def collect_from_text(
        self,
        diff_text: str,
        base: str = "base",
        head: str = "head",
        before_dir: Optional[Path] = None,
        after_dir: Optional[Path] = None,
        path_prefixes: Optional[list[str]] = None,
        source: str = "stdin",
    ) -> DiffSnapshot:
        """
        Collect changes from literal unified diff text.

        Args:
            diff_text: Unified diff (as produced by `git diff`).
            base: Label for the base side.
            head: Label for the head side.
            before_dir: Optional snapshot of the base tree.
            after_dir: Optional snapshot of the head tree.
            path_prefixes: Prefixes to produce scoped raw diffs for.
            source: Where the diff text came from, for the report.

        Raises:
            EmptyDiffError: If the diff holds no files.
            DiffParserError: If the diff text cannot be parsed.
        """
        prefixes = path_prefixes if path_prefixes is not None else self.config.path_prefixes
        files = DiffParser.parse_string(diff_text) if diff_text.strip() else []
        if not files:
            raise EmptyDiffError(base, head)

        scoped = {
            prefix: "".join(
                f.diff_text for f in files
                if f.path.startswith(prefix) or f.base_path.startswith(prefix)
            )
            for prefix in prefixes
        }
        logger.info("Parsed %d changed files from %s", len(files), source)
        return DiffSnapshot(
            base=base,
            head=head,
            files=files,
            reader=SnapshotContentReader(files, before_dir, after_dir),
            source=source,
            scoped_diffs=scoped,
        )
