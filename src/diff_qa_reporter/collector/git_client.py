"""
Thin subprocess wrapper around the git command line.

Every query is read-only and bounded by a per-call timeout. Results are
returned as text; interpretation is left to the parser package.
"""

import logging
import subprocess
from pathlib import Path
from typing import Iterable, Optional

from diff_qa_reporter.errors import (
    CollectorTimeoutError,
    GitCommandError,
    RefNotFoundError,
)

logger = logging.getLogger(__name__)


class GitClient:
    """
    Run git queries against a local repository.

    All commands are executed with `git -C <repo>` so the working
    directory of the calling process is never changed.
    """

    def __init__(
        self,
        repo_path: Path,
        git_executable: str = "git",
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize the git client.

        Args:
            repo_path: Path to the repository (any directory inside it).
            git_executable: git binary to invoke.
            timeout: Timeout in seconds for each git invocation.
        """
        self.repo_path = repo_path
        self.git_executable = git_executable
        self.timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = [self.git_executable, "-C", str(self.repo_path), *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise GitCommandError(f"git executable not found: {self.git_executable}") from e
        except subprocess.TimeoutExpired as e:
            raise CollectorTimeoutError(self.timeout) from e

    def run(self, *args: str) -> str:
        """
        Run a git command and return its stdout.

        Raises:
            GitCommandError: If git exits with a non-zero status.
            CollectorTimeoutError: If the command exceeds the timeout.
        """
        result = self._run(list(args))
        if result.returncode != 0:
            raise GitCommandError(
                f"git {' '.join(args)} failed: {result.stderr.strip() or result.returncode}"
            )
        return result.stdout

    def resolve(self, ref: str) -> str:
        """
        Resolve a reference to a full commit SHA.

        Raises:
            RefNotFoundError: If the reference does not name a commit.
        """
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        sha = result.stdout.strip()
        if result.returncode != 0 or not sha:
            raise RefNotFoundError(ref)
        return sha

    def name_status(self, base: str, head: str) -> str:
        """NUL-separated `--name-status` listing with rename detection."""
        return self.run("diff", "--name-status", "-M", "-z", base, head)

    def diff(self, base: str, head: str, paths: Iterable[str] = ()) -> str:
        """Full unified diff, optionally restricted to path prefixes."""
        args = ["diff", "-M", "--no-color", "--no-ext-diff", base, head]
        paths = list(paths)
        if paths:
            args += ["--", *paths]
        return self.run(*args)

    def list_tree(self, ref: str) -> set[str]:
        """All file paths tracked at a reference."""
        output = self.run("ls-tree", "-r", "--name-only", "-z", ref)
        return {path for path in output.split("\0") if path}

    def show(self, ref: str, path: str) -> Optional[str]:
        """
        Read a file's content at a reference.

        Returns:
            The file content, or None if the path does not exist there.
        """
        # `show` would treat `[id]` segments as a pathspec glob
        result = self._run(["cat-file", "-p", f"{ref}:{path}"])
        if result.returncode != 0:
            logger.debug("git cat-file %s:%s failed: %s", ref, path, result.stderr.strip())
            return None
        return result.stdout
