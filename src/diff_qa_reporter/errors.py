"""
Error taxonomy for Diff QA Reporter.

Collection-level errors are fatal and stop the analysis. Component-level
errors are recovered per file by the pipeline and surface as labeled
sections in the generated reports.
"""

from typing import Optional


class DiffReportError(Exception):
    """Base class for all Diff QA Reporter errors."""
    pass


class ConfigError(DiffReportError):
    """Invalid or unreadable configuration."""
    pass


class GitCommandError(DiffReportError):
    """A git invocation failed for a reason other than an unknown ref."""
    pass


class RefNotFoundError(DiffReportError):
    """A git reference could not be resolved to a commit."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Git reference not found: {ref}")
        self.ref = ref


class EmptyDiffError(DiffReportError):
    """Base and head are identical; there is nothing to report."""

    def __init__(self, base: str, head: str) -> None:
        super().__init__(f"No changes between {base} and {head}")
        self.base = base
        self.head = head


class CollectorTimeoutError(DiffReportError):
    """Collecting the diff did not finish within the configured timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Diff collection timed out after {timeout:g}s")
        self.timeout = timeout


class UnparseableFileError(DiffReportError):
    """A route or schema file could not be parsed into structured data."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot parse {path}: {reason}")
        self.path = path
        self.reason = reason


class AmbiguousBreakingChangeError(DiffReportError):
    """Breaking-change status cannot be decided from the extracted shapes."""

    def __init__(self, endpoint: str, reason: str, path: Optional[str] = None) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason
        self.path = path
