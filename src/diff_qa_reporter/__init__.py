"""
Diff QA Reporter

A CLI tool that analyzes the changes between two git references and
produces a QA changelog and a developer README. It classifies changed
files, diffs API route handlers and database schemas, and synthesizes
test cases from the resulting deltas.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("diff-qa-reporter")
except PackageNotFoundError:
    __version__ = "0.1.0"

# Public API exports
__all__ = [
    "__version__",
]
