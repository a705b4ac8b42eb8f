"""
Output package for Diff QA Reporter.

This package contains formatters for the QA changelog and developer
README Markdown documents, JSON/YAML dumps of the full report, and the
Markdown table helpers both documents are built from.
"""

from diff_qa_reporter.output.dev_readme import DevReadmeFormatter
from diff_qa_reporter.output.formatters import (
    BaseFormatter,
    get_formatter,
)
from diff_qa_reporter.output.json_output import JsonFormatter
from diff_qa_reporter.output.qa_changelog import QAChangelogFormatter
from diff_qa_reporter.output.yaml_output import YamlFormatter

__all__ = [
    "BaseFormatter",
    "DevReadmeFormatter",
    "JsonFormatter",
    "QAChangelogFormatter",
    "YamlFormatter",
    "get_formatter",
]
