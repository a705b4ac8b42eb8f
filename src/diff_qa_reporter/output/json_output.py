"""
JSON output formatter.
"""

import json
from typing import Any

from diff_qa_reporter.models.change import ChangeRecord
from diff_qa_reporter.models.report import AnalysisReport
from diff_qa_reporter.output.formatters import BaseFormatter, register_formatter


def record_to_dict(record: ChangeRecord) -> dict[str, Any]:
    """Convert a change record to a dictionary, without its raw diff."""
    return record.model_dump(mode="json", exclude={"diff_text"})


def report_to_dict(report: AnalysisReport) -> dict[str, Any]:
    """
    Convert a report to plain data.

    Timing and per-file diff text are left out so identical inputs give
    identical output. Edge-case sets are sorted.
    """
    data = report.model_dump(
        mode="json",
        exclude={"analysis_duration_ms", "records"},
    )
    data["records"] = [record_to_dict(r) for r in report.records]
    for case in data["test_cases"]:
        case["edge_cases"] = sorted(case["edge_cases"])
    overall = report.overall_priority
    data["summary"] = {
        "files_changed": report.total_files_changed,
        "additions": report.total_additions,
        "deletions": report.total_deletions,
        "overall_priority": overall.value if overall else None,
        "endpoint_changes": len(report.endpoint_deltas),
        "breaking_changes": report.breaking_count,
        "unknown_breaking": report.unknown_breaking_count,
        "schema_changes": len(report.schema_deltas),
        "test_cases": len(report.test_cases),
    }
    return data


@register_formatter("json")
class JsonFormatter(BaseFormatter):
    """
    Format output as JSON.
    """

    def __init__(self, indent: int = 2, **_: Any) -> None:
        """
        Initialize the JSON formatter.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def format(self, report: AnalysisReport) -> str:
        """Format an analysis report as JSON."""
        return json.dumps(report_to_dict(report), indent=self.indent, default=str) + "\n"

    def format_records(self, records: list[ChangeRecord]) -> str:
        """Format a classification table as JSON."""
        data = {
            "total": len(records),
            "records": [record_to_dict(r) for r in records],
        }
        return json.dumps(data, indent=self.indent, default=str) + "\n"
