"""
Developer README formatter.

Renders the reviewer-facing document: what changed, how to run it
locally, the resulting API contract, known limitations and dependency
changes.
"""

import json
import re
from typing import Any, Optional

from diff_qa_reporter.config import CommandsConfig
from diff_qa_reporter.models.change import Category, ChangeRecord
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    EndpointDelta,
    FieldLocation,
    RouteSignature,
)
from diff_qa_reporter.models.report import AnalysisReport
from diff_qa_reporter.output.formatters import BaseFormatter, register_formatter
from diff_qa_reporter.output.markdown_tables import render_table

FILE_HEADERS = ["File", "Status", "Category", "+/-"]
ENDPOINT_SUMMARY_HEADERS = ["Method", "Path", "Status", "Auth", "Breaking"]
REQUEST_HEADERS = ["Field", "Type", "Required", "Location"]
RESPONSE_HEADERS = ["Field", "Type"]
LIMITATION_HEADERS = ["Area", "Limitation"]
DEPENDENCY_HEADERS = ["Package", "Before", "After", "Change"]

_DYNAMIC_SEGMENT_RE = re.compile(r"\[\[?(?:\.\.\.)?(\w+)\]?\]|\{(\w+)(?::[^}]*)?\}")

_SAMPLE_VALUES: dict[str, Any] = {
    "string": "example",
    "str": "example",
    "number": 1,
    "int": 1,
    "float": 1.0,
    "boolean": True,
    "bool": True,
}


def example_url(base_url: str, path: str) -> str:
    """Fill dynamic path segments (`[id]`, `{id}`) with sample values."""
    return base_url.rstrip("/") + _DYNAMIC_SEGMENT_RE.sub("1", path)


def example_body(sig: RouteSignature) -> Optional[dict[str, Any]]:
    """Sample JSON body holding the required body fields."""
    if sig.request_dynamic:
        return None
    body = {
        f.name: _SAMPLE_VALUES.get(f.type.split("|")[0].strip().lower())
        for f in sig.request_fields
        if f.location == FieldLocation.BODY and f.required
    }
    return body or None


@register_formatter("readme")
class DevReadmeFormatter(BaseFormatter):
    """
    Format a report as the developer README.
    """

    def __init__(
        self,
        project_name: str = "VHA Procurement Workflow System",
        commands: Optional[CommandsConfig] = None,
    ) -> None:
        self.project_name = project_name
        self.commands = commands or CommandsConfig()

    def _overview(self, report: AnalysisReport) -> list[str]:
        lines = ["## Overview", ""]
        if report.no_changes:
            lines.append(f"No changes detected between `{report.base}` and `{report.head}`.")
            return lines + [""]

        lines.append(
            f"Changes between `{report.base}` and `{report.head}`: "
            f"{report.total_files_changed} files "
            f"(+{report.total_additions}/-{report.total_deletions})."
        )
        lines.append("")
        for category in Category:
            count = len(report.get_records_by_category(category))
            if count:
                lines.append(f"- **{category.value}:** {count}")
        return lines + [""]

    def _files_changed(self, records: list[ChangeRecord]) -> list[str]:
        rows = []
        for r in records:
            path = f"{r.source_path} -> {r.path}" if r.source_path else r.path
            rows.append([path, r.status.value, r.category.value, f"+{r.additions}/-{r.deletions}"])
        return ["## Files Changed", ""] + render_table(FILE_HEADERS, rows) + [""]

    def _curl(self, delta: EndpointDelta) -> list[str]:
        sig = delta.signature
        command = f"curl -X {delta.method.value} '{example_url(self.commands.base_url, delta.path)}'"
        body = example_body(sig) if sig else None
        if body is not None:
            command += " \\\n  -H 'Content-Type: application/json'"
            command += f" \\\n  -d '{json.dumps(body)}'"
        return [f"# {delta.identifier}", command]

    def _how_to_test(self, report: AnalysisReport) -> list[str]:
        commands = self.commands
        lines = ["## How to Test Locally", "", "```bash"]
        lines.append(f"git checkout {report.head}")
        lines.append(commands.install)
        if report.schema_deltas or report.migrations:
            lines.append(commands.migrate)
        lines.append(commands.test)
        lines.append(commands.dev)
        lines += ["```", ""]

        live = [
            d for d in report.endpoint_deltas
            if d.change_type != EndpointChangeType.DELETED
        ]
        lines += ["### Endpoint Checks", ""]
        if not live:
            return lines + ["No endpoint changes to exercise.", ""]
        lines.append("```bash")
        for i, delta in enumerate(live):
            if i:
                lines.append("")
            lines.extend(self._curl(delta))
        return lines + ["```", ""]

    def _api_documentation(self, report: AnalysisReport) -> list[str]:
        lines = ["## API Documentation", ""]
        rows = []
        for d in report.endpoint_deltas:
            auth = d.signature.auth if d.signature else None
            rows.append([d.method.value, d.path, d.change_type.value, auth, d.breaking_label])
        lines.extend(render_table(ENDPOINT_SUMMARY_HEADERS, rows))
        lines.append("")

        for delta in report.endpoint_deltas:
            if delta.change_type == EndpointChangeType.DELETED or delta.signature is None:
                continue
            sig = delta.signature
            lines += [f"### {delta.identifier}", ""]
            lines.append(f"- **Handler:** `{sig.source_file}`")
            if delta.previous_method or delta.previous_path:
                previous = delta.previous_signature
                if previous is not None:
                    lines.append(f"- **Previously:** `{previous.identifier}`")
            if delta.breaking_reasons:
                lines.append("- **Breaking:** " + "; ".join(delta.breaking_reasons))
            elif delta.breaking is None:
                lines.append("- **Breaking:** unknown, manual review required")
            lines.append("")

            lines += ["#### Request", ""]
            if sig.request_dynamic:
                lines += ["Request body is built dynamically; shape could not be determined.", ""]
            request_rows = [
                [f.name, f.type, "Yes" if f.required and not f.has_default else "No", f.location.value]
                for f in sig.request_fields
            ]
            lines.extend(render_table(REQUEST_HEADERS, request_rows))
            lines += ["", "#### Response", ""]
            if sig.response_dynamic:
                lines += ["Response payload is built dynamically; shape could not be determined.", ""]
            lines.extend(render_table(RESPONSE_HEADERS, [[f.name, f.type] for f in sig.response_fields]))
            lines.append("")
        return lines

    def _known_limitations(self, report: AnalysisReport) -> list[str]:
        rows: list[list[str]] = []
        for note in report.review_notes:
            rows.append([note.path, note.reason])
        for migration in report.migrations:
            if migration.reversible is False:
                rows.append([migration.path, f"Migration `{migration.name}` has no down migration"])
            elif migration.reversible is None:
                rows.append([migration.path, f"Reversibility of `{migration.name}` is unknown"])
        unique = list(dict.fromkeys(tuple(r) for r in rows))
        return ["## Known Limitations", ""] + render_table(LIMITATION_HEADERS, unique) + [""]

    def _dependencies(self, report: AnalysisReport) -> list[str]:
        rows = [
            [f"{c.package} (dev)" if c.dev else c.package, c.before, c.after, c.change.value]
            for c in report.dependency_changes
        ]
        return ["## Dependencies", ""] + render_table(DEPENDENCY_HEADERS, rows) + [""]

    def format(self, report: AnalysisReport) -> str:
        """Format an analysis report as the developer README."""
        lines = [f"# Developer README: {self.project_name}", ""]
        lines.extend(self._overview(report))
        lines.extend(self._files_changed(report.records))
        lines.extend(self._how_to_test(report))
        lines.extend(self._api_documentation(report))
        lines.extend(self._known_limitations(report))
        lines.extend(self._dependencies(report))
        return "\n".join(lines).rstrip("\n") + "\n"

    def format_records(self, records: list[ChangeRecord]) -> str:
        """Format a classification table as Markdown."""
        return "\n".join(self._files_changed(records)).rstrip("\n") + "\n"
