"""
QA changelog formatter.

Renders the tester-facing document. Section order and table headers are
fixed; sections without data still render with placeholder rows.
"""

from typing import Optional

from diff_qa_reporter.config import CommandsConfig
from diff_qa_reporter.models.change import Category, ChangeRecord
from diff_qa_reporter.models.endpoint import EndpointChangeType, EndpointDelta, FieldDiff
from diff_qa_reporter.models.report import AnalysisReport
from diff_qa_reporter.models.schema import ColumnChangeType, ColumnDelta, SchemaDelta
from diff_qa_reporter.models.testcase import TestCase
from diff_qa_reporter.output.formatters import BaseFormatter, register_formatter
from diff_qa_reporter.output.markdown_tables import render_table

NO_CHANGES = "No changes detected"
ABSENT = "(none)"

RISK_HEADERS = ["Area", "Files", "Priority", "Risk Notes"]
FILE_HEADERS = ["File", "Status", "Category", "Priority"]
ENDPOINT_HEADERS = [
    "Method", "Path", "Previous", "File", "Request Changes",
    "Response Changes", "Auth Change", "Breaking", "Notes",
]
SCHEMA_HEADERS = [
    "Table", "Change", "Columns", "Relations", "Migration", "Reversible", "Data Impact",
]
MIGRATION_HEADERS = ["Migration", "Tables", "Reversible", "Data Impact"]
TEST_CASE_HEADERS = [
    "ID", "Priority", "Endpoint", "Title", "Preconditions",
    "Steps", "Expected Result", "Edge Cases",
]
REVIEW_HEADERS = ["File", "Reason"]

ENDPOINT_SECTIONS = [
    ("New Endpoints", EndpointChangeType.NEW),
    ("Modified Endpoints", EndpointChangeType.MODIFIED),
    ("Deleted Endpoints", EndpointChangeType.DELETED),
]

_RISK_NOTES = {
    Category.AUTH: "Session, login and access control behaviour may change",
    Category.BUSINESS_LOGIC: "Workflow rules and validation may change",
    Category.TYPES: "Shared contracts between client and server may drift",
    Category.UI_COMPONENT: "Visual regressions in shared components",
    Category.TIER_FORM: "Tier form data entry and navigation",
    Category.STYLING: "Layout and styling regressions",
    Category.CONFIG: "Build, environment or dependency behaviour may change",
    Category.TESTS: "Test suite changes only",
    Category.DOCS: "Documentation only",
    Category.OTHER: "Unclassified files; review manually",
}


def format_field_diffs(diffs: list[FieldDiff]) -> str:
    """One `name`: before -> after line per field."""
    return "\n".join(
        f"`{d.field}`: {d.before or ABSENT} -> {d.after or ABSENT}" for d in diffs
    )


def format_column(column: ColumnDelta) -> str:
    """Render a column change as `+ name type`, `- name` or `~ name a -> b`."""
    if column.change_type == ColumnChangeType.ADDED:
        text = f"+ `{column.name}` {column.type_after or ''}".rstrip()
        if column.nullable:
            text += " (nullable)"
        elif column.nullable is False:
            text += " (NOT NULL)"
        if column.has_default:
            text += " (default)"
        return text
    if column.change_type == ColumnChangeType.DROPPED:
        return f"- `{column.name}`"
    parts = []
    if column.type_before or column.type_after:
        parts.append(f"{column.type_before or '?'} -> {column.type_after or '?'}")
    if column.nullable is not None:
        parts.append("nullable" if column.nullable else "NOT NULL")
    return f"~ `{column.name}` " + ", ".join(parts) if parts else f"~ `{column.name}`"


def endpoint_notes(delta: EndpointDelta) -> str:
    if delta.breaking is None:
        return delta.review_note or ""
    return "\n".join(delta.breaking_reasons)


def endpoint_row(delta: EndpointDelta) -> list[Optional[str]]:
    previous = ""
    if delta.previous_method or delta.previous_path:
        method = (delta.previous_method or delta.method).value
        previous = f"{method} {delta.previous_path or delta.path}"
    return [
        delta.method.value,
        delta.path,
        previous,
        delta.file_path,
        format_field_diffs(delta.request_field_diffs),
        format_field_diffs(delta.response_field_diffs),
        delta.auth_change,
        delta.breaking_label,
        endpoint_notes(delta),
    ]


def case_row(case: TestCase) -> list[Optional[str]]:
    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(case.steps, start=1))
    return [
        case.id,
        case.priority.value,
        case.endpoint,
        case.title,
        case.preconditions,
        steps,
        case.expected_result,
        "\n".join(sorted(case.edge_cases)),
    ]


def migration_impact(report: AnalysisReport, tables: list[str]) -> str:
    impacts = [
        d.data_impact for d in report.schema_deltas
        if d.table in tables and d.data_impact != "None"
    ]
    return "; ".join(dict.fromkeys(impacts)) or "None"


@register_formatter("qa")
class QAChangelogFormatter(BaseFormatter):
    """
    Format a report as the QA changelog.
    """

    def __init__(
        self,
        project_name: str = "VHA Procurement Workflow System",
        commands: Optional[CommandsConfig] = None,
    ) -> None:
        self.project_name = project_name
        self.commands = commands or CommandsConfig()

    def _summary(self, report: AnalysisReport) -> list[str]:
        lines = ["## Summary", ""]
        lines.append(f"- **Base:** `{report.base}`")
        lines.append(f"- **Head:** `{report.head}`")
        if report.no_changes:
            lines.append("")
            lines.append(f"**{NO_CHANGES}** between `{report.base}` and `{report.head}`.")
            return lines + [""]

        overall = report.overall_priority
        lines.append(
            f"- **Files Changed:** {report.total_files_changed} "
            f"(+{report.total_additions}/-{report.total_deletions})"
        )
        lines.append(f"- **Overall Risk:** {overall.value if overall else 'Low'}")
        lines.append(f"- **Endpoint Changes:** {len(report.endpoint_deltas)}")
        lines.append(f"- **Breaking Changes:** {report.breaking_count}")
        if report.unknown_breaking_count:
            lines.append(
                f"- **Breaking Status Unknown:** {report.unknown_breaking_count} "
                "(manual review required)"
            )
        lines.append(f"- **Schema Changes:** {len(report.schema_deltas)}")
        lines.append(f"- **Test Cases:** {len(report.test_cases)}")
        return lines + [""]

    def _risk_note(self, report: AnalysisReport, category: Category) -> str:
        if category == Category.API:
            note = (
                f"{len(report.endpoint_deltas)} endpoint changes, "
                f"{report.breaking_count} breaking"
            )
            if report.unknown_breaking_count:
                note += f", {report.unknown_breaking_count} unknown"
            return note
        if category == Category.DATABASE:
            impacts = [d for d in report.schema_deltas if d.data_impact != "None"]
            note = f"{len(report.schema_deltas)} table changes, {len(report.migrations)} migrations"
            if impacts:
                note += f", {len(impacts)} with data impact"
            return note
        return _RISK_NOTES[category]

    def _risk_assessment(self, report: AnalysisReport) -> list[str]:
        rows = []
        for category in Category:
            records = report.get_records_by_category(category)
            if not records:
                continue
            priority = min((r.priority for r in records), key=lambda p: p.rank)
            rows.append([
                category.value,
                len(records),
                priority.value,
                self._risk_note(report, category),
            ])
        return ["## Risk Assessment", ""] + render_table(RISK_HEADERS, rows) + [""]

    def _changed_files(self, records: list[ChangeRecord]) -> list[str]:
        rows = [[r.path, r.status.value, r.category.value, r.priority.value] for r in records]
        return ["## Changed Files", ""] + render_table(FILE_HEADERS, rows) + [""]

    def _api_changes(self, report: AnalysisReport) -> list[str]:
        lines = ["## API Changes", ""]
        for title, change_type in ENDPOINT_SECTIONS:
            deltas = report.get_deltas_by_change_type(change_type)
            lines.append(f"### {title}")
            lines.append("")
            lines.extend(render_table(ENDPOINT_HEADERS, [endpoint_row(d) for d in deltas]))
            lines.append("")
        return lines

    def _schema_row(self, delta: SchemaDelta) -> list[Optional[str]]:
        return [
            delta.table,
            delta.change_type.value,
            "\n".join(format_column(c) for c in delta.columns),
            "\n".join(r.describe() for r in delta.relations),
            delta.migration_name,
            delta.reversible_label,
            delta.data_impact,
        ]

    def _database_changes(self, report: AnalysisReport) -> list[str]:
        lines = ["## Database Changes", "", "### Schema Changes", ""]
        lines.extend(
            render_table(SCHEMA_HEADERS, [self._schema_row(d) for d in report.schema_deltas])
        )
        lines += ["", "### Migrations", ""]
        rows = []
        for migration in report.migrations:
            if migration.reversible is None:
                reversible = "Unknown"
            else:
                reversible = "Yes" if migration.reversible else "No"
            rows.append([
                migration.name,
                ", ".join(migration.tables),
                reversible,
                migration_impact(report, migration.tables),
            ])
        lines.extend(render_table(MIGRATION_HEADERS, rows))
        return lines + [""]

    def _test_cases(self, cases: list[TestCase]) -> list[str]:
        lines = ["## Test Cases", ""]
        lines.extend(render_table(TEST_CASE_HEADERS, [case_row(c) for c in cases]))
        return lines + [""]

    def _manual_review(self, report: AnalysisReport) -> list[str]:
        rows = [[n.path, n.reason] for n in report.review_notes]
        return ["## Manual Review Required", ""] + render_table(REVIEW_HEADERS, rows) + [""]

    def _deployment_notes(self, report: AnalysisReport) -> list[str]:
        lines = ["## Deployment Notes", ""]
        if report.no_changes:
            return lines + ["- [ ] No deployment actions required", ""]

        for migration in report.migrations:
            lines.append(
                f"- [ ] Apply migration `{migration.name}` (`{self.commands.migrate}`)"
            )
            if migration.reversible is not True:
                lines.append(f"- [ ] Prepare a manual rollback plan for `{migration.name}`")
        for delta in report.schema_deltas:
            if delta.data_impact != "None":
                lines.append(f"- [ ] `{delta.table}`: {delta.data_impact}")
        breaking = [d for d in report.endpoint_deltas if d.breaking]
        if breaking:
            endpoints = ", ".join(f"`{d.identifier}`" for d in breaking)
            lines.append(f"- [ ] Notify API consumers of breaking changes: {endpoints}")
        if report.unknown_breaking_count:
            lines.append("- [ ] Decide breaking status of endpoints flagged for manual review")
        if report.dependency_changes:
            lines.append(f"- [ ] Reinstall dependencies (`{self.commands.install}`)")
        if report.get_records_by_category(Category.CONFIG):
            lines.append("- [ ] Verify environment and build configuration in every target environment")
        if report.review_notes:
            lines.append(
                f"- [ ] Resolve {len(report.review_notes)} manual review item(s)"
            )
        lines.append(f"- [ ] Run the full regression suite (`{self.commands.test}`)")
        return lines + [""]

    def format(self, report: AnalysisReport) -> str:
        """Format an analysis report as the QA changelog."""
        lines = [f"# QA Changelog: {self.project_name}", ""]
        lines.extend(self._summary(report))
        lines.extend(self._risk_assessment(report))
        lines.extend(self._changed_files(report.records))
        lines.extend(self._api_changes(report))
        lines.extend(self._database_changes(report))
        lines.extend(self._test_cases(report.test_cases))
        lines.extend(self._manual_review(report))
        lines.extend(self._deployment_notes(report))
        return "\n".join(lines).rstrip("\n") + "\n"

    def format_records(self, records: list[ChangeRecord]) -> str:
        """Format a classification table as Markdown."""
        return "\n".join(self._changed_files(records)).rstrip("\n") + "\n"
