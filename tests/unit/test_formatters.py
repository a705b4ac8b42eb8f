"""
Unit tests for output formatters.
"""

import json

import pytest
import yaml

from diff_qa_reporter.config import CommandsConfig
from diff_qa_reporter.models.change import Category, Priority
from diff_qa_reporter.models.dependency import DependencyChange, DependencyChangeType
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    EndpointDelta,
    FieldDiff,
    FieldSpec,
    HttpMethod,
    RouteSignature,
)
from diff_qa_reporter.models.report import AnalysisReport, ReviewNote
from diff_qa_reporter.models.schema import (
    ColumnChangeType,
    ColumnDelta,
    MigrationInfo,
    SchemaChangeType,
    SchemaDelta,
)
from diff_qa_reporter.models.testcase import TestCase
from diff_qa_reporter.output.dev_readme import DevReadmeFormatter, example_url
from diff_qa_reporter.output.formatters import get_formatter
from diff_qa_reporter.output.json_output import JsonFormatter
from diff_qa_reporter.output.markdown_tables import (
    PLACEHOLDER,
    escape_cell,
    parse_markdown_tables,
    render_table,
    unescape_cell,
)
from diff_qa_reporter.output.qa_changelog import QAChangelogFormatter
from diff_qa_reporter.output.report_reader import (
    read_change_records,
    read_endpoint_deltas,
    read_test_cases,
)
from diff_qa_reporter.output.yaml_output import YamlFormatter

from tests.helpers import ARCHIVE_ROUTE_PATH, PACKAGE_ROUTE_PATH, make_record

MIGRATION_PATH = "prisma/migrations/20240501_add_fitara/migration.sql"


def _archive_delta() -> EndpointDelta:
    signature = RouteSignature(
        method=HttpMethod.POST,
        path="/api/packages/[id]/archive",
        source_file=ARCHIVE_ROUTE_PATH,
        request_fields=[FieldSpec(name="reason", type="string")],
        response_fields=[FieldSpec(name="id"), FieldSpec(name="archived", type="boolean")],
    )
    return EndpointDelta(
        method=HttpMethod.POST,
        path="/api/packages/[id]/archive",
        change_type=EndpointChangeType.NEW,
        file_path=ARCHIVE_ROUTE_PATH,
        request_field_diffs=[FieldDiff(field="reason", after="string, required")],
        response_field_diffs=[
            FieldDiff(field="id", after="unknown, required"),
            FieldDiff(field="archived", after="boolean, required"),
        ],
        signature=signature,
    )


def _patch_delta() -> EndpointDelta:
    return EndpointDelta(
        method=HttpMethod.PATCH,
        path="/api/packages/[id]",
        change_type=EndpointChangeType.MODIFIED,
        file_path=PACKAGE_ROUTE_PATH,
        request_field_diffs=[
            FieldDiff(field="title", before="string, required"),
            FieldDiff(field="name", after="string, required"),
        ],
        auth_change="session -> role:admin",
        breaking=True,
        breaking_reasons=[
            "required request field `title` removed",
            "required request field `name` added without a default",
        ],
        previous_method=HttpMethod.PUT,
    )


def _dynamic_delta() -> EndpointDelta:
    return EndpointDelta(
        method=HttpMethod.POST,
        path="/api/import",
        change_type=EndpointChangeType.MODIFIED,
        file_path="app/api/import/route.ts",
        breaking=None,
        review_note="request body is built dynamically",
        signature=RouteSignature(
            method=HttpMethod.POST,
            path="/api/import",
            source_file="app/api/import/route.ts",
            request_dynamic=True,
        ),
    )


@pytest.fixture
def sample_report() -> AnalysisReport:
    """A report touching every section of both documents."""
    records = [
        make_record(ARCHIVE_ROUTE_PATH, status=ChangeStatus.ADDED),
        make_record(PACKAGE_ROUTE_PATH),
        make_record(MIGRATION_PATH, status=ChangeStatus.ADDED, category=Category.DATABASE),
        make_record("package.json", category=Category.CONFIG, priority=Priority.MEDIUM),
        make_record("docs/notes|draft.md", category=Category.DOCS, priority=Priority.LOW),
    ]
    return AnalysisReport(
        base="main",
        head="feature/archive",
        records=records,
        endpoint_deltas=[_archive_delta(), _patch_delta(), _dynamic_delta()],
        schema_deltas=[
            SchemaDelta(
                table="packages",
                change_type=SchemaChangeType.MODIFIED,
                columns=[
                    ColumnDelta(
                        name="fitara_approval_id",
                        change_type=ColumnChangeType.ADDED,
                        type_after="TEXT",
                        nullable=True,
                    )
                ],
                migration_name="20240501_add_fitara",
                reversible=False,
            )
        ],
        migrations=[
            MigrationInfo(
                name="20240501_add_fitara",
                path=MIGRATION_PATH,
                tables=["packages"],
                reversible=False,
            )
        ],
        test_cases=[
            TestCase(
                id="TC-001",
                priority=Priority.CRITICAL,
                title="Happy path for updated endpoint PATCH /api/packages/[id]",
                endpoint="PATCH /api/packages/[id]",
                preconditions="Signed in with role:admin",
                steps=["Send PATCH with `name`", "Verify the response | body"],
                expected_result="Successful 2xx response",
                edge_cases=frozenset({"missing `name`", "unauthenticated request"}),
            ),
            TestCase(
                id="TC-010",
                priority=Priority.HIGH,
                title="Migration applies and rolls back cleanly",
                steps=["Apply pending migrations"],
            ),
        ],
        dependency_changes=[
            DependencyChange(
                package="next",
                manifest="package.json",
                before="^14.0.0",
                after="^14.2.0",
                change=DependencyChangeType.UPGRADED,
            )
        ],
        review_notes=[ReviewNote(path="app/api/import/route.ts", reason="request body is built dynamically")],
        analysis_duration_ms=12.5,
    )


@pytest.fixture
def empty_report() -> AnalysisReport:
    return AnalysisReport(base="abc123", head="abc123", no_changes=True)


class TestMarkdownTables:
    """Tests for table rendering and parsing."""

    def test_escape_cell(self) -> None:
        assert escape_cell("a|b\nc") == "a\\|b<br>c"
        assert escape_cell(None) == ""
        assert escape_cell(3) == "3"
        assert unescape_cell(" a\\|b<br>c ") == "a|b\nc"

    def test_empty_table_gets_placeholder_row(self) -> None:
        lines = render_table(["A", "B"], [])

        assert lines == ["| A | B |", "|---|---|", f"| {PLACEHOLDER} | {PLACEHOLDER} |"]

    def test_parse_back_with_heading(self) -> None:
        text = "\n".join(
            ["## Things", ""]
            + render_table(["Name", "Note"], [["x|y", "line1\nline2"], ["z", None]])
            + ["", "## Empty", ""]
            + render_table(["Name"], [])
        )

        tables = parse_markdown_tables(text)

        assert tables[0].heading == "Things"
        assert tables[0].rows == [
            {"Name": "x|y", "Note": "line1\nline2"},
            {"Name": "z", "Note": ""},
        ]
        assert tables[1].heading == "Empty"
        assert tables[1].rows == []
        assert tables[1].placeholder


class TestQAChangelogFormatter:
    """Tests for QAChangelogFormatter."""

    def test_section_order(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)

        headings = [line for line in output.splitlines() if line.startswith("#")]
        assert headings == [
            "# QA Changelog: VHA Procurement Workflow System",
            "## Summary",
            "## Risk Assessment",
            "## Changed Files",
            "## API Changes",
            "### New Endpoints",
            "### Modified Endpoints",
            "### Deleted Endpoints",
            "## Database Changes",
            "### Schema Changes",
            "### Migrations",
            "## Test Cases",
            "## Manual Review Required",
            "## Deployment Notes",
        ]

    def test_summary_counts(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)

        assert "- **Files Changed:** 5 (+0/-0)" in output
        assert "- **Overall Risk:** Critical" in output
        assert "- **Breaking Changes:** 1" in output
        assert "- **Breaking Status Unknown:** 1 (manual review required)" in output

    def test_new_endpoint_row(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)
        new = [d for d in read_endpoint_deltas(output) if d.change_type == EndpointChangeType.NEW]

        assert len(new) == 1
        assert new[0].identifier == "POST /api/packages/[id]/archive"
        assert new[0].breaking is False
        assert new[0].request_field_diffs == [FieldDiff(field="reason", after="string, required")]

    def test_schema_and_deployment_notes(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)

        assert "+ `fitara_approval_id` TEXT (nullable)" in output
        assert "- [ ] Apply migration `20240501_add_fitara` (`npx prisma migrate dev`)" in output
        assert "- [ ] Prepare a manual rollback plan for `20240501_add_fitara`" in output
        assert "- [ ] Notify API consumers of breaking changes: `PATCH /api/packages/[id]`" in output
        assert "- [ ] Reinstall dependencies (`npm install`)" in output
        assert output.rstrip().endswith("- [ ] Run the full regression suite (`npm test`)")

    def test_custom_commands(self, sample_report: AnalysisReport) -> None:
        formatter = QAChangelogFormatter(
            project_name="Procurement",
            commands=CommandsConfig(test="pnpm test"),
        )
        output = formatter.format(sample_report)

        assert output.startswith("# QA Changelog: Procurement\n")
        assert "(`pnpm test`)" in output

    def test_no_changes_keeps_every_section(self, empty_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(empty_report)

        assert "**No changes detected** between `abc123` and `abc123`." in output
        for heading in ("## Changed Files", "### New Endpoints", "### Schema Changes", "## Test Cases"):
            assert heading in output
        tables = parse_markdown_tables(output)
        assert len(tables) == 9
        assert all(t.placeholder and not t.rows for t in tables)
        assert "- [ ] No deployment actions required" in output

    def test_format_records(self) -> None:
        records = [make_record("lib/palt.ts", category=Category.BUSINESS_LOGIC, priority=Priority.HIGH)]

        output = QAChangelogFormatter().format_records(records)

        assert output.startswith("## Changed Files")
        assert "| lib/palt.ts | Modified | Business Logic | High |" in output


class TestReportReader:
    """The QA changelog reads back into the same data."""

    def test_change_records_round_trip(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)

        assert read_change_records(output) == sample_report.records

    def test_endpoint_deltas_round_trip(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)
        expected = [
            d.model_copy(update={"signature": None}) for d in sample_report.endpoint_deltas
        ]

        assert read_endpoint_deltas(output) == expected

    def test_test_cases_round_trip(self, sample_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(sample_report)

        assert read_test_cases(output) == sample_report.test_cases

    def test_empty_document(self, empty_report: AnalysisReport) -> None:
        output = QAChangelogFormatter().format(empty_report)

        assert read_change_records(output) == []
        assert read_endpoint_deltas(output) == []
        assert read_test_cases(output) == []


class TestDevReadmeFormatter:
    """Tests for DevReadmeFormatter."""

    def test_sections(self, sample_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(sample_report)

        headings = [line for line in output.splitlines() if line.startswith("## ")]
        assert headings == [
            "## Overview",
            "## Files Changed",
            "## How to Test Locally",
            "## API Documentation",
            "## Known Limitations",
            "## Dependencies",
        ]

    def test_local_commands_include_migration(self, sample_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(sample_report)

        assert "git checkout feature/archive\nnpm install\nnpx prisma migrate dev\nnpm test\nnpm run dev" in output

    def test_local_commands_skip_migration_without_schema_changes(self) -> None:
        report = AnalysisReport(base="a", head="b", records=[make_record("lib/palt.ts")])

        output = DevReadmeFormatter().format(report)

        assert "npx prisma migrate dev" not in output
        assert "No endpoint changes to exercise." in output

    def test_curl_example(self, sample_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(sample_report)

        assert "curl -X POST 'http://localhost:3000/api/packages/1/archive'" in output
        assert "-d '{\"reason\": \"example\"}'" in output

    def test_api_documentation(self, sample_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(sample_report)

        assert "### POST /api/packages/[id]/archive" in output
        assert "| reason | string | Yes | body |" in output
        assert "| archived | boolean |" in output
        assert "### POST /api/import" in output
        assert "- **Breaking:** unknown, manual review required" in output
        assert "Request body is built dynamically; shape could not be determined." in output

    def test_known_limitations(self, sample_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(sample_report)

        assert "| app/api/import/route.ts | request body is built dynamically |" in output
        assert f"| {MIGRATION_PATH} | Migration `20240501_add_fitara` has no down migration |" in output

    def test_dependencies(self, sample_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(sample_report)

        assert "| next | ^14.0.0 | ^14.2.0 | Upgraded |" in output

    def test_no_changes(self, empty_report: AnalysisReport) -> None:
        output = DevReadmeFormatter().format(empty_report)

        assert "No changes detected between `abc123` and `abc123`." in output
        assert "## Known Limitations" in output

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/api/packages/[id]", "http://localhost:3000/api/packages/1"),
            ("/api/packages/{package_id}", "http://localhost:3000/api/packages/1"),
            ("/api/docs/[...slug]", "http://localhost:3000/api/docs/1"),
        ],
    )
    def test_example_url(self, path: str, expected: str) -> None:
        assert example_url("http://localhost:3000/", path) == expected


class TestStructuredFormatters:
    """Tests for the JSON and YAML formatters."""

    def test_json_excludes_timing_and_diff_text(self, sample_report: AnalysisReport) -> None:
        data = json.loads(JsonFormatter().format(sample_report))

        assert "analysis_duration_ms" not in data
        assert "diff_text" not in data["records"][0]
        assert data["summary"]["files_changed"] == 5
        assert data["summary"]["overall_priority"] == "Critical"
        assert data["summary"]["unknown_breaking"] == 1
        assert data["test_cases"][0]["edge_cases"] == ["missing `name`", "unauthenticated request"]

    def test_json_is_deterministic(self, sample_report: AnalysisReport) -> None:
        other = sample_report.model_copy(update={"analysis_duration_ms": 99.0})

        assert JsonFormatter().format(sample_report) == JsonFormatter().format(other)

    def test_yaml_matches_json(self, sample_report: AnalysisReport) -> None:
        from_yaml = yaml.safe_load(YamlFormatter().format(sample_report))
        from_json = json.loads(JsonFormatter().format(sample_report))

        assert from_yaml == from_json

    def test_format_records(self) -> None:
        records = [make_record("lib/palt.ts")]

        data = json.loads(JsonFormatter().format_records(records))

        assert data["total"] == 1
        assert data["records"][0]["path"] == "lib/palt.ts"


class TestGetFormatter:
    """Tests for the formatter registry."""

    def test_known_formatters(self) -> None:
        assert isinstance(get_formatter("qa"), QAChangelogFormatter)
        assert isinstance(get_formatter("readme", project_name="X"), DevReadmeFormatter)
        assert isinstance(get_formatter("json", indent=4), JsonFormatter)
        assert isinstance(get_formatter("yaml"), YamlFormatter)

    def test_unknown_formatter(self) -> None:
        with pytest.raises(ValueError, match="Unknown formatter"):
            get_formatter("html")
