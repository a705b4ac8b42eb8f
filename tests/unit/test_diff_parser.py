"""
Unit tests for the diff parser module.
"""

import pytest

from diff_qa_reporter.errors import DiffReportError
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.parser.diff_parser import DiffParser, DiffParserError

from tests.helpers import ARCHIVE_ROUTE, ARCHIVE_ROUTE_PATH


class TestDiffParser:
    """Tests for the DiffParser class."""

    def test_parse_simple_diff(self, simple_diff_content: str) -> None:
        """Test parsing a simple diff string."""
        diff_files = DiffParser.parse_string(simple_diff_content)

        assert len(diff_files) == 1
        assert diff_files[0].path == "lib/palt.ts"
        assert diff_files[0].status == ChangeStatus.MODIFIED
        assert diff_files[0].added_lines == 2
        assert diff_files[0].removed_lines == 0

    def test_parse_multi_file_diff(self, multi_file_diff_content: str) -> None:
        """Files keep diff order and get the right status."""
        diff_files = DiffParser.parse_string(multi_file_diff_content)

        assert [f.path for f in diff_files] == [
            "components/ui/Button.tsx",
            "docs/old.md",
            ARCHIVE_ROUTE_PATH,
        ]
        assert [f.status for f in diff_files] == [
            ChangeStatus.MODIFIED,
            ChangeStatus.DELETED,
            ChangeStatus.ADDED,
        ]

    def test_parse_rename(self) -> None:
        """A rename keeps the old path as source_path."""
        diff = "\n".join([
            "diff --git a/app/api/old/route.ts b/app/api/new/route.ts",
            "similarity index 90%",
            "rename from app/api/old/route.ts",
            "rename to app/api/new/route.ts",
            "index 1111111..2222222 100644",
            "--- a/app/api/old/route.ts",
            "+++ b/app/api/new/route.ts",
            "@@ -1,2 +1,2 @@",
            " export async function GET() {",
            "-  return Response.json({ a: 1 });",
            "+  return Response.json({ a: 2 });",
        ]) + "\n"
        diff_files = DiffParser.parse_string(diff)

        assert diff_files[0].status == ChangeStatus.RENAMED
        assert diff_files[0].path == "app/api/new/route.ts"
        assert diff_files[0].source_path == "app/api/old/route.ts"
        assert diff_files[0].base_path == "app/api/old/route.ts"

    def test_hunk_line_numbers(self, simple_diff_content: str) -> None:
        """Hunks record added line numbers on the head side."""
        diff_files = DiffParser.parse_string(simple_diff_content)
        hunk = diff_files[0].hunks[0]

        assert hunk.target_start == 10
        assert hunk.added_lines == [13, 14]
        assert hunk.removed_lines == []

    def test_malformed_hunk_raises(self) -> None:
        """A hunk body line without a diff marker is rejected."""
        diff = "\n".join([
            "--- a/lib/palt.ts",
            "+++ b/lib/palt.ts",
            "@@ -1,2 +1,2 @@",
            "?not a diff line",
        ]) + "\n"

        with pytest.raises(DiffParserError):
            DiffParser.parse_string(diff)

    def test_parser_error_is_report_error(self) -> None:
        """Parser errors are part of the report error taxonomy."""
        assert issubclass(DiffParserError, DiffReportError)

    def test_parse_empty_string(self) -> None:
        """Test parsing an empty diff string."""
        assert DiffParser.parse_string("") == []

    def test_raw_diff_text_kept_per_file(self, multi_file_diff_content: str) -> None:
        """Each file carries its own slice of the diff."""
        diff_files = DiffParser.parse_string(multi_file_diff_content)

        assert "Button.tsx" in diff_files[0].diff_text
        assert "old.md" not in diff_files[0].diff_text


class TestNameStatus:
    """Tests for `git diff --name-status -z` parsing."""

    def test_parse_name_status(self) -> None:
        output = "M\0lib/palt.ts\0A\0app/api/x/route.ts\0R087\0old.ts\0new.ts\0D\0gone.md\0"
        entries = DiffParser.parse_name_status(output)

        assert entries == [
            (ChangeStatus.MODIFIED, "lib/palt.ts", None),
            (ChangeStatus.ADDED, "app/api/x/route.ts", None),
            (ChangeStatus.RENAMED, "new.ts", "old.ts"),
            (ChangeStatus.DELETED, "gone.md", None),
        ]

    def test_parse_name_status_empty(self) -> None:
        assert DiffParser.parse_name_status("") == []

    def test_truncated_entry(self) -> None:
        with pytest.raises(DiffParserError):
            DiffParser.parse_name_status("R100\0old.ts")


class TestReconstructContent:
    """Tests for rebuilding file content from a diff."""

    def test_added_file_after_side(self, archive_route_diff: str) -> None:
        diff_file = DiffParser.parse_string(archive_route_diff)[0]

        assert DiffParser.reconstruct_content(diff_file, "after") == ARCHIVE_ROUTE
        assert DiffParser.reconstruct_content(diff_file, "before") is None

    def test_modified_file_not_reconstructed(self, simple_diff_content: str) -> None:
        diff_file = DiffParser.parse_string(simple_diff_content)[0]

        assert DiffParser.reconstruct_content(diff_file, "after") is None
        assert DiffParser.reconstruct_content(diff_file, "before") is None

    def test_deleted_file_before_side(self, multi_file_diff_content: str) -> None:
        deleted = DiffParser.parse_string(multi_file_diff_content)[1]

        assert DiffParser.reconstruct_content(deleted, "before") == "# Old\nObsolete notes\n"
