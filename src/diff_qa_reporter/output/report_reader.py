"""
Read rendered QA changelogs back into report data.

Downstream tooling parses the generated Markdown; these readers are the
reference for the table schemas and are used to check that rendering is
lossless for change records, endpoint deltas and test cases.
"""

import re
from typing import Optional

from diff_qa_reporter.models.change import Category, ChangeRecord, Priority
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.endpoint import EndpointDelta, FieldDiff, HttpMethod
from diff_qa_reporter.models.testcase import TestCase
from diff_qa_reporter.output.markdown_tables import tables_by_heading
from diff_qa_reporter.output.qa_changelog import ABSENT, ENDPOINT_SECTIONS

_FIELD_DIFF_RE = re.compile(r"^`(?P<field>[^`]+)`: (?P<before>.*?) -> (?P<after>.*)$")
_STEP_RE = re.compile(r"^\d+\.\s+")


def _parse_breaking(label: str) -> Optional[bool]:
    if label == "Yes":
        return True
    if label == "No":
        return False
    return None


def _parse_field_diffs(cell: str) -> list[FieldDiff]:
    diffs = []
    for line in cell.splitlines():
        match = _FIELD_DIFF_RE.match(line.strip())
        if match is None:
            continue
        before = match.group("before")
        after = match.group("after")
        diffs.append(
            FieldDiff(
                field=match.group("field"),
                before=None if before == ABSENT else before,
                after=None if after == ABSENT else after,
            )
        )
    return diffs


def read_change_records(markdown: str) -> list[ChangeRecord]:
    """Read the Changed Files table."""
    table = tables_by_heading(markdown).get("Changed Files")
    if table is None:
        return []
    return [
        ChangeRecord(
            path=row["File"],
            status=ChangeStatus(row["Status"]),
            category=Category(row["Category"]),
            priority=Priority(row["Priority"]),
        )
        for row in table.rows
    ]


def read_endpoint_deltas(markdown: str) -> list[EndpointDelta]:
    """Read the New, Modified and Deleted Endpoints tables, in that order."""
    tables = tables_by_heading(markdown)
    deltas: list[EndpointDelta] = []
    for title, change_type in ENDPOINT_SECTIONS:
        table = tables.get(title)
        if table is None:
            continue
        for row in table.rows:
            breaking = _parse_breaking(row["Breaking"])
            previous_method = previous_path = None
            if row["Previous"]:
                method, _, path = row["Previous"].partition(" ")
                if method != row["Method"]:
                    previous_method = HttpMethod(method)
                if path != row["Path"]:
                    previous_path = path
            notes = row["Notes"]
            deltas.append(
                EndpointDelta(
                    method=HttpMethod(row["Method"]),
                    path=row["Path"],
                    change_type=change_type,
                    file_path=row["File"],
                    request_field_diffs=_parse_field_diffs(row["Request Changes"]),
                    response_field_diffs=_parse_field_diffs(row["Response Changes"]),
                    auth_change=row["Auth Change"] or None,
                    breaking=breaking,
                    breaking_reasons=notes.splitlines() if breaking is not None else [],
                    previous_method=previous_method,
                    previous_path=previous_path,
                    review_note=(notes or None) if breaking is None else None,
                )
            )
    return deltas


def read_test_cases(markdown: str) -> list[TestCase]:
    """Read the Test Cases table."""
    table = tables_by_heading(markdown).get("Test Cases")
    if table is None:
        return []
    cases = []
    for row in table.rows:
        steps = [_STEP_RE.sub("", line, count=1) for line in row["Steps"].splitlines() if line]
        edge_cases = frozenset(e for e in row["Edge Cases"].splitlines() if e)
        cases.append(
            TestCase(
                id=row["ID"],
                priority=Priority(row["Priority"]),
                endpoint=row["Endpoint"] or None,
                title=row["Title"],
                preconditions=row["Preconditions"],
                steps=steps,
                expected_result=row["Expected Result"],
                edge_cases=edge_cases,
            )
        )
    return cases
