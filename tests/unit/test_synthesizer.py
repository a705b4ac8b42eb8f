"""
Unit tests for test-case synthesis and numbering.
"""

from diff_qa_reporter.analyzer.invariants import DEFAULT_INVARIANTS, triggered_invariants
from diff_qa_reporter.analyzer.synthesizer import TestCaseSynthesizer, number_cases, _Draft
from diff_qa_reporter.models.change import Category, Priority
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    EndpointDelta,
    FieldSpec,
    HttpMethod,
    RouteSignature,
)

from tests.helpers import make_record


def _delta(
    path: str = "/api/packages/[id]",
    change_type: EndpointChangeType = EndpointChangeType.MODIFIED,
    breaking=False,
    file_path: str = "app/api/packages/[id]/route.ts",
    **kwargs,
) -> EndpointDelta:
    signature = RouteSignature(
        method=HttpMethod.PATCH,
        path=path,
        source_file=file_path,
        request_fields=[FieldSpec(name="name", type="string")],
        response_fields=[FieldSpec(name="id")],
        auth="session",
    )
    return EndpointDelta(
        method=HttpMethod.PATCH,
        path=path,
        change_type=change_type,
        file_path=file_path,
        breaking=breaking,
        signature=signature,
        **kwargs,
    )


class TestNumbering:
    """Tests for id assignment."""

    def test_critical_first_then_high_from_ten(self) -> None:
        drafts = [
            _Draft(priority=Priority.HIGH, title="h1"),
            _Draft(priority=Priority.CRITICAL, title="c1"),
            _Draft(priority=Priority.LOW, title="l1"),
            _Draft(priority=Priority.CRITICAL, title="c2"),
            _Draft(priority=Priority.MEDIUM, title="m1"),
        ]

        cases = number_cases(drafts)

        assert [(c.id, c.title) for c in cases] == [
            ("TC-001", "c1"),
            ("TC-002", "c2"),
            ("TC-010", "h1"),
            ("TC-011", "m1"),
            ("TC-012", "l1"),
        ]

    def test_high_continues_after_many_critical(self) -> None:
        drafts = [_Draft(priority=Priority.CRITICAL, title=f"c{i}") for i in range(11)]
        drafts.append(_Draft(priority=Priority.HIGH, title="h"))

        cases = number_cases(drafts)

        assert cases[10].id == "TC-011"
        assert cases[11].id == "TC-012"

    def test_high_only_starts_at_ten(self) -> None:
        cases = number_cases([_Draft(priority=Priority.HIGH, title="h")])
        assert cases[0].id == "TC-010"

    def test_medium_without_high_continues_sequence(self) -> None:
        cases = number_cases([
            _Draft(priority=Priority.CRITICAL, title="c"),
            _Draft(priority=Priority.MEDIUM, title="m"),
        ])
        assert [c.id for c in cases] == ["TC-001", "TC-002"]


class TestSynthesizer:
    """Tests for TestCaseSynthesizer."""

    def test_breaking_delta_gets_happy_path_and_legacy_case(self) -> None:
        delta = _delta(breaking=True, breaking_reasons=["required request field `title` removed"])
        synthesizer = TestCaseSynthesizer(include_invariants=False)

        cases = synthesizer.synthesize([make_record(delta.file_path)], [delta])

        assert [c.title for c in cases] == [
            "Happy path for updated endpoint PATCH /api/packages/[id]",
            "Previous contract of PATCH /api/packages/[id] fails predictably",
        ]
        assert all(c.priority == Priority.CRITICAL for c in cases)
        assert cases[0].preconditions == "Signed in with session"
        assert "missing `name`" in cases[0].edge_cases
        assert cases[1].edge_cases == frozenset({"required request field `title` removed"})

    def test_non_breaking_delta_is_high(self) -> None:
        delta = _delta()
        cases = TestCaseSynthesizer(include_invariants=False).synthesize(
            [make_record(delta.file_path)], [delta],
        )

        assert len(cases) == 1
        assert cases[0].id == "TC-010"
        assert cases[0].priority == Priority.HIGH

    def test_unknown_breaking_gets_manual_review(self) -> None:
        delta = _delta(breaking=None, review_note="request body is built dynamically")
        cases = TestCaseSynthesizer(include_invariants=False).synthesize(
            [make_record(delta.file_path)], [delta],
        )

        assert cases[0].title == "Manual contract review for PATCH /api/packages/[id]"
        assert cases[0].priority == Priority.CRITICAL
        assert cases[0].edge_cases == frozenset({"request body is built dynamically"})

    def test_deleted_endpoint_cases(self) -> None:
        delta = _delta(change_type=EndpointChangeType.DELETED, breaking=True)
        cases = TestCaseSynthesizer(include_invariants=False).synthesize([], [delta])

        assert cases[0].title == "Callers no longer depend on PATCH /api/packages/[id]"
        assert cases[1].expected_result == "Request fails with 404 or 405 and nothing is written"

    def test_invariants_emitted_once_per_check(self) -> None:
        records = [
            make_record("lib/fitara.ts", category=Category.BUSINESS_LOGIC),
            make_record("components/fitara/Approval.tsx", category=Category.UI_COMPONENT),
        ]
        cases = TestCaseSynthesizer().synthesize(records, [])

        assert [c.title for c in cases] == ["FITARA approval gate"]
        assert cases[0].id == "TC-001"

    def test_encounter_order_within_priority(self) -> None:
        records = [
            make_record("components/Tier3Form.tsx", category=Category.TIER_FORM),
            make_record("lib/palt.ts", category=Category.BUSINESS_LOGIC),
            make_record("lib/workflow/rules.ts", category=Category.BUSINESS_LOGIC),
        ]
        cases = TestCaseSynthesizer().synthesize(records, [])

        assert [(c.id, c.title) for c in cases] == [
            ("TC-010", "PALT lead-time validation"),
            ("TC-011", "Workflow conditional fields"),
            ("TC-012", "Tier navigation retains entered data"),
        ]

    def test_no_changes_no_cases(self) -> None:
        assert TestCaseSynthesizer().synthesize([], []) == []


class TestInvariantTriggers:
    """Tests for the invariant catalog triggers."""

    def _names(self, *paths: str) -> list[str]:
        return [c.name for c in triggered_invariants(paths, DEFAULT_INVARIANTS)]

    def test_auth_triggers_session_and_lockout(self) -> None:
        assert self._names("lib/auth.ts") == [
            "Session timeout enforced",
            "Account lockout after failed sign-in attempts",
        ]

    def test_package_route_triggers_autosave(self) -> None:
        assert self._names("app/api/packages/[id]/route.ts") == ["Package autosave debounce"]

    def test_ci_workflow_and_manifest_trigger_nothing(self) -> None:
        assert self._names(".github/workflows/ci.yml", "package.json") == []

    def test_migration_triggers_rollback_check(self) -> None:
        assert self._names("prisma/migrations/x/migration.sql") == [
            "Migration applies and rolls back cleanly",
        ]

    def test_added_file_status_irrelevant(self) -> None:
        record = make_record("lib/palt.ts", status=ChangeStatus.ADDED)
        assert self._names(record.path) == ["PALT lead-time validation"]
