"""
Test-case synthesizer - derives QA test cases from the analysis.

Cases are drafted in file-encounter order (endpoint deltas first, then
invariant checks triggered by the same file), stable-sorted by severity
and then numbered:

    Critical   TC-001, TC-002, ...
    High       from TC-010, or right after the last Critical id if higher
    Medium/Low continue the sequence
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from diff_qa_reporter.analyzer.invariants import DEFAULT_INVARIANTS, triggered_invariants
from diff_qa_reporter.models.change import ChangeRecord, Priority
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    EndpointDelta,
    FieldLocation,
    RouteSignature,
)
from diff_qa_reporter.models.testcase import InvariantCheck, TestCase

logger = logging.getLogger(__name__)

HIGH_PRIORITY_START = 10


@dataclass
class _Draft:
    priority: Priority
    title: str
    endpoint: Optional[str] = None
    preconditions: str = ""
    steps: list[str] = field(default_factory=list)
    expected_result: str = ""
    edge_cases: frozenset[str] = frozenset()


def number_cases(drafts: list[_Draft]) -> list[TestCase]:
    """Stable-sort drafts by severity and assign ids."""
    ordered = sorted(drafts, key=lambda d: d.priority.rank)
    cases: list[TestCase] = []
    next_id = 1
    high_started = False
    for draft in ordered:
        if draft.priority == Priority.HIGH and not high_started:
            next_id = max(next_id, HIGH_PRIORITY_START)
            high_started = True
        cases.append(
            TestCase(
                id=f"TC-{next_id:03d}",
                priority=draft.priority,
                title=draft.title,
                endpoint=draft.endpoint,
                preconditions=draft.preconditions,
                steps=draft.steps,
                expected_result=draft.expected_result,
                edge_cases=draft.edge_cases,
            )
        )
        next_id += 1
    return cases


def _preconditions(sig: Optional[RouteSignature]) -> str:
    if sig is None or not sig.auth:
        return "Local environment running with seed data"
    return f"Signed in with {sig.auth}"


def _request_description(sig: Optional[RouteSignature]) -> str:
    if sig is None:
        return "a valid request"
    if sig.request_dynamic:
        return "a representative valid body"
    body = [f.name for f in sig.request_fields if f.location == FieldLocation.BODY and f.required]
    query = [f.name for f in sig.request_fields if f.location == FieldLocation.QUERY]
    parts = []
    if body:
        parts.append("required body fields " + ", ".join(f"`{n}`" for n in body))
    if query:
        parts.append("query parameters " + ", ".join(f"`{n}`" for n in query))
    return " and ".join(parts) if parts else "no request body"


def _field_edge_cases(sig: Optional[RouteSignature]) -> frozenset[str]:
    if sig is None:
        return frozenset()
    cases = set()
    for f in sig.request_fields:
        if f.required and not f.has_default:
            cases.add(f"missing `{f.name}`")
        else:
            cases.add(f"omitted optional `{f.name}`")
    if sig.auth:
        cases.add("unauthenticated request")
    return frozenset(cases)


def _happy_path(delta: EndpointDelta) -> _Draft:
    sig = delta.signature
    if delta.change_type == EndpointChangeType.DELETED:
        return _Draft(
            priority=Priority.CRITICAL,
            title=f"Callers no longer depend on {delta.identifier}",
            endpoint=delta.identifier,
            preconditions="Application built from the head revision",
            steps=[
                f"Search the client code for requests to {delta.path}",
                "Exercise every UI flow that previously called the endpoint",
            ],
            expected_result="No flow issues requests to the removed endpoint and all flows complete",
            edge_cases=frozenset({"cached client bundles", "external integrations"}),
        )

    response = [f.name for f in sig.response_fields] if sig else []
    expected = "Successful 2xx response"
    if response:
        expected += " containing " + ", ".join(f"`{n}`" for n in response)
    verb = "new endpoint" if delta.change_type == EndpointChangeType.NEW else "updated endpoint"
    return _Draft(
        priority=Priority.CRITICAL if delta.breaking else Priority.HIGH,
        title=f"Happy path for {verb} {delta.identifier}",
        endpoint=delta.identifier,
        preconditions=_preconditions(sig),
        steps=[
            f"Send {delta.method.value} {delta.path} with {_request_description(sig)}",
            "Verify the response status and body",
        ],
        expected_result=expected,
        edge_cases=_field_edge_cases(sig),
    )


def _legacy_contract(delta: EndpointDelta) -> _Draft:
    previous = delta.previous_signature or delta.signature
    method = (delta.previous_method or delta.method).value
    path = delta.previous_path or delta.path
    if delta.change_type == EndpointChangeType.DELETED:
        expected = "Request fails with 404 or 405 and nothing is written"
    elif delta.previous_method or delta.previous_path:
        expected = "Old method/path returns 404 or 405 and nothing is written"
    else:
        expected = "Request fails with a 4xx validation error naming the changed fields; nothing is written"
    return _Draft(
        priority=Priority.CRITICAL,
        title=f"Previous contract of {delta.identifier} fails predictably",
        endpoint=delta.identifier,
        preconditions=_preconditions(previous),
        steps=[
            f"Send {method} {path} with {_request_description(previous)} as accepted before the change",
            "Verify the error status and message",
        ],
        expected_result=expected,
        edge_cases=frozenset(delta.breaking_reasons),
    )


def _manual_review(delta: EndpointDelta) -> _Draft:
    return _Draft(
        priority=Priority.CRITICAL,
        title=f"Manual contract review for {delta.identifier}",
        endpoint=delta.identifier,
        preconditions="Base and head revisions available side by side",
        steps=[
            "Capture request and response payloads at the base revision",
            "Capture the same payloads at the head revision",
            "Compare required request fields and returned response fields",
        ],
        expected_result="Breaking status is decided and documented before release",
        edge_cases=frozenset({delta.review_note} if delta.review_note else set()),
    )


def _invariant_draft(check: InvariantCheck) -> _Draft:
    return _Draft(
        priority=check.priority,
        title=check.name,
        preconditions=check.preconditions,
        steps=list(check.steps),
        expected_result=check.expected_result,
        edge_cases=check.edge_cases,
    )


class TestCaseSynthesizer:
    """
    Build the ordered, numbered list of test cases for a report.
    """

    __test__ = False

    def __init__(
        self,
        invariants: Optional[list[InvariantCheck]] = None,
        include_invariants: bool = True,
    ) -> None:
        """
        Initialize the synthesizer.

        Args:
            invariants: Invariant catalog. Defaults to the built-in one.
            include_invariants: Whether to emit invariant test cases.
        """
        self.invariants = DEFAULT_INVARIANTS if invariants is None else invariants
        self.include_invariants = include_invariants

    def drafts_for_delta(self, delta: EndpointDelta) -> list[_Draft]:
        """Happy path plus the breaking or unknown follow-up case."""
        drafts = [_happy_path(delta)]
        if delta.breaking is None:
            drafts.append(_manual_review(delta))
        elif delta.breaking:
            drafts.append(_legacy_contract(delta))
        return drafts

    def synthesize(
        self,
        records: list[ChangeRecord],
        deltas: list[EndpointDelta],
    ) -> list[TestCase]:
        """
        Synthesize test cases.

        Args:
            records: Classified change records in encounter order.
            deltas: Endpoint deltas; each belongs to one record's file.

        Returns:
            Numbered test cases, most severe first.
        """
        drafts: list[_Draft] = []
        emitted: set[str] = set()
        by_file: dict[str, list[EndpointDelta]] = {}
        for delta in deltas:
            by_file.setdefault(delta.file_path, []).append(delta)

        for record in records:
            for delta in by_file.pop(record.path, []):
                drafts.extend(self.drafts_for_delta(delta))
            if not self.include_invariants:
                continue
            for check in triggered_invariants([record.path], self.invariants):
                if check.name not in emitted:
                    emitted.add(check.name)
                    drafts.append(_invariant_draft(check))

        # Deltas whose file is not among the records
        for remaining in by_file.values():
            for delta in remaining:
                drafts.extend(self.drafts_for_delta(delta))

        cases = number_cases(drafts)
        logger.info("Synthesized %d test cases", len(cases))
        return cases
