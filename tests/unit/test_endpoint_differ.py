"""
Unit tests for the endpoint differ.
"""

from diff_qa_reporter.analyzer.breaking import ROUTE_REMOVED
from diff_qa_reporter.analyzer.endpoint_differ import EndpointDiffer, field_diffs
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    FieldDiff,
    FieldSpec,
    HttpMethod,
    RouteSignature,
)

from tests.helpers import (
    ARCHIVE_ROUTE,
    ARCHIVE_ROUTE_PATH,
    PACKAGE_ROUTE_BASE,
    PACKAGE_ROUTE_OPTIONAL_FIELD,
    PACKAGE_ROUTE_PATH,
    PACKAGE_ROUTE_RENAMED_FIELD,
    DictContentReader,
    make_record,
)


def _differ(before=None, after=None) -> EndpointDiffer:
    return EndpointDiffer(DictContentReader(before=before, after=after))


class TestFieldDiffs:
    """Tests for field_diffs."""

    def test_base_order_then_new_fields(self) -> None:
        before = [FieldSpec(name="title", type="string"), FieldSpec(name="id", type="number")]
        after = [FieldSpec(name="name", type="string"), FieldSpec(name="id", type="number")]

        assert field_diffs(before, after) == [
            FieldDiff(field="title", before="string, required", after=None),
            FieldDiff(field="name", before=None, after="string, required"),
        ]

    def test_unchanged_fields_omitted(self) -> None:
        fields = [FieldSpec(name="id", type="number")]
        assert field_diffs(fields, fields) == []


class TestScenarios:
    """End-to-end differ scenarios over real route sources."""

    def test_renamed_required_field_is_breaking(self) -> None:
        differ = _differ(
            before={PACKAGE_ROUTE_PATH: PACKAGE_ROUTE_BASE},
            after={PACKAGE_ROUTE_PATH: PACKAGE_ROUTE_RENAMED_FIELD},
        )
        deltas, notes = differ.diff_record(make_record(PACKAGE_ROUTE_PATH))

        assert notes == []
        assert len(deltas) == 1
        delta = deltas[0]
        assert delta.identifier == "PATCH /api/packages/[id]"
        assert delta.change_type == EndpointChangeType.MODIFIED
        assert delta.breaking is True
        assert "required request field `title` removed" in delta.breaking_reasons
        assert [d.field for d in delta.request_field_diffs] == ["title", "name"]

    def test_new_optional_field_is_not_breaking(self) -> None:
        differ = _differ(
            before={PACKAGE_ROUTE_PATH: PACKAGE_ROUTE_BASE},
            after={PACKAGE_ROUTE_PATH: PACKAGE_ROUTE_OPTIONAL_FIELD},
        )
        deltas, _ = differ.diff_record(make_record(PACKAGE_ROUTE_PATH))

        assert len(deltas) == 1
        assert deltas[0].breaking is False
        assert deltas[0].breaking_reasons == []
        assert deltas[0].request_field_diffs == [
            FieldDiff(field="notes", before=None, after="string, optional"),
        ]

    def test_new_object_field_with_optional_keys_is_breaking(self) -> None:
        before = """
const Body = z.object({ title: z.string() });
export async function POST(request: Request) {
  const data = Body.parse(await request.json());
  return NextResponse.json({ id: 1 });
}
"""
        after = before.replace(
            "z.object({ title: z.string() })",
            "z.object({ title: z.string(), address: z.object({ street: z.string().optional() }) })",
        )
        path = "app/api/packages/route.ts"
        differ = _differ(before={path: before}, after={path: after})

        deltas, _ = differ.diff_record(make_record(path))

        assert deltas[0].breaking is True
        assert deltas[0].breaking_reasons == [
            "required request field `address` added without a default",
        ]

    def test_added_route_file_yields_new_endpoint(self) -> None:
        differ = _differ(after={ARCHIVE_ROUTE_PATH: ARCHIVE_ROUTE})
        record = make_record(ARCHIVE_ROUTE_PATH, status=ChangeStatus.ADDED)

        deltas, _ = differ.diff_record(record)

        assert [d.identifier for d in deltas] == ["POST /api/packages/[id]/archive"]
        assert deltas[0].change_type == EndpointChangeType.NEW
        assert deltas[0].breaking is False

    def test_deleted_route_file_is_breaking(self) -> None:
        differ = _differ(before={ARCHIVE_ROUTE_PATH: ARCHIVE_ROUTE})
        record = make_record(ARCHIVE_ROUTE_PATH, status=ChangeStatus.DELETED)

        deltas, _ = differ.diff_record(record)

        assert deltas[0].change_type == EndpointChangeType.DELETED
        assert deltas[0].breaking is True
        assert deltas[0].breaking_reasons == [ROUTE_REMOVED]

    def test_unchanged_contract_yields_no_delta(self) -> None:
        reformatted = PACKAGE_ROUTE_BASE.replace("const session", "\n  const session")
        differ = _differ(
            before={PACKAGE_ROUTE_PATH: PACKAGE_ROUTE_BASE},
            after={PACKAGE_ROUTE_PATH: reformatted},
        )

        deltas, notes = differ.diff_record(make_record(PACKAGE_ROUTE_PATH))

        assert deltas == []
        assert notes == []

    def test_unparseable_file_becomes_review_note(self) -> None:
        differ = _differ(
            before={PACKAGE_ROUTE_PATH: PACKAGE_ROUTE_BASE},
            after={PACKAGE_ROUTE_PATH: "export const revalidate = 60;\n"},
        )

        deltas, notes = differ.diff_record(make_record(PACKAGE_ROUTE_PATH))

        assert deltas == []
        assert len(notes) == 1
        assert notes[0].path == PACKAGE_ROUTE_PATH

    def test_missing_content_becomes_review_note(self) -> None:
        deltas, notes = _differ().diff_record(make_record(PACKAGE_ROUTE_PATH))

        assert deltas == []
        assert notes[0].reason == "file content unavailable"

    def test_non_route_api_file_becomes_review_note(self) -> None:
        differ = _differ(after={"pages/api/legacy.ts": "export default function handler() {}\n"})
        record = make_record("pages/api/legacy.ts", status=ChangeStatus.ADDED)

        deltas, notes = differ.diff_record(record)

        assert deltas == []
        assert notes[0].reason == "not a recognized route handler file"


class TestMatching:
    """Tests for pairing signatures across the change."""

    @staticmethod
    def _sig(method: HttpMethod, path: str, **kwargs) -> RouteSignature:
        return RouteSignature(method=method, path=path, source_file="f.ts", **kwargs)

    def test_method_change_paired(self) -> None:
        before = [self._sig(HttpMethod.PUT, "/api/x")]
        after = [self._sig(HttpMethod.PATCH, "/api/x")]

        deltas, _ = _differ().diff_signatures("f.ts", before, after)

        assert len(deltas) == 1
        assert deltas[0].change_type == EndpointChangeType.MODIFIED
        assert deltas[0].previous_method == HttpMethod.PUT
        assert deltas[0].breaking is True

    def test_path_change_paired_for_renamed_file(self) -> None:
        before = [self._sig(HttpMethod.GET, "/api/package")]
        after = [self._sig(HttpMethod.GET, "/api/packages")]

        deltas, _ = _differ().diff_signatures("f.ts", before, after, renamed=True)

        assert len(deltas) == 1
        assert deltas[0].previous_path == "/api/package"
        assert deltas[0].breaking is True

    def test_unrenamed_path_change_is_new_plus_deleted(self) -> None:
        before = [self._sig(HttpMethod.GET, "/api/package")]
        after = [self._sig(HttpMethod.GET, "/api/packages")]

        deltas, _ = _differ().diff_signatures("f.ts", before, after)

        assert [d.change_type for d in deltas] == [
            EndpointChangeType.NEW,
            EndpointChangeType.DELETED,
        ]

    def test_dynamic_shape_gives_unknown_breaking_and_note(self) -> None:
        before = [self._sig(HttpMethod.POST, "/api/x", request_fields=[FieldSpec(name="a")])]
        after = [self._sig(HttpMethod.POST, "/api/x", request_dynamic=True)]

        deltas, notes = _differ().diff_signatures("f.ts", before, after)

        assert deltas[0].breaking is None
        assert deltas[0].breaking_label == "Unknown (manual review required)"
        assert deltas[0].review_note == "request body is built dynamically"
        assert notes[0].reason.startswith("POST /api/x: breaking status unknown")

    def test_auth_change_rendered(self) -> None:
        before = [self._sig(HttpMethod.GET, "/api/x", auth="session")]
        after = [self._sig(HttpMethod.GET, "/api/x", auth="role:admin")]

        deltas, _ = _differ().diff_signatures("f.ts", before, after)

        assert deltas[0].auth_change == "session -> role:admin"
        assert deltas[0].breaking is False
