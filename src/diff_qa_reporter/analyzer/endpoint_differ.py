"""
Endpoint differ - turns before/after route files into EndpointDeltas.

Route signatures are extracted from both sides of each API file and
matched by (method, path). Unmatched routes are paired up when they look
like a method change (same path) or a path change (renamed file, same
method); the rest are New or Deleted endpoints.
"""

import logging
from typing import Optional

from diff_qa_reporter.analyzer.breaking import ROUTE_REMOVED, evaluate_breaking
from diff_qa_reporter.collector.sources import ContentReader
from diff_qa_reporter.errors import AmbiguousBreakingChangeError, UnparseableFileError
from diff_qa_reporter.models.change import ChangeRecord
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    EndpointDelta,
    FieldDiff,
    FieldSpec,
    RouteSignature,
)
from diff_qa_reporter.models.report import ReviewNote
from diff_qa_reporter.parser.nextjs_route_extractor import NextRouteExtractor, is_route_file
from diff_qa_reporter.parser.python_route_extractor import PythonRouteExtractor

logger = logging.getLogger(__name__)

# Fields that do not take part in the contract comparison
_LOCATION_FIELDS = {"handler", "line_number", "source_file"}


def field_diffs(before: list[FieldSpec], after: list[FieldSpec]) -> list[FieldDiff]:
    """
    Compare two field lists by name.

    Fields keep their base order; fields only present at head follow in
    head order. Unchanged fields are omitted.
    """
    before_map = {f.name: f for f in before}
    after_map = {f.name: f for f in after}
    names = list(before_map) + [n for n in after_map if n not in before_map]

    diffs = []
    for name in names:
        old = before_map[name].describe() if name in before_map else None
        new = after_map[name].describe() if name in after_map else None
        if old != new:
            diffs.append(FieldDiff(field=name, before=old, after=new))
    return diffs


def _auth_change(before: Optional[RouteSignature], after: Optional[RouteSignature]) -> Optional[str]:
    old = before.auth if before else None
    new = after.auth if after else None
    if before is None or after is None or old == new:
        return None
    return f"{old or 'none'} -> {new or 'none'}"


class EndpointDiffer:
    """
    Compute endpoint deltas for API change records.
    """

    def __init__(self, reader: ContentReader) -> None:
        """
        Initialize the differ.

        Args:
            reader: Source of file contents at both sides of the change.
        """
        self.reader = reader
        self.next_extractor = NextRouteExtractor()
        self.python_extractor = PythonRouteExtractor()

    def extract(self, path: str, content: str) -> list[RouteSignature]:
        """
        Extract route signatures with the extractor matching the path.

        Raises:
            UnparseableFileError: If the file is not a route module or
                cannot be parsed.
        """
        if path.endswith(".py"):
            return self.python_extractor.extract(path, content)
        if is_route_file(path):
            return self.next_extractor.extract(path, content)
        raise UnparseableFileError(path, "not a recognized route handler file")

    def _side(self, record: ChangeRecord, side: str) -> list[RouteSignature]:
        if side == "before":
            if record.status == ChangeStatus.ADDED:
                return []
            path = record.base_path
            content = self.reader.read_before(path)
        else:
            if record.status == ChangeStatus.DELETED:
                return []
            path = record.path
            content = self.reader.read_after(path)

        if content is None:
            raise UnparseableFileError(path, "file content unavailable")
        return self.extract(path, content)

    def diff_record(self, record: ChangeRecord) -> tuple[list[EndpointDelta], list[ReviewNote]]:
        """
        Diff one API change record.

        Returns:
            (deltas, review_notes). An unparseable file yields no deltas
            and a single review note.
        """
        try:
            before = self._side(record, "before")
            after = self._side(record, "after")
        except UnparseableFileError as e:
            logger.warning("Skipping endpoint diff for %s: %s", e.path, e.reason)
            return [], [ReviewNote(path=e.path, reason=e.reason)]

        return self.diff_signatures(
            record.path,
            before,
            after,
            renamed=record.status == ChangeStatus.RENAMED,
        )

    def diff_signatures(
        self,
        file_path: str,
        before: list[RouteSignature],
        after: list[RouteSignature],
        renamed: bool = False,
    ) -> tuple[list[EndpointDelta], list[ReviewNote]]:
        """
        Match and diff route signatures from one file.

        Args:
            file_path: Changed file the signatures belong to.
            before: Signatures at the base reference.
            after: Signatures at the head reference.
            renamed: Whether the file was renamed, enabling path-change
                pairing by method.

        Returns:
            (deltas, review_notes) in head order, deletions last.
        """
        before_by_key: dict[tuple[str, str], RouteSignature] = {}
        for sig in before:
            before_by_key.setdefault(sig.key, sig)
        after_keys = {sig.key for sig in after}

        before_only = [s for s in before_by_key.values() if s.key not in after_keys]
        after_only = [s for s in after if s.key not in before_by_key]
        paired: dict[tuple[str, str], RouteSignature] = {}

        # Method change: one route left over on each side of the same path
        for path in {s.path for s in after_only}:
            old = [s for s in before_only if s.path == path]
            new = [s for s in after_only if s.path == path]
            if len(old) == 1 and len(new) == 1:
                paired[new[0].key] = old[0]
                before_only.remove(old[0])

        # Path change: a renamed file keeps its methods
        if renamed:
            for sig in after_only:
                if sig.key in paired:
                    continue
                match = next((s for s in before_only if s.method == sig.method), None)
                if match is not None:
                    paired[sig.key] = match
                    before_only.remove(match)

        deltas: list[EndpointDelta] = []
        notes: list[ReviewNote] = []
        seen: set[tuple[str, str]] = set()
        for sig in after:
            if sig.key in seen:
                continue
            seen.add(sig.key)
            previous = before_by_key.get(sig.key) or paired.get(sig.key)
            if previous is None:
                deltas.append(self._new_delta(file_path, sig))
                continue
            delta = self._modified_delta(file_path, previous, sig, notes)
            if delta is not None:
                deltas.append(delta)

        for sig in before_only:
            deltas.append(self._deleted_delta(file_path, sig))

        return deltas, notes

    @staticmethod
    def _new_delta(file_path: str, sig: RouteSignature) -> EndpointDelta:
        return EndpointDelta(
            method=sig.method,
            path=sig.path,
            change_type=EndpointChangeType.NEW,
            file_path=file_path,
            request_field_diffs=field_diffs([], sig.request_fields),
            response_field_diffs=field_diffs([], sig.response_fields),
            breaking=False,
            signature=sig,
        )

    @staticmethod
    def _deleted_delta(file_path: str, sig: RouteSignature) -> EndpointDelta:
        return EndpointDelta(
            method=sig.method,
            path=sig.path,
            change_type=EndpointChangeType.DELETED,
            file_path=file_path,
            request_field_diffs=field_diffs(sig.request_fields, []),
            response_field_diffs=field_diffs(sig.response_fields, []),
            breaking=True,
            breaking_reasons=[ROUTE_REMOVED],
            signature=sig,
        )

    @staticmethod
    def _modified_delta(
        file_path: str,
        before: RouteSignature,
        after: RouteSignature,
        notes: list[ReviewNote],
    ) -> Optional[EndpointDelta]:
        """Build a Modified delta, or None if the contract is unchanged."""
        if before.model_dump(exclude=_LOCATION_FIELDS) == after.model_dump(exclude=_LOCATION_FIELDS):
            return None

        breaking: Optional[bool]
        review_note = None
        try:
            reasons = evaluate_breaking(before, after)
            breaking = bool(reasons)
        except AmbiguousBreakingChangeError as e:
            logger.info("Breaking status unknown for %s: %s", e.endpoint, e.reason)
            reasons = []
            breaking = None
            review_note = e.reason
            notes.append(
                ReviewNote(
                    path=file_path,
                    reason=f"{e.endpoint}: breaking status unknown ({e.reason})",
                )
            )

        return EndpointDelta(
            method=after.method,
            path=after.path,
            change_type=EndpointChangeType.MODIFIED,
            file_path=file_path,
            request_field_diffs=field_diffs(before.request_fields, after.request_fields),
            response_field_diffs=field_diffs(before.response_fields, after.response_fields),
            auth_change=_auth_change(before, after),
            breaking=breaking,
            breaking_reasons=reasons,
            previous_method=before.method if before.method != after.method else None,
            previous_path=before.path if before.path != after.path else None,
            review_note=review_note,
            signature=after,
            previous_signature=before,
        )
