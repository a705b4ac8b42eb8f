"""
Dependency differ - compares declared dependencies across a change.
"""

import logging
import re

from diff_qa_reporter.collector.sources import ContentReader
from diff_qa_reporter.errors import UnparseableFileError
from diff_qa_reporter.models.change import ChangeRecord
from diff_qa_reporter.models.dependency import DependencyChange, DependencyChangeType
from diff_qa_reporter.models.diff import ChangeStatus
from diff_qa_reporter.models.report import ReviewNote
from diff_qa_reporter.parser.manifest_parser import is_manifest, parse_manifest

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"\d+(?:\.\d+)*")


def version_key(spec: str) -> tuple[int, ...]:
    """First dotted number in a version spec, e.g. `^14.2.3` -> (14, 2, 3)."""
    match = _VERSION_RE.search(spec)
    if match is None:
        return ()
    return tuple(int(part) for part in match.group(0).split("."))


def compare_versions(before: str, after: str) -> DependencyChangeType:
    """Classify a version spec change as an upgrade, downgrade or other change."""
    old, new = version_key(before), version_key(after)
    if not old or not new or old == new:
        return DependencyChangeType.CHANGED
    return DependencyChangeType.UPGRADED if new > old else DependencyChangeType.DOWNGRADED


class DependencyDiffer:
    """Compare dependency manifests at both sides of a change."""

    def __init__(self, reader: ContentReader) -> None:
        self.reader = reader

    def diff(self, records: list[ChangeRecord]) -> tuple[list[DependencyChange], list[ReviewNote]]:
        """
        Diff every changed manifest among the records.

        Returns:
            (changes, review_notes). Changes are ordered by manifest, then
            package name.
        """
        changes: list[DependencyChange] = []
        notes: list[ReviewNote] = []

        for record in records:
            if not is_manifest(record.path):
                continue
            try:
                before_text = (
                    "" if record.status == ChangeStatus.ADDED
                    else self.reader.read_before(record.base_path) or ""
                )
                after_text = (
                    "" if record.status == ChangeStatus.DELETED
                    else self.reader.read_after(record.path) or ""
                )
                before = parse_manifest(record.base_path, before_text)
                after = parse_manifest(record.path, after_text)
            except UnparseableFileError as e:
                logger.warning("Skipping manifest %s: %s", e.path, e.reason)
                notes.append(ReviewNote(path=e.path, reason=e.reason))
                continue

            for package in sorted(set(before) | set(after)):
                old = before.get(package)
                new = after.get(package)
                if old == new:
                    continue
                if old is None:
                    change = DependencyChangeType.ADDED
                elif new is None:
                    change = DependencyChangeType.REMOVED
                else:
                    change = compare_versions(old[0], new[0])
                changes.append(
                    DependencyChange(
                        package=package,
                        manifest=record.path,
                        before=old[0] if old else None,
                        after=new[0] if new else None,
                        change=change,
                        dev=(new or old)[1],
                    )
                )

        logger.debug("Found %d dependency changes", len(changes))
        return changes, notes
