"""
Change classifier - assigns each changed file exactly one category.
"""

import logging
from typing import Iterable, Optional

from diff_qa_reporter.analyzer.rules import (
    DEFAULT_RULES,
    FALLBACK_CATEGORY,
    FALLBACK_PRIORITY,
)
from diff_qa_reporter.models.change import (
    Category,
    ChangeRecord,
    ClassificationRule,
    Priority,
)
from diff_qa_reporter.models.diff import DiffFile

logger = logging.getLogger(__name__)


class ChangeClassifier:
    """
    Classify changed paths against an ordered rule table.

    The first rule with a matching pattern wins; paths no rule matches
    fall into `Other` at Low priority. The same input always yields the
    same output.
    """

    def __init__(
        self,
        rules: Optional[list[ClassificationRule]] = None,
        prepend_rules: Optional[list[ClassificationRule]] = None,
    ) -> None:
        """
        Initialize the classifier.

        Args:
            rules: Replacement rule table. Defaults to the built-in table.
            prepend_rules: Rules evaluated before the table.
        """
        base = DEFAULT_RULES if rules is None else rules
        self.rules: list[ClassificationRule] = list(prepend_rules or []) + list(base)

    def match(self, path: str) -> tuple[Category, Priority]:
        """Return the (category, priority) of the first matching rule."""
        for rule in self.rules:
            if rule.matches(path):
                return rule.category, rule.priority
        return FALLBACK_CATEGORY, FALLBACK_PRIORITY

    def classify(self, diff_file: DiffFile) -> ChangeRecord:
        """
        Classify one changed file.

        Renamed files are classified by their new path.
        """
        category, priority = self.match(diff_file.path)
        return ChangeRecord(
            path=diff_file.path,
            status=diff_file.status,
            category=category,
            priority=priority,
            source_path=diff_file.source_path,
            additions=diff_file.added_lines,
            deletions=diff_file.removed_lines,
            diff_text=diff_file.diff_text,
        )

    def classify_all(self, diff_files: Iterable[DiffFile]) -> list[ChangeRecord]:
        """Classify files, preserving their order."""
        records = [self.classify(f) for f in diff_files]
        logger.debug(
            "Classified %d files: %s",
            len(records),
            ", ".join(f"{r.path}={r.category.value}" for r in records),
        )
        return records
