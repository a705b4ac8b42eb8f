"""
Unit tests for the change classifier.
"""

import pytest

from diff_qa_reporter.analyzer.classifier import ChangeClassifier
from diff_qa_reporter.models.change import Category, ClassificationRule, Priority
from diff_qa_reporter.models.diff import ChangeStatus, DiffFile


@pytest.fixture
def classifier() -> ChangeClassifier:
    return ChangeClassifier()


class TestDefaultRules:
    """Tests for the built-in classification table."""

    @pytest.mark.parametrize(
        "path,category,priority",
        [
            ("app/api/packages/[id]/archive/route.ts", Category.API, Priority.CRITICAL),
            ("src/app/api/users/route.js", Category.API, Priority.CRITICAL),
            ("backend/routers/packages.py", Category.API, Priority.CRITICAL),
            ("prisma/schema.prisma", Category.DATABASE, Priority.CRITICAL),
            ("prisma/migrations/20240501_add_fitara/migration.sql", Category.DATABASE, Priority.CRITICAL),
            ("lib/auth/options.ts", Category.AUTH, Priority.CRITICAL),
            ("middleware.ts", Category.AUTH, Priority.CRITICAL),
            ("lib/palt.ts", Category.BUSINESS_LOGIC, Priority.HIGH),
            ("types/package.ts", Category.TYPES, Priority.HIGH),
            ("components/ui/Button.tsx", Category.UI_COMPONENT, Priority.MEDIUM),
            ("components/forms/Tier2Form.tsx", Category.TIER_FORM, Priority.HIGH),
            ("components/forms/ContactCard.tsx", Category.UI_COMPONENT, Priority.MEDIUM),
            ("styles/globals.css", Category.STYLING, Priority.LOW),
            ("package.json", Category.CONFIG, Priority.MEDIUM),
            (".github/workflows/ci.yml", Category.CONFIG, Priority.MEDIUM),
            ("e2e/packages.ts", Category.TESTS, Priority.LOW),
            ("docs/deployment.md", Category.DOCS, Priority.LOW),
        ],
    )
    def test_match(
        self,
        classifier: ChangeClassifier,
        path: str,
        category: Category,
        priority: Priority,
    ) -> None:
        assert classifier.match(path) == (category, priority)

    def test_first_matching_rule_wins(self, classifier: ChangeClassifier) -> None:
        """An auth route handler is API, not Auth/Security."""
        assert classifier.match("app/api/auth/[...nextauth]/route.ts") == (
            Category.API,
            Priority.CRITICAL,
        )

    def test_unmatched_path_is_other_low(self, classifier: ChangeClassifier) -> None:
        assert classifier.match("scripts/seed.sh") == (Category.OTHER, Priority.LOW)

    def test_deterministic(self, classifier: ChangeClassifier) -> None:
        paths = ["lib/palt.ts", "README.md", "app/api/x/route.ts"]
        assert [classifier.match(p) for p in paths] == [classifier.match(p) for p in paths]


class TestClassify:
    """Tests for classifying diff files into change records."""

    def test_new_route_is_critical_api(self, classifier: ChangeClassifier) -> None:
        diff_file = DiffFile(
            path="app/api/packages/[id]/archive/route.ts",
            status=ChangeStatus.ADDED,
            added_lines=12,
        )
        record = classifier.classify(diff_file)

        assert record.category == Category.API
        assert record.priority == Priority.CRITICAL
        assert record.status == ChangeStatus.ADDED
        assert record.additions == 12

    def test_rename_classified_by_new_path(self, classifier: ChangeClassifier) -> None:
        diff_file = DiffFile(
            path="lib/workflow.ts",
            status=ChangeStatus.RENAMED,
            source_path="docs/workflow-notes.md",
        )
        record = classifier.classify(diff_file)

        assert record.category == Category.BUSINESS_LOGIC
        assert record.source_path == "docs/workflow-notes.md"

    def test_classify_all_keeps_order(self, classifier: ChangeClassifier) -> None:
        files = [
            DiffFile(path="README.md", status=ChangeStatus.MODIFIED),
            DiffFile(path="prisma/schema.prisma", status=ChangeStatus.MODIFIED),
        ]
        records = classifier.classify_all(files)

        assert [r.path for r in records] == ["README.md", "prisma/schema.prisma"]


class TestCustomRules:
    """Tests for replacing and prepending rules."""

    def test_prepend_rules_take_precedence(self) -> None:
        rule = ClassificationRule(
            category=Category.BUSINESS_LOGIC,
            priority=Priority.CRITICAL,
            patterns=["app/api/palt/*"],
        )
        classifier = ChangeClassifier(prepend_rules=[rule])

        assert classifier.match("app/api/palt/route.ts") == (
            Category.BUSINESS_LOGIC,
            Priority.CRITICAL,
        )
        assert classifier.match("app/api/other/route.ts")[0] == Category.API

    def test_replacement_table(self) -> None:
        rule = ClassificationRule(category=Category.DOCS, priority=Priority.LOW, patterns=["*"])
        classifier = ChangeClassifier(rules=[rule])

        assert classifier.match("app/api/x/route.ts") == (Category.DOCS, Priority.LOW)
