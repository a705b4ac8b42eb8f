"""
Data models for Diff QA Reporter.

This package contains Pydantic models for representing changed files,
route signatures, schema deltas, test cases and analysis reports.
"""

from diff_qa_reporter.models.change import (
    Category,
    ChangeRecord,
    ClassificationRule,
    Priority,
)
from diff_qa_reporter.models.dependency import (
    DependencyChange,
    DependencyChangeType,
)
from diff_qa_reporter.models.diff import (
    ChangeStatus,
    DiffFile,
    DiffHunk,
)
from diff_qa_reporter.models.endpoint import (
    EndpointChangeType,
    EndpointDelta,
    FieldDiff,
    FieldLocation,
    FieldSpec,
    HttpMethod,
    RouteSignature,
)
from diff_qa_reporter.models.report import (
    AnalysisReport,
    ReviewNote,
)
from diff_qa_reporter.models.schema import (
    ColumnChangeType,
    ColumnDelta,
    ColumnSpec,
    MigrationInfo,
    RelationDelta,
    RelationSpec,
    SchemaChangeType,
    SchemaDelta,
    TableSpec,
)
from diff_qa_reporter.models.testcase import InvariantCheck, TestCase

__all__ = [
    # Change models
    "Category",
    "ChangeRecord",
    "ClassificationRule",
    "Priority",
    # Diff models
    "ChangeStatus",
    "DiffFile",
    "DiffHunk",
    # Endpoint models
    "EndpointChangeType",
    "EndpointDelta",
    "FieldDiff",
    "FieldLocation",
    "FieldSpec",
    "HttpMethod",
    "RouteSignature",
    # Schema models
    "ColumnChangeType",
    "ColumnDelta",
    "ColumnSpec",
    "MigrationInfo",
    "RelationDelta",
    "RelationSpec",
    "SchemaChangeType",
    "SchemaDelta",
    "TableSpec",
    # Dependency models
    "DependencyChange",
    "DependencyChangeType",
    # Report models
    "AnalysisReport",
    "ReviewNote",
    "InvariantCheck",
    "TestCase",
]
