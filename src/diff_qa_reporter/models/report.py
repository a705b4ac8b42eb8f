"""
Report data models.

Models representing the complete result of one analysis run.
"""

from typing import Optional

from pydantic import BaseModel, Field

from diff_qa_reporter.models.change import Category, ChangeRecord, Priority
from diff_qa_reporter.models.dependency import DependencyChange
from diff_qa_reporter.models.endpoint import EndpointChangeType, EndpointDelta
from diff_qa_reporter.models.schema import MigrationInfo, SchemaDelta
from diff_qa_reporter.models.testcase import TestCase


class ReviewNote(BaseModel):
    """A file or endpoint that needs manual review."""
    
    path: str = Field(description="File or endpoint the note refers to")
    reason: str = Field(description="Why automated analysis gave up")
    
    class Config:
        frozen = True


class AnalysisReport(BaseModel):
    """Complete analysis report."""
    
    base: str = Field(description="Base reference as given by the caller")
    head: str = Field(description="Head reference as given by the caller")
    source: str = Field(
        default="git",
        description="Where the diff came from (git repository path or diff file)",
    )
    records: list[ChangeRecord] = Field(default_factory=list)
    endpoint_deltas: list[EndpointDelta] = Field(default_factory=list)
    schema_deltas: list[SchemaDelta] = Field(default_factory=list)
    migrations: list[MigrationInfo] = Field(default_factory=list)
    test_cases: list[TestCase] = Field(default_factory=list)
    dependency_changes: list[DependencyChange] = Field(default_factory=list)
    review_notes: list[ReviewNote] = Field(default_factory=list)
    scoped_diffs: dict[str, str] = Field(
        default_factory=dict,
        description="Raw diff restricted to each requested path prefix",
    )
    no_changes: bool = Field(
        default=False,
        description="True when base and head are identical",
    )
    analysis_duration_ms: Optional[float] = Field(
        default=None,
        description="How long the analysis took in milliseconds",
    )
    warnings: list[str] = Field(default_factory=list)
    
    @property
    def total_files_changed(self) -> int:
        """Number of changed files."""
        return len(self.records)
    
    @property
    def total_additions(self) -> int:
        return sum(r.additions for r in self.records)
    
    @property
    def total_deletions(self) -> int:
        return sum(r.deletions for r in self.records)
    
    @property
    def breaking_count(self) -> int:
        """Number of endpoint deltas known to be breaking."""
        return sum(1 for d in self.endpoint_deltas if d.breaking is True)
    
    @property
    def unknown_breaking_count(self) -> int:
        """Number of endpoint deltas whose breaking status is undecided."""
        return sum(1 for d in self.endpoint_deltas if d.breaking is None)
    
    @property
    def overall_priority(self) -> Optional[Priority]:
        """Most severe priority among the changed files."""
        if not self.records:
            return None
        return min((r.priority for r in self.records), key=lambda p: p.rank)
    
    def get_records_by_category(self, category: Category) -> list[ChangeRecord]:
        """Get change records filtered by category."""
        return [r for r in self.records if r.category == category]
    
    def get_deltas_by_change_type(
        self,
        change_type: EndpointChangeType,
    ) -> list[EndpointDelta]:
        """Get endpoint deltas filtered by change type."""
        return [d for d in self.endpoint_deltas if d.change_type == change_type]
