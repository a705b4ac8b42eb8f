"""
Change classification models.

A ChangeRecord is one changed path with its status and the single
category assigned by the first matching classification rule.
"""

from enum import Enum
from fnmatch import fnmatchcase
from typing import Optional

from pydantic import BaseModel, Field

from diff_qa_reporter.models.diff import ChangeStatus


class Category(str, Enum):
    """Category a changed file is classified into."""
    
    API = "API"
    DATABASE = "Database"
    AUTH = "Auth/Security"
    BUSINESS_LOGIC = "Business Logic"
    TYPES = "Types"
    UI_COMPONENT = "UI Component"
    TIER_FORM = "Tier Form"
    STYLING = "Styling"
    CONFIG = "Config"
    TESTS = "Tests"
    DOCS = "Docs"
    OTHER = "Other"


class Priority(str, Enum):
    """Review priority, ordered from most to least severe."""
    
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    
    @property
    def rank(self) -> int:
        """Sort key: 0 for Critical through 3 for Low."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class ClassificationRule(BaseModel):
    """One entry of the ordered classification table."""
    
    category: Category = Field(description="Category assigned on match")
    priority: Priority = Field(description="Priority assigned on match")
    patterns: list[str] = Field(
        description="Glob patterns; `*` also matches path separators",
    )
    description: Optional[str] = Field(
        default=None,
        description="Human-readable note about what the rule targets",
    )
    
    class Config:
        frozen = True
    
    def matches(self, path: str) -> bool:
        """Check whether any of the rule's patterns matches the path."""
        return any(fnmatchcase(path, pattern) for pattern in self.patterns)


class ChangeRecord(BaseModel):
    """A classified changed file."""
    
    path: str = Field(description="Repository-relative path (head side for renames)")
    status: ChangeStatus = Field(description="Added, Modified, Deleted or Renamed")
    category: Category = Field(description="Category from the first matching rule")
    priority: Priority = Field(description="Priority from the first matching rule")
    source_path: Optional[str] = Field(
        default=None,
        description="Original path for renamed files",
    )
    additions: int = Field(default=0, description="Lines added")
    deletions: int = Field(default=0, description="Lines removed")
    diff_text: str = Field(default="", description="Raw unified diff for this file")
    
    class Config:
        frozen = True
    
    @property
    def base_path(self) -> str:
        """Path of this file at the base reference."""
        return self.source_path or self.path
