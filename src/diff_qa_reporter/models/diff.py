"""
Diff data models.

Models representing parsed diff files and changes.
"""

from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from pydantic import BaseModel, Field


class ChangeStatus(str, Enum):
    """Status of a file between the base and head references."""
    
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    
    @classmethod
    def from_git_letter(cls, letter: str) -> "ChangeStatus":
        """Map a `git diff --name-status` letter to a status."""
        code = letter[:1].upper()
        if code == "A":
            return cls.ADDED
        if code == "D":
            return cls.DELETED
        if code in ("R", "C"):
            return cls.RENAMED
        return cls.MODIFIED


class DiffHunk(BaseModel):
    """Represents a hunk (section of changes) in a diff."""
    
    source_start: int = Field(description="Starting line in source file")
    source_length: int = Field(description="Number of lines in source")
    target_start: int = Field(description="Starting line in target file")
    target_length: int = Field(description="Number of lines in target")
    added_lines: list[int] = Field(
        default_factory=list,
        description="Line numbers of added lines (in target)",
    )
    removed_lines: list[int] = Field(
        default_factory=list,
        description="Line numbers of removed lines (in source)",
    )
    
    class Config:
        frozen = True


class DiffFile(BaseModel):
    """Represents a single changed file before classification."""
    
    path: str = Field(description="Repository-relative path (head side for renames)")
    status: ChangeStatus = Field(description="Type of change")
    source_path: Optional[str] = Field(
        default=None,
        description="Original path (for renames)",
    )
    hunks: list[DiffHunk] = Field(
        default_factory=list,
        description="Hunks in this file",
    )
    added_lines: int = Field(default=0, description="Total lines added")
    removed_lines: int = Field(default=0, description="Total lines removed")
    diff_text: str = Field(default="", description="Raw unified diff for this file")
    
    class Config:
        frozen = True
    
    @property
    def suffix(self) -> str:
        """File extension of the head-side path."""
        return PurePosixPath(self.path).suffix
    
    @property
    def base_path(self) -> str:
        """Path of this file at the base reference."""
        return self.source_path or self.path
