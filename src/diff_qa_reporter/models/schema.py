"""
Database schema data models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ColumnSpec(BaseModel):
    """A column of a table definition."""
    
    name: str
    type: str
    nullable: bool = True
    default: Optional[str] = None
    primary_key: bool = False
    
    class Config:
        frozen = True


class RelationSpec(BaseModel):
    """A foreign key from a column to another table."""
    
    column: str
    references_table: str
    references_column: str = "id"
    
    class Config:
        frozen = True
    
    def describe(self) -> str:
        """Render as `column -> table.column`."""
        return f"{self.column} -> {self.references_table}.{self.references_column}"


class TableSpec(BaseModel):
    """A table as declared in a schema snapshot."""
    
    name: str
    columns: list[ColumnSpec] = Field(default_factory=list)
    relations: list[RelationSpec] = Field(default_factory=list)
    
    def column(self, name: str) -> Optional[ColumnSpec]:
        """Look up a column by name."""
        return next((c for c in self.columns if c.name == name), None)


class SchemaChangeType(str, Enum):
    """How a table changed."""
    
    NEW = "New"
    MODIFIED = "Modified"
    DELETED = "Deleted"


class ColumnChangeType(str, Enum):
    """How a column or relation changed."""
    
    ADDED = "Added"
    DROPPED = "Dropped"
    MODIFIED = "Modified"


class ColumnDelta(BaseModel):
    """Change to a single column."""
    
    name: str
    change_type: ColumnChangeType
    type_before: Optional[str] = None
    type_after: Optional[str] = None
    nullable: Optional[bool] = Field(
        default=None,
        description="Head-side nullability (None for dropped columns)",
    )
    has_default: bool = False
    
    class Config:
        frozen = True


class RelationDelta(BaseModel):
    """A foreign key added or dropped."""
    
    relation: RelationSpec
    change_type: ColumnChangeType
    
    class Config:
        frozen = True
    
    def describe(self) -> str:
        sign = "+" if self.change_type == ColumnChangeType.ADDED else "-"
        return f"{sign} {self.relation.describe()}"


class MigrationInfo(BaseModel):
    """A migration file located in the change set."""
    
    name: str = Field(description="Migration name, e.g. 20240501_add_fitara")
    path: str = Field(description="Path of the up migration")
    down_path: Optional[str] = Field(default=None, description="Located down migration")
    tables: list[str] = Field(default_factory=list, description="Tables it touches")
    reversible: Optional[bool] = Field(
        default=None,
        description="True with a down migration, False without, None if unknown",
    )
    
    class Config:
        frozen = True


class SchemaDelta(BaseModel):
    """Structured change to one table."""
    
    table: str
    change_type: SchemaChangeType
    columns: list[ColumnDelta] = Field(default_factory=list)
    relations: list[RelationDelta] = Field(default_factory=list)
    migration_name: Optional[str] = None
    reversible: Optional[bool] = None
    data_impact: str = "None"
    source_file: str = Field(default="", description="Schema or migration file")
    
    class Config:
        frozen = True
    
    @property
    def reversible_label(self) -> str:
        """Reversibility as rendered in reports."""
        if self.reversible is None:
            return "Unknown"
        return "Yes" if self.reversible else "No"
