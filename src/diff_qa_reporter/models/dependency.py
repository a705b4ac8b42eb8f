"""
Dependency manifest change models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class DependencyChangeType(str, Enum):
    """How a declared dependency changed."""
    
    ADDED = "Added"
    REMOVED = "Removed"
    UPGRADED = "Upgraded"
    DOWNGRADED = "Downgraded"
    CHANGED = "Changed"


class DependencyChange(BaseModel):
    """A dependency whose declared version changed."""
    
    package: str
    manifest: str
    before: Optional[str] = None
    after: Optional[str] = None
    change: DependencyChangeType
    dev: bool = False
    
    class Config:
        frozen = True
