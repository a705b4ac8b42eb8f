"""
Synthesized test case model.
"""

from typing import ClassVar, Optional

from pydantic import BaseModel, Field

from diff_qa_reporter.models.change import Priority


class TestCase(BaseModel):
    """A structured QA test case."""
    
    # Keep pytest from collecting this model as a test class.
    __test__: ClassVar[bool] = False
    
    id: str = Field(description="Unique id such as TC-001")
    priority: Priority
    title: str
    endpoint: Optional[str] = Field(default=None, description="METHOD path, if any")
    preconditions: str = ""
    steps: list[str] = Field(default_factory=list)
    expected_result: str = ""
    edge_cases: frozenset[str] = Field(default_factory=frozenset)
    
    class Config:
        frozen = True


class InvariantCheck(BaseModel):
    """A named domain check triggered when matching files change."""
    
    name: str = Field(description="Check name, used as the test case title")
    triggers: list[str] = Field(description="Glob patterns of files that trigger it")
    priority: Priority = Priority.HIGH
    preconditions: str = ""
    steps: list[str] = Field(default_factory=list)
    expected_result: str = ""
    edge_cases: frozenset[str] = Field(default_factory=frozenset)
    
    class Config:
        frozen = True
