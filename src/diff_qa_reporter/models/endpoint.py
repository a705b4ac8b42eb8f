"""
Endpoint data models.

Models representing route handler signatures extracted from one side of a
diff, and the deltas computed between the base and head signatures.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class HttpMethod(str, Enum):
    """HTTP methods a route handler can export."""
    
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"


class FieldLocation(str, Enum):
    """Where a request field is read from."""
    
    BODY = "body"
    QUERY = "query"


class FieldSpec(BaseModel):
    """A single request or response field."""
    
    name: str = Field(description="Field name")
    type: str = Field(default="unknown", description="Declared or inferred type")
    required: bool = Field(default=True, description="Whether callers must send it")
    has_default: bool = Field(default=False, description="Whether a default applies")
    location: FieldLocation = Field(
        default=FieldLocation.BODY,
        description="Request location (ignored for response fields)",
    )
    
    class Config:
        frozen = True
    
    def describe(self) -> str:
        """Short description used in diff tables, e.g. `string, required`."""
        parts = [self.type]
        if self.location == FieldLocation.QUERY:
            parts.append("query")
        if self.has_default:
            parts.append("default")
        elif self.required:
            parts.append("required")
        else:
            parts.append("optional")
        return ", ".join(parts)


class RouteSignature(BaseModel):
    """An exported route handler as seen at one git reference."""
    
    method: HttpMethod = Field(description="HTTP method")
    path: str = Field(description="URL path pattern, e.g. /api/packages/[id]")
    source_file: str = Field(description="File the handler is defined in")
    handler: Optional[str] = Field(default=None, description="Handler function name")
    line_number: Optional[int] = Field(default=None, description="Definition line")
    request_fields: list[FieldSpec] = Field(default_factory=list)
    response_fields: list[FieldSpec] = Field(default_factory=list)
    auth: Optional[str] = Field(
        default=None,
        description="Auth requirement description, None when unauthenticated",
    )
    request_dynamic: bool = Field(
        default=False,
        description="Request body is read without a resolvable shape",
    )
    response_dynamic: bool = Field(
        default=False,
        description="Response payload is not an object literal",
    )
    
    class Config:
        frozen = True
    
    @property
    def identifier(self) -> str:
        """Unique identifier for this route."""
        return f"{self.method.value} {self.path}"
    
    @property
    def key(self) -> tuple[str, str]:
        """Matching key (method, path)."""
        return (self.method.value, self.path)
    
    def request_field(self, name: str) -> Optional[FieldSpec]:
        """Look up a request field by name."""
        return next((f for f in self.request_fields if f.name == name), None)
    
    def response_field(self, name: str) -> Optional[FieldSpec]:
        """Look up a response field by name."""
        return next((f for f in self.response_fields if f.name == name), None)


class EndpointChangeType(str, Enum):
    """How an endpoint changed between base and head."""
    
    NEW = "New"
    MODIFIED = "Modified"
    DELETED = "Deleted"


class FieldDiff(BaseModel):
    """Before/after description of one field; None means absent."""
    
    field: str
    before: Optional[str] = None
    after: Optional[str] = None
    
    class Config:
        frozen = True


class EndpointDelta(BaseModel):
    """Structured change to one endpoint."""
    
    method: HttpMethod = Field(description="HTTP method at head (base for deletions)")
    path: str = Field(description="Path at head (base for deletions)")
    change_type: EndpointChangeType = Field(description="New, Modified or Deleted")
    file_path: str = Field(description="Changed route file the delta comes from")
    request_field_diffs: list[FieldDiff] = Field(default_factory=list)
    response_field_diffs: list[FieldDiff] = Field(default_factory=list)
    auth_change: Optional[str] = Field(default=None, description="Auth before -> after")
    breaking: Optional[bool] = Field(
        default=False,
        description="Computed breaking status; None when undecidable",
    )
    breaking_reasons: list[str] = Field(default_factory=list)
    previous_method: Optional[HttpMethod] = Field(default=None)
    previous_path: Optional[str] = Field(default=None)
    review_note: Optional[str] = Field(default=None)
    signature: Optional[RouteSignature] = Field(
        default=None,
        description="Head signature (base signature for deletions)",
    )
    previous_signature: Optional[RouteSignature] = Field(default=None)
    
    class Config:
        frozen = True
    
    @property
    def identifier(self) -> str:
        """Unique identifier for this endpoint."""
        return f"{self.method.value} {self.path}"
    
    @property
    def breaking_label(self) -> str:
        """Breaking status as rendered in reports."""
        if self.breaking is None:
            return "Unknown (manual review required)"
        return "Yes" if self.breaking else "No"
