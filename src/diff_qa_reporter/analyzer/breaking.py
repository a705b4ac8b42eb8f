"""
Breaking-change evaluation for matched route signatures.

A change is breaking if and only if one of these holds:

    (a) a previously required request field is removed (a rename is a
        removal plus an addition),
    (b) a required request field without a default is added, including
        an optional field becoming required,
    (c) a response field present before is removed,
    (d) the HTTP method or path of an existing route changes.

Request conditions are only evaluated when both request shapes are known,
response conditions only when both response shapes are known. When no
condition holds but a shape is unknown the outcome cannot be decided and
AmbiguousBreakingChangeError is raised instead of guessing.
"""

from diff_qa_reporter.errors import AmbiguousBreakingChangeError
from diff_qa_reporter.models.endpoint import RouteSignature

ROUTE_REMOVED = "route removed; existing callers receive 404/405"


def _request_reasons(before: RouteSignature, after: RouteSignature) -> list[str]:
    reasons = []
    for field in before.request_fields:
        if field.required and after.request_field(field.name) is None:
            reasons.append(f"required request field `{field.name}` removed")
    for field in after.request_fields:
        if not field.required or field.has_default:
            continue
        previous = before.request_field(field.name)
        if previous is None:
            reasons.append(f"required request field `{field.name}` added without a default")
        elif not previous.required or previous.has_default:
            reasons.append(f"request field `{field.name}` became required")
    return reasons


def _response_reasons(before: RouteSignature, after: RouteSignature) -> list[str]:
    return [
        f"response field `{field.name}` removed"
        for field in before.response_fields
        if after.response_field(field.name) is None
    ]


def evaluate_breaking(before: RouteSignature, after: RouteSignature) -> list[str]:
    """
    Decide whether moving from `before` to `after` breaks existing callers.

    Args:
        before: Signature at the base reference.
        after: Signature at the head reference.

    Returns:
        The reasons the change is breaking; empty when it is not.

    Raises:
        AmbiguousBreakingChangeError: If no condition holds and a request
            or response shape could not be determined.
    """
    reasons: list[str] = []
    if before.method != after.method:
        reasons.append(f"HTTP method changed from {before.method.value} to {after.method.value}")
    if before.path != after.path:
        reasons.append(f"path changed from {before.path} to {after.path}")

    request_known = not (before.request_dynamic or after.request_dynamic)
    response_known = not (before.response_dynamic or after.response_dynamic)
    if request_known:
        reasons.extend(_request_reasons(before, after))
    if response_known:
        reasons.extend(_response_reasons(before, after))

    if reasons:
        return reasons

    unknown = []
    if not request_known:
        unknown.append("request body is built dynamically")
    if not response_known:
        unknown.append("response payload is built dynamically")
    if unknown:
        raise AmbiguousBreakingChangeError(
            after.identifier,
            "; ".join(unknown),
            path=after.source_file,
        )
    return []
