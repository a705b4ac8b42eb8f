"""
Static catalog of procurement-domain invariant checks.

Each check lists the file patterns that trigger it. A triggered check
becomes one test case, no matter how many changed files match it.
"""

from fnmatch import fnmatchcase
from typing import Iterable

from diff_qa_reporter.models.change import Priority
from diff_qa_reporter.models.testcase import InvariantCheck

DEFAULT_INVARIANTS: list[InvariantCheck] = [
    InvariantCheck(
        name="Session timeout enforced",
        triggers=["*auth*", "*session*", "middleware.ts", "src/middleware.ts"],
        priority=Priority.CRITICAL,
        preconditions="Logged-in user with an active session",
        steps=[
            "Sign in as a requester",
            "Leave the session idle past the configured timeout",
            "Perform any authenticated action",
        ],
        expected_result="User is redirected to sign-in and unsaved work is preserved",
        edge_cases=frozenset({"timeout during form submit", "multiple open tabs"}),
    ),
    InvariantCheck(
        name="Account lockout after failed sign-in attempts",
        triggers=["*auth*", "*login*"],
        priority=Priority.CRITICAL,
        preconditions="Active user account",
        steps=[
            "Submit an incorrect password repeatedly up to the lockout threshold",
            "Submit the correct password",
        ],
        expected_result="Account is locked and the correct password is rejected until unlock",
        edge_cases=frozenset({"lockout counter reset after success", "case-varied usernames"}),
    ),
    InvariantCheck(
        name="Package autosave debounce",
        triggers=["*packages/*", "*/package/*", "*Package*.ts*", "*autosave*", "*draft*"],
        priority=Priority.HIGH,
        preconditions="Draft procurement package open for editing",
        steps=[
            "Type continuously into a package field",
            "Stop typing and wait for the debounce interval",
            "Reload the page",
        ],
        expected_result="Exactly one save is issued after typing stops and the edit persists",
        edge_cases=frozenset({"navigate away before debounce fires", "concurrent edits"}),
    ),
    InvariantCheck(
        name="Workflow conditional fields",
        triggers=["*workflow*.ts*", "*workflow*.js", "*workflow*.py", "*conditional*"],
        priority=Priority.HIGH,
        preconditions="Package form with conditionally displayed fields",
        steps=[
            "Select an answer that reveals a conditional field",
            "Fill the conditional field",
            "Change the answer so the field is hidden and submit",
        ],
        expected_result="Hidden fields are not required and their stale values are not submitted",
        edge_cases=frozenset({"nested conditions", "conditions restored from a saved draft"}),
    ),
    InvariantCheck(
        name="PALT lead-time validation",
        triggers=["*palt*", "*PALT*", "*lead-time*", "*leadTime*", "*lead_time*"],
        priority=Priority.HIGH,
        preconditions="Package with a need date and acquisition type selected",
        steps=[
            "Enter a need date inside the minimum procurement action lead time",
            "Attempt to advance the package",
        ],
        expected_result="Validation blocks advancement and names the minimum allowed need date",
        edge_cases=frozenset({"need date exactly on the boundary", "holidays and weekends"}),
    ),
    InvariantCheck(
        name="FITARA approval gate",
        triggers=["*fitara*", "*FITARA*", "*Fitara*"],
        priority=Priority.CRITICAL,
        preconditions="IT-related procurement package without FITARA approval",
        steps=[
            "Mark the package as containing IT",
            "Attempt to submit without a FITARA approval",
            "Record the approval and submit again",
        ],
        expected_result="Submission is blocked until a FITARA approval is recorded",
        edge_cases=frozenset({"approval revoked after submit", "non-IT package skips the gate"}),
    ),
    InvariantCheck(
        name="Tier navigation retains entered data",
        triggers=["*tier*", "*Tier*"],
        priority=Priority.MEDIUM,
        preconditions="Package form partially completed across tiers",
        steps=[
            "Fill fields on the current tier",
            "Navigate to the next tier and back",
        ],
        expected_result="Values entered on every tier are retained",
        edge_cases=frozenset({"browser back button", "validation error on the target tier"}),
    ),
    InvariantCheck(
        name="Migration applies and rolls back cleanly",
        triggers=["*.prisma", "*migrations/*", "*.sql"],
        priority=Priority.HIGH,
        preconditions="Database restored from a production-like snapshot",
        steps=[
            "Apply pending migrations",
            "Run the application smoke tests",
            "Roll back the latest migration",
        ],
        expected_result="Migration applies without errors and rollback restores the prior schema",
        edge_cases=frozenset({"existing rows with NULLs", "large tables"}),
    ),
]


def triggered_invariants(
    paths: Iterable[str],
    catalog: list[InvariantCheck],
) -> list[InvariantCheck]:
    """
    Return the catalog entries triggered by any of the paths.

    Checks are returned in the order they are first triggered while
    walking the paths, each at most once.
    """
    triggered: list[InvariantCheck] = []
    seen: set[str] = set()
    for path in paths:
        for check in catalog:
            if check.name in seen:
                continue
            if any(fnmatchcase(path, pattern) for pattern in check.triggers):
                triggered.append(check)
                seen.add(check.name)
    return triggered
