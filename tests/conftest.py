"""
Pytest configuration and shared fixtures.
"""

import pytest

from tests.helpers import (
    ARCHIVE_ROUTE,
    ARCHIVE_ROUTE_PATH,
    PACKAGE_ROUTE_BASE,
    DictContentReader,
    added_file_diff,
)


@pytest.fixture
def content_reader_factory():
    """Factory for DictContentReader instances."""
    return DictContentReader


@pytest.fixture
def package_route_base() -> str:
    """Package route module at the base revision."""
    return PACKAGE_ROUTE_BASE


@pytest.fixture
def archive_route_diff() -> str:
    """Diff adding the archive route."""
    return added_file_diff(ARCHIVE_ROUTE_PATH, ARCHIVE_ROUTE)


@pytest.fixture
def simple_diff_content() -> str:
    """A simple modification diff."""
    # Context lines start with exactly one space, the diff marker
    lines = [
        "diff --git a/lib/palt.ts b/lib/palt.ts",
        "index 1234567..abcdefg 100644",
        "--- a/lib/palt.ts",
        "+++ b/lib/palt.ts",
        "@@ -10,6 +10,8 @@ export function minimumLeadDays(value: number) {",
        " " + "  const threshold = lookupThreshold(value);",
        " " + "  return threshold.days;",
        " " + "}",
        "+",
        "+export const PALT_WARNING_DAYS = 14;",
        " ",
        " " + "export function needDateIsValid(needDate: Date, value: number) {",
        " " + "  const days = minimumLeadDays(value);",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def multi_file_diff_content() -> str:
    """A multi-file diff with an added route, a modified component and a deleted doc."""
    lines = [
        "diff --git a/components/ui/Button.tsx b/components/ui/Button.tsx",
        "index 1111111..2222222 100644",
        "--- a/components/ui/Button.tsx",
        "+++ b/components/ui/Button.tsx",
        "@@ -1,3 +1,3 @@",
        " export function Button() {",
        "-  return <button className=\"btn\" />;",
        "+  return <button className=\"btn btn-primary\" />;",
        " }",
        "diff --git a/docs/old.md b/docs/old.md",
        "deleted file mode 100644",
        "index 3333333..0000000",
        "--- a/docs/old.md",
        "+++ /dev/null",
        "@@ -1,2 +0,0 @@",
        "-# Old",
        "-Obsolete notes",
    ]
    return "\n".join(lines) + "\n" + added_file_diff(ARCHIVE_ROUTE_PATH, ARCHIVE_ROUTE)
