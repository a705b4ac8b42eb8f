"""
Dependency manifest parsing.

Reads `package.json` and `requirements*.txt` into name -> (version, dev)
mappings so the two sides of a change can be compared.
"""

import json
import re
from pathlib import PurePosixPath

from diff_qa_reporter.errors import UnparseableFileError

_REQUIREMENT_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)(?:\[[^\]]*\])?\s*(.*)$")


def is_manifest(path: str) -> bool:
    """Check whether a path is a dependency manifest we understand."""
    name = PurePosixPath(path).name
    return name == "package.json" or (name.startswith("requirements") and name.endswith(".txt"))


def parse_manifest(path: str, content: str) -> dict[str, tuple[str, bool]]:
    """
    Parse a manifest into `{package: (version_spec, is_dev)}`.

    Raises:
        UnparseableFileError: If the manifest is malformed.
    """
    name = PurePosixPath(path).name
    if name == "package.json":
        return parse_package_json(path, content)
    return parse_requirements(content, dev="dev" in name)


def parse_package_json(path: str, content: str) -> dict[str, tuple[str, bool]]:
    try:
        data = json.loads(content) if content.strip() else {}
    except json.JSONDecodeError as e:
        raise UnparseableFileError(path, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise UnparseableFileError(path, "top-level value is not an object")

    packages: dict[str, tuple[str, bool]] = {}
    for section, dev in (("dependencies", False), ("devDependencies", True)):
        for package, version in (data.get(section) or {}).items():
            packages[package] = (str(version), dev)
    return packages


def parse_requirements(content: str, dev: bool = False) -> dict[str, tuple[str, bool]]:
    packages: dict[str, tuple[str, bool]] = {}
    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = _REQUIREMENT_RE.match(line)
        if match:
            spec = match.group(2).split(";", 1)[0].strip()
            packages[match.group(1).lower()] = (spec or "*", dev)
    return packages
