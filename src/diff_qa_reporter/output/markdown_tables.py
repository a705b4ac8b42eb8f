"""
Markdown table rendering and parsing.

Reports are built from pipe tables with fixed headers. Tables without
data get a single placeholder row so document structure never changes.
The parser reads the tables back, keyed by the heading above them.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

PLACEHOLDER = "—"
LINE_BREAK = "<br>"

_UNESCAPED_PIPE_RE = re.compile(r"(?<!\\)\|")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*$")
_SEPARATOR_RE = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$")


def escape_cell(value: Any) -> str:
    """Render a value as table cell text: pipes escaped, newlines as <br>."""
    if value is None:
        return ""
    text = str(value).replace("|", "\\|")
    return text.replace("\r\n", "\n").replace("\n", LINE_BREAK)


def unescape_cell(text: str) -> str:
    """Inverse of escape_cell."""
    return text.strip().replace(LINE_BREAK, "\n").replace("\\|", "|")


def render_table(headers: list[str], rows: Iterable[Iterable[Any]]) -> list[str]:
    """
    Render a pipe table.

    Args:
        headers: Column headers.
        rows: Row values; None renders as an empty cell.

    Returns:
        Table lines. An empty row list renders one placeholder row.
    """
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    rendered = ["| " + " | ".join(escape_cell(c) for c in row) + " |" for row in rows]
    if not rendered:
        rendered = ["| " + " | ".join(PLACEHOLDER for _ in headers) + " |"]
    return lines + rendered


def split_row(line: str) -> list[str]:
    """Split a table row into raw cell texts."""
    text = line.strip()
    if text.startswith("|"):
        text = text[1:]
    if text.endswith("|") and not text.endswith("\\|"):
        text = text[:-1]
    return [cell.strip() for cell in _UNESCAPED_PIPE_RE.split(text)]


@dataclass
class MarkdownTable:
    """A table read back from a Markdown document."""

    heading: Optional[str]
    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)
    placeholder: bool = False


def parse_markdown_tables(text: str) -> list[MarkdownTable]:
    """
    Parse every pipe table in a document.

    Each table is attributed to the nearest heading above it. Placeholder
    rows are dropped and flag the table as a placeholder table.
    """
    tables: list[MarkdownTable] = []
    heading: Optional[str] = None
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        match = _HEADING_RE.match(line)
        if match:
            heading = match.group(2)
            i += 1
            continue

        is_header = line.strip().startswith("|")
        if is_header and i + 1 < len(lines) and _SEPARATOR_RE.match(lines[i + 1].strip()):
            headers = [unescape_cell(c) for c in split_row(line)]
            table = MarkdownTable(heading=heading, headers=headers)
            i += 2
            while i < len(lines) and lines[i].strip().startswith("|"):
                cells = [unescape_cell(c) for c in split_row(lines[i])]
                if all(c == PLACEHOLDER for c in cells):
                    table.placeholder = True
                else:
                    cells += [""] * (len(headers) - len(cells))
                    table.rows.append(dict(zip(headers, cells)))
                i += 1
            tables.append(table)
            continue
        i += 1
    return tables


def tables_by_heading(text: str) -> dict[str, MarkdownTable]:
    """First table under each heading."""
    result: dict[str, MarkdownTable] = {}
    for table in parse_markdown_tables(text):
        if table.heading is not None and table.heading not in result:
            result[table.heading] = table
    return result
