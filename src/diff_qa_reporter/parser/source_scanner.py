"""
Bracket and string aware scanning helpers for JavaScript/TypeScript source.

The route and schema parsers use regular expressions to find interesting
positions and these helpers to cut out balanced argument lists, object
literals and function bodies around them.
"""

from typing import Optional

_CLOSERS = {"(": ")", "{": "}", "[": "]"}
_OPENERS = {")": "(", "}": "{", "]": "["}
_QUOTES = "'\"`"


class ScanError(Exception):
    """Source text is not balanced where a balanced span was expected."""
    pass


def skip_string(text: str, index: int) -> int:
    """
    Return the index just past the string literal starting at `index`.

    Raises:
        ScanError: If the string is not terminated.
    """
    quote = text[index]
    i = index + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            raise ScanError(f"Unterminated string at offset {index}")
        i += 1
    raise ScanError(f"Unterminated string at offset {index}")


def strip_comments(source: str) -> str:
    """
    Blank out `//` and `/* */` comments, keeping offsets and newlines.

    String literals are left untouched.
    """
    out: list[str] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if ch in _QUOTES:
            try:
                end = skip_string(source, i)
            except ScanError:
                end = n
            out.append(source[i:end])
            i = end
        elif source.startswith("//", i):
            end = source.find("\n", i)
            end = n if end == -1 else end
            out.append(" " * (end - i))
            i = end
        elif source.startswith("/*", i):
            end = source.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.append("".join(c if c == "\n" else " " for c in source[i:end]))
            i = end
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def find_closing(text: str, open_index: int) -> int:
    """
    Return the index of the bracket closing the one at `open_index`.

    Raises:
        ScanError: If the brackets are unbalanced.
    """
    if text[open_index] not in _CLOSERS:
        raise ScanError(f"No opening bracket at offset {open_index}")

    stack: list[str] = []
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in _OPENERS:
            if not stack or stack.pop() != ch:
                raise ScanError(f"Mismatched {ch!r} at offset {i}")
            if not stack:
                return i
        i += 1
    raise ScanError(f"Unbalanced {text[open_index]!r} at offset {open_index}")


def find_opening(text: str, close_index: int) -> int:
    """
    Return the index of the bracket opening the one at `close_index`.

    Scans backwards and does not understand string literals, so it is
    only used on short declaration prefixes.
    """
    if text[close_index] not in _OPENERS:
        raise ScanError(f"No closing bracket at offset {close_index}")

    depth = 0
    for i in range(close_index, -1, -1):
        ch = text[i]
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                return i
    raise ScanError(f"Unbalanced {text[close_index]!r} at offset {close_index}")


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on `separator` where it is not nested in brackets or strings."""
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch in _CLOSERS:
            depth += 1
        elif ch in _OPENERS:
            depth -= 1
        elif ch == separator and depth == 0:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return [p.strip() for p in parts if p.strip()]


def find_body_start(text: str, index: int) -> Optional[int]:
    """
    Find the `{` opening a function body after a parameter list.

    Skips a TypeScript return type annotation, including object types
    nested in generics such as `Promise<NextResponse<{ ok: boolean }>>`.
    """
    angle = 0
    i = index
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch == "<":
            angle += 1
        elif ch == ">" and text[i - 1] != "=":
            angle = max(angle - 1, 0)
        elif ch == "{":
            if angle == 0:
                return i
            i = find_closing(text, i) + 1
            continue
        elif ch == ";":
            return None
        i += 1
    return None


def line_of(text: str, index: int) -> int:
    """1-based line number of an offset."""
    return text.count("\n", 0, index) + 1
