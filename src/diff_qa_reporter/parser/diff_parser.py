"""
Diff parser using the unidiff library.

This module wraps the unidiff library to parse unified diff text and
`git diff --name-status -z` output into structured change information.
"""

from typing import Optional

from unidiff import Hunk, PatchSet, PatchedFile

from diff_qa_reporter.errors import DiffReportError
from diff_qa_reporter.models.diff import (
    ChangeStatus,
    DiffFile,
    DiffHunk,
)


class DiffParserError(DiffReportError):
    """Error during diff parsing."""
    pass


def _strip_prefix(path: str) -> str:
    """Remove the `a/` or `b/` prefix git puts on diff paths."""
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


class DiffParser:
    """
    Parse unified diffs using the unidiff library.

    Reads unified diff text and name-status listings; rebuilds the
    content of added and deleted files from their hunks.
    """

    @staticmethod
    def _determine_status(patched_file: PatchedFile) -> ChangeStatus:
        """
        Determine the status of a patched file.

        Args:
            patched_file: A PatchedFile from unidiff.

        Returns:
            The ChangeStatus for this file.
        """
        if patched_file.is_added_file:
            return ChangeStatus.ADDED
        elif patched_file.is_removed_file:
            return ChangeStatus.DELETED
        elif patched_file.is_rename:
            return ChangeStatus.RENAMED
        else:
            return ChangeStatus.MODIFIED

    @staticmethod
    def _parse_hunk(hunk: Hunk) -> DiffHunk:
        """
        Parse a unidiff Hunk into our DiffHunk model.

        Args:
            hunk: A Hunk from unidiff.

        Returns:
            DiffHunk with line information.
        """
        added_lines: list[int] = []
        removed_lines: list[int] = []

        # Track line numbers as we iterate through the hunk
        source_line = hunk.source_start
        target_line = hunk.target_start

        for line in hunk:
            if line.is_added:
                added_lines.append(target_line)
                target_line += 1
            elif line.is_removed:
                removed_lines.append(source_line)
                source_line += 1
            else:
                # Context line
                source_line += 1
                target_line += 1

        return DiffHunk(
            source_start=hunk.source_start,
            source_length=hunk.source_length,
            target_start=hunk.target_start,
            target_length=hunk.target_length,
            added_lines=added_lines,
            removed_lines=removed_lines,
        )

    @staticmethod
    def _parse_patched_file(patched_file: PatchedFile) -> DiffFile:
        """
        Parse a PatchedFile into our DiffFile model.

        Args:
            patched_file: A PatchedFile from unidiff.

        Returns:
            DiffFile with all hunk information and the file's raw diff.
        """
        status = DiffParser._determine_status(patched_file)

        # Deleted files only have a meaningful source path
        if status == ChangeStatus.DELETED:
            path = _strip_prefix(patched_file.source_file)
        else:
            path = _strip_prefix(patched_file.target_file)

        source_path = None
        if status == ChangeStatus.RENAMED:
            source_path = _strip_prefix(patched_file.source_file)

        hunks = [DiffParser._parse_hunk(hunk) for hunk in patched_file]

        return DiffFile(
            path=path,
            status=status,
            source_path=source_path,
            hunks=hunks,
            added_lines=patched_file.added,
            removed_lines=patched_file.removed,
            diff_text=str(patched_file),
        )

    @classmethod
    def parse_string(cls, diff_content: str) -> list[DiffFile]:
        """
        Parse diff content from a string.

        Args:
            diff_content: The diff content as a string.

        Returns:
            List of DiffFile objects.

        Raises:
            DiffParserError: If parsing fails.
        """
        try:
            patch_set = PatchSet(diff_content)
            return [cls._parse_patched_file(f) for f in patch_set]
        except Exception as e:
            raise DiffParserError(f"Failed to parse diff content: {e}") from e

    @staticmethod
    def parse_name_status(output: str) -> list[tuple[ChangeStatus, str, Optional[str]]]:
        """
        Parse `git diff --name-status -z` output.

        Args:
            output: NUL-separated name-status output.

        Returns:
            List of (status, path, source_path) tuples in git's order.
            source_path is only set for renames and copies.
        """
        tokens = output.split("\0")
        entries: list[tuple[ChangeStatus, str, Optional[str]]] = []
        i = 0
        while i < len(tokens):
            code = tokens[i].strip()
            if not code:
                i += 1
                continue
            status = ChangeStatus.from_git_letter(code)
            if code[0] in ("R", "C"):
                if i + 2 >= len(tokens):
                    raise DiffParserError(f"Truncated name-status entry: {code}")
                entries.append((status, tokens[i + 2], tokens[i + 1]))
                i += 3
            else:
                if i + 1 >= len(tokens):
                    raise DiffParserError(f"Truncated name-status entry: {code}")
                entries.append((status, tokens[i + 1], None))
                i += 2
        return entries

    @staticmethod
    def reconstruct_content(diff_file: DiffFile, side: str) -> Optional[str]:
        """
        Rebuild the full content of one side of a file from its diff.

        Only added files (after side) and deleted files (before side)
        carry their full content in the diff.

        Args:
            diff_file: The parsed diff file.
            side: "before" or "after".

        Returns:
            The reconstructed text, or None if the diff does not hold it.
        """
        if side == "after" and diff_file.status != ChangeStatus.ADDED:
            return None
        if side == "before" and diff_file.status != ChangeStatus.DELETED:
            return None
        if not diff_file.diff_text:
            return None

        try:
            patch_set = PatchSet(diff_file.diff_text)
        except Exception as e:
            raise DiffParserError(f"Failed to re-read diff for {diff_file.path}: {e}") from e

        lines: list[str] = []
        for patched_file in patch_set:
            for hunk in patched_file:
                for line in hunk:
                    if side == "after" and line.is_added:
                        lines.append(line.value)
                    elif side == "before" and line.is_removed:
                        lines.append(line.value)
        return "".join(lines)
