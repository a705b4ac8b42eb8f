"""
Parser package for Diff QA Reporter.

This package contains modules for:
- Unified diff and name-status parsing (using unidiff)
- Route handler extraction (Next.js App Router and FastAPI)
- Schema snapshot and migration parsing (Prisma and SQL)
- Dependency manifest parsing
"""

from diff_qa_reporter.parser.diff_parser import DiffParser, DiffParserError
from diff_qa_reporter.parser.nextjs_route_extractor import NextRouteExtractor
from diff_qa_reporter.parser.python_route_extractor import PythonRouteExtractor

__all__ = [
    "DiffParser",
    "DiffParserError",
    "NextRouteExtractor",
    "PythonRouteExtractor",
]
