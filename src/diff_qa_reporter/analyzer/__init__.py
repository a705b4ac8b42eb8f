"""
Analyzer package for Diff QA Reporter.

This package contains modules for:
- Classifying changed files against an ordered rule table
- Diffing route handlers and deciding breaking changes
- Diffing schema snapshots and migrations
- Synthesizing QA test cases
- Orchestrating a complete analysis run
"""

from diff_qa_reporter.analyzer.classifier import ChangeClassifier
from diff_qa_reporter.analyzer.endpoint_differ import EndpointDiffer
from diff_qa_reporter.analyzer.pipeline import ReportPipeline
from diff_qa_reporter.analyzer.schema_differ import SchemaDiffer
from diff_qa_reporter.analyzer.synthesizer import TestCaseSynthesizer

__all__ = [
    "ChangeClassifier",
    "EndpointDiffer",
    "ReportPipeline",
    "SchemaDiffer",
    "TestCaseSynthesizer",
]
