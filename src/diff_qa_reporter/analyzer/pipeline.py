"""
Report pipeline - runs one analysis from collection to report model.

    collect -> classify -> diff API/Database files -> synthesize tests

Collection errors (unknown refs, timeouts, git failures) propagate to the
caller. An empty diff yields a report flagged `no_changes`. Per-file
parsing problems become review notes and never stop the run.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from diff_qa_reporter.analyzer.classifier import ChangeClassifier
from diff_qa_reporter.analyzer.dependency_differ import DependencyDiffer
from diff_qa_reporter.analyzer.endpoint_differ import EndpointDiffer
from diff_qa_reporter.analyzer.invariants import DEFAULT_INVARIANTS
from diff_qa_reporter.analyzer.schema_differ import SchemaDiffer
from diff_qa_reporter.analyzer.synthesizer import TestCaseSynthesizer
from diff_qa_reporter.collector.collector import DiffCollector, DiffSnapshot
from diff_qa_reporter.config import Config
from diff_qa_reporter.errors import EmptyDiffError
from diff_qa_reporter.models.change import Category, ChangeRecord
from diff_qa_reporter.models.endpoint import EndpointDelta
from diff_qa_reporter.models.report import AnalysisReport, ReviewNote

logger = logging.getLogger(__name__)

# Progress callback type: (current, total, description) -> None
ProgressCallback = Callable[[int, int, str], None]


class ReportPipeline:
    """
    Orchestrate collection, classification, diffing and synthesis.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        """
        Initialize the pipeline.

        Args:
            config: Configuration object. Defaults are used if omitted.
        """
        self.config = config or Config()
        self.collector = DiffCollector(self.config.collector)
        self.classifier = ChangeClassifier(
            rules=self.config.classifier.rules,
            prepend_rules=self.config.classifier.prepend_rules,
        )
        self.synthesizer = TestCaseSynthesizer(
            invariants=DEFAULT_INVARIANTS + self.config.invariants.extra,
            include_invariants=self.config.invariants.enabled,
        )

    def run_git(
        self,
        repo_path: Path,
        base: str,
        head: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> AnalysisReport:
        """
        Analyze the changes between two references of a repository.

        Raises:
            RefNotFoundError: If a reference cannot be resolved.
            CollectorTimeoutError: If collection exceeds the timeout.
            GitCommandError: If git fails.
        """
        start_time = time.time()
        self._progress(progress_callback, 0, f"Collecting {base}..{head}")
        try:
            snapshot = self.collector.collect_from_git(repo_path, base, head)
        except EmptyDiffError as e:
            logger.info("%s", e)
            return self._empty_report(base, head, str(repo_path), start_time)
        return self.analyze(snapshot, progress_callback, start_time)

    def run_text(
        self,
        diff_text: str,
        base: str = "base",
        head: str = "head",
        before_dir: Optional[Path] = None,
        after_dir: Optional[Path] = None,
        source: str = "stdin",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> AnalysisReport:
        """
        Analyze literal unified diff text.

        Raises:
            DiffParserError: If the diff text cannot be parsed.
        """
        start_time = time.time()
        self._progress(progress_callback, 0, f"Parsing diff from {source}")
        try:
            snapshot = self.collector.collect_from_text(
                diff_text,
                base=base,
                head=head,
                before_dir=before_dir,
                after_dir=after_dir,
                source=source,
            )
        except EmptyDiffError as e:
            logger.info("%s", e)
            return self._empty_report(base, head, source, start_time)
        return self.analyze(snapshot, progress_callback, start_time)

    def analyze(
        self,
        snapshot: DiffSnapshot,
        progress_callback: Optional[ProgressCallback] = None,
        start_time: Optional[float] = None,
    ) -> AnalysisReport:
        """
        Run every stage after collection.

        Args:
            snapshot: Collected changes.
            progress_callback: Optional callback for progress updates.
                Called with (current, total, description).
            start_time: When the run started, for the duration.

        Returns:
            The complete analysis report.
        """
        start_time = start_time or time.time()
        warnings: list[str] = []

        self._progress(progress_callback, 20, f"Classifying {len(snapshot.files)} files")
        records = self.classifier.classify_all(snapshot.files)

        self._progress(progress_callback, 40, "Diffing API routes")
        deltas, notes = self.diff_endpoints(snapshot, records)

        self._progress(progress_callback, 60, "Diffing database schema")
        database = [r for r in records if r.category == Category.DATABASE]
        schema = SchemaDiffer(snapshot.reader).diff(database)
        notes.extend(schema.notes)

        self._progress(progress_callback, 70, "Comparing dependencies")
        dependencies, dependency_notes = DependencyDiffer(snapshot.reader).diff(records)
        notes.extend(dependency_notes)

        self._progress(progress_callback, 85, "Synthesizing test cases")
        test_cases = self.synthesizer.synthesize(records, deltas)

        for note in notes:
            warnings.append(f"{note.path}: {note.reason}")

        duration_ms = (time.time() - start_time) * 1000
        self._progress(progress_callback, 100, "Complete!")
        logger.info(
            "Analyzed %d files: %d endpoint deltas, %d schema deltas, %d test cases",
            len(records), len(deltas), len(schema.deltas), len(test_cases),
        )
        return AnalysisReport(
            base=snapshot.base,
            head=snapshot.head,
            source=snapshot.source,
            records=records,
            endpoint_deltas=deltas,
            schema_deltas=schema.deltas,
            migrations=schema.migrations,
            test_cases=test_cases,
            dependency_changes=dependencies,
            review_notes=notes,
            scoped_diffs=snapshot.scoped_diffs,
            analysis_duration_ms=duration_ms,
            warnings=warnings,
        )

    def diff_endpoints(
        self,
        snapshot: DiffSnapshot,
        records: list[ChangeRecord],
    ) -> tuple[list[EndpointDelta], list[ReviewNote]]:
        """Diff every API record; deltas keep record order."""
        differ = EndpointDiffer(snapshot.reader)
        deltas: list[EndpointDelta] = []
        notes: list[ReviewNote] = []
        for record in records:
            if record.category != Category.API:
                continue
            file_deltas, file_notes = differ.diff_record(record)
            deltas.extend(file_deltas)
            notes.extend(file_notes)
        return deltas, notes

    @staticmethod
    def _empty_report(base: str, head: str, source: str, start_time: float) -> AnalysisReport:
        return AnalysisReport(
            base=base,
            head=head,
            source=source,
            no_changes=True,
            analysis_duration_ms=(time.time() - start_time) * 1000,
        )

    @staticmethod
    def _progress(callback: Optional[ProgressCallback], current: int, description: str) -> None:
        if callback:
            callback(current, 100, description)
