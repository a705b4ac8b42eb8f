"""
Command-line interface for Diff QA Reporter.

This module provides the CLI using Click framework for argument parsing
and orchestrates the report pipeline.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn, TimeElapsedColumn
from rich.table import Table

from diff_qa_reporter import __version__
from diff_qa_reporter.config import Config, find_config_file, load_config, load_rules
from diff_qa_reporter.errors import DiffReportError

console = Console(stderr=True)

DEFAULT_QA_OUTPUT = Path("QA_CHANGELOG.md")
DEFAULT_README_OUTPUT = Path("DEV_README.md")

_PRIORITY_STYLES = {
    "Critical": "bold red",
    "High": "red",
    "Medium": "yellow",
    "Low": "green",
}


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _apply_overrides(
    config: Config,
    rules: Optional[Path],
    path_prefixes: tuple[str, ...],
    timeout: Optional[float],
) -> Config:
    collector = config.collector
    if path_prefixes:
        collector = collector.model_copy(update={"path_prefixes": list(path_prefixes)})
    if timeout is not None:
        collector = collector.model_copy(update={"timeout_seconds": timeout})
    classifier = config.classifier
    if rules is not None:
        classifier = classifier.model_copy(update={"rules": load_rules(rules)})
    return config.model_copy(update={"collector": collector, "classifier": classifier})


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    console.print(f"[green]Written:[/green] {path}")


@click.group()
@click.version_option(version=__version__, prog_name="diff-qa-reporter")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (default: search for .diff-qa-reporter.yaml).",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path]) -> None:
    """Diff QA Reporter - QA changelog and developer README from a git diff."""
    ctx.ensure_object(dict)
    try:
        config_path = config or find_config_file(Path.cwd())
        ctx.obj["config"] = load_config(config_path) if config_path else Config()
    except DiffReportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@cli.command()
@click.option("--base", "-b", type=str, default=None, help="Base git reference.")
@click.option("--head", "-H", "head", type=str, default=None, help="Head git reference.")
@click.option(
    "--repo",
    "-r",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Repository to diff (default: current directory).",
)
@click.option(
    "--diff",
    "-d",
    "diff_file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="Read a unified diff from a file ('-' for stdin) instead of running git.",
)
@click.option(
    "--before-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Base tree snapshot used with --diff.",
)
@click.option(
    "--after-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Head tree snapshot used with --diff.",
)
@click.option(
    "--path-prefix",
    "-p",
    "path_prefixes",
    multiple=True,
    help="Path prefix to produce a scoped raw diff for (repeatable).",
)
@click.option(
    "--rules",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file replacing the classification table.",
)
@click.option(
    "--qa-output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="QA changelog path (default: QA_CHANGELOG.md).",
)
@click.option(
    "--readme-output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Developer README path (default: DEV_README.md).",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["markdown", "json", "yaml"]),
    default="markdown",
    help="markdown writes both documents; json/yaml dump the report (default: markdown).",
)
@click.option("--timeout", type=float, default=None, help="Collection timeout in seconds.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def generate(
    ctx: click.Context,
    base: Optional[str],
    head: Optional[str],
    repo: Path,
    diff_file,
    before_dir: Optional[Path],
    after_dir: Optional[Path],
    path_prefixes: tuple[str, ...],
    rules: Optional[Path],
    qa_output: Optional[Path],
    readme_output: Optional[Path],
    output_format: str,
    timeout: Optional[float],
    verbose: bool,
) -> None:
    """Analyze BASE..HEAD and write the QA changelog and developer README."""
    from diff_qa_reporter.analyzer.pipeline import ReportPipeline
    from diff_qa_reporter.output.formatters import get_formatter

    setup_logging(verbose)

    if diff_file is None and not (base and head):
        console.print("[red]Error:[/red] --base and --head are required unless --diff is given")
        raise click.Abort()

    try:
        config = _apply_overrides(ctx.obj["config"], rules, path_prefixes, timeout)
        pipeline = ReportPipeline(config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Initializing...", total=100)

            def update_progress(current: int, total: int, description: str) -> None:
                progress.update(task, completed=current, total=total, description=description)

            if diff_file is not None:
                report = pipeline.run_text(
                    diff_file.read(),
                    base=base or "base",
                    head=head or "head",
                    before_dir=before_dir,
                    after_dir=after_dir,
                    source=diff_file.name,
                    progress_callback=update_progress,
                )
            else:
                report = pipeline.run_git(repo, base, head, progress_callback=update_progress)

        for warning in report.warnings:
            logging.getLogger(__name__).warning(warning)

        options = {"project_name": config.output.project_name, "commands": config.commands}
        if output_format != "markdown":
            formatted_output = get_formatter(output_format).format(report)
            if qa_output:
                _write(qa_output, formatted_output)
            else:
                sys.stdout.write(formatted_output)
                sys.stdout.flush()
            return

        qa_path = qa_output or config.output.qa_output or DEFAULT_QA_OUTPUT
        readme_path = readme_output or config.output.readme_output or DEFAULT_README_OUTPUT
        _write(qa_path, get_formatter("qa", **options).format(report))
        _write(readme_path, get_formatter("readme", **options).format(report))

        if report.no_changes:
            console.print(f"[yellow]No changes detected between {report.base} and {report.head}[/yellow]")
        else:
            console.print(
                f"[blue]{report.total_files_changed} files, "
                f"{len(report.endpoint_deltas)} endpoint changes "
                f"({report.breaking_count} breaking, {report.unknown_breaking_count} unknown), "
                f"{len(report.test_cases)} test cases[/blue]"
            )

    except DiffReportError as e:
        console.print(f"[red]Error:[/red] {e}")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort()


@cli.command()
@click.option("--base", "-b", type=str, default=None, help="Base git reference.")
@click.option("--head", "-H", "head", type=str, default=None, help="Head git reference.")
@click.option(
    "--repo",
    "-r",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Repository to diff (default: current directory).",
)
@click.option(
    "--diff",
    "-d",
    "diff_file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="Read a unified diff from a file ('-' for stdin) instead of running git.",
)
@click.option(
    "--rules",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file replacing the classification table.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "markdown", "json", "yaml"]),
    default="table",
    help="Output format (default: table).",
)
@click.pass_context
def classify(
    ctx: click.Context,
    base: Optional[str],
    head: Optional[str],
    repo: Path,
    diff_file,
    rules: Optional[Path],
    output_format: str,
) -> None:
    """Classify changed files by category and priority."""
    from diff_qa_reporter.analyzer.classifier import ChangeClassifier
    from diff_qa_reporter.collector.collector import DiffCollector
    from diff_qa_reporter.errors import EmptyDiffError
    from diff_qa_reporter.output.formatters import get_formatter

    setup_logging(False)

    if diff_file is None and not (base and head):
        console.print("[red]Error:[/red] --base and --head are required unless --diff is given")
        raise click.Abort()

    try:
        config = _apply_overrides(ctx.obj["config"], rules, (), None)
        collector = DiffCollector(config.collector)
        try:
            if diff_file is not None:
                snapshot = collector.collect_from_text(diff_file.read(), source=diff_file.name)
            else:
                snapshot = collector.collect_from_git(repo, base, head)
            files = snapshot.files
        except EmptyDiffError as e:
            console.print(f"[yellow]{e}[/yellow]")
            files = []

        classifier = ChangeClassifier(
            rules=config.classifier.rules,
            prepend_rules=config.classifier.prepend_rules,
        )
        records = classifier.classify_all(files)

        if output_format != "table":
            formatter_name = "qa" if output_format == "markdown" else output_format
            sys.stdout.write(get_formatter(formatter_name).format_records(records))
            sys.stdout.flush()
            return

        table = Table(title=f"Changed files ({len(records)})")
        table.add_column("File", style="cyan")
        table.add_column("Status")
        table.add_column("Category", style="magenta")
        table.add_column("Priority")
        table.add_column("+/-", justify="right")
        for r in records:
            style = _PRIORITY_STYLES.get(r.priority.value, "")
            table.add_row(
                r.path,
                r.status.value,
                r.category.value,
                f"[{style}]{r.priority.value}[/{style}]" if style else r.priority.value,
                f"+{r.additions}/-{r.deletions}",
            )
        Console().print(table)

    except DiffReportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
