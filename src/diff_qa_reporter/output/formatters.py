"""
Base formatter and formatter registry.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from diff_qa_reporter.models.change import ChangeRecord
    from diff_qa_reporter.models.report import AnalysisReport


class BaseFormatter(ABC):
    """
    Abstract base class for output formatters.

    Subclasses must implement format() and format_records() methods.
    """

    @abstractmethod
    def format(self, report: "AnalysisReport") -> str:
        """
        Format an analysis report.

        Args:
            report: The analysis report to format.

        Returns:
            Formatted string representation.
        """
        pass

    @abstractmethod
    def format_records(self, records: list["ChangeRecord"]) -> str:
        """
        Format a classification table.

        Args:
            records: Classified change records.

        Returns:
            Formatted string representation.
        """
        pass


# Formatter registry
_FORMATTERS: dict[str, type[BaseFormatter]] = {}


def register_formatter(name: str) -> Callable[[type[BaseFormatter]], type[BaseFormatter]]:
    """
    Decorator to register a formatter.

    Args:
        name: The name to register the formatter under.

    Returns:
        Decorator function.
    """
    def decorator(cls: type[BaseFormatter]) -> type[BaseFormatter]:
        _FORMATTERS[name] = cls
        return cls
    return decorator


def get_formatter(name: str, **options: Any) -> BaseFormatter:
    """
    Get a formatter instance by name.

    Args:
        name: The formatter name ("qa", "readme", "json", "yaml").
        **options: Keyword arguments passed to the formatter constructor.

    Returns:
        An instance of the requested formatter.

    Raises:
        ValueError: If the formatter name is not recognized.
    """
    # Import formatters to ensure they're registered
    from diff_qa_reporter.output import (  # noqa: F401
        dev_readme,
        json_output,
        qa_changelog,
        yaml_output,
    )

    if name not in _FORMATTERS:
        available = ", ".join(sorted(_FORMATTERS))
        raise ValueError(f"Unknown formatter: {name}. Available: {available}")

    return _FORMATTERS[name](**options)
