"""
YAML output formatter.
"""

from typing import Any

import yaml

from diff_qa_reporter.models.change import ChangeRecord
from diff_qa_reporter.models.report import AnalysisReport
from diff_qa_reporter.output.formatters import BaseFormatter, register_formatter
from diff_qa_reporter.output.json_output import record_to_dict, report_to_dict


@register_formatter("yaml")
class YamlFormatter(BaseFormatter):
    """
    Format output as YAML.
    """

    def __init__(self, **_: Any) -> None:
        pass

    def format(self, report: AnalysisReport) -> str:
        """Format an analysis report as YAML."""
        return yaml.dump(
            report_to_dict(report),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def format_records(self, records: list[ChangeRecord]) -> str:
        """Format a classification table as YAML."""
        data = {
            "total": len(records),
            "records": [record_to_dict(r) for r in records],
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
