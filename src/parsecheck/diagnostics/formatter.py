"""Report formatting service.

Centralizes rendering of MismatchReport records for terminals and tools.
Python 3.13+.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from .report import MismatchReport

__all__ = [
    "OutputFormat",
    "ReportFormatter",
]


class OutputFormat(StrEnum):
    """Output format options for report formatting."""

    TEXT = "text"  # Multi-line report with descriptor and rendered diff (default)
    SIMPLE = "simple"  # Single-line format
    JSON = "json"  # JSON format for tooling integration


_INDENT = "    "


def _indent(text: str) -> str:
    return "\n".join(_INDENT + line if line else line for line in text.splitlines())


@dataclass(frozen=True, slots=True)
class ReportFormatter:
    """Report formatting service.

    Attributes:
        output_format: Output style (text, simple, json)
        max_edits_shown: Edit history lines printed per report in text mode

    Example:
        >>> formatter = ReportFormatter()
        >>> print(formatter.format(report))
        error[structural-diff]: child kinds differ
          --> grammar=arithmetic entry='Sums' seed=42 edit 2/3
          = at: program > binary_expression
          expected:
              (identifier [0, 1])
          actual:
              (number [0, 1])
    """

    output_format: OutputFormat = OutputFormat.TEXT
    max_edits_shown: int = 20

    def format(self, report: MismatchReport) -> str:
        """Format a single report.

        Args:
            report: Report to format

        Returns:
            Formatted report string
        """
        match self.output_format:
            case OutputFormat.TEXT:
                return self._format_text(report)
            case OutputFormat.SIMPLE:
                return self._format_simple(report)
            case OutputFormat.JSON:
                return json.dumps(report.to_dict(), sort_keys=True)

    def format_all(self, reports: Iterable[MismatchReport]) -> str:
        """Format multiple reports separated by blank lines."""
        separator = "\n" if self.output_format is OutputFormat.JSON else "\n\n"
        return separator.join(self.format(r) for r in reports)

    def format_summary(self, *, passed: int, failed: int, skipped: int = 0) -> str:
        """Format the one-line summary printed after a run."""
        total = passed + failed + skipped
        status = "ok" if failed == 0 else "FAILED"
        parts = [f"{total} checked", f"{passed} passed", f"{failed} failed"]
        if skipped:
            parts.append(f"{skipped} skipped")
        return f"{status}: " + ", ".join(parts)

    def _descriptor(self, report: MismatchReport) -> str:
        if report.trial is None:
            return report.origin
        trial = report.trial
        if report.undo_steps:
            return f"{trial.describe()} undo {report.undo_steps}/{trial.edit_count}"
        return f"{trial.describe()} edit {report.edit_prefix_length}/{trial.edit_count}"

    def _format_simple(self, report: MismatchReport) -> str:
        descriptor = self._descriptor(report)
        detail = report.detail or report.location
        return f"{report.kind}: {descriptor}: {detail}"

    def _format_text(self, report: MismatchReport) -> str:
        lines = [f"error[{report.kind}]: {report.detail or 'verification failed'}"]
        descriptor = self._descriptor(report)
        if descriptor:
            lines.append(f"  --> {descriptor}")
        if report.location:
            lines.append(f"  = at: {report.location}")
        if report.expected_repr or report.actual_repr:
            lines.append("  expected:")
            lines.append(_indent(report.expected_repr or "(empty)"))
            lines.append("  actual:")
            lines.append(_indent(report.actual_repr or "(empty)"))
        if report.edits:
            lines.append("  edits:")
            shown = report.edits[-self.max_edits_shown :]
            skipped = len(report.edits) - len(shown)
            if skipped:
                lines.append(f"{_INDENT}... {skipped} earlier edit(s)")
            offset = skipped
            forward = report.edit_prefix_length
            for number, edit in enumerate(shown, start=offset + 1):
                marker = " (undo)" if number > forward else ""
                lines.append(f"{_INDENT}{number}. {edit.describe()}{marker}")
        return "\n".join(lines)
