"""Core result data structures for the scanner."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Sequence, Tuple

from .report_kind import ReportKind

KIND_ORDER: Sequence[ReportKind] = (
    ReportKind.NO_SCOPE,
    ReportKind.REFERENCE,
    ReportKind.FUNCTION,
    ReportKind.DECLARATION,
)


@dataclass
class Report:
    """Capture a single diagnostic emitted by a rule."""

    kind: ReportKind
    message: str
    path: str
    line: int
    column: int
    rule: str
    data: Dict[str, str] = field(default_factory=dict)

    @property
    def location(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class Summary:
    """Aggregate report counts by kind."""

    no_scope: int = 0
    reference: int = 0
    function: int = 0
    declaration: int = 0

    def increment(self, kind: ReportKind) -> None:
        setattr(self, kind.attr, getattr(self, kind.attr) + 1)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def as_rows(self) -> List[Tuple[str, int]]:
        """Return kind/count pairs ordered for reporting."""

        return [(kind.value, getattr(self, kind.attr)) for kind in KIND_ORDER]

    @property
    def total(self) -> int:
        return sum(getattr(self, kind.attr) for kind in KIND_ORDER)


@dataclass
class AnalysisResult:
    """Bundle the report summary and the ordered report list."""

    summary: Summary = field(default_factory=Summary)
    reports: List[Report] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.summary.total == 0

    def add_report(self, report: Report) -> None:
        self.summary.increment(report.kind)
        self.reports.append(report)

    def of_kind(self, kind: ReportKind) -> List[Report]:
        return [report for report in self.reports if report.kind is kind]

    def to_dict(self) -> Dict[str, object]:
        return {
            "summary": self.summary.to_dict(),
            "reports": [report.to_dict() for report in self.reports],
            "passed": self.passed,
        }

    def exit_code(self) -> int:
        return 0 if self.passed else 1


def format_summary_table(result: AnalysisResult, max_reports: int = 20) -> str:
    """Create a human-readable summary table for console output."""

    lines: List[str] = []
    lines.append("Closure Scan Summary")
    lines.append("=" * 40)
    header = f"{'Kind':<12} | {'Count':>5}"
    lines.append(header)
    lines.append("-" * len(header))
    for kind, count in result.summary.as_rows():
        lines.append(f"{kind:<12} | {count:>5}")
    lines.append("-" * len(header))
    status = "PASS" if result.passed else "FAIL"
    lines.append(f"Status      : {status}")
    lines.append(f"Reports     : {result.summary.total}")

    reports = result.reports[:max_reports]
    if reports:
        lines.append("")
        lines.append("Reports")
        lines.append("-" * 40)
        for report in reports:
            lines.append(f"{report.location} [{report.kind.value}] {report.message}")
        hidden = len(result.reports) - len(reports)
        if hidden > 0:
            lines.append(f"... {hidden} more")
    return "\n".join(lines)
