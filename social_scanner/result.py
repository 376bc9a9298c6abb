"""Core result data structures for the scanner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .rules.filters import sort_by_name


@dataclass(frozen=True)
class ScanResult:
    """Capture the outcome of checking a single rule."""

    name: str
    address: Optional[str] = None
    error: Optional[str] = None
    category: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "error": self.error,
            "category": sorted(self.category),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanResult":
        error = data.get("error")
        return cls(
            name=data["name"],
            address=data.get("address"),
            # Engines that report ``false`` for "no error" mean the same as null.
            error=None if error is None or error is False else str(error),
            category=frozenset(data.get("category") or ()),
        )


@dataclass
class Summary:
    """Aggregate result counts."""

    total: int = 0
    success_count: int = 0
    failure_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
        }


@dataclass
class ScanReport:
    """Bundle the scan results with their classification."""

    results: List[ScanResult] = field(default_factory=list)
    successes: List[ScanResult] = field(default_factory=list)
    failures: List[ScanResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: Sequence[ScanResult], sort: bool = False) -> "ScanReport":
        successes, failures = classify(results)
        report = cls(results=list(results), successes=successes, failures=failures)
        if sort:
            report.results = sort_by_name(report.results)
            report.successes = sort_by_name(report.successes)
        return report

    @property
    def summary(self) -> Summary:
        return summarize(self)

    def to_list(self) -> List[Dict[str, Any]]:
        return [result.to_dict() for result in self.results]


def classify(results: Sequence[ScanResult]) -> Tuple[List[ScanResult], List[ScanResult]]:
    """Split ``results`` into (successes, failures), preserving order."""

    successes: List[ScanResult] = []
    failures: List[ScanResult] = []
    for result in results:
        (successes if result.succeeded else failures).append(result)
    return successes, failures


def summarize(report: ScanReport) -> Summary:
    return Summary(
        total=len(report.results),
        success_count=len(report.successes),
        failure_count=len(report.failures),
    )


def format_scan_summary(username: str, report: ScanReport) -> str:
    """Create a human-readable summary for console output."""

    summary = report.summary
    lines: List[str] = []
    lines.append(f"Scan Summary for {username}")
    lines.append("=" * 40)
    lines.append(f"Scanned   : {summary.total} sites")
    lines.append(f"Matches   : {summary.success_count}")
    lines.append(f"Failures  : {summary.failure_count}")

    if summary.failure_count:
        lines.append("")
        lines.append(f"There were {summary.failure_count} entries that produced an invalid response.")

    lines.append("")
    if report.successes:
        lines.append(f"A valid match has been found for {summary.success_count} entries:")
        lines.append("-" * 40)
        for result in report.successes:
            lines.append(f" - {result.name}: {result.address}")
        lines.append("")
        lines.append("This is a starting point to go deeper.")
    else:
        lines.append("The scan has terminated with no positive results.")
        lines.append("Try a different username or variations of the same one.")
    return "\n".join(lines)
