"""Filter, search and sort over the in-memory report collection.

Everything here is a pure function of its inputs: no I/O, and the input
sequence is never mutated.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel, field_validator

from portal.models.report import Report, ReportStats, ReportStatus, Severity, severity_rank

ALL = "all"


class SortKey(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    SEVERITY_DESC = "severity-desc"


class ReportQuery(BaseModel):
    status_filter: str = ALL
    severity_filter: str = ALL
    search_term: str = ""
    sort_key: SortKey = SortKey.DATE_DESC

    @field_validator("status_filter")
    @classmethod
    def known_status(cls, v: str) -> str:
        if v != ALL and v not in {s.value for s in ReportStatus}:
            raise ValueError(f"unknown status filter: {v}")
        return v

    @field_validator("severity_filter")
    @classmethod
    def known_severity(cls, v: str) -> str:
        if v != ALL and v not in {s.value for s in Severity}:
            raise ValueError(f"unknown severity filter: {v}")
        return v

    @property
    def is_unfiltered(self) -> bool:
        return self.status_filter == ALL and self.severity_filter == ALL and not self.search_term


def _matches_status(report: Report, status_filter: str) -> bool:
    return status_filter == ALL or report.status.value == status_filter


def _matches_severity(report: Report, severity_filter: str) -> bool:
    if severity_filter == ALL:
        return True
    return report.severity is not None and report.severity.value == severity_filter


def _matches_search(report: Report, term: str) -> bool:
    if not term:
        return True
    needle = term.lower()
    haystack = (report.reason, report.subject, report.reporter.name)
    return any(needle in field.lower() for field in haystack if field)


def _timestamp(report: Report) -> float:
    return report.created_at.timestamp()


def sort_reports(reports: Iterable[Report], sort_key: SortKey) -> list[Report]:
    # sorted() is stable, including with reverse=True, so equal keys keep encounter order
    if sort_key == SortKey.DATE_ASC:
        return sorted(reports, key=_timestamp)
    if sort_key == SortKey.SEVERITY_DESC:
        return sorted(reports, key=lambda r: (severity_rank(r.severity), _timestamp(r)), reverse=True)
    return sorted(reports, key=_timestamp, reverse=True)


def apply_query(reports: Sequence[Report], query: ReportQuery) -> list[Report]:
    """Return a new, filtered and ordered list of ``reports``."""
    term = query.search_term.strip()
    matched = [
        r
        for r in reports
        if _matches_status(r, query.status_filter)
        and _matches_severity(r, query.severity_filter)
        and _matches_search(r, term)
    ]
    return sort_reports(matched, query.sort_key)


def compute_stats(reports: Iterable[Report]) -> ReportStats:
    by_status: dict[str, int] = {s.value: 0 for s in ReportStatus}
    by_severity: dict[str, int] = {s.value: 0 for s in Severity}
    by_severity["unspecified"] = 0
    total = 0

    for r in reports:
        total += 1
        by_status[r.status.value] += 1
        by_severity[r.severity.value if r.severity else "unspecified"] += 1

    return ReportStats(
        total=total,
        by_status=by_status,
        by_severity=by_severity,
        high_priority=by_severity[Severity.CRITICAL.value] + by_severity[Severity.HIGH.value],
    )
