from __future__ import annotations

from typing import Iterable

from portal.core.errors import NotFound
from portal.models.report import Report


class ReportCollection:
    """Client-side copy of the reports the caller may see.

    The remote store is the authority. Records are only ever swapped in
    whole, keyed by id; fields are never patched in place.
    """

    def __init__(self, reports: Iterable[Report] = ()) -> None:
        self._reports: dict[str, Report] = {r.id: r for r in reports}

    def __len__(self) -> int:
        return len(self._reports)

    def __contains__(self, report_id: object) -> bool:
        return report_id in self._reports

    def snapshot(self) -> list[Report]:
        return list(self._reports.values())

    def get(self, report_id: str) -> Report:
        report = self._reports.get(report_id)
        if report is None:
            raise NotFound(report_id)
        return report

    def reset(self, reports: Iterable[Report]) -> None:
        self._reports = {r.id: r for r in reports}

    def add(self, report: Report) -> None:
        # newly filed reports go first, as the service lists newest first
        self._reports = {report.id: report, **{k: v for k, v in self._reports.items() if k != report.id}}

    def replace(self, report: Report) -> None:
        if report.id not in self._reports:
            raise NotFound(report.id)
        self._reports[report.id] = report
