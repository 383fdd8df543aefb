from datetime import datetime, timezone
from typing import Any, Optional

from portal.core.errors import NotFound
from portal.models.report import Comment, Report, ReportStatus, Reporter, Severity
from portal.services.canonical import canonicalize
from portal.services.roles import IdentityRoleLookup, RoleLookupError
from portal.services.store import SCOPE_MINE, ReportStore

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_report(
    report_id: str,
    created: str = "2024-01-01T00:00:00Z",
    severity: Optional[str] = None,
    status: str = "open",
    subject: str = "",
    reporter_id: str = "u-1",
    reporter_name: str = "",
    comments: Optional[list[Comment]] = None,
    **extra: Any,
) -> Report:
    return Report(
        id=report_id,
        status=ReportStatus(status),
        severity=Severity(severity) if severity else None,
        subject=subject,
        reason=subject,
        reporter=Reporter(id=reporter_id, name=reporter_name, email=f"{reporter_id}@company.com"),
        created_at=datetime.fromisoformat(created.replace("Z", "+00:00")),
        comments=comments or [],
        **extra,
    )


class FakeReportStore(ReportStore):
    """In-memory stand-in for the remote report service."""

    def __init__(self, reports=()):
        self.reports: dict[str, Report] = {r.id: r for r in reports}
        self.error: Optional[Exception] = None
        self.stats: Optional[dict] = None
        self.calls: list[tuple] = []
        self._seq = 0

    def _check(self):
        if self.error is not None:
            raise self.error

    async def list(self, scope, user_id):
        self.calls.append(("list", scope, user_id))
        self._check()
        rows = list(self.reports.values())
        if scope == SCOPE_MINE:
            rows = [r for r in rows if r.reporter.id == user_id]
        return rows

    async def create(self, payload):
        self.calls.append(("create", payload))
        self._check()
        self._seq += 1
        report = canonicalize(
            {**payload, "id": f"SEC-{self._seq}", "createdAt": NOW.isoformat(), "status": "open", "comments": []}
        )
        self.reports[report.id] = report
        return report

    def _append(self, report_id, status, message, is_internal, author):
        current = self.reports.get(report_id)
        if current is None:
            raise NotFound(report_id)
        data = current.model_dump()
        if message:
            comment = Comment(
                id=str(len(data["comments"]) + 1),
                author_name=author,
                message=message,
                timestamp=NOW,
                is_internal=is_internal,
            )
            data["comments"] = [*data["comments"], comment.model_dump()]
        data["status"] = status
        data["updated_at"] = NOW
        updated = Report.model_validate(data)
        self.reports[report_id] = updated
        return updated

    async def update_status(self, report_id, status, note, is_internal, updated_by):
        self.calls.append(("update_status", report_id, status, note, is_internal))
        self._check()
        return self._append(report_id, status, note, is_internal, updated_by)

    async def add_comment(self, report_id, message, is_internal, user_id):
        self.calls.append(("add_comment", report_id, message, is_internal))
        self._check()
        current = self.reports.get(report_id)
        status = current.status if current else ReportStatus.OPEN
        return self._append(report_id, status, message, is_internal, user_id)

    async def get_stats(self, user_email=None):
        self.calls.append(("get_stats", user_email))
        if self.stats is None:
            raise NotImplementedError
        self._check()
        return self.stats


class FakeRoleLookup(IdentityRoleLookup):
    def __init__(self, roles=None, error: Optional[Exception] = None):
        self.roles = roles or {}
        self.error = error
        self.calls: list[str] = []

    async def resolve_role(self, email):
        self.calls.append(email)
        if self.error is not None:
            raise self.error
        if email not in self.roles:
            raise RoleLookupError("HTTP 404")
        return self.roles[email]
