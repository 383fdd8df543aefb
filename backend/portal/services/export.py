from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date, datetime
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from portal.core.config import settings
from portal.metrics.prometheus import report_rows_exported_total, reports_exported_total
from portal.models.report import Comment, Report
from portal.services.query import ALL, ReportQuery

logger = logging.getLogger(__name__)

CSV_HEADERS = (
    "Report ID",
    "Status",
    "Severity",
    "Incident Type",
    "Subject",
    "Description",
    "Reporter Name",
    "Reporter Email",
    "Reporter Department",
    "Date Occurred",
    "Time Occurred",
    "Date Submitted",
    "Sender Email",
    "Suspicious URL",
    "Attachment Names",
    "Affected Systems",
    "Actions Taken",
    "Additional Contacts",
    "Investigation Notes",
    "Last Updated",
)

NOTES_SEPARATOR = " | "

_NEWLINES_RE = re.compile(r"\r\n|\r|\n")
_SEARCH_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")


def _one_line(value: str) -> str:
    return _NEWLINES_RE.sub(" ", value)


def _local_ts(dt: Optional[datetime], tz: ZoneInfo) -> str:
    if dt is None:
        return ""
    return dt.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %Z")


def _note(comment: Comment, tz: ZoneInfo) -> str:
    return f"[{_local_ts(comment.timestamp, tz)}] {comment.author_name or 'Admin'}: {comment.message}"


def report_row(report: Report, tz: ZoneInfo) -> list[str]:
    details = report.technical_details
    notes = NOTES_SEPARATOR.join(_note(c, tz) for c in report.comments)
    row = [
        report.id,
        report.status.value,
        report.severity.value.upper() if report.severity else "",
        report.incident_type.replace("-", " "),
        report.subject,
        report.description,
        report.reporter.name,
        report.reporter.email,
        report.reporter.department,
        report.date_occurred,
        report.time_occurred,
        _local_ts(report.created_at, tz),
        details.sender_email,
        details.suspicious_url,
        details.attachment_names,
        report.affected_systems,
        report.actions_taken,
        report.additional_contacts,
        notes,
        _local_ts(report.last_updated, tz),
    ]
    return [_one_line(field) for field in row]


def export_csv(reports: Sequence[Report], timezone: Optional[str] = None) -> bytes:
    """Serialize the given view, one physical line per report."""
    tz = ZoneInfo(timezone or settings.export_timezone)
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for report in reports:
        writer.writerow(report_row(report, tz))

    reports_exported_total.inc()
    report_rows_exported_total.inc(len(reports))
    logger.info("exported %d reports to CSV", len(reports))
    return buf.getvalue().encode("utf-8")


def export_filename(query: ReportQuery, on: date, prefix: Optional[str] = None) -> str:
    parts = [f"{prefix or settings.export_filename_prefix}_{on.isoformat()}"]
    if query.status_filter != ALL:
        parts.append(f"status-{query.status_filter}")
    if query.severity_filter != ALL:
        parts.append(f"severity-{query.severity_filter}")
    term = _SEARCH_UNSAFE_RE.sub("", query.search_term)
    if term:
        parts.append(f"search-{term}")
    return "_".join(parts) + ".csv"
