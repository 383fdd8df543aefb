"""Resolve remote report records into the canonical :class:`Report` shape.

The report service has stored the same logical value under different keys
over time (``formData.severity``, ``severity``, ``details.severity``). This
module is the only place that knows about those locations; everything
downstream reads the canonical fields.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from portal.models.report import Comment, Report, ReportStatus, Reporter, Severity, TechnicalDetails

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_ts(value: Any) -> Optional[datetime]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)):
            # epoch milliseconds
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        else:
            s = str(value).strip()
            if s.endswith("Z"):
                s = s[:-1] + "+00:00"
            dt = datetime.fromisoformat(s)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v)
    return str(value)


def _first(raw: dict[str, Any], field: str) -> str:
    """First non-empty value of ``field`` across the known locations."""
    form = _section(raw, "formData")
    details = _section(raw, "details")
    for source in (form, raw, details):
        value = _text(source.get(field)).strip()
        if value:
            return value
    return ""


def is_security_report(raw: dict[str, Any]) -> bool:
    details = _section(raw, "details")
    return raw.get("type") == "phishing-report" or details.get("reportType") == "security-incident"


def canonical_severity(value: str) -> Optional[Severity]:
    try:
        return Severity(value.strip().lower())
    except ValueError:
        return None


def canonical_status(value: Any) -> ReportStatus:
    try:
        return ReportStatus(_text(value).strip().lower())
    except ValueError:
        return ReportStatus.OPEN


def canonical_comment(raw: dict[str, Any], index: int) -> Comment:
    message = raw.get("message") or raw.get("text") or raw.get("content") or ""
    return Comment(
        id=_text(raw.get("id")) or str(index),
        author_name=_text(raw.get("userName") or raw.get("user")) or "IT Admin",
        message=_text(message),
        timestamp=parse_ts(raw.get("timestamp") or raw.get("createdAt")),
        is_internal=_flag(raw.get("isInternal")),
    )


def _incident_type(raw: dict[str, Any]) -> str:
    form = _section(raw, "formData")
    details = _section(raw, "details")
    incident_type = ""
    for source in (form, details):
        incident_type = _text(source.get("incidentType")).strip()
        if incident_type:
            break
    if not incident_type:
        incident_type = _text(raw.get("incidentType") or raw.get("type")).strip()
    if incident_type == "other":
        other = _first(raw, "otherIncidentType")
        if other:
            return other
    return incident_type


def canonicalize(raw: dict[str, Any]) -> Report:
    """Build the canonical report from a remote record."""
    report_id = _text(raw.get("id")).strip()
    if not report_id:
        raise ValueError("report record has no id")

    user_info = _section(raw, "userInfo")
    form = _section(raw, "formData")
    reporter = Reporter(
        id=_text(raw.get("userId") or user_info.get("id")),
        name=_text(user_info.get("name")),
        email=_text(user_info.get("email")),
        department=_text(user_info.get("department") or form.get("department")),
    )

    created_at = parse_ts(raw.get("createdAt")) or parse_ts(_section(raw, "details").get("submittedAt"))
    if created_at is None:
        logger.warning("report %s has no creation timestamp; ranking it as oldest", report_id)
        created_at = EPOCH

    raw_comments = raw.get("comments")
    if not isinstance(raw_comments, list):
        raw_comments = []
    comments = [canonical_comment(c, i) for i, c in enumerate(raw_comments) if isinstance(c, dict)]

    return Report(
        id=report_id,
        status=canonical_status(raw.get("status")),
        severity=canonical_severity(_first(raw, "severity")),
        incident_type=_incident_type(raw),
        reason=_text(raw.get("reason")),
        subject=_first(raw, "subject") or _text(raw.get("reason")),
        description=_first(raw, "description"),
        reporter=reporter,
        technical_details=TechnicalDetails(
            sender_email=_first(raw, "senderEmail"),
            suspicious_url=_first(raw, "suspiciousUrl"),
            attachment_names=_first(raw, "attachmentNames"),
        ),
        date_occurred=_first(raw, "dateOccurred"),
        time_occurred=_first(raw, "timeOccurred"),
        affected_systems=_first(raw, "affectedSystems"),
        actions_taken=_first(raw, "actionsTaken"),
        additional_contacts=_first(raw, "additionalContacts"),
        created_at=created_at,
        updated_at=parse_ts(raw.get("updatedAt")),
        comments=comments,
    )
