from portal.models.draft import ReportDraft
from portal.models.identity import AccessProfile, Capability, Identity, Role
from portal.models.report import Comment, Report, ReportStats, ReportStatus, Reporter, Severity, TechnicalDetails

__all__ = [
    "AccessProfile",
    "Capability",
    "Comment",
    "Identity",
    "Report",
    "ReportDraft",
    "ReportStats",
    "ReportStatus",
    "Reporter",
    "Role",
    "Severity",
    "TechnicalDetails",
]
