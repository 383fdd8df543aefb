from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class ReportStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# critical > high > medium > low > absent (0)
SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

INCIDENT_TYPES = (
    "phishing-email",
    "suspicious-website",
    "social-engineering",
    "malware",
    "data-breach",
    "identity-theft",
    "other",
)


def severity_rank(severity: Optional[Severity]) -> int:
    if severity is None:
        return 0
    return SEVERITY_RANK[severity]


class Comment(SQLModel):
    id: str = ""
    author_name: str = "IT Admin"
    message: str = ""
    timestamp: Optional[datetime] = None
    is_internal: bool = False


class Reporter(SQLModel):
    id: str = ""
    name: str = ""
    email: str = ""
    department: str = ""


class TechnicalDetails(SQLModel):
    # phishing-type incidents
    sender_email: str = ""
    suspicious_url: str = ""
    attachment_names: str = ""


class Report(SQLModel):
    """Canonical security report, as resolved from the remote record."""

    id: str
    status: ReportStatus = Field(default=ReportStatus.OPEN)
    severity: Optional[Severity] = None
    incident_type: str = ""
    reason: str = ""
    subject: str = ""
    description: str = ""

    reporter: Reporter = Field(default_factory=Reporter)
    technical_details: TechnicalDetails = Field(default_factory=TechnicalDetails)

    date_occurred: str = ""
    time_occurred: str = ""
    affected_systems: str = ""
    actions_taken: str = ""
    additional_contacts: str = ""

    created_at: datetime
    updated_at: Optional[datetime] = None

    # investigation trail, append-only and in insertion order
    comments: list[Comment] = Field(default_factory=list)

    @property
    def last_updated(self) -> datetime:
        return self.updated_at or self.created_at


class ReportStats(SQLModel):
    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)
    high_priority: int = 0
