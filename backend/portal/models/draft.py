from typing import Any, Optional

from pydantic import BaseModel

from portal.core.config import settings
from portal.core.errors import ValidationError
from portal.models.identity import Identity
from portal.models.report import INCIDENT_TYPES, Severity


class ReportDraft(BaseModel):
    """Incident submission as entered on the report form."""

    department: str = ""
    incident_type: str = ""
    other_incident_type: str = ""
    severity: Optional[Severity] = None
    subject: str = ""
    description: str = ""
    sender_email: str = ""
    suspicious_url: str = ""
    attachment_names: str = ""
    date_occurred: str = ""
    time_occurred: str = ""
    affected_systems: str = ""
    actions_taken: str = ""
    additional_contacts: str = ""

    @property
    def effective_incident_type(self) -> str:
        if self.incident_type == "other":
            return self.other_incident_type.strip()
        return self.incident_type

    def validate_for_submission(self) -> None:
        errors: list[str] = []
        if self.incident_type not in INCIDENT_TYPES:
            errors.append("incident_type must be one of: " + ", ".join(INCIDENT_TYPES))
        elif self.incident_type == "other" and not self.other_incident_type.strip():
            errors.append("other_incident_type is required when incident_type is 'other'")

        if not self.subject.strip():
            errors.append("subject is required")
        elif len(self.subject) > settings.subject_max_length:
            errors.append(f"subject exceeds {settings.subject_max_length} characters")

        if not self.description.strip():
            errors.append("description is required")
        elif len(self.description) > settings.description_max_length:
            errors.append(f"description exceeds {settings.description_max_length} characters")

        if errors:
            raise ValidationError("; ".join(errors))

    def to_payload(self, identity: Identity, submitted_at: str) -> dict[str, Any]:
        """Wire shape expected by the report service."""
        form = {
            "department": self.department,
            "incidentType": self.incident_type,
            "otherIncidentType": self.other_incident_type,
            "severity": self.severity.value if self.severity else "",
            "subject": self.subject,
            "description": self.description,
            "senderEmail": self.sender_email,
            "suspiciousUrl": self.suspicious_url,
            "attachmentNames": self.attachment_names,
            "dateOccurred": self.date_occurred,
            "timeOccurred": self.time_occurred,
            "affectedSystems": self.affected_systems,
            "actionsTaken": self.actions_taken,
            "additionalContacts": self.additional_contacts,
        }
        return {
            "userId": identity.user_id,
            "userInfo": {
                "email": identity.email,
                "name": identity.display_name,
                "department": self.department,
            },
            "type": "phishing-report",
            "reason": f"{self.effective_incident_type} - {self.subject}",
            "details": {
                **form,
                "reportType": "security-incident",
                "submittedAt": submitted_at,
                "status": "open",
            },
            "formData": form,
        }
