"""Exception hierarchy for the incident portal.

Every error carries a ``safe_message`` that may be shown to the caller.
Transport details (URLs, response bodies) only go to the logs.
"""

from __future__ import annotations

from typing import Optional


class PortalError(Exception):
    """Base exception for the portal core."""

    def __init__(self, message: str, *, safe_message: Optional[str] = None) -> None:
        super().__init__(message)
        self._safe_message = safe_message or message

    @property
    def safe_message(self) -> str:
        return self._safe_message


class TransportError(PortalError):
    """Remote service unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(
            message,
            safe_message="The report service is unavailable. Please try again.",
        )
        self.status_code = status_code


class AuthorizationDenied(PortalError):
    """Caller lacks the capability for the requested view or action.

    This is a UI gate only; the backend remains the authority.
    """

    def __init__(self, capability: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Missing capability: {capability}")
        self.capability = capability


class ValidationError(PortalError):
    """Malformed draft or request input."""

    pass


class NotFound(PortalError):
    """Unknown report id."""

    def __init__(self, report_id: str) -> None:
        super().__init__(f"Report not found: {report_id}", safe_message="Report not found")
        self.report_id = report_id


class RateLimitExceeded(PortalError):
    def __init__(self, wait_seconds: float) -> None:
        message = f"Rate limit exceeded. Wait {wait_seconds:.1f}s before trying again."
        super().__init__(message, safe_message=message)
        self.wait_seconds = wait_seconds
