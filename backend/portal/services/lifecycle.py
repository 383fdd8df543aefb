from __future__ import annotations

import logging
from typing import Optional, Union

from portal.core.errors import NotFound, PortalError, TransportError, ValidationError
from portal.metrics.prometheus import status_transitions_total
from portal.models.identity import AccessProfile, Capability, Identity
from portal.models.report import Report, ReportStatus
from portal.services.access import can_view, require
from portal.services.collection import ReportCollection
from portal.services.store import ReportStore

logger = logging.getLogger(__name__)


class LifecycleController:
    """Status transitions and investigation comments for one session.

    Any status may move to any other status; reopening a resolved or
    closed report is allowed. On success the record returned by the store
    replaces the local one; on failure the collection is left untouched
    and the error propagates. Nothing is retried.
    """

    def __init__(
        self,
        store: ReportStore,
        collection: ReportCollection,
        identity: Identity,
        access: AccessProfile,
    ) -> None:
        self.store = store
        self.collection = collection
        self.identity = identity
        self.access = access

    def _visible(self, report_id: str) -> Report:
        report = self.collection.get(report_id)
        if not can_view(self.identity, self.access, report):
            raise NotFound(report_id)
        return report

    def _accept(self, report_id: str, updated: Report) -> Report:
        if updated.id != report_id:
            raise TransportError(f"report service answered with record {updated.id} for {report_id}")
        self.collection.replace(updated)
        return updated

    async def transition(
        self,
        report_id: str,
        new_status: Union[ReportStatus, str],
        note: Optional[str] = None,
        is_internal: bool = False,
    ) -> Report:
        require(self.access, Capability.TRANSITION_STATUS)
        current = self._visible(report_id)
        try:
            status = ReportStatus(new_status)
        except ValueError as e:
            raise ValidationError(f"unknown status: {new_status}") from e

        note = (note or "").strip()
        if status == current.status and not note:
            return current

        try:
            updated = await self.store.update_status(
                report_id, status, note or None, is_internal, self.identity.user_id
            )
        except PortalError as e:
            logger.error("status update for %s to %s failed: %s", report_id, status.value, e)
            raise

        self._accept(report_id, updated)
        status_transitions_total.labels(from_status=current.status.value, to_status=updated.status.value).inc()
        logger.info(
            "report %s moved %s -> %s by %s", report_id, current.status.value, updated.status.value, self.identity.user_id
        )
        return updated

    async def add_comment(self, report_id: str, message: str, is_internal: bool = False) -> Report:
        if is_internal:
            require(self.access, Capability.TRANSITION_STATUS)
        self._visible(report_id)

        message = (message or "").strip()
        if not message:
            raise ValidationError("comment message is required")

        try:
            updated = await self.store.add_comment(report_id, message, is_internal, self.identity.user_id)
        except PortalError as e:
            logger.error("adding comment to %s failed: %s", report_id, e)
            raise

        return self._accept(report_id, updated)
