from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from portal.core.errors import NotFound, PortalError
from portal.models.draft import ReportDraft
from portal.models.identity import AccessProfile, Capability, Identity
from portal.models.report import Report, ReportStats, ReportStatus, Severity
from portal.services.access import can_view, require
from portal.services.collection import ReportCollection
from portal.services.export import export_csv, export_filename
from portal.services.lifecycle import LifecycleController
from portal.services.query import ReportQuery, apply_query, compute_stats
from portal.services.roles import RoleResolver
from portal.services.store import SCOPE_ALL, SCOPE_MINE, ReportStore

logger = logging.getLogger(__name__)


def _count(counts: Any, key: str) -> int:
    if not isinstance(counts, dict):
        return 0
    try:
        return int(counts.get(key) or 0)
    except (TypeError, ValueError):
        return 0


def stats_from_remote(raw: dict[str, Any]) -> ReportStats:
    status_counts = raw.get("statusCounts")
    priority_counts = raw.get("priorityCounts")
    by_status = {s.value: _count(status_counts, s.value) for s in ReportStatus}
    by_severity = {s.value: _count(priority_counts, s.value) for s in Severity}
    # the service also counts access requests in "total"
    total = _count(raw, "securityIncidents") if "securityIncidents" in raw else _count(raw, "total")
    by_severity["unspecified"] = max(0, total - sum(by_severity.values()))
    return ReportStats(
        total=total,
        by_status=by_status,
        by_severity=by_severity,
        high_priority=by_severity[Severity.CRITICAL.value] + by_severity[Severity.HIGH.value],
    )


class PortalSession:
    """State held for one authenticated caller.

    The role is resolved once, at open time, and kept for the session.
    The report collection is fetched on demand and re-fetched on refresh.
    """

    def __init__(self, identity: Identity, access: AccessProfile, store: ReportStore) -> None:
        self.identity = identity
        self.access = access
        self.store = store
        self.collection = ReportCollection()
        self.lifecycle = LifecycleController(store, self.collection, identity, access)
        self.loaded = False
        self.last_error: Optional[str] = None

    @classmethod
    async def open(cls, identity: Identity, resolver: RoleResolver, store: ReportStore) -> "PortalSession":
        access = await resolver.resolve(identity)
        return cls(identity, access, store)

    @property
    def scope(self) -> str:
        return SCOPE_ALL if self.access.has_permission(Capability.VIEW_ALL) else SCOPE_MINE

    async def refresh(self) -> list[Report]:
        """Re-fetch the caller's reports; a failed read yields an empty view."""
        require(self.access, Capability.VIEW_OWN)
        try:
            reports = await self.store.list(self.scope, self.identity.user_id)
        except PortalError as e:
            logger.warning("loading reports for %s failed, showing no data: %s", self.identity.user_id, e)
            self.last_error = e.safe_message
            reports = []
        else:
            self.last_error = None
        self.collection.reset(r for r in reports if can_view(self.identity, self.access, r))
        self.loaded = True
        return self.collection.snapshot()

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.refresh()

    def visible_reports(self) -> list[Report]:
        return [r for r in self.collection.snapshot() if can_view(self.identity, self.access, r)]

    def view(self, query: ReportQuery) -> list[Report]:
        return apply_query(self.visible_reports(), query)

    def get(self, report_id: str) -> Report:
        report = self.collection.get(report_id)
        if not can_view(self.identity, self.access, report):
            raise NotFound(report_id)
        return report

    async def submit(self, draft: ReportDraft) -> Report:
        require(self.access, Capability.CREATE_OWN)
        draft.validate_for_submission()
        submitted_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        payload = draft.to_payload(self.identity, submitted_at)
        try:
            report = await self.store.create(payload)
        except PortalError as e:
            logger.error("submitting report for %s failed: %s", self.identity.user_id, e)
            raise
        self.collection.add(report)
        logger.info("report %s filed by %s", report.id, self.identity.user_id)
        return report

    async def transition(
        self, report_id: str, new_status: str, note: Optional[str] = None, is_internal: bool = False
    ) -> Report:
        return await self.lifecycle.transition(report_id, new_status, note, is_internal)

    async def add_comment(self, report_id: str, message: str, is_internal: bool = False) -> Report:
        return await self.lifecycle.add_comment(report_id, message, is_internal)

    def local_stats(self) -> ReportStats:
        return compute_stats(self.visible_reports())

    async def stats(self) -> ReportStats:
        """Remote statistics when the store offers them, local aggregation otherwise."""
        email = None if self.access.has_permission(Capability.VIEW_ALL) else self.identity.email
        try:
            raw = await self.store.get_stats(email)
        except (NotImplementedError, PortalError) as e:
            logger.info("remote stats unavailable, aggregating locally: %s", e)
            return self.local_stats()
        return stats_from_remote(raw)

    def export(self, query: ReportQuery, today: Optional[datetime] = None) -> tuple[str, bytes]:
        """CSV of the current filtered view, with a filter-derived filename."""
        require(self.access, Capability.VIEW_ALL)
        view = self.view(query)
        on = (today or datetime.now(timezone.utc)).date()
        return export_filename(query, on), export_csv(view)
