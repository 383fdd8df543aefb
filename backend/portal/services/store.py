from __future__ import annotations

import abc
import logging
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx

from portal.core.config import settings
from portal.core.errors import NotFound, TransportError
from portal.metrics.prometheus import store_request_latency_seconds
from portal.models.report import Report, ReportStatus
from portal.services.canonical import canonicalize, is_security_report

logger = logging.getLogger(__name__)

SCOPE_MINE = "mine"
SCOPE_ALL = "all"


class ReportStore(abc.ABC):
    """Remote authority for report records.

    Every mutating call returns the full canonical record, never a patch.
    """

    @abc.abstractmethod
    async def list(self, scope: str, user_id: str) -> list[Report]:
        ...

    @abc.abstractmethod
    async def create(self, payload: dict[str, Any]) -> Report:
        ...

    @abc.abstractmethod
    async def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        note: Optional[str],
        is_internal: bool,
        updated_by: str,
    ) -> Report:
        ...

    @abc.abstractmethod
    async def add_comment(self, report_id: str, message: str, is_internal: bool, user_id: str) -> Report:
        ...

    async def get_stats(self, user_email: Optional[str] = None) -> dict[str, Any]:
        """Optional; callers fall back to local aggregation."""
        raise NotImplementedError


def _raise_for_status(r: httpx.Response, operation: str, report_id: Optional[str] = None) -> None:
    if r.is_success:
        return
    logger.error("%s failed: HTTP %s %s", operation, r.status_code, r.text[:500])
    if r.status_code == 404 and report_id is not None:
        raise NotFound(report_id)
    raise TransportError(f"{operation} failed: HTTP {r.status_code}", status_code=r.status_code)


def _record(data: Any, operation: str) -> Report:
    raw = data.get("request") if isinstance(data, dict) else None
    if not isinstance(raw, dict):
        raise TransportError(f"{operation}: malformed response payload")
    try:
        return canonicalize(raw)
    except ValueError as e:
        raise TransportError(f"{operation}: {e}") from e


class HttpReportStore(ReportStore):
    """Report store backed by the portal's REST service."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, operation: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        start = time.perf_counter()
        try:
            return await self._client.request(
                method,
                f"{self.base_url}{path}",
                headers={"Content-Type": "application/json"},
                **kwargs,
            )
        except httpx.HTTPError as e:
            logger.error("%s failed: %s", operation, e)
            raise TransportError(f"{operation} failed: {e}") from e
        finally:
            store_request_latency_seconds.labels(operation=operation).observe(time.perf_counter() - start)

    @staticmethod
    def _json(r: httpx.Response, operation: str) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise TransportError(f"{operation}: response is not JSON") from e

    async def list(self, scope: str, user_id: str) -> list[Report]:
        params = {"all": "true"} if scope == SCOPE_ALL else {"userId": user_id}
        r = await self._send("list", "GET", "/api/requests", params=params)
        _raise_for_status(r, "list")
        data = self._json(r, "list")
        rows = data.get("requests") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise TransportError("list: malformed response payload")

        reports: list[Report] = []
        for raw in rows:
            if not isinstance(raw, dict) or not is_security_report(raw):
                continue
            try:
                reports.append(canonicalize(raw))
            except ValueError as e:
                logger.warning("skipping malformed report record: %s", e)
        return reports

    async def create(self, payload: dict[str, Any]) -> Report:
        r = await self._send("create", "POST", "/api/requests", json=payload)
        _raise_for_status(r, "create")
        return _record(self._json(r, "create"), "create")

    async def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        note: Optional[str],
        is_internal: bool,
        updated_by: str,
    ) -> Report:
        body = {
            "status": status.value,
            "notes": note,
            "isInternal": is_internal,
            "updatedBy": updated_by,
        }
        path = f"/api/requests/{quote(report_id, safe='')}/status"
        r = await self._send("update_status", "PUT", path, json=body)
        _raise_for_status(r, "update_status", report_id)
        return _record(self._json(r, "update_status"), "update_status")

    async def add_comment(self, report_id: str, message: str, is_internal: bool, user_id: str) -> Report:
        body = {"message": message, "userId": user_id, "isInternal": is_internal}
        path = f"/api/requests/{quote(report_id, safe='')}/comments"
        r = await self._send("add_comment", "POST", path, json=body)
        _raise_for_status(r, "add_comment", report_id)
        return _record(self._json(r, "add_comment"), "add_comment")

    async def get_stats(self, user_email: Optional[str] = None) -> dict[str, Any]:
        params = {"userEmail": user_email} if user_email else None
        r = await self._send("get_stats", "GET", "/api/requests/stats", params=params)
        _raise_for_status(r, "get_stats")
        data = self._json(r, "get_stats")
        stats = data.get("statistics") if isinstance(data, dict) else None
        if not isinstance(stats, dict):
            raise TransportError("get_stats: malformed response payload")
        return stats


def build_store() -> HttpReportStore:
    return HttpReportStore(settings.backend_base_url)

