from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from portal.api.deps import enforce_rate_limit, get_portal_session
from portal.core.errors import ValidationError
from portal.models.draft import ReportDraft
from portal.models.report import ReportStatus
from portal.services.query import ALL, ReportQuery, SortKey
from portal.services.session import PortalSession

router = APIRouter(prefix="/reports", tags=["reports"])


class StatusUpdateRequest(BaseModel):
    status: ReportStatus
    note: Optional[str] = None
    is_internal: bool = False


class CommentRequest(BaseModel):
    message: str
    is_internal: bool = False


def _query(status: str, severity: str, search: str, sort: SortKey) -> ReportQuery:
    try:
        return ReportQuery(status_filter=status, severity_filter=severity, search_term=search, sort_key=sort)
    except pydantic.ValidationError as e:
        raise ValidationError("; ".join(err["msg"] for err in e.errors())) from e


@router.get("")
def list_reports(
    session: PortalSession = Depends(get_portal_session),
    status: str = Query(default=ALL),
    severity: str = Query(default=ALL),
    search: str = Query(default=""),
    sort: SortKey = Query(default=SortKey.DATE_DESC),
):
    reports = session.view(_query(status, severity, search, sort))
    return {
        "reports": [r.model_dump(mode="json") for r in reports],
        "count": len(reports),
        "error": session.last_error,
    }


@router.post("/refresh")
async def refresh_reports(session: PortalSession = Depends(get_portal_session)):
    reports = await session.refresh()
    return {"count": len(reports), "error": session.last_error}


@router.post("", status_code=201, dependencies=[Depends(enforce_rate_limit)])
async def submit_report(draft: ReportDraft, session: PortalSession = Depends(get_portal_session)):
    report = await session.submit(draft)
    return {"report": report.model_dump(mode="json")}


@router.get("/export", dependencies=[Depends(enforce_rate_limit)])
def export_reports(
    session: PortalSession = Depends(get_portal_session),
    status: str = Query(default=ALL),
    severity: str = Query(default=ALL),
    search: str = Query(default=""),
    sort: SortKey = Query(default=SortKey.DATE_DESC),
):
    filename, body = session.export(_query(status, severity, search, sort))
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{report_id}")
def get_report(report_id: str, session: PortalSession = Depends(get_portal_session)):
    return {"report": session.get(report_id).model_dump(mode="json")}


@router.post("/{report_id}/status", dependencies=[Depends(enforce_rate_limit)])
async def update_status(
    report_id: str,
    body: StatusUpdateRequest,
    session: PortalSession = Depends(get_portal_session),
):
    report = await session.transition(report_id, body.status, body.note, body.is_internal)
    return {"report": report.model_dump(mode="json")}


@router.post("/{report_id}/comments", dependencies=[Depends(enforce_rate_limit)])
async def add_comment(
    report_id: str,
    body: CommentRequest,
    session: PortalSession = Depends(get_portal_session),
):
    report = await session.add_comment(report_id, body.message, body.is_internal)
    return {"report": report.model_dump(mode="json")}
