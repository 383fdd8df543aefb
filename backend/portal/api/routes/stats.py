from fastapi import APIRouter, Depends

from portal.api.deps import get_portal_session
from portal.services.query import SortKey, sort_reports
from portal.services.session import PortalSession

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("")
async def stats(session: PortalSession = Depends(get_portal_session)):
    s = await session.stats()

    # last 10 reports
    latest = sort_reports(session.visible_reports(), SortKey.DATE_DESC)[:10]

    return {
        "totals": {
            "reports": s.total,
            "high_priority": s.high_priority,
        },
        "by_status": s.by_status,
        "by_severity": s.by_severity,
        "latest_reports": [r.model_dump(mode="json") for r in latest],
    }
