from fastapi import APIRouter, Depends

from portal.api.deps import get_portal_session
from portal.services.session import PortalSession

router = APIRouter(tags=["identity"])


@router.get("/me")
def me(session: PortalSession = Depends(get_portal_session)):
    access = session.access
    return {
        "user_id": session.identity.user_id,
        "email": session.identity.email,
        "display_name": session.identity.display_name,
        "role": access.role.value,
        "permissions": sorted(p.value for p in access.permissions),
        "is_it_team": access.is_it_team(),
        "is_admin": access.is_admin(),
    }
