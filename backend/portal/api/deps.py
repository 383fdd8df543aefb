import time
from typing import Optional

from fastapi import Depends, Header, HTTPException

from portal.core.config import settings
from portal.core.errors import RateLimitExceeded
from portal.core.ratelimit import RateLimiter
from portal.models.identity import Identity
from portal.services.roles import HttpRoleLookup, RoleResolver
from portal.services.session import PortalSession
from portal.services.store import HttpReportStore, ReportStore


class SessionRegistry:
    """One PortalSession per caller for the lifetime of the process."""

    def __init__(self) -> None:
        self._sessions: dict[str, PortalSession] = {}

    async def get(self, identity: Identity, resolver: RoleResolver, store: ReportStore) -> PortalSession:
        session = self._sessions.get(identity.user_id)
        # a different email under the same id is a new identity; resolve again
        if session is None or session.identity.normalized_email != identity.normalized_email:
            session = await PortalSession.open(identity, resolver, store)
            self._sessions[identity.user_id] = session
        return session

    def clear(self) -> None:
        self._sessions.clear()


registry = SessionRegistry()
rate_limiter = RateLimiter(settings.rate_limit_max_calls, settings.rate_limit_window_seconds)

_store: Optional[HttpReportStore] = None
_lookup: Optional[HttpRoleLookup] = None


def get_store() -> ReportStore:
    global _store
    if _store is None:
        _store = HttpReportStore(settings.backend_base_url)
    return _store


def get_resolver() -> RoleResolver:
    global _lookup
    if _lookup is None:
        _lookup = HttpRoleLookup(settings.backend_base_url)
    return RoleResolver(_lookup)


def get_registry() -> SessionRegistry:
    return registry


def get_rate_limiter() -> RateLimiter:
    return rate_limiter


async def close_clients() -> None:
    global _store, _lookup
    if _store is not None:
        await _store.aclose()
        _store = None
    if _lookup is not None:
        await _lookup.aclose()
        _lookup = None


def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Identity:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return Identity(user_id=x_user_id, email=x_user_email or "", display_name=x_user_name or "")


async def get_portal_session(
    identity: Identity = Depends(get_identity),
    store: ReportStore = Depends(get_store),
    resolver: RoleResolver = Depends(get_resolver),
    sessions: SessionRegistry = Depends(get_registry),
) -> PortalSession:
    session = await sessions.get(identity, resolver, store)
    await session.ensure_loaded()
    return session


def enforce_rate_limit(
    identity: Identity = Depends(get_identity),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    now = time.monotonic()
    if not limiter.is_allowed(identity.user_id, now):
        raise RateLimitExceeded(limiter.wait_time(identity.user_id, now))
