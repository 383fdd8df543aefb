from __future__ import annotations

import abc
import logging
from typing import Any, Optional

import httpx

from portal.core.config import settings
from portal.metrics.prometheus import role_resolution_fallback_total
from portal.models.identity import AccessProfile, Identity, Role

logger = logging.getLogger(__name__)


class RoleLookupError(Exception):
    pass


class IdentityRoleLookup(abc.ABC):
    @abc.abstractmethod
    async def resolve_role(self, email: str) -> str:
        """Return the role string recorded for ``email``.

        Raises RoleLookupError on any non-success outcome.
        """


class HttpRoleLookup(IdentityRoleLookup):
    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.url = base_url.rstrip("/") + "/api/auth/user-role"
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def resolve_role(self, email: str) -> str:
        try:
            r = await self._client.get(self.url, params={"email": email})
        except httpx.HTTPError as e:
            raise RoleLookupError(f"network error: {e}") from e
        if not r.is_success:
            raise RoleLookupError(f"HTTP {r.status_code}")
        try:
            data: Any = r.json()
        except ValueError as e:
            raise RoleLookupError("response is not JSON") from e
        if not isinstance(data, dict):
            raise RoleLookupError("malformed payload")

        # the service nests the role under "user"; older deployments return it flat
        user = data.get("user")
        role = user.get("role") if isinstance(user, dict) else None
        role = role or data.get("role")
        if not isinstance(role, str) or not role:
            raise RoleLookupError("payload carries no role")
        return role


class RoleResolver:
    """Maps an authenticated identity to a role and its permission set.

    Any failure resolves to ``Role.USER``; it never fails open.
    """

    def __init__(self, lookup: IdentityRoleLookup) -> None:
        self.lookup = lookup

    async def resolve(self, identity: Identity) -> AccessProfile:
        email = identity.normalized_email
        if not email:
            return self._fail_closed("no_email")

        try:
            raw_role = await self.lookup.resolve_role(email)
        except Exception as e:
            logger.warning("role lookup failed for %s: %s", email, e)
            return self._fail_closed("lookup_error")

        try:
            role = Role(raw_role)
        except ValueError:
            logger.warning("unrecognized role %r for %s", raw_role, email)
            return self._fail_closed("unknown_role")

        logger.info("resolved role %s for %s", role.value, email)
        return AccessProfile.for_role(role)

    @staticmethod
    def _fail_closed(reason: str) -> AccessProfile:
        role_resolution_fallback_total.labels(reason=reason).inc()
        return AccessProfile.for_role(Role.USER)
