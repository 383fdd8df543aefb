import httpx
import pytest

from fakes import FakeRoleLookup
from portal.models.identity import ROLE_PERMISSIONS, AccessProfile, Capability, Identity, Role
from portal.services.roles import HttpRoleLookup, RoleResolver

BASE = "http://portal.test"


def http_resolver(handler) -> RoleResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RoleResolver(HttpRoleLookup(BASE, client=client))


def identity(email="Jane.Doe@Company.com "):
    return Identity(user_id="u-jane", email=email, display_name="Jane Doe")


@pytest.mark.asyncio
async def test_nested_role_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, json={"user": {"role": "it-support"}})

    access = await http_resolver(handler).resolve(identity())
    assert access.role == Role.IT_SUPPORT
    assert access.permissions == ROLE_PERMISSIONS[Role.IT_SUPPORT]
    assert seen["url"].path == "/api/auth/user-role"
    assert seen["url"].params["email"] == "jane.doe@company.com"


@pytest.mark.asyncio
async def test_flat_role_payload():
    access = await http_resolver(lambda r: httpx.Response(200, json={"role": "admin"})).resolve(identity())
    assert access.role == Role.ADMIN
    assert access.has_permission(Capability.MANAGE_USERS)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(403, json={"role": "admin"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["admin"]),
        httpx.Response(200, json={"user": {}}),
        httpx.Response(200, json={"role": "superuser"}),
    ],
)
async def test_failures_resolve_to_user(response):
    access = await http_resolver(lambda r: response).resolve(identity())
    assert access.role == Role.USER
    assert access.permissions == ROLE_PERMISSIONS[Role.USER]


@pytest.mark.asyncio
async def test_network_error_resolves_to_user():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    access = await http_resolver(handler).resolve(identity())
    assert access.role == Role.USER


@pytest.mark.asyncio
async def test_unexpected_lookup_exception_fails_closed():
    resolver = RoleResolver(FakeRoleLookup(error=RuntimeError("bug in lookup")))
    access = await resolver.resolve(identity())
    assert access.role == Role.USER


@pytest.mark.asyncio
async def test_missing_email_skips_lookup():
    lookup = FakeRoleLookup({"": "admin"})
    access = await RoleResolver(lookup).resolve(identity(email="  "))
    assert access.role == Role.USER
    assert lookup.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_role", [" Admin ", "ADMIN", "admin ", "It-Support"])
async def test_role_strings_must_match_exactly(raw_role):
    lookup = FakeRoleLookup({"jane.doe@company.com": raw_role})
    access = await RoleResolver(lookup).resolve(identity())
    assert access.role == Role.USER
    assert access.permissions == ROLE_PERMISSIONS[Role.USER]


def test_permission_table():
    user = ROLE_PERMISSIONS[Role.USER]
    support = ROLE_PERMISSIONS[Role.IT_SUPPORT]
    admin = ROLE_PERMISSIONS[Role.ADMIN]

    assert user == {Capability.CREATE_OWN, Capability.VIEW_OWN}
    assert Capability.VIEW_ALL in support and Capability.TRANSITION_STATUS in support
    assert Capability.MANAGE_USERS not in support
    assert support < admin
    assert admin - support == {Capability.DELETE, Capability.MANAGE_USERS}


def test_access_profile_helpers():
    user = AccessProfile.for_role(Role.USER)
    support = AccessProfile.for_role(Role.IT_SUPPORT)
    admin = AccessProfile.for_role(Role.ADMIN)

    assert not user.is_it_team() and not user.is_admin()
    assert support.is_it_team() and not support.is_admin()
    assert admin.is_it_team() and admin.is_admin()
    assert support.has_role(Role.IT_SUPPORT)
    assert not user.has_permission(Capability.VIEW_ALL)
