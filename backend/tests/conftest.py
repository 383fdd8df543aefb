import pytest
from fastapi.testclient import TestClient

from fakes import FakeReportStore, FakeRoleLookup, make_report
from portal.api import deps
from portal.core.ratelimit import RateLimiter
from portal.main import app
from portal.models.identity import AccessProfile, Identity, Role
from portal.services.roles import RoleResolver

ROLES = {
    "admin@company.com": "admin",
    "support@company.com": "it-support",
    "alice@company.com": "user",
}


@pytest.fixture()
def sample_reports():
    return [
        make_report(
            "A",
            created="2024-01-02T09:00:00Z",
            severity="critical",
            subject="Phishing email from HR",
            reporter_id="u-alice",
            reporter_name="Alice Smith",
        ),
        make_report(
            "B",
            created="2024-01-05T09:00:00Z",
            severity="high",
            subject="VPN access issue",
            reporter_id="u-bob",
            reporter_name="Bob Jones",
        ),
        make_report(
            "C",
            created="2024-01-01T09:00:00Z",
            severity="high",
            status="in-progress",
            subject="Suspicious USB drive",
            reporter_id="u-alice",
            reporter_name="Alice Smith",
        ),
    ]


@pytest.fixture()
def store(sample_reports):
    return FakeReportStore(sample_reports)


@pytest.fixture()
def admin():
    return Identity(user_id="u-admin", email="Admin@Company.com", display_name="Ada Admin")


@pytest.fixture()
def alice():
    return Identity(user_id="u-alice", email="alice@company.com", display_name="Alice Smith")


@pytest.fixture()
def admin_access():
    return AccessProfile.for_role(Role.ADMIN)


@pytest.fixture()
def user_access():
    return AccessProfile.for_role(Role.USER)


@pytest.fixture()
def client(store):
    lookup = FakeRoleLookup(ROLES)
    registry = deps.SessionRegistry()
    limiter = RateLimiter(max_calls=100, window_seconds=60)

    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_resolver] = lambda: RoleResolver(lookup)
    app.dependency_overrides[deps.get_registry] = lambda: registry
    app.dependency_overrides[deps.get_rate_limiter] = lambda: limiter

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
