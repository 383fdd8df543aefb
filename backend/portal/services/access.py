from portal.core.errors import AuthorizationDenied
from portal.models.identity import AccessProfile, Capability, Identity
from portal.models.report import Report


def require(access: AccessProfile, capability: Capability) -> None:
    if not access.has_permission(capability):
        raise AuthorizationDenied(capability.value)


def can_view(identity: Identity, access: AccessProfile, report: Report) -> bool:
    if access.has_permission(Capability.VIEW_ALL):
        return True
    return bool(report.reporter.id) and report.reporter.id == identity.user_id
