from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    USER = "user"
    IT_SUPPORT = "it-support"
    ADMIN = "admin"


class Capability(str, Enum):
    CREATE_OWN = "create-own"
    VIEW_OWN = "view-own"
    VIEW_ALL = "view-all"
    TRANSITION_STATUS = "transition-status"
    ASSIGN = "assign"
    DELETE = "delete"
    NOTIFY = "notify"
    MANAGE_USERS = "manage-users"
    VIEW_ANALYTICS = "view-analytics"


_IT_SUPPORT_PERMISSIONS = frozenset(
    {
        Capability.CREATE_OWN,
        Capability.VIEW_OWN,
        Capability.VIEW_ALL,
        Capability.TRANSITION_STATUS,
        Capability.ASSIGN,
        Capability.NOTIFY,
        Capability.VIEW_ANALYTICS,
    }
)

ROLE_PERMISSIONS: dict[Role, frozenset[Capability]] = {
    Role.USER: frozenset({Capability.CREATE_OWN, Capability.VIEW_OWN}),
    Role.IT_SUPPORT: _IT_SUPPORT_PERMISSIONS,
    Role.ADMIN: _IT_SUPPORT_PERMISSIONS | {Capability.DELETE, Capability.MANAGE_USERS},
}


class Identity(BaseModel):
    """Authenticated caller, as established by the identity provider."""

    user_id: str
    email: str = ""
    display_name: str = ""

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()


class AccessProfile(BaseModel):
    role: Role
    permissions: frozenset[Capability]

    @classmethod
    def for_role(cls, role: Role) -> "AccessProfile":
        return cls(role=role, permissions=ROLE_PERMISSIONS[role])

    def has_permission(self, capability: Capability) -> bool:
        return capability in self.permissions

    def has_role(self, role: Role) -> bool:
        return self.role == role

    def is_it_team(self) -> bool:
        return self.role in (Role.IT_SUPPORT, Role.ADMIN)

    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
