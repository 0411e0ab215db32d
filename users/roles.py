"""
Roles and the per-request session context.

The role guard here is advisory: it decides what a client should be shown.
Row-level scoping in the views is what actually limits data.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class Role(str, Enum):
    MASTER_ADMIN = 'master_admin'
    PROJECT_LEAD = 'project_lead'
    PLACEMENT_OFFICER = 'placement_officer'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, value) -> 'Role':
        """Map a stored role string to a Role; never raises."""
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    Role.MASTER_ADMIN: 'Master Admin',
    Role.PROJECT_LEAD: 'Project Lead',
    Role.PLACEMENT_OFFICER: 'Placement Officer',
    Role.UNKNOWN: 'Unknown',
}

# Roles a user record may be provisioned with
ASSIGNABLE_ROLES = (Role.MASTER_ADMIN, Role.PROJECT_LEAD, Role.PLACEMENT_OFFICER)
ROLE_CHOICES = tuple((r.value, r.label) for r in ASSIGNABLE_ROLES)

# Roles that only make sense with a school attached
SCHOOL_SCOPED_ROLES = (Role.PROJECT_LEAD, Role.PLACEMENT_OFFICER)


def is_allowed(role: Optional[Role], required_roles: Optional[Iterable] = None) -> bool:
    """
    True when `role` may pass a gate restricted to `required_roles`.

    `role=None` means unauthenticated and is always denied. An absent
    `required_roles` lets every authenticated role through.
    """
    if role is None:
        return False
    if required_roles is None:
        return True
    allowed = {Role.parse(r) for r in required_roles}
    return Role.parse(role) in allowed


@dataclass(frozen=True)
class SessionContext:
    """Who is calling: built once per request from the bearer token."""
    user_id: Optional[int]
    role: Optional[Role]
    school_id: Optional[int] = None
    officer_id: Optional[int] = None
    name: str = ''

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None and self.role is not None

    @classmethod
    def anonymous(cls) -> 'SessionContext':
        return cls(user_id=None, role=None)

    @classmethod
    def from_user(cls, user) -> 'SessionContext':
        if user is None:
            return cls.anonymous()
        officer = getattr(user, 'officer_profile', None)
        return cls(
            user_id=user.id,
            role=user.role_enum,
            school_id=user.school_id,
            officer_id=officer.id if officer is not None else None,
            name=user.get_full_name(),
        )
