"""Organization role-based access control for Fundspace."""

from typing import Dict, List, Optional, Set, Union
from enum import Enum
import structlog

from .exceptions import PermissionDeniedError

logger = structlog.get_logger(__name__)


class Permission(str, Enum):
    """Organization permissions enumeration."""

    ORGANIZATION_VIEW = "organization:view"
    ORGANIZATION_EDIT = "organization:edit"
    ORGANIZATION_DELETE = "organization:delete"

    MEMBERS_MANAGE = "members:manage"
    MEMBERS_INVITE = "members:invite"
    MEMBERS_REMOVE = "members:remove"
    MEMBERS_CHANGE_ROLE = "members:change_role"

    ADMINS_MANAGE = "admins:manage"


class OrganizationRole(str, Enum):
    """Membership roles within an organization."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MEMBER = "member"


ROLE_DISPLAY_NAMES = {
    OrganizationRole.SUPER_ADMIN: "Super Admin",
    OrganizationRole.ADMIN: "Admin",
    OrganizationRole.MEMBER: "Member",
}

OMEGA_ADMIN_DISPLAY_NAME = "Omega Admin"


def _coerce_role(role: Union[OrganizationRole, str, None]) -> Optional[OrganizationRole]:
    if isinstance(role, OrganizationRole):
        return role
    try:
        return OrganizationRole(role)
    except ValueError:
        return None


class OrganizationRBAC:
    """Role-permission mapping for organization memberships.

    The omega admin flag is platform-wide and grants every permission on
    every organization regardless of membership.
    """

    def __init__(self):
        """Initialize role-permission mappings."""
        self.role_permissions: Dict[OrganizationRole, Set[Permission]] = {
            OrganizationRole.SUPER_ADMIN: {
                Permission.ORGANIZATION_VIEW,
                Permission.ORGANIZATION_EDIT,
                Permission.ORGANIZATION_DELETE,
                Permission.MEMBERS_MANAGE,
                Permission.ADMINS_MANAGE,
            },
            OrganizationRole.ADMIN: {
                Permission.ORGANIZATION_VIEW,
                Permission.MEMBERS_MANAGE,
            },
            OrganizationRole.MEMBER: {
                Permission.ORGANIZATION_VIEW,
            },
        }

        # Holding a parent permission grants its children
        self.permission_hierarchy = {
            Permission.MEMBERS_MANAGE: [
                Permission.MEMBERS_INVITE,
                Permission.MEMBERS_REMOVE,
                Permission.MEMBERS_CHANGE_ROLE,
            ],
            Permission.ADMINS_MANAGE: [Permission.MEMBERS_MANAGE],
            Permission.ORGANIZATION_DELETE: [Permission.ORGANIZATION_EDIT],
        }

    def get_role_permissions(self, role: Union[OrganizationRole, str, None]) -> Set[Permission]:
        """Get all permissions for a role, expanded through the hierarchy."""
        role = _coerce_role(role)
        if role is None:
            return set()

        permissions = set(self.role_permissions.get(role, set()))
        pending = list(permissions)
        while pending:
            permission = pending.pop()
            for child in self.permission_hierarchy.get(permission, []):
                if child not in permissions:
                    permissions.add(child)
                    pending.append(child)
        return permissions

    def has_permission(
        self,
        role: Union[OrganizationRole, str, None],
        permission: Permission,
        is_omega_admin: bool = False,
    ) -> bool:
        """Check if a membership role holds a permission."""
        if is_omega_admin:
            return True
        return permission in self.get_role_permissions(role)

    def require_permission(
        self,
        role: Union[OrganizationRole, str, None],
        permission: Permission,
        is_omega_admin: bool = False,
    ) -> None:
        """Require permission or raise exception."""
        if not self.has_permission(role, permission, is_omega_admin=is_omega_admin):
            logger.info("Permission denied", role=str(role), permission=permission.value)
            resource, operation = permission.value.split(":")
            raise PermissionDeniedError(resource=resource, operation=operation)

    def can_manage_member(
        self,
        actor_role: Union[OrganizationRole, str, None],
        target_role: Union[OrganizationRole, str, None],
        is_omega_admin: bool = False,
    ) -> bool:
        """Whether the actor may remove or re-role a member holding target_role."""
        if is_omega_admin:
            return True
        actor = _coerce_role(actor_role)
        target = _coerce_role(target_role) or OrganizationRole.MEMBER
        if target == OrganizationRole.SUPER_ADMIN:
            return False
        if actor == OrganizationRole.SUPER_ADMIN:
            return True
        return actor == OrganizationRole.ADMIN and target == OrganizationRole.MEMBER

    def get_user_permissions(self, role: Union[OrganizationRole, str, None], is_omega_admin: bool = False) -> List[str]:
        """Get sorted permission strings for a role."""
        if is_omega_admin:
            return sorted(p.value for p in Permission)
        return sorted(p.value for p in self.get_role_permissions(role))


def is_admin_role(role: Union[OrganizationRole, str, None]) -> bool:
    return _coerce_role(role) in (OrganizationRole.SUPER_ADMIN, OrganizationRole.ADMIN)


def role_display_name(role: Union[OrganizationRole, str, None], is_omega_admin: bool = False) -> str:
    """Human label for a membership role; unknown roles read as Member."""
    if is_omega_admin:
        return OMEGA_ADMIN_DISPLAY_NAME
    return ROLE_DISPLAY_NAMES.get(_coerce_role(role), "Member")


# Global RBAC instance
organization_rbac = OrganizationRBAC()
