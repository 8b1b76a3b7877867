"""Organization membership service: join, leave, create and administer."""

from typing import Optional, Dict, Any, Tuple
import structlog

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.events import EventBus, OrganizationJoined, OrganizationLeft, OrganizationUpdated, event_bus
from ..core.exceptions import PermissionDeniedError, ResourceNotFoundError, ValidationError
from ..core.rbac import OrganizationRBAC, OrganizationRole, Permission, organization_rbac, role_display_name
from ..repositories.organization_repository import OrganizationRepository
from ..repositories.profile_repository import ProfileRepository

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = {
    "name", "type", "tagline", "description", "website", "location", "image_url", "focus_areas",
    "taxonomy_code", "budget", "total_funding_annually", "staff_count", "grants_offered",
    "year_founded", "funding_locations", "grant_types", "funder_type",
}


class MembershipService:
    """Membership operations; each successful change is announced on the event bus."""

    def __init__(self, session: AsyncSession, bus: Optional[EventBus] = None, rbac: Optional[OrganizationRBAC] = None):
        self.session = session
        self.bus = bus or event_bus
        self.rbac = rbac or organization_rbac
        self.organizations = OrganizationRepository(session)
        self.profiles = ProfileRepository(session)

    async def _actor(self, profile_id: str, organization_id: str) -> Tuple[Optional[str], bool]:
        """The actor's role in the organization and their omega admin flag."""
        profile = await self.profiles.get_by_id(profile_id)
        if profile is None:
            raise ResourceNotFoundError("Profile", profile_id)
        membership = await self.organizations.get_membership(profile_id, organization_id)
        return (membership.role if membership else None), profile.is_omega_admin

    async def organization_for_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        """The profile's organization with its role and permissions, or None."""
        found = await self.organizations.membership_for_profile(profile_id)
        if found is None:
            return None
        membership, organization = found
        profile = await self.profiles.get_by_id(profile_id)
        is_omega = bool(profile and profile.is_omega_admin)
        return {
            "organization": organization.to_dict(),
            "role": membership.role,
            "role_display_name": role_display_name(membership.role, is_omega),
            "permissions": self.rbac.get_user_permissions(membership.role, is_omega),
            "joined_at": membership.joined_at,
        }

    async def join(self, profile_id: str, organization_id: str) -> Dict[str, Any]:
        await self.organizations.add_member(profile_id, organization_id, OrganizationRole.MEMBER.value)
        organization = (await self.organizations.get_by_id(organization_id)).to_dict()
        logger.info("Profile joined organization", profile_id=profile_id, organization_id=organization_id)
        self.bus.publish(OrganizationJoined(profile_id=profile_id, organization=organization))
        return organization

    async def leave(self, profile_id: str, organization_id: str) -> bool:
        removed = await self.organizations.remove_member(profile_id, organization_id)
        if not removed:
            raise ResourceNotFoundError("Membership", f"{profile_id}:{organization_id}")
        logger.info("Profile left organization", profile_id=profile_id, organization_id=organization_id)
        self.bus.publish(OrganizationLeft(profile_id=profile_id, organization_id=organization_id))
        return True

    async def create_organization(self, profile_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create an organization owned by profile_id as its super admin."""
        if not (data.get("name") or "").strip():
            raise ValidationError("Organization name is required", details={"field": "name"})
        if not data.get("type"):
            raise ValidationError("Organization type is required", details={"field": "type"})

        organization = (await self.organizations.create_with_owner(profile_id, data)).to_dict()
        logger.info("Organization created", profile_id=profile_id, organization_id=organization["id"])
        self.bus.publish(OrganizationJoined(profile_id=profile_id, organization=organization))
        return organization

    async def update_organization(self, profile_id: str, organization_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        role, is_omega = await self._actor(profile_id, organization_id)
        self.rbac.require_permission(role, Permission.ORGANIZATION_EDIT, is_omega_admin=is_omega)

        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        if not changes:
            raise ValidationError("No editable organization fields supplied", details={"fields": sorted(data)})
        organization = (await self.organizations.update(organization_id, changes)).to_dict()
        self.bus.publish(OrganizationUpdated(profile_id=profile_id, organization=organization))
        return organization

    async def delete_organization(self, profile_id: str, organization_id: str) -> bool:
        role, is_omega = await self._actor(profile_id, organization_id)
        self.rbac.require_permission(role, Permission.ORGANIZATION_DELETE, is_omega_admin=is_omega)

        deleted = await self.organizations.delete_with_members(organization_id)
        if deleted:
            logger.info("Organization deleted", profile_id=profile_id, organization_id=organization_id)
            self.bus.publish(OrganizationLeft(profile_id=profile_id, organization_id=organization_id))
        return deleted

    async def change_role(self, actor_id: str, organization_id: str, target_id: str, new_role: str) -> Dict[str, Any]:
        """Re-role a member.

        Granting or revoking an admin role needs the admin-management
        permission on top of member management.
        """
        try:
            new_role = OrganizationRole(new_role)
        except ValueError:
            raise ValidationError(f"Unknown role '{new_role}'", details={"role": new_role})

        actor_role, is_omega = await self._actor(actor_id, organization_id)
        self.rbac.require_permission(actor_role, Permission.MEMBERS_CHANGE_ROLE, is_omega_admin=is_omega)

        target = await self.organizations.get_membership(target_id, organization_id)
        if target is None:
            raise ResourceNotFoundError("Membership", f"{target_id}:{organization_id}")
        if not self.rbac.can_manage_member(actor_role, target.role, is_omega_admin=is_omega):
            raise PermissionDeniedError(resource="members", operation="change_role")
        if new_role != OrganizationRole.MEMBER or target.role != OrganizationRole.MEMBER.value:
            self.rbac.require_permission(actor_role, Permission.ADMINS_MANAGE, is_omega_admin=is_omega)

        membership = await self.organizations.set_role(target_id, organization_id, new_role.value)
        organization = (await self.organizations.get_by_id(organization_id)).to_dict()
        logger.info("Member role changed", actor_id=actor_id, target_id=target_id, role=new_role.value)
        self.bus.publish(OrganizationUpdated(profile_id=target_id, organization=organization))
        return {"profile_id": target_id, "organization_id": organization_id, "role": membership.role}

    async def remove_member(self, actor_id: str, organization_id: str, target_id: str) -> bool:
        actor_role, is_omega = await self._actor(actor_id, organization_id)
        self.rbac.require_permission(actor_role, Permission.MEMBERS_REMOVE, is_omega_admin=is_omega)

        target = await self.organizations.get_membership(target_id, organization_id)
        if target is None:
            raise ResourceNotFoundError("Membership", f"{target_id}:{organization_id}")
        if not self.rbac.can_manage_member(actor_role, target.role, is_omega_admin=is_omega):
            raise PermissionDeniedError(resource="members", operation="remove")

        await self.organizations.remove_member(target_id, organization_id)
        self.bus.publish(OrganizationLeft(profile_id=target_id, organization_id=organization_id))
        return True
