"""Organization, membership and taxonomy repository implementation."""

import re
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, delete

from ..models import records
from ..models.database import Organization, OrganizationMembership, OrganizationTaxonomy
from ..core.exceptions import ResourceNotFoundError, ResourceAlreadyExistsError, DatabaseError
from .base_repository import BaseRepository


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug or "organization"


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for organizations and their memberships."""

    def get_model_class(self):
        """Return the Organization model class."""
        return Organization

    async def get_by_slug(self, slug: str) -> Optional[Organization]:
        try:
            result = await self.session.execute(select(Organization).where(Organization.slug == slug))
            return result.scalar_one_or_none()
        except Exception as e:
            raise DatabaseError(f"Failed to get organization by slug: {str(e)}")

    async def unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, n = base, 1
        while await self.get_by_slug(slug) is not None:
            n += 1
            slug = f"{base}-{n}"
        return slug

    async def search_by_name(self, term: str, organization_type: Optional[str] = None, limit: int = 10) -> List[Organization]:
        """Name lookup used when a new member picks an organization to join."""
        try:
            query = select(Organization)
            query = self._apply_search(query, term, ["name"])
            if organization_type:
                query = query.where(Organization.type == organization_type)
            result = await self.session.execute(query.order_by(Organization.name).limit(limit))
            return list(result.scalars().all())
        except Exception as e:
            raise DatabaseError(f"Failed to search organizations: {str(e)}")

    async def list_records(self, organization_type: Optional[str] = None) -> List[records.Organization]:
        """Organizations as pipeline records, members included."""
        try:
            query = select(Organization).order_by(Organization.name)
            if organization_type:
                query = query.where(Organization.type == organization_type)
            organizations = list((await self.session.execute(query)).scalars().all())

            rows = (await self.session.execute(select(OrganizationMembership))).scalars().all()
            members: Dict[str, List[Dict[str, Any]]] = {}
            for row in rows:
                members.setdefault(row.organization_id, []).append({"profile_id": row.profile_id, "role": row.role})

            return [org.to_record(members.get(org.id, [])) for org in organizations]
        except Exception as e:
            raise DatabaseError(f"Failed to list organizations: {str(e)}")

    async def create_with_owner(self, profile_id: str, data: Dict[str, Any]) -> Organization:
        """Create an organization and make profile_id its super admin."""
        data = {k: v for k, v in data.items() if hasattr(Organization, k)}
        if not data.get("slug"):
            data["slug"] = await self.unique_slug(data.get("name", ""))
        data["created_by"] = profile_id
        organization = await self.create(data)
        await self.add_member(profile_id, organization.id, "super_admin")
        return organization

    async def get_membership(self, profile_id: str, organization_id: str) -> Optional[OrganizationMembership]:
        try:
            result = await self.session.execute(
                select(OrganizationMembership).where(
                    OrganizationMembership.profile_id == profile_id,
                    OrganizationMembership.organization_id == organization_id,
                )
            )
            return result.scalar_one_or_none()
        except Exception as e:
            raise DatabaseError(f"Failed to get membership: {str(e)}")

    async def membership_for_profile(self, profile_id: str) -> Optional[Tuple[OrganizationMembership, Organization]]:
        """The profile's most recent membership and its organization."""
        try:
            result = await self.session.execute(
                select(OrganizationMembership, Organization)
                .join(Organization, Organization.id == OrganizationMembership.organization_id)
                .where(OrganizationMembership.profile_id == profile_id)
                .order_by(OrganizationMembership.joined_at.desc(), OrganizationMembership.id.desc())
                .limit(1)
            )
            row = result.first()
            return (row[0], row[1]) if row else None
        except Exception as e:
            raise DatabaseError(f"Failed to get membership for profile: {str(e)}")

    async def add_member(self, profile_id: str, organization_id: str, role: str = "member") -> OrganizationMembership:
        organization = await self.get_by_id(organization_id)
        if organization is None:
            raise ResourceNotFoundError("Organization", str(organization_id))
        if await self.get_membership(profile_id, organization_id) is not None:
            raise ResourceAlreadyExistsError("Membership", f"{profile_id}:{organization_id}")
        try:
            membership = OrganizationMembership(
                profile_id=profile_id,
                organization_id=organization_id,
                organization_type=organization.type,
                role=role,
            )
            self.session.add(membership)
            await self.session.flush()
            return membership
        except Exception as e:
            raise DatabaseError(f"Failed to add member: {str(e)}")

    async def remove_member(self, profile_id: str, organization_id: str) -> bool:
        try:
            result = await self.session.execute(
                delete(OrganizationMembership).where(
                    OrganizationMembership.profile_id == profile_id,
                    OrganizationMembership.organization_id == organization_id,
                )
            )
            await self.session.flush()
            return result.rowcount > 0
        except Exception as e:
            raise DatabaseError(f"Failed to remove member: {str(e)}")

    async def set_role(self, profile_id: str, organization_id: str, role: str) -> OrganizationMembership:
        membership = await self.get_membership(profile_id, organization_id)
        if membership is None:
            raise ResourceNotFoundError("Membership", f"{profile_id}:{organization_id}")
        membership.role = role
        await self.session.flush()
        return membership

    async def delete_with_members(self, organization_id: str) -> bool:
        """Delete the memberships first, then the organization."""
        try:
            await self.session.execute(
                delete(OrganizationMembership).where(OrganizationMembership.organization_id == organization_id)
            )
        except Exception as e:
            raise DatabaseError(f"Failed to delete organization memberships: {str(e)}")
        return await self.delete(organization_id)

    async def taxonomies(self, organization_type: Optional[str] = None) -> List[OrganizationTaxonomy]:
        try:
            query = select(OrganizationTaxonomy).where(OrganizationTaxonomy.is_active.is_(True))
            if organization_type:
                query = query.where(OrganizationTaxonomy.organization_type == organization_type)
            result = await self.session.execute(
                query.order_by(OrganizationTaxonomy.level, OrganizationTaxonomy.sort_order, OrganizationTaxonomy.name)
            )
            return list(result.scalars().all())
        except Exception as e:
            raise DatabaseError(f"Failed to list taxonomies: {str(e)}")
