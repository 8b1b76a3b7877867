"""Grant repository implementation."""

from typing import Optional, List, Dict

from sqlalchemy import select, delete, func

from ..models import records
from ..models.database import Grant, SavedGrant
from ..core.exceptions import ResourceNotFoundError, DatabaseError
from .base_repository import BaseRepository


class GrantRepository(BaseRepository[Grant]):
    """Repository for grants and saved grants."""

    def get_model_class(self):
        """Return the Grant model class."""
        return Grant

    async def list_records(self) -> List[records.Grant]:
        """All grants as pipeline records, with their save counts."""
        try:
            counts = (
                select(SavedGrant.grant_id, func.count(SavedGrant.id).label("saves"))
                .group_by(SavedGrant.grant_id)
                .subquery()
            )
            result = await self.session.execute(
                select(Grant, func.coalesce(counts.c.saves, 0))
                .outerjoin(counts, counts.c.grant_id == Grant.id)
                .order_by(Grant.id)
            )
            return [grant.to_record(save_count=saves) for grant, saves in result.all()]
        except Exception as e:
            raise DatabaseError(f"Failed to list grants: {str(e)}")

    async def save_counts(self, grant_ids: List[int]) -> Dict[int, int]:
        """Number of profiles that saved each grant; grants nobody saved map to 0."""
        if not grant_ids:
            return {}
        try:
            result = await self.session.execute(
                select(SavedGrant.grant_id, func.count(SavedGrant.id))
                .where(SavedGrant.grant_id.in_(grant_ids))
                .group_by(SavedGrant.grant_id)
            )
            counts = {grant_id: 0 for grant_id in grant_ids}
            counts.update({grant_id: count for grant_id, count in result.all()})
            return counts
        except Exception as e:
            raise DatabaseError(f"Failed to count grant saves: {str(e)}")

    async def saved_grant_ids(self, profile_id: str) -> List[int]:
        try:
            result = await self.session.execute(
                select(SavedGrant.grant_id)
                .where(SavedGrant.profile_id == profile_id)
                .order_by(SavedGrant.created_at.desc(), SavedGrant.id.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            raise DatabaseError(f"Failed to get saved grants: {str(e)}")

    async def saved_grants(self, profile_id: str) -> List[records.Grant]:
        ids = await self.saved_grant_ids(profile_id)
        if not ids:
            return []
        grants = {grant.id: grant for grant in await self.get_by_ids(ids)}
        counts = await self.save_counts(ids)
        return [grants[i].to_record(save_count=counts.get(i, 0)) for i in ids if i in grants]

    async def get_saved(self, profile_id: str, grant_id: int) -> Optional[SavedGrant]:
        try:
            result = await self.session.execute(
                select(SavedGrant).where(
                    SavedGrant.profile_id == profile_id,
                    SavedGrant.grant_id == grant_id,
                )
            )
            return result.scalar_one_or_none()
        except Exception as e:
            raise DatabaseError(f"Failed to get saved grant: {str(e)}")

    async def save(self, profile_id: str, grant_id: int) -> bool:
        """Bookmark a grant; returns False when it was already saved."""
        if not await self.exists(grant_id):
            raise ResourceNotFoundError("Grant", str(grant_id))
        if await self.get_saved(profile_id, grant_id) is not None:
            return False
        try:
            self.session.add(SavedGrant(profile_id=profile_id, grant_id=grant_id))
            await self.session.flush()
            return True
        except Exception as e:
            raise DatabaseError(f"Failed to save grant: {str(e)}")

    async def unsave(self, profile_id: str, grant_id: int) -> bool:
        """Remove a bookmark; returns False when there was none."""
        try:
            result = await self.session.execute(
                delete(SavedGrant).where(
                    SavedGrant.profile_id == profile_id,
                    SavedGrant.grant_id == grant_id,
                )
            )
            await self.session.flush()
            return result.rowcount > 0
        except Exception as e:
            raise DatabaseError(f"Failed to unsave grant: {str(e)}")
