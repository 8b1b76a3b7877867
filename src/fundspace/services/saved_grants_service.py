"""Saved grants (bookmarks) and their save counts."""

from typing import Any, Dict, List
import structlog

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DatabaseError
from ..models import records
from ..repositories.grant_repository import GrantRepository
from .optimistic import SavedGrantsState, SaveGrantCommand, UnsaveGrantCommand, execute_optimistic

logger = structlog.get_logger(__name__)


class SavedGrantsService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.grants = GrantRepository(session)

    async def save(self, profile_id: str, grant_id: int) -> Dict[str, Any]:
        created = await self.grants.save(profile_id, grant_id)
        counts = await self.refresh_save_counts([grant_id])
        logger.info("Grant saved", profile_id=profile_id, grant_id=grant_id, created=created)
        return {"grant_id": grant_id, "saved": True, "save_count": counts.get(grant_id)}

    async def unsave(self, profile_id: str, grant_id: int) -> Dict[str, Any]:
        removed = await self.grants.unsave(profile_id, grant_id)
        counts = await self.refresh_save_counts([grant_id])
        logger.info("Grant unsaved", profile_id=profile_id, grant_id=grant_id, removed=removed)
        return {"grant_id": grant_id, "saved": False, "save_count": counts.get(grant_id)}

    async def saved_grant_ids(self, profile_id: str) -> List[int]:
        return await self.grants.saved_grant_ids(profile_id)

    async def saved_grants(self, profile_id: str) -> List[records.Grant]:
        return await self.grants.saved_grants(profile_id)

    async def refresh_save_counts(self, grant_ids: List[int]) -> Dict[int, int]:
        """Fresh save counts; an empty dict when the lookup fails."""
        try:
            return await self.grants.save_counts(grant_ids)
        except DatabaseError as e:
            logger.warning("Could not refresh save counts", grant_ids=grant_ids, error=str(e))
            return {}

    async def load_state(self, profile_id: str, grant_ids: List[int]) -> SavedGrantsState:
        return SavedGrantsState(
            saved_ids=set(await self.saved_grant_ids(profile_id)),
            save_counts=await self.refresh_save_counts(grant_ids),
        )

    async def toggle(self, state: SavedGrantsState, profile_id: str, grant_id: int) -> bool:
        """Flip the saved flag optimistically; returns the new flag.

        The local state is restored and the error re-raised when the write
        fails.
        """
        if state.is_saved(grant_id):
            command, write = UnsaveGrantCommand(state, grant_id), self.grants.unsave
        else:
            command, write = SaveGrantCommand(state, grant_id), self.grants.save

        async def remote():
            await write(profile_id, grant_id)
            return await self.refresh_save_counts([grant_id])

        await execute_optimistic(command, remote)
        return state.is_saved(grant_id)
