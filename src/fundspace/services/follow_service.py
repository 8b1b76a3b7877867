"""Following other profiles."""

from typing import Any, Dict

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ValidationError
from ..repositories.profile_repository import ProfileRepository
from .optimistic import FollowCommand, execute_optimistic

logger = structlog.get_logger(__name__)


class FollowService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ProfileRepository(session)

    async def set_following(self, follower_id: str, profile_id: str, follow: bool = True) -> Dict[str, Any]:
        """Follow or unfollow profile_id; the caller's following set is rolled back on failure."""
        if follow and follower_id == profile_id:
            raise ValidationError("Profiles cannot follow themselves", details={"profile_id": profile_id})
        following = set(await self.profiles.following_ids(follower_id))
        command = FollowCommand(following, profile_id, follow=follow)

        async def remote():
            if follow:
                return await self.profiles.create_follows(follower_id, [profile_id]) > 0
            return await self.profiles.unfollow(follower_id, profile_id)

        changed = await execute_optimistic(command, remote)
        logger.info("Follow updated", follower_id=follower_id, profile_id=profile_id, follow=follow, changed=changed)
        key = "created" if follow else "removed"
        return {"profile_id": profile_id, "following": profile_id in following, key: changed}
