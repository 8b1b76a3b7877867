"""Account, profile and follower repository implementation."""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from sqlalchemy import select

from ..models.database import Account, Profile, Follower
from ..core.exceptions import ResourceNotFoundError, ResourceAlreadyExistsError, DatabaseError
from .base_repository import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Repository for login accounts."""

    def get_model_class(self):
        return Account

    async def get_by_email(self, email: str) -> Optional[Account]:
        """Get account by email (case-insensitive)."""
        try:
            result = await self.session.execute(
                select(Account).where(Account.email == (email or "").strip().lower())
            )
            return result.scalar_one_or_none()
        except Exception as e:
            raise DatabaseError(f"Failed to get account by email: {str(e)}")

    async def create_account(self, email: str, hashed_password: str, confirmed: bool = False) -> Account:
        email = (email or "").strip().lower()
        if await self.get_by_email(email) is not None:
            raise ResourceAlreadyExistsError("Account", email)
        return await self.create({
            "email": email,
            "hashed_password": hashed_password,
            "email_confirmed_at": datetime.now(timezone.utc) if confirmed else None,
        })

    async def confirm_email(self, account_id: str) -> Account:
        return await self.update(account_id, {"email_confirmed_at": datetime.now(timezone.utc)})

    async def record_login(self, account_id: str) -> None:
        await self.update(account_id, {"last_login": datetime.now(timezone.utc)})


class ProfileRepository(BaseRepository[Profile]):
    """Repository for profiles and follow relationships."""

    def get_model_class(self):
        return Profile

    async def insert_profile(self, profile_id: str, data: Dict[str, Any]) -> Profile:
        data = {k: v for k, v in data.items() if hasattr(Profile, k)}
        data["id"] = profile_id
        return await self.create(data)

    async def update_profile(self, profile_id: str, data: Dict[str, Any]) -> Profile:
        data = {k: v for k, v in data.items() if hasattr(Profile, k) and k != "id"}
        return await self.update(profile_id, data)

    async def following_ids(self, profile_id: str) -> List[str]:
        try:
            result = await self.session.execute(
                select(Follower.following_id).where(Follower.follower_id == profile_id)
            )
            return list(result.scalars().all())
        except Exception as e:
            raise DatabaseError(f"Failed to get followed profiles: {str(e)}")

    async def create_follows(self, follower_id: str, following_ids: List[str]) -> int:
        """Insert follow rows in one batch, skipping self-follows and existing rows."""
        existing = set(await self.following_ids(follower_id))
        targets = []
        for following_id in following_ids:
            if following_id == follower_id or following_id in existing:
                continue
            existing.add(following_id)
            targets.append(following_id)
        if not targets:
            return 0

        known = {profile.id for profile in await self.get_by_ids(targets)}
        missing = [t for t in targets if t not in known]
        if missing:
            raise ResourceNotFoundError("Profile", ", ".join(missing))
        try:
            self.session.add_all([Follower(follower_id=follower_id, following_id=t) for t in targets])
            await self.session.flush()
            return len(targets)
        except Exception as e:
            raise DatabaseError(f"Failed to create follows: {str(e)}")

    async def unfollow(self, follower_id: str, following_id: str) -> bool:
        try:
            result = await self.session.execute(
                select(Follower).where(Follower.follower_id == follower_id, Follower.following_id == following_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return False
            await self.session.delete(row)
            await self.session.flush()
            return True
        except Exception as e:
            raise DatabaseError(f"Failed to unfollow: {str(e)}")
