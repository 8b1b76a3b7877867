"""Sign-up backend over the local database and object storage."""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.database_manager import DatabaseManager
from ..core.exceptions import PermissionDeniedError
from ..repositories.organization_repository import OrganizationRepository
from ..repositories.profile_repository import AccountRepository, ProfileRepository
from ..services.auth_service import AuthService
from ..storage.object_storage import ObjectStorage
from .machine import ImageUpload

logger = structlog.get_logger(__name__)


class DatabaseSignupBackend:
    """Each call runs in its own transaction; the sequence as a whole is not atomic.

    With ``require_email_confirmation`` set, profile writes for an account
    whose email is unconfirmed are rejected with ``PermissionDeniedError``,
    the same way a row-level policy rejects them for an unconfirmed session.
    """

    def __init__(self, db: DatabaseManager, storage: Optional[ObjectStorage] = None,
                 settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.storage = storage or ObjectStorage(self.settings)

    async def create_account(self, email: str, password: str, full_name: str) -> str:
        async with self.db.transaction() as session:
            account = await AuthService(session, self.settings).register(email, password)
            return account.id

    async def upload_image(self, bucket: str, image: ImageUpload, prefix: str) -> str:
        return self.storage.upload(bucket, image.filename, image.data, image.content_type, prefix=prefix)

    async def profile_exists(self, user_id: str) -> bool:
        async with self.db.transaction() as session:
            return await ProfileRepository(session).exists(user_id)

    async def _require_confirmed(self, session: AsyncSession, user_id: str, operation: str) -> None:
        if not self.settings.require_email_confirmation:
            return
        account = await AccountRepository(session).get_by_id(user_id)
        if account is None or account.email_confirmed_at is None:
            raise PermissionDeniedError(resource="profiles", operation=operation)

    async def insert_profile(self, user_id: str, profile: Dict[str, Any]) -> None:
        async with self.db.transaction() as session:
            await self._require_confirmed(session, user_id, "insert")
            await ProfileRepository(session).insert_profile(user_id, profile)

    async def update_profile(self, user_id: str, profile: Dict[str, Any]) -> None:
        async with self.db.transaction() as session:
            await self._require_confirmed(session, user_id, "update")
            await ProfileRepository(session).update_profile(user_id, profile)

    async def create_organization(self, user_id: str, organization: Dict[str, Any]) -> Dict[str, Any]:
        async with self.db.transaction() as session:
            created = await OrganizationRepository(session).create_with_owner(user_id, organization)
            return created.to_dict()

    async def join_organization(self, user_id: str, organization_id: str, role: str) -> None:
        async with self.db.transaction() as session:
            await OrganizationRepository(session).add_member(user_id, organization_id, role)

    async def create_follows(self, user_id: str, following_ids: List[str]) -> None:
        async with self.db.transaction() as session:
            created = await ProfileRepository(session).create_follows(user_id, following_ids)
        logger.debug("Follow rows created", user_id=user_id, count=created)
