"""Authentication service for Fundspace."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import structlog

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.exceptions import InvalidCredentialsError, TokenInvalidError
from ..models.database import Account
from ..repositories.profile_repository import AccountRepository, ProfileRepository

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthService:
    """Service for handling accounts, passwords and access tokens."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        """Initialize auth service."""
        self.session = session
        self.settings = settings or get_settings()
        self.account_repository = AccountRepository(session)
        self.profile_repository = ProfileRepository(session)

        # JWT configuration
        self.secret_key = self.settings.jwt_secret_key or "change-me-in-production"
        self.algorithm = self.settings.jwt_algorithm or "HS256"
        self.access_token_expire_minutes = self.settings.jwt_expire_minutes or 30

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        """Hash a password."""
        return pwd_context.hash(password)

    def create_access_token(self, data: Dict[str, Any]) -> str:
        """Create JWT access token."""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.access_token_expire_minutes)
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verify and decode an access token; None when it is not valid."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning("Token verification failed", error=str(e))
            return None

        if payload.get("type") != "access":
            logger.warning("Invalid token type", payload_type=payload.get("type"))
            return None
        return payload

    async def register(self, email: str, password: str) -> Account:
        """Create a login account; confirmed immediately unless confirmation is required."""
        account = await self.account_repository.create_account(
            email,
            self.get_password_hash(password),
            confirmed=not self.settings.require_email_confirmation,
        )
        logger.info("Account registered", account_id=account.id)
        return account

    def is_confirmed(self, account: Optional[Account]) -> bool:
        return account is not None and account.email_confirmed_at is not None

    async def authenticate(self, email: str, password: str) -> Optional[Account]:
        """Return the account when the credentials match."""
        account = await self.account_repository.get_by_email(email)
        if account is None:
            logger.warning("Account not found", email=email)
            return None
        if not self.verify_password(password, account.hashed_password):
            logger.warning("Invalid password", account_id=account.id)
            return None

        await self.account_repository.record_login(account.id)
        logger.info("Account authenticated", account_id=account.id)
        return account

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate and return an access token with the caller's profile."""
        account = await self.authenticate(email, password)
        if account is None:
            raise InvalidCredentialsError()

        profile = await self.profile_repository.get_by_id(account.id)
        return {
            "access_token": self.create_access_token({"sub": account.id, "email": account.email}),
            "token_type": "bearer",
            "expires_in": self.access_token_expire_minutes * 60,
            "email_confirmed": self.is_confirmed(account),
            "profile": profile.to_record().model_dump() if profile else None,
        }

    async def get_current_account(self, token: str) -> Account:
        """Resolve the account behind an access token."""
        payload = self.verify_token(token) if token else None
        if payload is None or not payload.get("sub"):
            raise TokenInvalidError()

        account = await self.account_repository.get_by_id(payload["sub"])
        if account is None:
            raise TokenInvalidError()
        return account
