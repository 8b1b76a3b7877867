"""Sign-up submission: the remote write sequence behind "Create Account".

The sequence is not atomic. Account creation, profile write and the
organization step each abort the submission on failure, leaving whatever
already succeeded in place. Avatar upload, logo upload and follow creation
are best effort. A permission rejection on the profile write means the
account still awaits email confirmation and is reported as a soft success.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import structlog

from ..core.config import Settings, get_settings
from ..core.events import EventBus, OrganizationJoined, event_bus
from ..core.exceptions import PermissionDeniedError, SignupError, ValidationError
from ..core.rbac import OrganizationRole
from .machine import COMMUNITY_MEMBER, ImageUpload, SignupForm, SignUpWizard

logger = structlog.get_logger(__name__)

AVATAR_BUCKET = "avatars"
LOGO_BUCKET = "organization-logos"

ROLE_LABELS = {
    "nonprofit": "Nonprofit",
    "government": "Government",
    "foundation": "Funder",
    "for-profit": "For-profit",
    "education": "Education",
    "healthcare": "Healthcare",
    "religious": "Religious",
    "international": "International",
    COMMUNITY_MEMBER: "Community member",
}
DEFAULT_ROLE_LABEL = "Community member"

WELCOME_MESSAGE = "Welcome to Fundspace! Your account has been created successfully."
CONFIRM_EMAIL_MESSAGE = (
    "Your account has been created. Please check your email and click the "
    "confirmation link to finish setting up your profile."
)


class SignupStatus(str, Enum):
    COMPLETED = "completed"
    PENDING_CONFIRMATION = "pending_confirmation"


@dataclass
class SignupResult:
    status: SignupStatus
    user_id: str
    message: str
    avatar_url: Optional[str] = None
    organization_id: Optional[str] = None
    completed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "user_id": self.user_id,
            "message": self.message,
            "avatar_url": self.avatar_url,
            "organization_id": self.organization_id,
            "completed": list(self.completed),
        }


class SignupBackend(Protocol):
    """Remote operations the submission sequence depends on."""

    async def create_account(self, email: str, password: str, full_name: str) -> str:
        ...

    async def upload_image(self, bucket: str, image: ImageUpload, prefix: str) -> str:
        ...

    async def profile_exists(self, user_id: str) -> bool:
        ...

    async def insert_profile(self, user_id: str, profile: Dict[str, Any]) -> None:
        ...

    async def update_profile(self, user_id: str, profile: Dict[str, Any]) -> None:
        ...

    async def create_organization(self, user_id: str, organization: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def join_organization(self, user_id: str, organization_id: str, role: str) -> None:
        ...

    async def create_follows(self, user_id: str, following_ids: List[str]) -> None:
        ...


def role_label(form: SignupForm) -> str:
    """Profile role label derived from the organization the user creates or joins."""
    if form.organization_choice == "join" and form.selected_organization is not None:
        return ROLE_LABELS.get(form.selected_organization.type, DEFAULT_ROLE_LABEL)
    return ROLE_LABELS.get(form.organization_type, DEFAULT_ROLE_LABEL)


def _parse_leading_int(value: str) -> Optional[int]:
    head = (value or "").split("-")[0].strip().replace(",", "").rstrip("+")
    return int(head) if head.isdigit() else None


def build_profile(form: SignupForm, avatar_url: Optional[str]) -> Dict[str, Any]:
    interests = list(form.interests)
    return {
        "full_name": form.full_name.strip(),
        "avatar_url": avatar_url,
        "role": role_label(form),
        "location": ", ".join(form.location),
        "bio": f"Interested in: {', '.join(interests)}" if interests else None,
        "interests": interests,
        "organization_type": form.organization_type,
        "organization_choice": "" if form.is_community_member else form.organization_choice,
        "selected_organization_id": (
            form.selected_organization.id
            if form.organization_choice == "join" and form.selected_organization else None
        ),
        "onboarding_completed": True,
    }


def build_organization(form: SignupForm, logo_url: Optional[str]) -> Dict[str, Any]:
    org = form.new_organization
    return {
        "name": org.name.strip(),
        "type": form.organization_type,
        "taxonomy_code": org.taxonomy_code,
        "tagline": org.tagline,
        "description": org.description,
        "website": org.website,
        "location": org.location,
        "budget": org.budget,
        "staff_count": _parse_leading_int(org.staff_count),
        "year_founded": _parse_leading_int(org.year_founded),
        "image_url": logo_url,
    }


class SignupSubmitter:
    """Runs the sign-up write sequence against a backend."""

    def __init__(
        self,
        backend: SignupBackend,
        bus: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
    ):
        self.backend = backend
        self.bus = bus or event_bus
        self.settings = settings or get_settings()

    async def submit(self, form: SignupForm) -> SignupResult:
        """Submit a completed form.

        Raises:
            ValidationError: when a step on the form's path is incomplete.
            SignupError: when account creation, the profile write or the
                organization step fails for a reason other than a pending
                email confirmation.
        """
        wizard = SignUpWizard(form, min_password_length=self.settings.min_password_length)
        invalid = wizard.first_invalid_step()
        if invalid is not None:
            raise ValidationError(
                "Sign-up form is incomplete",
                details={"step": int(invalid), "errors": wizard.validate_step(invalid).errors},
            )

        completed: List[str] = []

        try:
            user_id = await self.backend.create_account(form.email.strip(), form.password, form.full_name.strip())
        except Exception as e:
            logger.error("Account creation failed", email=form.email, error=str(e))
            raise SignupError("account", f"Account creation failed: {e}", completed)
        completed.append("account")
        logger.info("Account created", user_id=user_id)

        # Give the auth backend a moment before writing rows that reference the account
        if self.settings.auth_settle_delay > 0:
            await asyncio.sleep(self.settings.auth_settle_delay)

        avatar_url = None
        if form.avatar is not None:
            avatar_url = await self._best_effort_upload(AVATAR_BUCKET, form.avatar, "avatar", user_id)
            if avatar_url:
                completed.append("avatar")

        try:
            await self._write_profile(user_id, build_profile(form, avatar_url))
        except PermissionDeniedError:
            logger.info("Profile write rejected pending email confirmation", user_id=user_id)
            return SignupResult(
                status=SignupStatus.PENDING_CONFIRMATION,
                user_id=user_id,
                message=CONFIRM_EMAIL_MESSAGE,
                avatar_url=avatar_url,
                completed=completed,
            )
        except Exception as e:
            logger.error("Profile write failed", user_id=user_id, error=str(e))
            raise SignupError("profile", f"Profile creation failed: {e}", completed)
        completed.append("profile")

        organization = await self._organization_step(form, user_id, completed)

        if form.follow_user_ids:
            try:
                await self.backend.create_follows(user_id, list(form.follow_user_ids))
                completed.append("follows")
            except Exception as e:
                logger.warning("Follow relationships failed, continuing sign-up", user_id=user_id, error=str(e))

        organization_id = None
        if organization is not None:
            organization_id = str(organization.get("id"))
            self.bus.publish(OrganizationJoined(profile_id=user_id, organization=organization))

        return SignupResult(
            status=SignupStatus.COMPLETED,
            user_id=user_id,
            message=WELCOME_MESSAGE,
            avatar_url=avatar_url,
            organization_id=organization_id,
            completed=completed,
        )

    async def _write_profile(self, user_id: str, profile: Dict[str, Any]) -> None:
        # A database trigger may already have created the row; the check and
        # the write are separate calls and are not atomic.
        if await self.backend.profile_exists(user_id):
            await self.backend.update_profile(user_id, profile)
        else:
            await self.backend.insert_profile(user_id, profile)

    async def _best_effort_upload(self, bucket: str, image: ImageUpload, prefix: str, user_id: str) -> Optional[str]:
        try:
            return await self.backend.upload_image(bucket, image, prefix)
        except Exception as e:
            logger.warning("Image upload failed, continuing without it", bucket=bucket, user_id=user_id, error=str(e))
            return None

    async def _organization_step(self, form: SignupForm, user_id: str, completed: List[str]) -> Optional[Dict[str, Any]]:
        if form.is_community_member:
            return None

        if form.organization_choice == "create" and form.new_organization.name.strip():
            logo_url = None
            if form.new_organization.logo is not None:
                logo_url = await self._best_effort_upload(LOGO_BUCKET, form.new_organization.logo, "logo", user_id)
                if logo_url:
                    completed.append("logo")
            try:
                organization = await self.backend.create_organization(user_id, build_organization(form, logo_url))
            except Exception as e:
                logger.error("Organization creation failed", user_id=user_id, error=str(e))
                raise SignupError("organization", f"Organization creation failed: {e}", completed)
            completed.append("organization")
            return organization

        if form.organization_choice == "join" and form.selected_organization is not None:
            selected = form.selected_organization
            try:
                await self.backend.join_organization(user_id, selected.id, OrganizationRole.MEMBER.value)
            except Exception as e:
                logger.error("Joining organization failed", user_id=user_id, organization_id=selected.id, error=str(e))
                raise SignupError("organization", f"Joining organization failed: {e}", completed)
            completed.append("membership")
            return {"id": selected.id, "name": selected.name, "type": selected.type}

        return None
