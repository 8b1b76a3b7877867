"""Sign-up wizard step sequencing and per-step validation."""

from enum import IntEnum
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..core.config import get_settings
from ..core.exceptions import ValidationError
from ..core.validation import ValidationResult, is_blank, is_valid_email

logger = structlog.get_logger(__name__)

COMMUNITY_MEMBER = "community-member"
ORGANIZATION_CHOICES = ("create", "join")


class SignupStep(IntEnum):
    PERSONAL_INFO = 1
    ORGANIZATION_TYPE = 2
    ORGANIZATION_SETUP = 3
    LOCATION = 4
    INTERESTS = 5
    FOLLOW_USERS = 6


STEP_TITLES = {
    SignupStep.PERSONAL_INFO: "Account Information",
    SignupStep.ORGANIZATION_TYPE: "Organization Type",
    SignupStep.ORGANIZATION_SETUP: "Organization Setup",
    SignupStep.LOCATION: "Location",
    SignupStep.INTERESTS: "Interests",
    SignupStep.FOLLOW_USERS: "Follow Users",
}


class ImageUpload(BaseModel):
    """An image chosen in the browser, carried as raw bytes."""

    data: bytes
    filename: str = "image.jpg"
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)


class SelectedOrganization(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str = ""
    name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v) if v is not None else v


class NewOrganization(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    tagline: str = ""
    description: str = ""
    website: str = ""
    location: str = ""
    budget: str = ""
    staff_count: str = ""
    year_founded: str = ""
    taxonomy_code: str = ""
    logo: Optional[ImageUpload] = None


class SignupForm(BaseModel):
    """Everything the wizard collects before submission."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    full_name: str = ""
    email: str = ""
    password: str = ""
    avatar: Optional[ImageUpload] = None
    organization_type: str = ""
    organization_choice: str = ""
    selected_organization: Optional[SelectedOrganization] = None
    new_organization: NewOrganization = Field(default_factory=NewOrganization)
    location: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    follow_user_ids: List[str] = Field(default_factory=list)

    @field_validator("location", "interests", "follow_user_ids", mode="before")
    @classmethod
    def listify(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(item) for item in v if item is not None and str(item).strip()]

    @property
    def is_community_member(self) -> bool:
        return self.organization_type == COMMUNITY_MEMBER


class SignUpWizard:
    """State machine over the six sign-up steps.

    Community members skip organization setup: from the organization type
    step ``next()`` goes straight to location and ``back()`` from location
    returns to the organization type step. Their flow has five displayed
    steps instead of six.
    """

    def __init__(
        self,
        form: Optional[SignupForm] = None,
        step: SignupStep = SignupStep.PERSONAL_INFO,
        min_password_length: Optional[int] = None,
    ):
        self.form = form or SignupForm()
        self.step = SignupStep(step)
        self.min_password_length = (
            min_password_length if min_password_length is not None else get_settings().min_password_length
        )

    @property
    def is_community_member(self) -> bool:
        return self.form.is_community_member

    def total_steps(self) -> int:
        return 5 if self.is_community_member else 6

    def display_step(self) -> int:
        """Step number shown to the user, with the skipped step removed."""
        if self.is_community_member and self.step >= SignupStep.LOCATION:
            return int(self.step) - 1
        return int(self.step)

    def progress(self) -> float:
        return self.display_step() / self.total_steps()

    def step_title(self) -> str:
        return STEP_TITLES[self.step]

    def is_last_step(self) -> bool:
        return self.display_step() == self.total_steps()

    def validate_step(self, step: Optional[SignupStep] = None) -> ValidationResult:
        step = SignupStep(step if step is not None else self.step)
        form = self.form
        result = ValidationResult(is_valid=True)

        if step == SignupStep.PERSONAL_INFO:
            if is_blank(form.full_name):
                result.add_error("Full name is required")
            if not is_valid_email(form.email):
                result.add_error("A valid email address is required")
            if len(form.password or "") < self.min_password_length:
                result.add_error(f"Password must be at least {self.min_password_length} characters")

        elif step == SignupStep.ORGANIZATION_TYPE:
            if is_blank(form.organization_type):
                result.add_error("Select an organization type")

        elif step == SignupStep.ORGANIZATION_SETUP:
            if form.is_community_member:
                return result
            if form.organization_choice == "join":
                if form.selected_organization is None:
                    result.add_error("Select an organization to join")
            elif form.organization_choice == "create":
                if is_blank(form.new_organization.name):
                    result.add_error("Organization name is required")
                if is_blank(form.new_organization.taxonomy_code):
                    result.add_error("Select an organization classification")
            else:
                result.add_error("Choose to create or join an organization")

        elif step == SignupStep.LOCATION:
            if not form.location:
                result.add_error("Select at least one location")

        return result

    def is_step_valid(self, step: Optional[SignupStep] = None) -> bool:
        return self.validate_step(step).is_valid

    def can_advance(self) -> bool:
        return not self.is_last_step() and self.is_step_valid()

    def next(self) -> SignupStep:
        """Advance one step; raises ValidationError while the current step is invalid."""
        result = self.validate_step()
        if not result.is_valid:
            raise ValidationError(
                f"Step {self.display_step()} is incomplete",
                details={"step": int(self.step), "errors": result.errors},
            )
        if self.is_last_step():
            return self.step

        if self.step == SignupStep.ORGANIZATION_TYPE and self.is_community_member:
            self.step = SignupStep.LOCATION
        else:
            self.step = SignupStep(self.step + 1)
        logger.debug("Sign-up wizard advanced", step=int(self.step))
        return self.step

    def back(self) -> SignupStep:
        if self.step == SignupStep.PERSONAL_INFO:
            return self.step
        if self.step == SignupStep.LOCATION and self.is_community_member:
            self.step = SignupStep.ORGANIZATION_TYPE
        else:
            self.step = SignupStep(self.step - 1)
        return self.step

    def update(self, **fields: Any) -> None:
        """Set form fields; ``new_organization`` dicts merge into the current one."""
        data = self.form.model_dump()
        for name, value in fields.items():
            if name == "new_organization" and isinstance(value, dict):
                data["new_organization"] = {**data["new_organization"], **value}
            else:
                data[name] = value
        try:
            self.form = SignupForm.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError("Invalid sign-up field", details={"fields": sorted(fields), "error": str(e)})

        if self.step == SignupStep.ORGANIZATION_SETUP and self.is_community_member:
            self.step = SignupStep.LOCATION

    def snapshot(self) -> Dict[str, Any]:
        """Resumable state without uploaded files or the password."""
        form = self.form.model_dump(
            mode="json",
            exclude={"avatar": True, "password": True, "new_organization": {"logo"}},
        )
        return {"step": int(self.step), "form": form}

    def steps_in_path(self) -> List[SignupStep]:
        steps = list(SignupStep)
        if self.is_community_member:
            steps.remove(SignupStep.ORGANIZATION_SETUP)
        return steps

    def first_invalid_step(self, up_to: Optional[SignupStep] = None) -> Optional[SignupStep]:
        """Earliest step on the current path that fails validation."""
        for step in self.steps_in_path():
            if up_to is not None and step > up_to:
                break
            if not self.is_step_valid(step):
                return step
        return None

    @classmethod
    def restore(
        cls,
        snapshot: Optional[Dict[str, Any]],
        password: Optional[str] = None,
        min_password_length: Optional[int] = None,
    ) -> "SignUpWizard":
        """Rebuild a wizard from ``snapshot()`` output.

        A saved step outside 1..6 is ignored. The wizard resumes at the saved
        step unless an earlier step is incomplete, which is always the case
        for step one when no password is supplied.
        """
        snapshot = snapshot or {}
        wizard = cls(min_password_length=min_password_length)
        try:
            form = dict(snapshot.get("form") or {})
            form["password"] = password or ""
            wizard.form = SignupForm.model_validate(form)
        except PydanticValidationError as e:
            logger.warning("Discarding unreadable sign-up snapshot", error=str(e))
            return wizard

        try:
            step = SignupStep(int(snapshot.get("step", 1)))
        except (TypeError, ValueError):
            step = SignupStep.PERSONAL_INFO
        if step == SignupStep.ORGANIZATION_SETUP and wizard.is_community_member:
            step = SignupStep.LOCATION

        blocking = wizard.first_invalid_step(up_to=SignupStep(step - 1)) if step > 1 else None
        wizard.step = blocking or step
        return wizard
