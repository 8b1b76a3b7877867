"""In-memory records the discovery pipeline filters, sorts and pages.

Rows come from the database, from JSON payloads or from hand-written
fixtures, so every field is optional and coerced leniently: a missing text
field reads as "", a list field that is not a list reads as [], and a date
that does not parse reads as None.
"""

from datetime import date, datetime, timezone
from typing import Any, List, Optional, Type, TypeVar, Union

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

logger = structlog.get_logger(__name__)

RecordId = Union[int, str, None]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return str(value.get("name") or "")
    return value if isinstance(value, str) else str(value)


def _as_name_list(value: Any) -> List[str]:
    """Accept ["a", "b"] or [{"name": "a"}, ...]; anything else is []."""
    if not isinstance(value, (list, tuple)):
        return []
    names = []
    for item in value:
        if isinstance(item, str):
            names.append(item)
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            names.append(item["name"])
    return names


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(str(value).replace(",", "")))
    except (ValueError, OverflowError):
        return None


class FundingRange(BaseModel):
    """Numeric funding range normalized once from a free-text label."""

    model_config = ConfigDict(frozen=True)

    min: float = 0
    max: float = 0
    currency: str = "USD"
    label: str = ""

    @property
    def is_unknown(self) -> bool:
        return self.max == 0

    @classmethod
    def from_text(cls, text: Optional[str]) -> "FundingRange":
        from ..pipeline.funding import parse_range

        return parse_range(text)


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Grant(_Record):
    """A funding opportunity."""

    id: RecordId = None
    title: str = ""
    description: str = ""
    foundation_name: str = Field(default="", validation_alias=AliasChoices("foundation_name", "foundationName"))
    funder_slug: str = Field(default="", validation_alias=AliasChoices("funder_slug", "funderSlug"))
    funding_amount: str = Field(default="", validation_alias=AliasChoices("funding_amount", "fundingAmount"))
    funding: Optional[FundingRange] = None
    due_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("due_date", "dueDate"))
    grant_type: str = Field(default="", validation_alias=AliasChoices("grant_type", "grantType"))
    categories: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    eligible_organization_types: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    save_count: int = 0
    created_at: Optional[datetime] = None

    @field_validator(
        "title", "description", "foundation_name", "funder_slug", "funding_amount", "grant_type",
        mode="before",
    )
    @classmethod
    def lenient_text(cls, v):
        return _as_text(v)

    @field_validator(
        "categories", "locations", "eligible_organization_types", "keywords", mode="before",
    )
    @classmethod
    def lenient_lists(cls, v):
        return _as_name_list(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def lenient_due_date(cls, v):
        return _as_date(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def lenient_created_at(cls, v):
        return _as_datetime(v)

    @field_validator("save_count", mode="before")
    @classmethod
    def lenient_save_count(cls, v):
        return _as_int(v) or 0

    @model_validator(mode="after")
    def normalize_funding(self):
        if self.funding is None:
            self.funding = FundingRange.from_text(self.funding_amount)
        return self

    def is_active(self, today: Optional[date] = None) -> bool:
        """Active iff rolling (no due date) or due today or later."""
        if self.due_date is None:
            return True
        return self.due_date >= (today or date.today())

    def status_on(self, today: Optional[date] = None) -> str:
        if self.due_date is None:
            return "Rolling"
        return "Open" if self.is_active(today) else "Closed"

    @property
    def status(self) -> str:
        return self.status_on()


class Membership(_Record):
    profile_id: str = ""
    role: str = "member"

    @field_validator("profile_id", "role", mode="before")
    @classmethod
    def lenient_text(cls, v):
        return _as_text(v)


class Organization(_Record):
    """Any organization: nonprofit, foundation, government body, and so on."""

    id: RecordId = None
    name: str = ""
    slug: str = ""
    type: str = ""
    tagline: str = ""
    description: str = ""
    location: str = ""
    website: str = ""
    image_url: Optional[str] = None
    focus_areas: List[str] = Field(default_factory=list, validation_alias=AliasChoices("focus_areas", "focusAreas"))
    taxonomy_code: str = ""
    budget: str = ""
    total_funding_annually: str = Field(
        default="", validation_alias=AliasChoices("total_funding_annually", "totalFundingAnnually")
    )
    funding: Optional[FundingRange] = None
    budget_range: Optional[FundingRange] = None
    staff_count: Optional[int] = Field(default=None, validation_alias=AliasChoices("staff_count", "staffCount"))
    grants_offered: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("grants_offered", "grantsOffered")
    )
    year_founded: Optional[int] = Field(default=None, validation_alias=AliasChoices("year_founded", "yearFounded"))
    funding_locations: List[str] = Field(default_factory=list)
    grant_types: List[str] = Field(default_factory=list, validation_alias=AliasChoices("grant_types", "grantTypes"))
    funder_type: str = ""
    members: List[Membership] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator(
        "name", "slug", "type", "tagline", "description", "location", "website",
        "taxonomy_code", "budget", "total_funding_annually", "funder_type",
        mode="before",
    )
    @classmethod
    def lenient_text(cls, v):
        return _as_text(v)

    @field_validator(
        "focus_areas", "funding_locations", "grant_types", mode="before",
    )
    @classmethod
    def lenient_lists(cls, v):
        return _as_name_list(v)

    @field_validator("staff_count", "grants_offered", "year_founded", mode="before")
    @classmethod
    def lenient_int(cls, v):
        return _as_int(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def lenient_created_at(cls, v):
        return _as_datetime(v)

    @field_validator("members", mode="before")
    @classmethod
    def lenient_members(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [m for m in v if isinstance(m, (dict, Membership))]

    @model_validator(mode="after")
    def normalize_funding(self):
        if self.funding is None:
            self.funding = FundingRange.from_text(self.total_funding_annually or self.budget)
        if self.budget_range is None:
            self.budget_range = FundingRange.from_text(self.budget)
        return self


class Funder(Organization):
    type: str = "foundation"


class Nonprofit(Organization):
    type: str = "nonprofit"


class Profile(_Record):
    id: RecordId = None
    full_name: str = ""
    avatar_url: Optional[str] = None
    role: str = ""
    location: str = ""
    bio: str = ""
    interests: List[str] = Field(default_factory=list)
    organization_type: str = ""
    organization_choice: str = ""
    selected_organization_id: Optional[str] = None
    onboarding_completed: bool = False
    is_omega_admin: bool = False

    @field_validator(
        "full_name", "role", "location", "bio", "organization_type", "organization_choice",
        mode="before",
    )
    @classmethod
    def lenient_text(cls, v):
        return _as_text(v)

    @field_validator("interests", mode="before")
    @classmethod
    def lenient_interests(cls, v):
        return _as_name_list(v)


R = TypeVar("R", bound=BaseModel)


def coerce_record(record: Any, cls: Type[R]) -> Optional[R]:
    """Return record as an instance of cls, or None when it cannot be read."""
    if isinstance(record, cls):
        return record
    if isinstance(record, BaseModel):
        record = record.model_dump()
    if not isinstance(record, dict):
        return None
    try:
        return cls.model_validate(record)
    except PydanticValidationError as e:
        logger.debug("Skipping unreadable record", record_type=cls.__name__, error=str(e))
        return None
