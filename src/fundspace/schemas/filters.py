"""Filter configurations for the discovery pipeline.

Every dimension is optional; an absent or empty dimension leaves the list
unfiltered. Values arrive from query strings, JSON bodies and the CLI, so
list dimensions accept a single string and numeric bounds that do not parse
are dropped rather than rejected.
"""

import math
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
    return []


def _as_bound(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        bound = float(value)
    elif isinstance(value, str):
        try:
            bound = float(value.replace(",", "").replace("$", "").strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(bound) else bound


def _as_term(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


class _FilterBase(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    search: str = Field(default="", validation_alias=AliasChoices("search", "searchTerm", "q"))
    locations: List[str] = Field(default_factory=list, validation_alias=AliasChoices("locations", "locationFilter"))

    @field_validator("search", mode="before")
    @classmethod
    def lenient_search(cls, v):
        return _as_term(v)

    @field_validator("locations", mode="before")
    @classmethod
    def lenient_locations(cls, v):
        return _as_list(v)

    def is_empty(self) -> bool:
        """True when no dimension would exclude anything."""
        for value in self.model_dump().values():
            if value not in (None, "", []):
                return False
        return True


class GrantFilter(_FilterBase):
    categories: List[str] = Field(default_factory=list, validation_alias=AliasChoices("categories", "categoryFilter"))
    taxonomies: List[str] = Field(default_factory=list, validation_alias=AliasChoices("taxonomies", "taxonomyFilter"))
    eligible_organization_types: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("eligible_organization_types", "eligibleOrganizationTypes"),
    )
    grant_type: str = Field(default="", validation_alias=AliasChoices("grant_type", "grantTypeFilter"))
    status: str = Field(default="", validation_alias=AliasChoices("status", "grantStatusFilter"))
    min_funding: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_funding", "minFunding"))
    max_funding: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_funding", "maxFunding"))

    @field_validator("categories", "taxonomies", "eligible_organization_types", mode="before")
    @classmethod
    def lenient_lists(cls, v):
        return _as_list(v)

    @field_validator("grant_type", "status", mode="before")
    @classmethod
    def lenient_enums(cls, v):
        return _as_term(v)

    @field_validator("min_funding", "max_funding", mode="before")
    @classmethod
    def lenient_bounds(cls, v):
        # A zero bound means "no bound" for grant listings
        return _as_bound(v) or None


class FunderFilter(_FilterBase):
    focus_areas: List[str] = Field(default_factory=list, validation_alias=AliasChoices("focus_areas", "focusAreaFilter"))
    grant_type: str = Field(default="", validation_alias=AliasChoices("grant_type", "grantTypeFilter"))
    funder_type: str = Field(default="", validation_alias=AliasChoices("funder_type", "funderTypeFilter"))
    geographic_scope: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("geographic_scope", "geographicScopeFilter")
    )
    annual_giving: str = Field(default="", validation_alias=AliasChoices("annual_giving", "annualGivingFilter"))
    min_funding: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_funding", "minFunding"))
    max_funding: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_funding", "maxFunding"))

    @field_validator("focus_areas", "geographic_scope", mode="before")
    @classmethod
    def lenient_lists(cls, v):
        return _as_list(v)

    @field_validator("grant_type", "funder_type", "annual_giving", mode="before")
    @classmethod
    def lenient_enums(cls, v):
        return _as_term(v)

    @field_validator("min_funding", "max_funding", mode="before")
    @classmethod
    def lenient_bounds(cls, v):
        return _as_bound(v)


class NonprofitFilter(_FilterBase):
    focus_areas: List[str] = Field(default_factory=list, validation_alias=AliasChoices("focus_areas", "focusAreaFilter"))
    taxonomies: List[str] = Field(default_factory=list, validation_alias=AliasChoices("taxonomies", "taxonomyFilter"))
    min_budget: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_budget", "minBudget"))
    max_budget: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_budget", "maxBudget"))
    min_staff: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_staff", "minStaff"))
    max_staff: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_staff", "maxStaff"))

    @field_validator("focus_areas", "taxonomies", mode="before")
    @classmethod
    def lenient_lists(cls, v):
        return _as_list(v)

    @field_validator("min_budget", "max_budget", "min_staff", "max_staff", mode="before")
    @classmethod
    def lenient_bounds(cls, v):
        return _as_bound(v)


class OrganizationFilter(_FilterBase):
    focus_areas: List[str] = Field(default_factory=list, validation_alias=AliasChoices("focus_areas", "focusAreaFilter"))
    types: List[str] = Field(default_factory=list, validation_alias=AliasChoices("types", "typeFilter"))
    taxonomies: List[str] = Field(default_factory=list, validation_alias=AliasChoices("taxonomies", "taxonomyFilter"))
    min_budget: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_budget", "minBudget"))
    max_budget: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_budget", "maxBudget"))
    annual_giving: str = Field(default="", validation_alias=AliasChoices("annual_giving", "annualGivingFilter"))

    @field_validator("focus_areas", "types", "taxonomies", mode="before")
    @classmethod
    def lenient_lists(cls, v):
        return _as_list(v)

    @field_validator("annual_giving", mode="before")
    @classmethod
    def lenient_enums(cls, v):
        return _as_term(v)

    @field_validator("min_budget", "max_budget", mode="before")
    @classmethod
    def lenient_bounds(cls, v):
        return _as_bound(v)
