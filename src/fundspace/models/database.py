"""SQLAlchemy database models for Fundspace."""

from datetime import date, datetime
from typing import Optional, List, Dict, Any
from uuid import uuid4

from sqlalchemy import String, Text, Date, DateTime, Boolean, Integer, Float, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates
from sqlalchemy.sql import func

from ..pipeline.funding import parse_range
from . import records


def new_uuid() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# Account Model
class Account(Base):
    """Login credentials; the profile row shares its id."""
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    email_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile: Mapped[Optional["Profile"]] = relationship("Profile", back_populates="account", uselist=False)


# Profile Model
class Profile(Base):
    """Public profile created during sign-up."""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(ForeignKey("accounts.id"), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1000))
    role: Mapped[Optional[str]] = mapped_column(String(100))
    location: Mapped[Optional[str]] = mapped_column(String(500))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    interests: Mapped[Optional[list]] = mapped_column(JSON)
    organization_type: Mapped[Optional[str]] = mapped_column(String(100))
    organization_choice: Mapped[Optional[str]] = mapped_column(String(20))
    selected_organization_id: Mapped[Optional[str]] = mapped_column(String(36))
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_omega_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    account: Mapped[Account] = relationship("Account", back_populates="profile")
    memberships: Mapped[List["OrganizationMembership"]] = relationship("OrganizationMembership", back_populates="profile")

    def to_record(self) -> records.Profile:
        return records.Profile(
            id=self.id,
            full_name=self.full_name,
            avatar_url=self.avatar_url,
            role=self.role,
            location=self.location,
            bio=self.bio,
            interests=self.interests or [],
            organization_type=self.organization_type,
            organization_choice=self.organization_choice,
            selected_organization_id=self.selected_organization_id,
            onboarding_completed=self.onboarding_completed,
            is_omega_admin=self.is_omega_admin,
        )


# Organization Models
class Organization(Base):
    """Any organization: nonprofit, foundation, government body, and so on."""
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True)
    type: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    tagline: Mapped[Optional[str]] = mapped_column(String(500))
    description: Mapped[Optional[str]] = mapped_column(Text)
    website: Mapped[Optional[str]] = mapped_column(String(500))
    location: Mapped[Optional[str]] = mapped_column(String(500))
    image_url: Mapped[Optional[str]] = mapped_column(String(1000))
    focus_areas: Mapped[Optional[list]] = mapped_column(JSON)
    taxonomy_code: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    budget: Mapped[Optional[str]] = mapped_column(String(100))
    total_funding_annually: Mapped[Optional[str]] = mapped_column(String(100))
    staff_count: Mapped[Optional[int]] = mapped_column(Integer)
    grants_offered: Mapped[Optional[int]] = mapped_column(Integer)
    year_founded: Mapped[Optional[int]] = mapped_column(Integer)
    funding_locations: Mapped[Optional[list]] = mapped_column(JSON)
    grant_types: Mapped[Optional[list]] = mapped_column(JSON)
    funder_type: Mapped[Optional[str]] = mapped_column(String(100))
    created_by: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.id"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    memberships: Mapped[List["OrganizationMembership"]] = relationship(
        "OrganizationMembership", back_populates="organization", cascade="all, delete-orphan"
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "type": self.type,
            "tagline": self.tagline,
            "description": self.description,
            "website": self.website,
            "location": self.location,
            "image_url": self.image_url,
            "focus_areas": self.focus_areas or [],
            "taxonomy_code": self.taxonomy_code,
            "budget": self.budget,
            "total_funding_annually": self.total_funding_annually,
            "staff_count": self.staff_count,
            "grants_offered": self.grants_offered,
            "year_founded": self.year_founded,
            "funding_locations": self.funding_locations or [],
            "grant_types": self.grant_types or [],
            "funder_type": self.funder_type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def to_record(self, members: Optional[List[Dict[str, Any]]] = None) -> records.Organization:
        data = self.to_dict()
        data["members"] = members or []
        return records.Organization.model_validate(data)


class OrganizationMembership(Base):
    """A profile's role within an organization."""
    __tablename__ = "organization_memberships"
    __table_args__ = (UniqueConstraint("profile_id", "organization_id", name="uq_membership_profile_org"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True, nullable=False)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), index=True, nullable=False)
    organization_type: Mapped[Optional[str]] = mapped_column(String(50))
    role: Mapped[str] = mapped_column(String(20), default="member", nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile: Mapped[Profile] = relationship("Profile", back_populates="memberships")
    organization: Mapped[Organization] = relationship("Organization", back_populates="memberships")


class OrganizationTaxonomy(Base):
    """Hierarchical organization classification."""
    __tablename__ = "organization_taxonomies"

    code: Mapped[str] = mapped_column(String(100), primary_key=True)
    parent_code: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    organization_type: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "parent_code": self.parent_code,
            "name": self.name,
            "display_name": self.display_name,
            "organization_type": self.organization_type,
            "level": self.level,
            "sort_order": self.sort_order,
        }


# Grant Models
class Grant(Base):
    """Funding opportunity; the numeric range is normalized from the label on write."""
    __tablename__ = "grants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    foundation_name: Mapped[Optional[str]] = mapped_column(String(500))
    funder_slug: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    funding_amount: Mapped[Optional[str]] = mapped_column(String(255))
    funding_min: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    funding_max: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    funding_currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    grant_type: Mapped[Optional[str]] = mapped_column(String(100))
    categories: Mapped[Optional[list]] = mapped_column(JSON)
    locations: Mapped[Optional[list]] = mapped_column(JSON)
    eligible_organization_types: Mapped[Optional[list]] = mapped_column(JSON)
    keywords: Mapped[Optional[list]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    saves: Mapped[List["SavedGrant"]] = relationship("SavedGrant", back_populates="grant", cascade="all, delete-orphan")

    @validates("funding_amount")
    def normalize_funding(self, key: str, value: Optional[str]) -> Optional[str]:
        funding = parse_range(value)
        self.funding_min = funding.min
        self.funding_max = funding.max
        self.funding_currency = funding.currency
        return value

    def to_record(self, save_count: int = 0) -> records.Grant:
        return records.Grant(
            id=self.id,
            title=self.title,
            description=self.description,
            foundation_name=self.foundation_name,
            funder_slug=self.funder_slug,
            funding_amount=self.funding_amount,
            funding=records.FundingRange(
                min=self.funding_min,
                max=self.funding_max,
                currency=self.funding_currency,
                label=self.funding_amount or "",
            ),
            due_date=self.due_date,
            grant_type=self.grant_type,
            categories=self.categories or [],
            locations=self.locations or [],
            eligible_organization_types=self.eligible_organization_types or [],
            keywords=self.keywords or [],
            save_count=save_count,
            created_at=self.created_at,
        )


class SavedGrant(Base):
    """Bookmark of a grant by a profile."""
    __tablename__ = "saved_grants"
    __table_args__ = (UniqueConstraint("profile_id", "grant_id", name="uq_saved_grant_profile_grant"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True, nullable=False)
    grant_id: Mapped[int] = mapped_column(ForeignKey("grants.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    grant: Mapped[Grant] = relationship("Grant", back_populates="saves")


# Social Models
class Follower(Base):
    """Directed follow relationship between profiles."""
    __tablename__ = "followers"
    __table_args__ = (UniqueConstraint("follower_id", "following_id", name="uq_follower_following"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True, nullable=False)
    following_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# News Model
class RssArticle(Base):
    """Cached news article fetched from an RSS feed."""
    __tablename__ = "rss_articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    url: Mapped[str] = mapped_column(String(2000), unique=True, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(2000))
    source_name: Mapped[Optional[str]] = mapped_column(String(255))
    category: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Post(Base):
    """Feed post authored by a profile."""
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True, nullable=False)
    organization_id: Mapped[Optional[str]] = mapped_column(ForeignKey("organizations.id"), index=True)
    channel: Mapped[str] = mapped_column(String(100), index=True, default="general", nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "organization_id": self.organization_id,
            "channel": self.channel,
            "content": self.content,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
