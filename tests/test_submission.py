"""Tests for the sign-up submission sequence."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from fundspace.core.database_manager import DatabaseManager
from fundspace.core.events import EventBus, OrganizationChanged, OrganizationJoined
from fundspace.core.exceptions import PermissionDeniedError, SignupError, ValidationError
from fundspace.repositories.organization_repository import OrganizationRepository
from fundspace.repositories.profile_repository import ProfileRepository
from fundspace.storage.object_storage import ObjectStorage
from fundspace.wizard.backend import DatabaseSignupBackend
from fundspace.wizard.machine import COMMUNITY_MEMBER, ImageUpload, SignupForm
from fundspace.wizard.submission import (
    CONFIRM_EMAIL_MESSAGE,
    WELCOME_MESSAGE,
    SignupStatus,
    SignupSubmitter,
    build_organization,
    build_profile,
    role_label,
)


class FakeBackend:
    """Records every call; any operation named in ``fail`` raises."""

    def __init__(self, fail: Optional[Dict[str, Exception]] = None, existing_profile: bool = False):
        self.fail = fail or {}
        self.existing_profile = existing_profile
        self.calls: List[tuple] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name,) + args)
        if name in self.fail:
            raise self.fail[name]

    @property
    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    async def create_account(self, email, password, full_name):
        self._record("create_account", email)
        return "user-1"

    async def upload_image(self, bucket, image, prefix):
        self._record("upload_image", bucket, prefix)
        return f"/storage/{bucket}/{prefix}.jpg"

    async def profile_exists(self, user_id):
        self._record("profile_exists", user_id)
        return self.existing_profile

    async def insert_profile(self, user_id, profile):
        self._record("insert_profile", user_id, profile)

    async def update_profile(self, user_id, profile):
        self._record("update_profile", user_id, profile)

    async def create_organization(self, user_id, organization):
        self._record("create_organization", user_id, organization)
        return {"id": "org-9", **organization}

    async def join_organization(self, user_id, organization_id, role):
        self._record("join_organization", user_id, organization_id, role)

    async def create_follows(self, user_id, following_ids):
        self._record("create_follows", user_id, following_ids)


def _form(**overrides) -> SignupForm:
    data = {
        "full_name": " Ada Lovelace ",
        "email": "ada@example.org",
        "password": "secret1",
        "organization_type": "nonprofit",
        "organization_choice": "create",
        "new_organization": {"name": "Mission Food", "taxonomy_code": "nonprofit.501c3",
                             "staff_count": "11-50", "year_founded": "2005"},
        "location": ["San Francisco", "Oakland"],
        "interests": ["Housing", "Food Security"],
    }
    data.update(overrides)
    return SignupForm.model_validate(data)


def _submit(backend, form, settings, bus=None):
    return asyncio.run(SignupSubmitter(backend, bus or EventBus(), settings).submit(form))


class TestSubmitter:
    def test_create_organization_flow(self, settings):
        bus = EventBus()
        joined = []
        bus.subscribe(OrganizationJoined, joined.append)
        backend = FakeBackend()

        result = _submit(backend, _form(follow_user_ids=["p2"]), settings, bus)

        assert result.status == SignupStatus.COMPLETED
        assert result.message == WELCOME_MESSAGE
        assert result.organization_id == "org-9"
        assert result.completed == ["account", "profile", "organization", "follows"]
        assert backend.names == [
            "create_account", "profile_exists", "insert_profile", "create_organization", "create_follows",
        ]
        assert joined[0].organization["name"] == "Mission Food"

    def test_existing_profile_row_is_updated(self, settings):
        backend = FakeBackend(existing_profile=True)
        _submit(backend, _form(), settings)
        assert "update_profile" in backend.names
        assert "insert_profile" not in backend.names

    def test_join_flow_uses_member_role(self, settings):
        backend = FakeBackend()
        form = _form(organization_choice="join",
                     selected_organization={"id": "org-3", "type": "foundation", "name": "Bay Area Fund"})
        result = _submit(backend, form, settings)
        assert ("join_organization", "user-1", "org-3", "member") in backend.calls
        assert result.completed == ["account", "profile", "membership"]
        profile = next(call[2] for call in backend.calls if call[0] == "insert_profile")
        assert profile["role"] == "Funder"
        assert profile["selected_organization_id"] == "org-3"

    def test_community_member_has_no_organization_step(self, settings):
        backend = FakeBackend()
        result = _submit(backend, _form(organization_type=COMMUNITY_MEMBER, organization_choice=""), settings)
        assert result.organization_id is None
        assert "create_organization" not in backend.names

    def test_incomplete_form_is_rejected_before_any_write(self, settings):
        backend = FakeBackend()
        with pytest.raises(ValidationError) as excinfo:
            _submit(backend, _form(location=[]), settings)
        assert excinfo.value.details["step"] == 4
        assert backend.calls == []

    def test_account_failure_aborts(self, settings):
        backend = FakeBackend(fail={"create_account": RuntimeError("email taken")})
        with pytest.raises(SignupError) as excinfo:
            _submit(backend, _form(), settings)
        assert excinfo.value.step == "account"
        assert excinfo.value.completed == []

    def test_avatar_failure_is_best_effort(self, settings):
        backend = FakeBackend(fail={"upload_image": RuntimeError("storage down")})
        result = _submit(backend, _form(avatar=ImageUpload(data=b"img")), settings)
        assert result.status == SignupStatus.COMPLETED
        assert result.avatar_url is None
        assert "avatar" not in result.completed

    def test_avatar_url_lands_on_profile(self, settings):
        backend = FakeBackend()
        result = _submit(backend, _form(avatar=ImageUpload(data=b"img")), settings)
        assert result.avatar_url == "/storage/avatars/avatar.jpg"
        profile = next(call[2] for call in backend.calls if call[0] == "insert_profile")
        assert profile["avatar_url"] == result.avatar_url

    def test_unconfirmed_email_is_a_soft_success(self, settings):
        backend = FakeBackend(fail={"insert_profile": PermissionDeniedError("profiles", "insert")})
        result = _submit(backend, _form(), settings)
        assert result.status == SignupStatus.PENDING_CONFIRMATION
        assert result.message == CONFIRM_EMAIL_MESSAGE
        assert "create_organization" not in backend.names

    def test_profile_failure_reports_completed_steps(self, settings):
        backend = FakeBackend(fail={"insert_profile": RuntimeError("constraint")})
        with pytest.raises(SignupError) as excinfo:
            _submit(backend, _form(), settings)
        assert excinfo.value.step == "profile"
        assert excinfo.value.completed == ["account"]

    def test_organization_failure_keeps_account_and_profile(self, settings):
        backend = FakeBackend(fail={"create_organization": RuntimeError("duplicate")})
        with pytest.raises(SignupError) as excinfo:
            _submit(backend, _form(), settings)
        assert excinfo.value.step == "organization"
        assert excinfo.value.completed == ["account", "profile"]

    def test_follow_failure_does_not_fail_signup(self, settings):
        backend = FakeBackend(fail={"create_follows": RuntimeError("unknown profile")})
        result = _submit(backend, _form(follow_user_ids=["ghost"]), settings)
        assert result.status == SignupStatus.COMPLETED
        assert "follows" not in result.completed


def test_build_profile_and_organization():
    form = _form()
    profile = build_profile(form, None)
    assert profile["full_name"] == "Ada Lovelace"
    assert profile["location"] == "San Francisco, Oakland"
    assert profile["bio"] == "Interested in: Housing, Food Security"
    assert profile["role"] == "Nonprofit"
    assert profile["onboarding_completed"] is True

    organization = build_organization(form, "/storage/organization-logos/logo.png")
    assert organization["staff_count"] == 11
    assert organization["year_founded"] == 2005
    assert organization["type"] == "nonprofit"
    assert organization["image_url"].endswith("logo.png")


def test_role_label_falls_back_to_community_member():
    assert role_label(_form(organization_type="unheard-of")) == "Community member"


class TestDatabaseBackend:
    """The same sequence against the real repositories."""

    def _run(self, settings, tmp_path, form, **overrides):
        settings = settings.model_copy(update=overrides)

        async def scenario():
            db = DatabaseManager(settings)
            await db.create_all()
            try:
                storage = ObjectStorage(settings, root=str(tmp_path / "objects"))
                backend = DatabaseSignupBackend(db, storage, settings)
                result = await SignupSubmitter(backend, EventBus(), settings).submit(form)
                async with db.transaction() as session:
                    profile = await ProfileRepository(session).get_by_id(result.user_id)
                    membership = await OrganizationRepository(session).membership_for_profile(result.user_id)
                    return result, (profile.to_record() if profile else None), membership
            finally:
                await db.shutdown()

        return asyncio.run(scenario())

    def test_creates_profile_organization_and_owner_membership(self, settings, tmp_path):
        form = _form(avatar=ImageUpload(data=b"\x89PNG", filename="me.png", content_type="image/png"))
        result, profile, membership = self._run(settings, tmp_path, form)

        assert result.status == SignupStatus.COMPLETED
        assert profile.full_name == "Ada Lovelace"
        assert profile.avatar_url.startswith("/storage/avatars/avatar-")
        assert membership[0].role == "super_admin"
        assert membership[1].slug == "mission-food"
        assert list((tmp_path / "objects" / "avatars").iterdir())

    def test_unconfirmed_account_cannot_write_profile(self, settings, tmp_path):
        result, profile, membership = self._run(settings, tmp_path, _form(), require_email_confirmation=True)
        assert result.status == SignupStatus.PENDING_CONFIRMATION
        assert profile is None
        assert membership is None

    def test_duplicate_email_fails_account_step(self, settings, tmp_path):
        async def scenario():
            db = DatabaseManager(settings)
            await db.create_all()
            try:
                backend = DatabaseSignupBackend(db, ObjectStorage(settings), settings)
                submitter = SignupSubmitter(backend, EventBus(), settings)
                await submitter.submit(_form(organization_type=COMMUNITY_MEMBER))
                await submitter.submit(_form(organization_type=COMMUNITY_MEMBER, email="ADA@example.org"))
            finally:
                await db.shutdown()

        with pytest.raises(SignupError) as excinfo:
            asyncio.run(scenario())
        assert excinfo.value.step == "account"
